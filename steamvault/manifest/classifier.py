"""Manifest classification — map a parsed appmanifest to a record and decide
whether it can be backed up.

Both steps are pure: no I/O beyond what the caller already did, no logging.
"""

from __future__ import annotations

from collections.abc import Collection
from pathlib import Path

from steamvault.library.models import LibraryRoot
from steamvault.manifest.keyvalues import KeyValues, get_map, get_str
from steamvault.manifest.models import (
    MANIFEST_PREFIX,
    STATE_FULLY_INSTALLED,
    Classification,
    ClassificationResult,
    ManifestRecord,
    PartialRecord,
    Record,
)


def id_from_filename(manifest_path: Path) -> str:
    """``appmanifest_440.acf`` -> ``440``."""
    stem = manifest_path.stem
    if stem.startswith(MANIFEST_PREFIX):
        return stem[len(MANIFEST_PREFIX) :]
    return stem


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _numeric(value: str | None) -> str | None:
    """ASCII digits only; ids and build ids become path components."""
    if value is None:
        return None
    value = value.strip()
    return value if value.isascii() and value.isdigit() else None


def _directory_name(value: str | None) -> str | None:
    """A single path component, or None."""
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        return None
    return value


def to_record(tree: KeyValues | None, manifest_path: Path, library: LibraryRoot) -> Record:
    """Map a parsed manifest tree onto a typed record.

    The raw tree stops here. A non-numeric ``appid`` counts as absent and the
    id is taken from the file name instead. A tree with none of ``appid``,
    ``name`` and ``StateFlags`` (or no tree at all), or one whose id cannot be
    recovered as a number, becomes a :class:`PartialRecord`.
    """
    state = get_map(tree, "AppState")
    raw_id = get_str(state, "appid")
    name = get_str(state, "name")
    state_flags = _parse_int(get_str(state, "StateFlags"))
    app_id = _numeric(raw_id) or _numeric(id_from_filename(manifest_path))

    if app_id is None or (raw_id is None and name is None and state_flags is None):
        return PartialRecord(
            id=id_from_filename(manifest_path),
            display_name=manifest_path.name,
            source_library=library,
            manifest_path=manifest_path,
        )

    return ManifestRecord(
        id=app_id,
        name=name,
        install_subdir=_directory_name(get_str(state, "installdir")),
        build_id=_numeric(get_str(state, "buildid")),
        state_flags=state_flags,
        source_library=library,
        manifest_path=manifest_path,
    )


def classify(record: Record, excluded_ids: Collection[str]) -> ClassificationResult:
    """Decide eligibility; the first matching rule wins.

    1. partial record                       -> CORRUPT
    2. StateFlags != 4                      -> INCOMPLETE
    3. app id excluded                      -> EXCLUDED
    4. otherwise                            -> FULLY_INSTALLED

    A fully installed record without ``installdir`` or ``buildid`` has no
    destination layout and is reported INCOMPLETE.
    """
    if isinstance(record, PartialRecord):
        return ClassificationResult(record, Classification.CORRUPT, "no usable fields")

    if not isinstance(record, ManifestRecord):
        raise TypeError(f"unexpected record type: {type(record).__name__}")

    if record.state_flags != STATE_FULLY_INSTALLED:
        return ClassificationResult(
            record, Classification.INCOMPLETE, f"StateFlags={record.state_flags}"
        )

    if record.id in excluded_ids:
        return ClassificationResult(record, Classification.EXCLUDED, "app id excluded")

    missing = [
        field_name
        for field_name, value in (("installdir", record.install_subdir), ("buildid", record.build_id))
        if not value
    ]
    if missing:
        return ClassificationResult(
            record, Classification.INCOMPLETE, f"missing {', '.join(missing)}"
        )

    return ClassificationResult(record, Classification.FULLY_INSTALLED)
