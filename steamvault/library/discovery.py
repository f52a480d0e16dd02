"""Library discovery — primary root plus the secondary roots listed in
``steamapps/libraryfolders.vdf``.

Secondary roots are keyed ``"1"``, ``"2"``, ... and probed in order; the
first missing key ends the list, so a gap hides every later entry.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog

from steamvault.exceptions import LibraryConfigError
from steamvault.library.models import (
    LIBRARY_FOLDERS_FILE,
    STEAMAPPS_DIR,
    DiscoveryResult,
    LibraryRoot,
)
from steamvault.manifest import keyvalues

log = structlog.get_logger("steamvault.engine")


def normalize_library_path(raw: str) -> str:
    r"""Collapse the doubled backslashes VDF files store (``D:\\Games`` -> ``D:\Games``)."""
    return raw.replace("\\\\", "\\")


def matching_prefix(path: str, excluded_prefixes: Iterable[str]) -> str | None:
    """Return the first excluded prefix *path* starts with (case-sensitive)."""
    for prefix in excluded_prefixes:
        if prefix and path.startswith(prefix):
            return prefix
    return None


def read_library_folders(primary_root: Path) -> tuple[list[tuple[int, str]], str]:
    """Read secondary library paths from the primary root's libraryfolders.vdf.

    Returns:
        ([(key, normalised path), ...], stop reason)

    Raises:
        LibraryConfigError: file missing or not parseable.
    """
    vdf_path = primary_root / STEAMAPPS_DIR / LIBRARY_FOLDERS_FILE
    if not vdf_path.is_file():
        raise LibraryConfigError(f"{LIBRARY_FOLDERS_FILE} not found at {vdf_path}")

    doc = keyvalues.load(vdf_path)
    if doc is None:
        raise LibraryConfigError(f"{vdf_path} is not a valid KeyValues document")

    # One top-level object; older clients call it "LibraryFolders".
    folders = next(iter(doc.values()))
    if not isinstance(folders, dict):
        raise LibraryConfigError(f"{vdf_path} has no library folder map")

    entries: list[tuple[int, str]] = []
    key = 1
    while True:
        value = folders.get(str(key))
        if value is None:
            return entries, f'key "{key}" not present'
        # Newer clients nest the path: "1" { "path" "D:\\SteamLibrary" ... }
        raw = keyvalues.get_str(value, "path") if isinstance(value, dict) else value
        if not raw:
            return entries, f'key "{key}" has no path'
        entries.append((key, normalize_library_path(raw)))
        key += 1


def discover_libraries(
    primary_root: Path, excluded_prefixes: Iterable[str] = ()
) -> DiscoveryResult:
    """Resolve every library root and drop the ones under an excluded prefix.

    The primary root comes first, then the secondary roots in key order.
    """
    prefixes = list(excluded_prefixes)
    secondary, stop_reason = read_library_folders(primary_root)
    log.debug(
        "discovery.library_folders_read",
        primary=str(primary_root),
        secondary=len(secondary),
        stop_reason=stop_reason,
    )

    candidates = [(0, str(primary_root))] + secondary
    result = DiscoveryResult(libraries=[], stop_reason=stop_reason)
    for index, raw_path in candidates:
        library = LibraryRoot(path=Path(raw_path), index=index)
        prefix = matching_prefix(raw_path, prefixes)
        if prefix is not None:
            log.info("discovery.library_excluded", library=raw_path, prefix=prefix)
            result.excluded.append(library)
            continue
        result.libraries.append(library)

    log.info(
        "discovery.completed",
        libraries=[str(lib) for lib in result.libraries],
        excluded=len(result.excluded),
    )
    return result
