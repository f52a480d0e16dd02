"""Backup planner — destination layout and the auxiliary files around a copy.

Layout under the backup root::

    <root>/<appid>/<sanitized name>.txt                       empty marker
    <root>/<appid>/<buildid>/appmanifest_<appid>.acf          manifest copy
    <root>/<appid>/<buildid>/<installdir>/...                 mirrored install
    <root>/<appid>/<buildid>/<installdir>/steam_appid.txt     launch stub
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

import structlog

from steamvault.manifest.models import ManifestRecord

log = structlog.get_logger("steamvault.engine")

LAUNCH_STUB_NAME = "steam_appid.txt"
MARKER_SUFFIX = ".txt"

# Characters no filename may contain on Windows; applied on every platform so
# a backup drive can move between hosts.
_INVALID_FILENAME_CHARS = frozenset('<>:"/\\|?*') | frozenset(chr(c) for c in range(32))


@dataclass(frozen=True)
class CopyPlan:
    """Where one app's install goes and which files surround it."""

    app_id: str
    build_id: str
    source_dir: Path
    destination_root: Path
    install_subdir: str
    manifest_source_path: Path
    launch_stub_path: Path
    marker_stub_path: Path

    @property
    def install_destination(self) -> Path:
        return self.destination_root / self.install_subdir


def sanitize_filename(value: str) -> str:
    """Strip (not replace) characters that are invalid in a filename."""
    return "".join(ch for ch in value if ch not in _INVALID_FILENAME_CHARS).strip()


def plan(record: ManifestRecord, backup_root: Path) -> CopyPlan:
    """Compute the copy plan for an eligible record."""
    if not record.install_subdir or not record.build_id:
        raise ValueError(f"app {record.id} has no installdir/buildid to plan with")

    app_root = backup_root / record.id
    destination_root = app_root / record.build_id
    marker_name = sanitize_filename(record.display_name) or record.id
    return CopyPlan(
        app_id=record.id,
        build_id=record.build_id,
        source_dir=record.source_library.common / record.install_subdir,
        destination_root=destination_root,
        install_subdir=record.install_subdir,
        manifest_source_path=record.manifest_path,
        launch_stub_path=destination_root / record.install_subdir / LAUNCH_STUB_NAME,
        marker_stub_path=app_root / f"{marker_name}{MARKER_SUFFIX}",
    )


def write_marker_stub(copy_plan: CopyPlan) -> bool:
    """Create the empty marker file. Any failure (e.g. it exists) is ignored.

    Returns True if the marker was created by this call.
    """
    try:
        copy_plan.marker_stub_path.parent.mkdir(parents=True, exist_ok=True)
        with open(copy_plan.marker_stub_path, "x"):
            pass
    except OSError as e:
        log.debug("planner.marker_not_created", path=str(copy_plan.marker_stub_path), error=str(e))
        return False
    return True


def copy_manifest(copy_plan: CopyPlan) -> Path:
    """Copy the manifest into the build destination, creating it if absent."""
    copy_plan.destination_root.mkdir(parents=True, exist_ok=True)
    target = copy_plan.destination_root / copy_plan.manifest_source_path.name
    shutil.copy2(copy_plan.manifest_source_path, target)
    return target


def write_launch_stub(copy_plan: CopyPlan) -> bool:
    """Write the app id into steam_appid.txt unless the file already exists.

    Returns True if the stub was written by this call.
    """
    stub = copy_plan.launch_stub_path
    stub.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(stub, "xb") as fh:
            fh.write(copy_plan.app_id.encode("ascii"))
    except FileExistsError:
        log.debug("planner.launch_stub_kept", path=str(stub))
        return False
    return True
