"""Data models for Steam library discovery."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

STEAMAPPS_DIR = "steamapps"
COMMON_DIR = "common"
LIBRARY_FOLDERS_FILE = "libraryfolders.vdf"


@dataclass(frozen=True)
class LibraryRoot:
    """A Steam content library: ``<path>/steamapps`` holds the manifests."""

    path: Path
    index: int = 0  # 0 = primary root, n = key "n" in libraryfolders.vdf

    @property
    def steamapps(self) -> Path:
        return self.path / STEAMAPPS_DIR

    @property
    def common(self) -> Path:
        return self.steamapps / COMMON_DIR

    def __str__(self) -> str:
        return str(self.path)


@dataclass
class DiscoveryResult:
    """Libraries to scan, in discovery order, plus what was left out and why."""

    libraries: list[LibraryRoot]
    excluded: list[LibraryRoot] = field(default_factory=list)
    stop_reason: str = ""
