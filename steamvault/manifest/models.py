"""Data models for app manifests and their classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

from steamvault.library.models import LibraryRoot

MANIFEST_PREFIX = "appmanifest_"
MANIFEST_GLOB = "appmanifest_*.acf"

# StateFlags value for "fully installed, nothing pending"
STATE_FULLY_INSTALLED = 4


class Classification(Enum):
    """Why a manifest is (or is not) backed up."""

    FULLY_INSTALLED = "fully_installed"
    EXCLUDED = "excluded"
    INCOMPLETE = "incomplete"
    CORRUPT = "corrupt"


@dataclass(frozen=True)
class ManifestRecord:
    """Fields read from a parseable appmanifest."""

    id: str
    name: str | None
    install_subdir: str | None
    build_id: str | None
    state_flags: int | None
    source_library: LibraryRoot
    manifest_path: Path

    @property
    def display_name(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class PartialRecord:
    """Stand-in for a manifest with no usable fields, recovered from its filename."""

    id: str
    display_name: str
    source_library: LibraryRoot
    manifest_path: Path


Record = Union[ManifestRecord, PartialRecord]


@dataclass(frozen=True)
class ClassificationResult:
    """Exactly one per manifest file."""

    record: Record
    reason: Classification
    detail: str = ""

    @property
    def eligible(self) -> bool:
        return self.reason is Classification.FULLY_INSTALLED
