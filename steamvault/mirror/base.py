"""Core data types and abstract base class for mirror-copy backends."""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

COMPARING = "comparing"


@dataclass(frozen=True)
class ProgressEvent:
    """One observation from the copy tool.

    ``percentage`` is None while the tool is still comparing source and
    destination trees and has not reported any per-file progress.
    """

    percentage: float | None
    current_file: str

    @property
    def indeterminate(self) -> bool:
        return self.percentage is None


@dataclass
class ParseState:
    """Line-parser state carried across lines of one copy run."""

    current_file: str = ""


@dataclass
class MirrorResult:
    """Outcome of one mirror run. A failing return code is reported, not raised."""

    backend: str
    source: Path
    destination: Path
    returncode: int
    failed: bool
    events: int
    duration: float


class MirrorBackend(ABC):
    """
    Adapter around an external mirroring tool.
    The tool copies new/changed files (size + timestamp), leaves identical
    files alone, recurses into subdirectories and never follows junctions or
    symlinked directories.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier, e.g. 'robocopy', 'rsync'."""
        ...

    @property
    @abstractmethod
    def executable(self) -> str:
        """Executable that must be on PATH."""
        ...

    @abstractmethod
    def build_command(self, source: Path, destination: Path) -> list[str]:
        """Full argv mirroring *source* into *destination*."""
        ...

    @abstractmethod
    def parse_line(self, line: str, state: ParseState) -> ProgressEvent | None:
        """Turn one output line into a progress event, or None if it carries none."""
        ...

    @abstractmethod
    def is_failure(self, returncode: int) -> bool:
        """Whether the tool's exit status reports a failed copy."""
        ...

    def check_prerequisites(self) -> list[str]:
        """
        Check prerequisites.
        Returns list of missing items (empty = can run).
        """
        return [] if shutil.which(self.executable) else [self.executable]
