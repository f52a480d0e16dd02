"""Robocopy backend (Windows).

Flags:
    /E        recurse, including empty directories
    /XJ       do not follow junction points
    /R /W     bounded per-file retries; retrying is robocopy's own business
    /NDL      no directory lines, so every listed line is a file
    /NJH /NJS no job header or summary
    /BYTES    sizes as plain byte counts

Per-file lines are tab-separated (``\\t    New File  \\t\\t  1024\\tname``),
followed by ``NN%`` counters refreshed with carriage returns.
"""

from __future__ import annotations

from pathlib import Path

from steamvault.mirror.base import MirrorBackend, ParseState, ProgressEvent
from steamvault.mirror.stream import parse_tab_separated

# Exit codes 0-7 are combinations of "copied" / "extra" / "mismatch" bits.
ROBOCOPY_FAILURE_THRESHOLD = 8


class RobocopyBackend(MirrorBackend):
    def __init__(self, retries: int = 2, wait_seconds: int = 5) -> None:
        self._retries = retries
        self._wait_seconds = wait_seconds

    @property
    def name(self) -> str:
        return "robocopy"

    @property
    def executable(self) -> str:
        return "robocopy"

    def build_command(self, source: Path, destination: Path) -> list[str]:
        return [
            self.executable,
            str(source),
            str(destination),
            "/E",
            "/XJ",
            f"/R:{self._retries}",
            f"/W:{self._wait_seconds}",
            "/NDL",
            "/NJH",
            "/NJS",
            "/BYTES",
        ]

    def parse_line(self, line: str, state: ParseState) -> ProgressEvent | None:
        return parse_tab_separated(line, state)

    def is_failure(self, returncode: int) -> bool:
        return returncode >= ROBOCOPY_FAILURE_THRESHOLD
