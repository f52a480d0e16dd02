"""rsync backend (Linux / macOS).

``-rlt`` recurses, keeps symlinks as links (never follows them) and keeps
mtimes, so rsync's default size+mtime quick check makes an unchanged re-run
a comparison-only pass. ``--info=name1,progress2`` prints each transferred
path on its own line plus whole-transfer progress counters::

    maps/level1.pak
         52,428,800  45%   98.21MB/s    0:00:01 (xfr#3, to-chk=10/20)
"""

from __future__ import annotations

import re
from pathlib import Path

from steamvault.mirror.base import MirrorBackend, ParseState, ProgressEvent
from steamvault.mirror.stream import clamp_percentage

_PROGRESS_RE = re.compile(r"^\s*[\d,.]+[KMGT]?B?\s+(\d{1,3})%\s")

_NOISE_PREFIXES = (
    "sending incremental file list",
    "building file list",
    "receiving incremental file list",
    "created directory",
)


class RsyncBackend(MirrorBackend):
    @property
    def name(self) -> str:
        return "rsync"

    @property
    def executable(self) -> str:
        return "rsync"

    def build_command(self, source: Path, destination: Path) -> list[str]:
        # Trailing slashes: copy the *contents* of source into destination.
        return [
            self.executable,
            "-rlt",
            "--no-inc-recursive",
            "--info=name1,progress2",
            "--outbuf=L",
            f"{source}/",
            f"{destination}/",
        ]

    def parse_line(self, line: str, state: ParseState) -> ProgressEvent | None:
        m = _PROGRESS_RE.match(line)
        if m:
            return ProgressEvent(
                percentage=clamp_percentage(float(m.group(1))),
                current_file=state.current_file,
            )
        text = line.strip()
        if text == "done" or text.startswith(_NOISE_PREFIXES):
            return None
        state.current_file = text
        return None

    def is_failure(self, returncode: int) -> bool:
        return returncode != 0
