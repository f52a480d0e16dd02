"""Incremental parsing of a copy tool's output stream into progress events."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator

from steamvault.mirror.base import COMPARING, MirrorBackend, ParseState, ProgressEvent

_PERCENT_RE = re.compile(r"^(\d{1,3}(?:\.\d+)?)%$")


def clamp_percentage(value: float) -> float:
    return max(0.0, min(100.0, value))


def parse_tab_separated(line: str, state: ParseState) -> ProgressEvent | None:
    """Parse a tab-separated progress line.

    A field of the form ``NN%`` / ``NN.N%`` is the percentage; the last other
    field of a line that contains tabs is the current file. A line naming a
    file without a percentage only updates *state*; a bare percentage line
    reports against the last file seen.
    """
    fields = [f.strip() for f in line.split("\t")]
    percentage: float | None = None
    names: list[str] = []
    for f in fields:
        if not f:
            continue
        m = _PERCENT_RE.match(f)
        if m and percentage is None:
            percentage = clamp_percentage(float(m.group(1)))
        else:
            names.append(f)

    if names and "\t" in line:
        state.current_file = names[-1]
    if percentage is None:
        return None
    return ProgressEvent(percentage=percentage, current_file=state.current_file)


def progress_events(lines: Iterable[str], backend: MirrorBackend) -> Iterator[ProgressEvent]:
    """Yield progress events as *lines* arrive.

    The first event is always the indeterminate "comparing" state, emitted
    before any line is read. The iterator is finite and not restartable; it
    ends when *lines* does.
    """
    yield ProgressEvent(percentage=None, current_file=COMPARING)
    state = ParseState()
    for raw in lines:
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        event = backend.parse_line(line, state)
        if event is not None:
            yield event
