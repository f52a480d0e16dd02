"""Mirror copy engine — run a backend and stream its progress to a sink."""

from __future__ import annotations

import subprocess
import time
from collections.abc import Callable
from pathlib import Path

import structlog

from steamvault.exceptions import MirrorError, MirrorToolNotFoundError
from steamvault.mirror.base import MirrorBackend, MirrorResult, ProgressEvent
from steamvault.mirror.stream import progress_events

log = structlog.get_logger("steamvault.engine")

ProgressSink = Callable[[ProgressEvent], None]


class MirrorCopyEngine:
    """
    Mirror a source directory into a destination with an external tool.

    The tool's exit status is logged and returned, never raised: per-file
    errors and retries are the tool's concern. Re-running against an
    up-to-date destination only re-compares metadata.
    """

    def __init__(self, backend: MirrorBackend) -> None:
        self.backend = backend

    def mirror(
        self,
        source: Path,
        destination: Path,
        sink: ProgressSink | None = None,
    ) -> MirrorResult:
        """Copy new/changed files from *source* into *destination*.

        Raises:
            MirrorToolNotFoundError: the backend's executable cannot be started.
        """
        destination.mkdir(parents=True, exist_ok=True)
        cmd = self.backend.build_command(source, destination)
        log.info(
            "mirror.started",
            backend=self.backend.name,
            source=str(source),
            destination=str(destination),
        )

        start = time.monotonic()
        events = 0
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except FileNotFoundError as e:
            raise MirrorToolNotFoundError(self.backend.name, cmd[0]) from e

        with proc:
            if proc.stdout is None:
                proc.kill()
                raise MirrorError(f"{self.backend.name}: no output pipe from {cmd[0]}")
            for event in progress_events(proc.stdout, self.backend):
                events += 1
                self._emit(sink, event)
            returncode = proc.wait()

        duration = round(time.monotonic() - start, 2)
        failed = self.backend.is_failure(returncode)
        if failed:
            log.warning(
                "mirror.tool_reported_failure",
                backend=self.backend.name,
                returncode=returncode,
                source=str(source),
            )
        else:
            log.info(
                "mirror.completed",
                backend=self.backend.name,
                returncode=returncode,
                events=events,
                duration=duration,
            )
        return MirrorResult(
            backend=self.backend.name,
            source=source,
            destination=destination,
            returncode=returncode,
            failed=failed,
            events=events,
            duration=duration,
        )

    @staticmethod
    def _emit(sink: ProgressSink | None, event: ProgressEvent) -> None:
        if sink is None:
            return
        try:
            sink(event)
        except Exception:
            log.debug("mirror.sink_error", current_file=event.current_file, exc_info=True)
