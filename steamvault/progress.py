"""Per-app timing and status for a backup run."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable

import structlog

log = structlog.get_logger("steamvault.engine")

# The same app id can be installed in more than one library.
AppKey = tuple[int, str]


@dataclass
class AppProgress:
    app_id: str
    name: str
    library: int = 0
    status: str = "pending"  # "pending" | "running" | "completed" | "planned" | "failed"
    start_time: float | None = None
    end_time: float | None = None
    detail: str = ""
    error: str | None = None

    @property
    def key(self) -> AppKey:
        return (self.library, self.app_id)

    @property
    def duration(self) -> float | None:
        if self.start_time is not None and self.end_time is not None:
            return round(self.end_time - self.start_time, 2)
        return None


class ProgressTracker:
    """Track which apps were backed up and how long each one took.

    Entries are keyed by ``(library index, app id)``. Registered callbacks
    survive :meth:`reset`.
    """

    def __init__(self) -> None:
        self.apps: list[AppProgress] = []
        self._by_key: dict[AppKey, AppProgress] = {}
        self.callbacks: list[Callable[[AppProgress], None]] = []

    def reset(self) -> None:
        self.apps.clear()
        self._by_key.clear()

    def start(self, app_id: str, name: str, library: int = 0) -> None:
        p = AppProgress(
            app_id=app_id,
            name=name,
            library=library,
            status="running",
            start_time=time.monotonic(),
        )
        self.apps.append(p)
        self._by_key[p.key] = p
        self._notify(p)

    def complete(
        self, app_id: str, detail: str = "", status: str = "completed", library: int = 0
    ) -> None:
        p = self._by_key.get((library, app_id))
        if p:
            p.status = status
            p.end_time = time.monotonic()
            p.detail = detail
            self._notify(p)

    def fail(self, app_id: str, error: str, library: int = 0) -> None:
        p = self._by_key.get((library, app_id))
        if p:
            p.status = "failed"
            p.end_time = time.monotonic()
            p.error = error
            self._notify(p)

    def durations(self) -> dict[AppKey, float]:
        return {p.key: p.duration for p in self.apps if p.duration is not None}

    def get_summary(self) -> dict[str, Any]:
        total_duration = sum(p.duration or 0 for p in self.apps)
        return {
            "apps": [
                {
                    "app_id": p.app_id,
                    "name": p.name,
                    "library": p.library,
                    "status": p.status,
                    "duration": p.duration,
                    "detail": p.detail,
                    "error": p.error,
                }
                for p in self.apps
            ],
            "total_duration": round(total_duration, 2),
        }

    def _notify(self, p: AppProgress) -> None:
        for cb in self.callbacks:
            try:
                cb(p)
            except Exception:
                log.debug("progress.callback_error", app_id=p.app_id, exc_info=True)
