"""Backend registry — pick the mirror tool for this host."""

from __future__ import annotations

import sys
from collections.abc import Callable

import structlog

from steamvault.exceptions import MirrorToolNotFoundError
from steamvault.mirror.base import MirrorBackend
from steamvault.mirror.robocopy import RobocopyBackend
from steamvault.mirror.rsync import RsyncBackend

log = structlog.get_logger("steamvault.engine")

AUTO = "auto"


class MirrorBackendRegistry:
    """Backend registration center."""

    def __init__(self) -> None:
        self._factories: dict[str, Callable[[], MirrorBackend]] = {}

    def register(self, name: str, factory: Callable[[], MirrorBackend]) -> None:
        self._factories[name] = factory

    def names(self) -> list[str]:
        return sorted(self._factories)

    def create(self, name: str = AUTO, check: bool = True) -> MirrorBackend:
        """Instantiate a backend by name; ``auto`` picks the host's native tool.

        Raises:
            ValueError: unknown backend name.
            MirrorToolNotFoundError: *check* is set and the tool is missing.
        """
        resolved = default_backend_name() if name == AUTO else name
        factory = self._factories.get(resolved)
        if factory is None:
            raise ValueError(f"Unknown mirror backend '{name}' (known: {self.names()})")
        backend = factory()
        if check:
            missing = backend.check_prerequisites()
            if missing:
                raise MirrorToolNotFoundError(backend.name, missing[0])
        log.debug("mirror.backend_selected", backend=backend.name, requested=name)
        return backend


def default_backend_name() -> str:
    return "robocopy" if sys.platform == "win32" else "rsync"


def create_default_registry() -> MirrorBackendRegistry:
    registry = MirrorBackendRegistry()
    registry.register("robocopy", RobocopyBackend)
    registry.register("rsync", RsyncBackend)
    return registry
