"""Mirror copy engine and its external-tool backends."""

from steamvault.mirror.base import (
    COMPARING,
    MirrorBackend,
    MirrorResult,
    ParseState,
    ProgressEvent,
)
from steamvault.mirror.engine import MirrorCopyEngine, ProgressSink
from steamvault.mirror.registry import MirrorBackendRegistry, create_default_registry
from steamvault.mirror.robocopy import RobocopyBackend
from steamvault.mirror.rsync import RsyncBackend

__all__ = [
    "COMPARING",
    "MirrorBackend",
    "MirrorBackendRegistry",
    "MirrorCopyEngine",
    "MirrorResult",
    "ParseState",
    "ProgressEvent",
    "ProgressSink",
    "RobocopyBackend",
    "RsyncBackend",
    "create_default_registry",
]
