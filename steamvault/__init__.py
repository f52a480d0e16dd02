"""SteamVault: build-versioned, incremental backups of installed Steam apps."""

__version__ = "0.1.0"

from steamvault.core.config import BackupSettings, load_settings
from steamvault.library import DiscoveryResult, LibraryRoot, discover_libraries
from steamvault.manifest import (
    Classification,
    ClassificationResult,
    ManifestRecord,
    PartialRecord,
    scan_library,
)
from steamvault.mirror import MirrorCopyEngine, ProgressEvent
from steamvault.orchestrator import BackupOrchestrator, RunOutcome
from steamvault.planner import CopyPlan, plan

__all__ = [
    "BackupOrchestrator",
    "BackupSettings",
    "Classification",
    "ClassificationResult",
    "CopyPlan",
    "DiscoveryResult",
    "LibraryRoot",
    "ManifestRecord",
    "MirrorCopyEngine",
    "PartialRecord",
    "ProgressEvent",
    "RunOutcome",
    "discover_libraries",
    "load_settings",
    "plan",
    "scan_library",
]
