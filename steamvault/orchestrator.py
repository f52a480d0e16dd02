"""Backup run orchestrator — discovery, classification, planning, mirroring."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from steamvault.core.config import BackupSettings
from steamvault.exceptions import DestinationUnreachableError
from steamvault.library.discovery import discover_libraries
from steamvault.library.models import LibraryRoot
from steamvault.library.steam_root import find_steam_root
from steamvault.manifest.models import ClassificationResult, ManifestRecord
from steamvault.manifest.scanner import scan_library
from steamvault.mirror.engine import MirrorCopyEngine, ProgressSink
from steamvault.mirror.registry import create_default_registry
from steamvault.planner import copy_manifest, plan, write_launch_stub, write_marker_stub
from steamvault.progress import AppKey, ProgressTracker

log = structlog.get_logger("steamvault.engine")


@dataclass
class LibraryReport:
    """Classification of one library's manifests."""

    library: LibraryRoot
    eligible: list[ClassificationResult] = field(default_factory=list)
    skipped: list[ClassificationResult] = field(default_factory=list)


@dataclass
class RunOutcome:
    """Aggregate result of one backup run."""

    libraries: list[LibraryReport] = field(default_factory=list)
    excluded_libraries: list[LibraryRoot] = field(default_factory=list)
    eligible_count: int = 0
    skipped_count: int = 0
    backed_up: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)  # app ids whose copy reported failure
    durations: dict[AppKey, float] = field(default_factory=dict)  # (library index, app id)
    fatal: bool = False
    fatal_error: DestinationUnreachableError | None = None

    @property
    def success(self) -> bool:
        return not self.fatal


class BackupOrchestrator:
    """
    Sequence a backup run, one library and one app at a time.

    Library discovery -> per library: classify all manifests -> per eligible
    app: reachability check, plan, marker, manifest copy, mirror, launch stub.
    An unreachable backup root stops the whole run immediately.
    """

    def __init__(
        self,
        settings: BackupSettings,
        engine: MirrorCopyEngine | None = None,
        sink: ProgressSink | None = None,
    ) -> None:
        self.settings = settings
        self.engine = engine
        self.sink = sink
        self.progress = ProgressTracker()

    def run(self) -> RunOutcome:
        """Run the backup.

        Raises:
            ConfigError: no backup root configured.
            LibraryConfigError: Steam root or libraryfolders.vdf unusable.
            MirrorToolNotFoundError: the copy tool is missing (not in plan-only mode).
        """
        backup_root = self.settings.require_backup_root()
        if self.engine is None and not self.settings.plan_only:
            backend = create_default_registry().create(self.settings.mirror_backend)
            self.engine = MirrorCopyEngine(backend)

        self.progress.reset()
        outcome = RunOutcome()

        steam_root = find_steam_root(self.settings.steam_root)
        discovery = discover_libraries(steam_root, self.settings.excluded_library_prefixes)
        outcome.excluded_libraries = list(discovery.excluded)

        for library in discovery.libraries:
            self._process_library(library, backup_root, outcome)
            if outcome.fatal:
                break

        outcome.durations = self.progress.durations()
        if outcome.fatal:
            log.error("orchestrator.aborted", error=str(outcome.fatal_error))
        else:
            log.info(
                "orchestrator.completed",
                message="all libraries processed",
                libraries=len(outcome.libraries),
                eligible=outcome.eligible_count,
                skipped=outcome.skipped_count,
                backed_up=len(outcome.backed_up),
                failed=len(outcome.failed),
            )
        return outcome

    def _process_library(
        self, library: LibraryRoot, backup_root: Path, outcome: RunOutcome
    ) -> None:
        log.info("orchestrator.library_started", library=str(library))
        report = LibraryReport(library=library)
        for result in scan_library(library, self.settings.excluded_app_ids):
            (report.eligible if result.eligible else report.skipped).append(result)
        outcome.libraries.append(report)
        outcome.eligible_count += len(report.eligible)
        outcome.skipped_count += len(report.skipped)

        for result in report.eligible:
            if not isinstance(result.record, ManifestRecord):
                raise TypeError(f"eligible result without a manifest record: {result.record!r}")
            self._backup_app(result.record, backup_root, outcome)
            if outcome.fatal:
                return

    def _backup_app(self, record: ManifestRecord, backup_root: Path, outcome: RunOutcome) -> None:
        with structlog.contextvars.bound_contextvars(app_id=record.id):
            if not backup_root.is_dir():
                outcome.fatal = True
                outcome.fatal_error = DestinationUnreachableError(backup_root)
                log.error("orchestrator.destination_unreachable", backup_root=str(backup_root))
                return

            copy_plan = plan(record, backup_root)
            lib = record.source_library.index
            self.progress.start(record.id, record.display_name, library=lib)
            log.info(
                "orchestrator.app_started",
                name=record.display_name,
                build_id=record.build_id,
                destination=str(copy_plan.destination_root),
            )

            try:
                write_marker_stub(copy_plan)
                copy_manifest(copy_plan)
                if self.settings.plan_only:
                    self.progress.complete(
                        record.id, detail="plan only", status="planned", library=lib
                    )
                    return

                if self.engine is None:
                    raise RuntimeError("no mirror engine outside plan-only mode")
                result = self.engine.mirror(
                    copy_plan.source_dir, copy_plan.install_destination, self.sink
                )
                write_launch_stub(copy_plan)
            except OSError as e:
                # Left for the next app's reachability check to decide whether
                # the destination is gone; this app alone is marked failed.
                log.error("orchestrator.app_failed", error=str(e))
                self.progress.fail(record.id, str(e), library=lib)
                outcome.failed.append(record.id)
                return

            if result.failed:
                self.progress.fail(
                    record.id, f"{result.backend} exited {result.returncode}", library=lib
                )
                outcome.failed.append(record.id)
            else:
                self.progress.complete(record.id, detail=f"build {record.build_id}", library=lib)
                outcome.backed_up.append(record.id)
