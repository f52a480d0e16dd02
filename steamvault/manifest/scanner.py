"""Library scanner — parse and classify every appmanifest in a library."""

from __future__ import annotations

from collections import Counter
from collections.abc import Collection
from pathlib import Path

import structlog

from steamvault.library.models import LibraryRoot
from steamvault.manifest import keyvalues
from steamvault.manifest.classifier import classify, to_record
from steamvault.manifest.models import MANIFEST_GLOB, ClassificationResult

log = structlog.get_logger("steamvault.engine")


def discover_manifests(library: LibraryRoot) -> list[Path]:
    """Return the library's manifest files in a stable order."""
    return [hit for hit in sorted(library.steamapps.glob(MANIFEST_GLOB)) if hit.is_file()]


def classify_manifest(
    manifest_path: Path, library: LibraryRoot, excluded_ids: Collection[str]
) -> ClassificationResult:
    """Parse one manifest file and classify it. Never raises on bad content."""
    tree = keyvalues.load(manifest_path)
    return classify(to_record(tree, manifest_path, library), excluded_ids)


def scan_library(
    library: LibraryRoot, excluded_ids: Collection[str]
) -> list[ClassificationResult]:
    """Classify every manifest under *library* (one result per file)."""
    results = [
        classify_manifest(path, library, excluded_ids) for path in discover_manifests(library)
    ]

    for result in results:
        if not result.eligible:
            log.info(
                "classifier.skipped",
                library=str(library),
                app_id=result.record.id,
                name=result.record.display_name,
                reason=result.reason.value,
                detail=result.detail,
            )

    counts = Counter(r.reason.value for r in results)
    eligible = sum(1 for r in results if r.eligible)
    log.info(
        "classifier.library_scanned",
        library=str(library),
        manifests=len(results),
        eligible=eligible,
        skipped=len(results) - eligible,
        reasons=dict(counts),
    )
    return results
