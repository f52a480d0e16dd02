"""App manifest parsing and classification."""

from steamvault.manifest.classifier import classify, to_record
from steamvault.manifest.models import (
    Classification,
    ClassificationResult,
    ManifestRecord,
    PartialRecord,
    Record,
)
from steamvault.manifest.scanner import classify_manifest, scan_library

__all__ = [
    "Classification",
    "ClassificationResult",
    "ManifestRecord",
    "PartialRecord",
    "Record",
    "classify",
    "classify_manifest",
    "scan_library",
    "to_record",
]
