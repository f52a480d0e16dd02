"""Custom exceptions for steamvault."""

from __future__ import annotations

from pathlib import Path


class SteamVaultError(Exception):
    """Base exception for all steamvault errors."""


class ConfigError(SteamVaultError):
    """Raised when the backup configuration file is missing or invalid."""


class LibraryConfigError(SteamVaultError):
    """Raised when the primary Steam root or its libraryfolders.vdf cannot be used."""


class DestinationUnreachableError(SteamVaultError):
    """Raised when the backup root does not exist or is not a directory."""

    def __init__(self, backup_root: Path):
        self.backup_root = backup_root
        super().__init__(f"Backup destination is not reachable: {backup_root}")


class MirrorError(SteamVaultError):
    """Raised when the mirror copy tool cannot be started."""


class MirrorToolNotFoundError(MirrorError):
    """Raised when the selected mirror tool is not installed."""

    def __init__(self, backend: str, executable: str):
        self.backend = backend
        self.executable = executable
        super().__init__(
            f"Mirror backend '{backend}' requires '{executable}' on PATH, but it was not found."
        )
