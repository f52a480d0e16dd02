"""Backup settings — JSON config file validated with pydantic.

Environment variables fill values the file leaves out:
    STEAMVAULT_BACKUP_ROOT — destination root for backups
    STEAMVAULT_STEAM_ROOT  — primary Steam root (skips auto-detection)
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from steamvault.exceptions import ConfigError

ENV_BACKUP_ROOT = "STEAMVAULT_BACKUP_ROOT"
ENV_STEAM_ROOT = "STEAMVAULT_STEAM_ROOT"

# Written by ``steamvault create-config``
CONFIG_TEMPLATE: dict[str, Any] = {
    "backup_root": "E:/SteamBackup",
    "steam_root": None,
    "excluded_library_prefixes": ["C:"],
    "excluded_app_ids": ["228980"],
    "plan_only": False,
    "mirror_backend": "auto",
}


class BackupSettings(BaseModel):
    """Everything a backup run needs besides the Steam install itself."""

    model_config = ConfigDict(extra="forbid")

    backup_root: Path | None = None
    steam_root: Path | None = None
    excluded_library_prefixes: list[str] = []
    excluded_app_ids: set[str] = set()
    plan_only: bool = False
    mirror_backend: Literal["auto", "robocopy", "rsync"] = "auto"

    @field_validator("excluded_app_ids", mode="before")
    @classmethod
    def _coerce_app_ids(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple, set)):
            return {str(item).strip() for item in v}
        return v

    @field_validator("excluded_app_ids")
    @classmethod
    def _numeric_app_ids(cls, v: set[str]) -> set[str]:
        bad = sorted(item for item in v if not item.isdigit())
        if bad:
            raise ValueError(f"app ids must be numeric: {bad}")
        return v

    @field_validator("excluded_library_prefixes")
    @classmethod
    def _drop_blank_prefixes(cls, v: list[str]) -> list[str]:
        # An empty prefix would match every library.
        return [p for p in v if p]

    def require_backup_root(self) -> Path:
        if self.backup_root is None:
            raise ConfigError(
                f"No backup_root configured (set it in the config file or {ENV_BACKUP_ROOT})"
            )
        return self.backup_root


def load_settings(path: str | Path | None = None, **overrides: Any) -> BackupSettings:
    """Build settings from an optional JSON file, env defaults and explicit overrides.

    Precedence (highest first): *overrides* whose value is not None, the
    config file, environment variables.

    Raises:
        ConfigError: unreadable file, invalid JSON or schema violation.
    """
    data: dict[str, Any] = {}
    if path is not None:
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")

    if data.get("backup_root") is None and os.environ.get(ENV_BACKUP_ROOT):
        data["backup_root"] = os.environ[ENV_BACKUP_ROOT]
    if data.get("steam_root") is None and os.environ.get(ENV_STEAM_ROOT):
        data["steam_root"] = os.environ[ENV_STEAM_ROOT]

    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return BackupSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
