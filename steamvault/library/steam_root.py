"""Locate the primary Steam root from the host's Steam client install."""

from __future__ import annotations

import sys
from pathlib import Path

import structlog

from steamvault.exceptions import LibraryConfigError

log = structlog.get_logger("steamvault.engine")

# (hive name, key path, value name), tried in order
_REGISTRY_LOCATIONS: list[tuple[str, str, str]] = [
    ("HKEY_CURRENT_USER", r"Software\Valve\Steam", "SteamPath"),
    ("HKEY_LOCAL_MACHINE", r"SOFTWARE\WOW6432Node\Valve\Steam", "InstallPath"),
    ("HKEY_LOCAL_MACHINE", r"SOFTWARE\Valve\Steam", "InstallPath"),
]

# Relative to the user's home directory
_POSIX_CANDIDATES: list[str] = [
    ".steam/steam",
    ".local/share/Steam",
    ".var/app/com.valvesoftware.Steam/.local/share/Steam",
    "Library/Application Support/Steam",
]


def _from_registry() -> Path | None:
    import winreg

    for hive_name, key_path, value_name in _REGISTRY_LOCATIONS:
        hive = getattr(winreg, hive_name)
        try:
            with winreg.OpenKey(hive, key_path) as key:
                value, _ = winreg.QueryValueEx(key, value_name)
        except OSError:
            continue
        if value:
            log.debug("steam_root.registry_hit", key=f"{hive_name}\\{key_path}", value=value)
            return Path(value)
    return None


def _from_home(home: Path) -> Path | None:
    for candidate in _POSIX_CANDIDATES:
        path = home / candidate
        if path.is_dir():
            return path
    return None


def find_steam_root(configured: Path | None = None, home: Path | None = None) -> Path:
    """Return the primary Steam root.

    Order: *configured* path, Windows registry, well-known home-relative
    install locations.

    Raises:
        LibraryConfigError: no Steam install could be located.
    """
    if configured is not None:
        return configured

    found: Path | None = None
    if sys.platform == "win32":
        found = _from_registry()
    if found is None:
        found = _from_home(home or Path.home())

    if found is None:
        raise LibraryConfigError(
            "Steam installation not found; set steam_root in the config file"
        )
    log.info("steam_root.detected", path=str(found))
    return found
