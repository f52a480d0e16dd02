"""Steam library discovery."""

from steamvault.library.models import DiscoveryResult, LibraryRoot
from steamvault.library.discovery import discover_libraries, read_library_folders
from steamvault.library.steam_root import find_steam_root

__all__ = [
    "DiscoveryResult",
    "LibraryRoot",
    "discover_libraries",
    "find_steam_root",
    "read_library_folders",
]
