"""shortcutsync file path constants and utilities."""

import os


# shortcutsync data directory (override with SHORTCUTSYNC_DATA_DIR)
SHORTCUTSYNC_DATA_DIR = os.environ.get(
    "SHORTCUTSYNC_DATA_DIR",
    os.path.expanduser("~/.local/share/shortcutsync"),
)

SETTINGS_FILE = "settings.json"
EXPORT_MAP_FILE = "export_map.json"
CATALOG_FILE = "catalog.json"
BACKUPS_DIR = "backups"

SETTINGS_PATH = os.path.join(SHORTCUTSYNC_DATA_DIR, SETTINGS_FILE)
EXPORT_MAP_PATH = os.path.join(SHORTCUTSYNC_DATA_DIR, EXPORT_MAP_FILE)
BACKUPS_PATH = os.path.join(SHORTCUTSYNC_DATA_DIR, BACKUPS_DIR)

# Steam install locations, checked in order
DEFAULT_STEAM_PATHS = [
    os.path.expanduser("~/.steam/steam"),
    os.path.expanduser("~/.local/share/Steam"),
    os.path.expanduser("~/.var/app/com.valvesoftware.Steam/.local/share/Steam"),
]

WINDOWS_STEAM_PATHS = [
    r"C:\Program Files (x86)\Steam",
    r"C:\Program Files\Steam",
]


def shortcuts_vdf_path(steam_root: str, user_id: str) -> str:
    """Path of a user's shortcuts.vdf (the file may not exist yet)."""
    return os.path.join(steam_root, "userdata", str(user_id), "config", "shortcuts.vdf")
