"""Persistent settings (settings.json in the shortcutsync data dir)."""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from shortcutsync.utils.paths import SETTINGS_PATH

logger = logging.getLogger(__name__)

DEFAULT_PLUGIN_ID = "steam-shortcuts"
DEFAULT_WRITE_BACK_DELAY = 2.0


@dataclass
class Settings:
    steam_root_path: Optional[str] = None
    selected_steam_user_id: Optional[str] = None
    launch_via_steam: bool = True
    write_back_delay: float = DEFAULT_WRITE_BACK_DELAY  # seconds
    source_name: str = "Steam Shortcuts"
    plugin_id: str = DEFAULT_PLUGIN_ID

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


def load_settings(path: str = SETTINGS_PATH) -> Settings:
    """Load settings, falling back to defaults for a missing or broken file."""
    try:
        if os.path.exists(path):
            with open(path, 'r') as f:
                data = json.load(f)
            if isinstance(data, dict):
                settings = Settings.from_dict(data)
                logger.debug(f"[Settings] Loaded settings from {path}")
                return settings
            logger.warning(f"[Settings] Ignoring non-object settings file {path}")
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"[Settings] Error loading settings: {e}")
    return Settings()


def save_settings(settings: Settings, path: str = SETTINGS_PATH) -> bool:
    """Save settings, keeping keys written by other tools."""
    try:
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        existing: Dict[str, Any] = {}
        if os.path.exists(path):
            with open(path, 'r') as f:
                loaded = json.load(f)
            if isinstance(loaded, dict):
                existing = loaded
        existing.update(settings.to_dict())
        with open(path, 'w') as f:
            json.dump(existing, f, indent=2)
        logger.info(f"[Settings] Saved settings to {path}")
        return True
    except (OSError, ValueError) as e:
        logger.error(f"[Settings] Error saving settings: {e}")
        return False
