"""Dependencies shared by the reconciliation service and scheduler."""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from shortcutsync.cache.id_mapping import IdMappingStore
from shortcutsync.catalog.base import Catalog
from shortcutsync.config import Settings, load_settings
from shortcutsync.errors import ConfigurationError
from shortcutsync.services.launch_resolvers import DEFAULT_RESOLVERS, ExeChooser, LaunchResolver
from shortcutsync.utils.paths import (
    BACKUPS_DIR,
    EXPORT_MAP_FILE,
    SETTINGS_FILE,
    SHORTCUTSYNC_DATA_DIR,
)
from shortcutsync.utils.steam_paths import find_steam_root, resolve_shortcuts_vdf_path


@dataclass
class SyncContext:
    settings: Settings
    catalog: Catalog
    id_mappings: IdMappingStore
    backups_root: str
    exe_chooser: Optional[ExeChooser] = None
    resolvers: List[LaunchResolver] = field(default_factory=lambda: list(DEFAULT_RESOLVERS))
    # Overrides Steam path detection (tests, the CLI's --vdf)
    vdf_path: Optional[str] = None

    def resolve_vdf_path(self) -> str:
        """shortcuts.vdf to operate on.

        Raises:
            ConfigurationError: when no Steam installation or user is found
        """
        if self.vdf_path:
            return self.vdf_path
        steam_root = find_steam_root(self.settings.steam_root_path)
        if not steam_root:
            raise ConfigurationError("Steam installation not found; set steam_root_path")
        path = resolve_shortcuts_vdf_path(steam_root, self.settings.selected_steam_user_id)
        if not path:
            raise ConfigurationError(f"No Steam user folder found under {steam_root}")
        return path


def create_context(catalog: Catalog, data_dir: str = SHORTCUTSYNC_DATA_DIR,
                   settings: Optional[Settings] = None,
                   exe_chooser: Optional[ExeChooser] = None,
                   vdf_path: Optional[str] = None) -> SyncContext:
    """Context with stores rooted at data_dir."""
    if settings is None:
        settings = load_settings(os.path.join(data_dir, SETTINGS_FILE))
    return SyncContext(
        settings=settings,
        catalog=catalog,
        id_mappings=IdMappingStore(os.path.join(data_dir, EXPORT_MAP_FILE)),
        backups_root=os.path.join(data_dir, BACKUPS_DIR),
        exe_chooser=exe_chooser,
        vdf_path=vdf_path,
    )
