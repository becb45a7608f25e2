"""Locating the Steam installation and a user's shortcuts.vdf."""

import logging
import os
import sys
from typing import List, Optional

from shortcutsync.utils.paths import DEFAULT_STEAM_PATHS, WINDOWS_STEAM_PATHS, shortcuts_vdf_path
from shortcutsync.utils.steam_user import list_steam_user_ids

logger = logging.getLogger(__name__)


def _candidate_roots() -> List[str]:
    candidates = list(DEFAULT_STEAM_PATHS)
    if sys.platform == 'win32':
        for env_var in ('ProgramFiles(x86)', 'ProgramFiles'):
            base = os.environ.get(env_var)
            if base:
                candidates.append(os.path.join(base, 'Steam'))
        candidates.extend(WINDOWS_STEAM_PATHS)
        local_app_data = os.environ.get('LocalAppData')
        if local_app_data:
            candidates.append(os.path.join(local_app_data, 'Steam'))
    return candidates


def is_valid_steam_root(path: Optional[str]) -> bool:
    """A Steam root has a userdata folder."""
    return bool(path) and os.path.isdir(os.path.join(path, 'userdata'))


def find_steam_root(configured: Optional[str] = None) -> Optional[str]:
    """Configured path if valid, else the first known install location."""
    if configured:
        if is_valid_steam_root(configured):
            return configured
        logger.warning(f"[SteamPaths] Configured Steam path has no userdata folder: {configured}")

    for path in _candidate_roots():
        if is_valid_steam_root(path):
            logger.debug(f"[SteamPaths] Found Steam at {path}")
            return path

    logger.warning("[SteamPaths] Could not find Steam installation path")
    return None


def find_any_shortcuts_vdf(steam_root: str) -> Optional[str]:
    """First user's existing shortcuts.vdf."""
    for user_id in list_steam_user_ids(steam_root):
        candidate = shortcuts_vdf_path(steam_root, user_id)
        if os.path.isfile(candidate):
            return candidate
    return None


def resolve_shortcuts_vdf_path(steam_root: Optional[str], user_id: Optional[str] = None) -> Optional[str]:
    """shortcuts.vdf path for a user, or auto-detected when no user is given.

    The returned file need not exist when the user's folder does.
    """
    if not is_valid_steam_root(steam_root):
        return None

    if user_id:
        if os.path.isdir(os.path.join(steam_root, 'userdata', user_id)):
            return shortcuts_vdf_path(steam_root, user_id)
        logger.warning(f"[SteamPaths] Steam user {user_id} has no userdata folder, auto-detecting")

    found = find_any_shortcuts_vdf(steam_root)
    if found:
        return found

    users = list_steam_user_ids(steam_root)
    if users:
        return shortcuts_vdf_path(steam_root, users[0])
    return None
