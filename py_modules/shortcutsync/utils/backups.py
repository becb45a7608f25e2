"""Managed backups of shortcuts.vdf.

Backups are kept per Steam user under the data dir:

    <data>/backups/<user>/shortcuts-YYYYmmdd_HHMMSS.bak.vdf

Only the newest MAX_BACKUPS files are kept.
"""

import logging
import os
import re
import shutil
import time
from typing import List, Optional, Tuple

from shortcutsync.errors import ShortcutsIOError
from shortcutsync.shortcuts.vdf import write_atomic
from shortcutsync.utils.paths import BACKUPS_PATH

logger = logging.getLogger(__name__)

MAX_BACKUPS = 5
BACKUP_PREFIX = "shortcuts-"
BACKUP_SUFFIX = ".bak.vdf"
DEFAULT_USER_SEGMENT = "user"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
_STAMP_RE = re.compile(r'^(\d{8}_\d{6})(?:_(\d+))?$')


def steam_user_from_path(vdf_path: str) -> Optional[str]:
    """User id segment following 'userdata' in a shortcuts.vdf path."""
    parts = os.path.normpath(vdf_path).replace('\\', '/').split('/')
    for i, part in enumerate(parts[:-1]):
        if part.lower() == 'userdata' and parts[i + 1]:
            return parts[i + 1]
    return None


def _user_backup_dir(user_id: Optional[str], backups_root: str) -> str:
    return os.path.join(backups_root, user_id or DEFAULT_USER_SEGMENT)


def list_backups(user_id: Optional[str] = None, backups_root: str = BACKUPS_PATH) -> List[str]:
    """Backup files for a user, newest first."""
    backup_dir = _user_backup_dir(user_id, backups_root)
    if not os.path.isdir(backup_dir):
        return []
    files = [
        os.path.join(backup_dir, f) for f in os.listdir(backup_dir)
        if f.startswith(BACKUP_PREFIX) and f.endswith(BACKUP_SUFFIX)
    ]
    files.sort(key=_backup_order, reverse=True)
    return files


def _backup_order(path: str) -> Tuple[str, int, float]:
    """(timestamp, same-second counter, mtime); the counter compares numerically."""
    name = os.path.basename(path)[len(BACKUP_PREFIX):-len(BACKUP_SUFFIX)]
    match = _STAMP_RE.match(name)
    if match is None:
        return name, 0, os.path.getmtime(path)
    return match.group(1), int(match.group(2) or 0), os.path.getmtime(path)


def create_managed_backup(vdf_path: str, user_id: Optional[str] = None,
                          backups_root: str = BACKUPS_PATH,
                          keep: int = MAX_BACKUPS) -> Optional[str]:
    """Copy vdf_path into the user's backup folder and prune old copies.

    Returns:
        Path of the new backup, or None if there was nothing to back up
    """
    if not os.path.isfile(vdf_path):
        return None

    user_id = user_id or steam_user_from_path(vdf_path) or DEFAULT_USER_SEGMENT
    backup_dir = _user_backup_dir(user_id, backups_root)
    os.makedirs(backup_dir, exist_ok=True)

    stamp = time.strftime(TIMESTAMP_FORMAT)
    # Same-second backups continue after the highest counter still on disk
    counters = [order[1] for order in map(_backup_order, list_backups(user_id, backups_root)) if order[0] == stamp]
    name = f"{stamp}_{max(counters) + 1}" if counters else stamp
    backup_path = os.path.join(backup_dir, f"{BACKUP_PREFIX}{name}{BACKUP_SUFFIX}")

    shutil.copy2(vdf_path, backup_path)
    logger.info(f"[Backup] Saved {vdf_path} to {backup_path}")

    for old in list_backups(user_id, backups_root)[keep:]:
        try:
            os.remove(old)
            logger.debug(f"[Backup] Pruned {old}")
        except OSError as e:
            logger.warning(f"[Backup] Could not remove old backup {old}: {e}")
    return backup_path


def restore_backup(backup_path: str, vdf_path: str, user_id: Optional[str] = None,
                   backups_root: str = BACKUPS_PATH) -> bool:
    """Replace vdf_path with a backup, backing up the current file first."""
    if not os.path.isfile(backup_path):
        logger.error(f"[Backup] Backup not found: {backup_path}")
        return False

    try:
        # Read first: pruning below may delete backup_path itself
        with open(backup_path, 'rb') as f:
            data = f.read()
        create_managed_backup(vdf_path, user_id, backups_root)
        write_atomic(vdf_path, data)
    except (OSError, ShortcutsIOError) as e:
        logger.error(f"[Backup] Restore of {backup_path} failed: {e}")
        return False

    logger.info(f"[Backup] Restored {backup_path} to {vdf_path}")
    return True
