"""Shortcut id -> catalog id mapping.

Stores ``str(app_id) -> catalog id`` for every shortcut created or updated by
an export, so later passes can pair the two records even after either side is
renamed. The file lives in user data (~/.local/share/shortcutsync) and is
never pruned.
"""

import json
import logging
import os
import tempfile
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from shortcutsync.errors import LookupFailure
from shortcutsync.utils.paths import EXPORT_MAP_PATH

logger = logging.getLogger(__name__)


class IdMappingStore:
    """JSON-backed store handing out read-only snapshots."""

    def __init__(self, path: str = EXPORT_MAP_PATH):
        self.path = path

    def load(self) -> Dict[str, str]:
        """Load the mapping. Returns {} when missing or unreadable."""
        try:
            if os.path.exists(self.path):
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return {str(k): str(v) for k, v in data.items()}
                logger.warning(f"[IdMapping] Ignoring non-object mapping file {self.path}")
        except (OSError, ValueError) as e:
            logger.error(f"[IdMapping] Error loading {self.path}: {e}")
        return {}

    def snapshot(self) -> Mapping[str, str]:
        """Immutable view of the mapping for a single reconciliation pass."""
        return MappingProxyType(self.load())

    def save(self, mapping: Dict[str, str]) -> bool:
        try:
            directory = os.path.dirname(self.path) or '.'
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(mapping, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
            logger.debug(f"[IdMapping] Saved {len(mapping)} entries to {self.path}")
            return True
        except OSError as e:
            logger.error(f"[IdMapping] Error saving {self.path}: {e}")
            return False

    def update(self, entries: Mapping[str, str]) -> bool:
        """Merge entries into the stored mapping."""
        if not entries:
            return True
        mapping = self.load()
        mapping.update({str(k): str(v) for k, v in entries.items()})
        return self.save(mapping)


def parse_app_id_key(key: str) -> int:
    """Parse a mapping key back into an unsigned app id.

    Raises:
        LookupFailure: if the key is not a decimal 32-bit value
    """
    try:
        value = int(str(key).strip())
    except ValueError as e:
        raise LookupFailure(f"Malformed mapping key: {key!r}") from e
    if not 0 < value <= 0xFFFFFFFF:
        raise LookupFailure(f"Mapping key out of range: {key!r}")
    return value


def app_id_for_catalog_id(mapping: Mapping[str, str], catalog_id: str) -> Optional[int]:
    """Reverse lookup: the shortcut id last exported for a catalog record."""
    for key, value in mapping.items():
        if value == catalog_id:
            try:
                return parse_app_id_key(key)
            except LookupFailure as e:
                logger.warning(f"[IdMapping] {e}")
    return None
