"""shortcuts.vdf file utilities built on the strict binary codec"""

import logging
import os
import tempfile
from typing import List, Optional

from shortcutsync.errors import ShortcutsIOError, VdfFormatError
from shortcutsync.shortcuts import binary_kv
from shortcutsync.shortcuts.records import ShortcutRecord, records_from_root, root_from_records

logger = logging.getLogger(__name__)


def load_shortcuts_vdf(path: str) -> List[ShortcutRecord]:
    """Load and parse a shortcuts.vdf file.

    A missing file is an empty list. Malformed content raises VdfFormatError
    and OS failures raise ShortcutsIOError; nothing is partially returned.
    """
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except FileNotFoundError:
        logger.debug(f"[ShortcutsVDF] {path} does not exist, treating as empty")
        return []
    except OSError as e:
        raise ShortcutsIOError(path, e) from e

    try:
        root = binary_kv.decode(data)
    except VdfFormatError as e:
        logger.error(f"[ShortcutsVDF] Malformed shortcuts file {path}: {e}")
        raise

    records = records_from_root(root)
    logger.debug(f"[ShortcutsVDF] Loaded {len(records)} shortcuts from {path}")
    return records


def parse_shortcuts(data: Optional[bytes]) -> List[ShortcutRecord]:
    """Records from raw file bytes; None (no file) is an empty list."""
    if data is None:
        return []
    return records_from_root(binary_kv.decode(data))


def encode_shortcuts(records: List[ShortcutRecord]) -> bytes:
    """Serialize records, verifying the bytes decode back to the same count."""
    data = binary_kv.encode(root_from_records(records))
    decoded = records_from_root(binary_kv.decode(data))
    if len(decoded) != len(records):
        raise VdfFormatError(
            f"Encoded shortcut count mismatch: expected {len(records)}, got {len(decoded)}"
        )
    return data


def save_shortcuts_vdf(path: str, records: List[ShortcutRecord],
                       previous: Optional[bytes] = None) -> bool:
    """Write records to shortcuts.vdf.

    The file is encoded fully in memory, written to a temp file next to the
    target, fsynced and renamed over it, so a failed write leaves the old file.

    Args:
        path: Target shortcuts.vdf
        records: Complete record list (the file is rewritten, not patched)
        previous: Current file bytes; when equal to the new encoding the
            write is skipped

    Returns:
        True if the file was written, False if it was already up to date
    """
    data = encode_shortcuts(records)
    if previous is not None and previous == data:
        logger.debug(f"[ShortcutsVDF] {path} unchanged, skipping write")
        return False

    write_atomic(path, data)
    logger.info(f"[ShortcutsVDF] Wrote {len(records)} shortcuts to {path}")
    return True


def write_atomic(path: str, data: bytes) -> None:
    """Replace path with data via a fsynced temp file in the same directory.

    Raises:
        ShortcutsIOError: the old file, if any, is left as it was
    """
    directory = os.path.dirname(path) or '.'
    tmp_path = None
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.shortcuts.', suffix='.tmp')
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        tmp_path = None
    except OSError as e:
        raise ShortcutsIOError(path, e) from e
    finally:
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)


def read_raw(path: str) -> Optional[bytes]:
    """Current file bytes, or None if the file does not exist."""
    try:
        with open(path, 'rb') as f:
            return f.read()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise ShortcutsIOError(path, e) from e
