"""Identifiers for non-Steam shortcuts.

Steam derives a shortcut's 32-bit id from CRC32(exe + name) with the top bit
set, and launches it through a 64-bit "game id" URL:

    steam://rungameid/<(app_id << 32) | 0x02000000>
"""

import binascii
import struct
from typing import Optional

RUNGAMEID_PREFIX = "steam://rungameid/"

SHORTCUT_ID_FLAG = 0x80000000
COMPOSITE_LOW_BITS = 0x02000000

_FNV64_OFFSET = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3
_U64_MASK = 0xFFFFFFFFFFFFFFFF


def unquote(path: Optional[str]) -> str:
    """Trim whitespace and surrounding double quotes from a path."""
    if not path:
        return ""
    return path.strip().strip('"').strip()


def derive_app_id(exe: str, name: str) -> int:
    """Unsigned 32-bit shortcut id for the exact exe and name strings."""
    key = f"{exe or ''}{name or ''}"
    crc = binascii.crc32(key.encode('utf-8')) & 0xFFFFFFFF
    return crc | SHORTCUT_ID_FLAG


def shortcut_app_id(exe: str, name: str) -> int:
    """Id for a shortcut, insensitive to quoting of exe and padding of name."""
    return derive_app_id(unquote(exe), (name or "").strip())


def to_signed_int32(app_id: int) -> int:
    """Reinterpret an unsigned id as the signed int32 stored on disk."""
    return struct.unpack('<i', struct.pack('<I', app_id & 0xFFFFFFFF))[0]


def to_unsigned_int32(value: int) -> int:
    return struct.unpack('<I', struct.pack('<i', value))[0] if value < 0 else value & 0xFFFFFFFF


def to_composite_id(app_id: int) -> int:
    """64-bit game id used in rungameid URLs and Steam's grid artwork names."""
    return ((app_id & 0xFFFFFFFF) << 32) | COMPOSITE_LOW_BITS


def rungameid_url(app_id: int) -> str:
    if not app_id:
        return ""
    return f"{RUNGAMEID_PREFIX}{to_composite_id(app_id)}"


def parse_composite_id(url: Optional[str]) -> Optional[int]:
    """Extract the 32-bit shortcut id from a rungameid URL.

    Returns None for other schemes, a non-numeric or out-of-range suffix, or a
    game id whose upper half is zero (a regular Steam app, not a shortcut).
    """
    if not url:
        return None
    url = url.strip()
    if not url.lower().startswith(RUNGAMEID_PREFIX):
        return None
    suffix = url[len(RUNGAMEID_PREFIX):]
    if not suffix.isdigit() or not suffix.isascii():
        return None
    game_id = int(suffix)
    if game_id > _U64_MASK:
        return None
    app_id = game_id >> 32
    return app_id or None


def is_rungameid_url(url: Optional[str]) -> bool:
    return bool(url) and url.strip().lower().startswith(RUNGAMEID_PREFIX)


def fnv1a_64(text: str) -> str:
    """FNV-1a 64-bit hash of the UTF-8 text as 16 lowercase hex digits."""
    h = _FNV64_OFFSET
    for byte in text.encode('utf-8'):
        h ^= byte
        h = (h * _FNV64_PRIME) & _U64_MASK
    return f"{h:016x}"


def stable_id(exe: str, name: str) -> str:
    """Content hash used as the catalog key of an imported shortcut."""
    return fnv1a_64(f"{unquote(exe)}|{name or ''}")
