"""Binary key/value tree codec (the format of Steam's shortcuts.vdf).

A tree is a sequence of entries ``[type][key\\0][payload]`` closed by a single
``0x08`` byte:

    0x00  nested tree    payload is another tree
    0x01  string         NUL-terminated UTF-8
    0x02  int32          4 bytes, little-endian, signed

Anything else is rejected. Unlike the permissive ``vdf.binary_loads`` this
decoder never skips over an unknown entry, since a skipped entry would be
dropped silently on the next write.
"""

import io
import logging
import struct
from typing import Any, Dict, Mapping, Optional, Tuple

from shortcutsync.errors import VdfFormatError

logger = logging.getLogger(__name__)

TYPE_TREE = 0x00
TYPE_STRING = 0x01
TYPE_INT32 = 0x02
TYPE_END = 0x08

INT32_MIN = -0x80000000
INT32_MAX = 0x7FFFFFFF


def decode(data: bytes) -> Dict[str, Any]:
    """Decode a complete binary tree.

    Args:
        data: Raw file contents

    Returns:
        Ordered dict of str -> str | int | dict

    Raises:
        VdfFormatError: on unknown type bytes, truncation or invalid UTF-8
    """
    tree, offset = _decode_tree(bytes(data), 0)
    if offset != len(data):
        logger.warning(f"[BinaryKV] Ignoring {len(data) - offset} trailing bytes after root tree")
    return tree


def _read_cstring(data: bytes, offset: int) -> Tuple[str, int]:
    end = data.find(b'\x00', offset)
    if end < 0:
        raise VdfFormatError("Unterminated string", offset)
    try:
        text = data[offset:end].decode('utf-8')
    except UnicodeDecodeError as e:
        raise VdfFormatError(f"Invalid UTF-8 in string: {e.reason}", offset) from e
    return text, end + 1


def _decode_tree(data: bytes, offset: int) -> Tuple[Dict[str, Any], int]:
    result: Dict[str, Any] = {}
    while True:
        if offset >= len(data):
            raise VdfFormatError("Truncated stream: missing end-of-tree marker", offset)
        type_byte = data[offset]
        type_offset = offset
        offset += 1
        if type_byte == TYPE_END:
            return result, offset

        if type_byte not in (TYPE_TREE, TYPE_STRING, TYPE_INT32):
            raise VdfFormatError(f"Unknown type byte 0x{type_byte:02x}", type_offset)

        key, offset = _read_cstring(data, offset)

        if type_byte == TYPE_TREE:
            result[key], offset = _decode_tree(data, offset)
        elif type_byte == TYPE_STRING:
            result[key], offset = _read_cstring(data, offset)
        else:
            if offset + 4 > len(data):
                raise VdfFormatError(f"Truncated int32 value for key '{key}'", offset)
            result[key] = struct.unpack_from('<i', data, offset)[0]
            offset += 4


def encode(tree: Mapping[str, Any]) -> bytes:
    """Encode a tree to bytes. The whole result is built in memory.

    Raises:
        VdfFormatError: for values that are not str, int32 or a mapping
    """
    buf = io.BytesIO()
    _encode_tree(tree, buf, "")
    return buf.getvalue()


def _encode_tree(tree: Mapping[str, Any], buf: io.BytesIO, path: str) -> None:
    for key, value in tree.items():
        key = str(key)
        key_bytes = _encode_cstring(key, path)
        if isinstance(value, Mapping):
            buf.write(struct.pack('<B', TYPE_TREE))
            buf.write(key_bytes)
            _encode_tree(value, buf, f"{path}/{key}")
        elif isinstance(value, str):
            buf.write(struct.pack('<B', TYPE_STRING))
            buf.write(key_bytes)
            buf.write(_encode_cstring(value, f"{path}/{key}"))
        elif isinstance(value, int):
            if not INT32_MIN <= value <= INT32_MAX:
                raise VdfFormatError(f"Value for '{path}/{key}' does not fit in int32: {value}")
            buf.write(struct.pack('<B', TYPE_INT32))
            buf.write(key_bytes)
            buf.write(struct.pack('<i', value))
        else:
            raise VdfFormatError(
                f"Unsupported value type {type(value).__name__} for '{path}/{key}'"
            )

    buf.write(struct.pack('<B', TYPE_END))


def _encode_cstring(text: str, path: str) -> bytes:
    if '\x00' in text:
        raise VdfFormatError(f"Embedded NUL in '{path}'")
    return text.encode('utf-8') + b'\x00'


def get_ci(tree: Mapping[str, Any], key: str, default: Optional[Any] = None) -> Any:
    """Case-insensitive lookup; an exact-case key wins over other casings."""
    if key in tree:
        return tree[key]
    folded = key.casefold()
    for k, v in tree.items():
        if str(k).casefold() == folded:
            return v
    return default
