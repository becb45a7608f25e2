"""Typed view of a single shortcuts.vdf entry."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from shortcutsync.shortcuts.app_id import (
    shortcut_app_id,
    stable_id,
    to_signed_int32,
    to_unsigned_int32,
    unquote,
)
from shortcutsync.shortcuts.binary_kv import get_ci

# Field name -> on-disk key, in the order Steam writes them
FIELD_KEYS = {
    'app_id': 'appid',
    'app_name': 'appname',
    'exe': 'exe',
    'start_dir': 'StartDir',
    'icon': 'icon',
    'shortcut_path': 'ShortcutPath',
    'launch_options': 'LaunchOptions',
    'is_hidden': 'IsHidden',
    'allow_desktop_config': 'AllowDesktopConfig',
    'allow_overlay': 'AllowOverlay',
    'open_vr': 'OpenVR',
}
TAGS_KEY = 'tags'

_KNOWN_KEYS = {k.casefold() for k in FIELD_KEYS.values()} | {TAGS_KEY}


@dataclass
class ShortcutRecord:
    """One non-Steam shortcut. ``app_id`` is unsigned; 0 means absent."""
    app_name: str = ""
    exe: str = ""
    start_dir: str = ""
    icon: str = ""
    shortcut_path: str = ""
    launch_options: str = ""
    app_id: int = 0
    is_hidden: bool = False
    allow_desktop_config: bool = True
    allow_overlay: bool = True
    open_vr: bool = False
    tags: Optional[List[str]] = None
    # Keys this model does not interpret (LastPlayTime, Devkit, FlatpakAppID...)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def exe_path(self) -> str:
        return unquote(self.exe)

    @property
    def stable_id(self) -> str:
        return stable_id(self.exe, self.app_name)

    def effective_app_id(self) -> int:
        """Stored id, or the one Steam would derive for this exe and name."""
        if self.app_id:
            return self.app_id
        if not self.exe and not self.app_name:
            return 0
        return shortcut_app_id(self.exe, self.app_name)

    @classmethod
    def from_tree(cls, entry: Mapping[str, Any]) -> 'ShortcutRecord':
        def get_str(key: str) -> str:
            value = get_ci(entry, key, "")
            return value if isinstance(value, str) else str(value)

        def get_flag(key: str, default: bool) -> bool:
            value = get_ci(entry, key)
            return bool(value) if isinstance(value, int) else default

        raw_id = get_ci(entry, 'appid', 0)
        tags = None
        raw_tags = get_ci(entry, TAGS_KEY)
        if isinstance(raw_tags, Mapping):
            tags = [str(v) for v in raw_tags.values() if isinstance(v, str) and v.strip()]

        extra = {k: v for k, v in entry.items() if str(k).casefold() not in _KNOWN_KEYS}

        return cls(
            app_name=get_str('appname'),
            exe=get_str('exe'),
            start_dir=get_str('StartDir'),
            icon=get_str('icon'),
            shortcut_path=get_str('ShortcutPath'),
            launch_options=get_str('LaunchOptions'),
            app_id=to_unsigned_int32(raw_id) if isinstance(raw_id, int) else 0,
            is_hidden=get_flag('IsHidden', False),
            allow_desktop_config=get_flag('AllowDesktopConfig', True),
            allow_overlay=get_flag('AllowOverlay', True),
            open_vr=get_flag('OpenVR', False),
            tags=tags,
            extra=extra,
        )

    def to_tree(self) -> Dict[str, Any]:
        tree: Dict[str, Any] = {}
        if self.app_id:
            tree['appid'] = to_signed_int32(self.app_id)
        tree['appname'] = self.app_name or ""
        tree['exe'] = self.exe or ""
        tree['StartDir'] = self.start_dir or ""
        tree['icon'] = self.icon or ""
        tree['ShortcutPath'] = self.shortcut_path or ""
        tree['LaunchOptions'] = self.launch_options or ""
        tree['IsHidden'] = int(self.is_hidden)
        tree['AllowDesktopConfig'] = int(self.allow_desktop_config)
        tree['AllowOverlay'] = int(self.allow_overlay)
        tree['OpenVR'] = int(self.open_vr)
        tree.update(self.extra)
        if self.tags is not None:
            tree[TAGS_KEY] = {str(i): tag for i, tag in enumerate(self.tags)}
        return tree


def records_from_root(root: Mapping[str, Any]) -> List[ShortcutRecord]:
    """Records of a decoded file, ordered by their numeric index key."""
    shortcuts = get_ci(root, 'shortcuts')
    if not isinstance(shortcuts, Mapping):
        return []

    def index_key(item):
        key = str(item[0])
        return (0, int(key), key) if key.isdigit() else (1, 0, key)

    return [
        ShortcutRecord.from_tree(entry)
        for _, entry in sorted(shortcuts.items(), key=index_key)
        if isinstance(entry, Mapping)
    ]


def root_from_records(records: List[ShortcutRecord]) -> Dict[str, Any]:
    """Top-level tree for a record list; entries are re-indexed from 0."""
    return {'shortcuts': {str(i): record.to_tree() for i, record in enumerate(records)}}
