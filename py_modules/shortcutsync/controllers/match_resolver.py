"""
Match resolution between shortcuts and catalog records.

MatchResolver answers "does this shortcut already exist in the catalog?"
through an ordered cascade; the first positive step wins:

1. id mapping: the shortcut's id was recorded by an earlier export
2. a visible game from another source with the same name
3. a game owned by this integration keyed by the shortcut's stable id or app id
4. same name and a file play action pointing at the same executable
5. same name and a Steam rungameid play action

ShortcutIndex answers the reverse question for exports.

Both work on snapshots taken at the start of a pass and never touch the
catalog or the file themselves.
"""

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from shortcutsync.cache.id_mapping import app_id_for_catalog_id, parse_app_id_key
from shortcutsync.catalog.base import ActionKind, CatalogRecord
from shortcutsync.errors import LookupFailure
from shortcutsync.shortcuts.app_id import (
    is_rungameid_url,
    parse_composite_id,
    rungameid_url,
    shortcut_app_id,
    stable_id,
)
from shortcutsync.shortcuts.records import ShortcutRecord
from shortcutsync.utils.path_vars import expand_variables, paths_equal, resolve_path

logger = logging.getLogger(__name__)

Expander = Callable[[CatalogRecord, str], str]


def _default_expander(game: CatalogRecord, text: str) -> str:
    return expand_variables(text, game.install_directory, game.name)


def _fold(text: Optional[str]) -> str:
    return (text or "").strip().casefold()


class MatchResolver:
    """Pairs shortcuts with catalog records over a catalog snapshot."""

    def __init__(self, games: Iterable[CatalogRecord], id_mapping: Mapping[str, str],
                 plugin_id: str, expander: Optional[Expander] = None):
        self.plugin_id = plugin_id
        self.id_mapping = id_mapping
        self.expander = expander or _default_expander
        self._games: List[CatalogRecord] = list(games)
        self._by_id: Dict[str, CatalogRecord] = {g.id: g for g in self._games}
        self._by_name: Dict[str, List[CatalogRecord]] = {}
        self._own_by_game_id: Dict[str, CatalogRecord] = {}
        for game in self._games:
            self._by_name.setdefault(_fold(game.name), []).append(game)
            if game.plugin_id == plugin_id and game.game_id:
                self._own_by_game_id.setdefault(_fold(game.game_id), game)

        self._steps = [
            ('mapping', self._match_by_mapping),
            ('foreign_name', self._match_by_foreign_name),
            ('library_ids', self.find_library_game_by_ids),
            ('exe_path', self._match_by_exe_path),
            ('steam_url', self._match_by_steam_url),
        ]

    def find_match(self, shortcut: ShortcutRecord) -> Optional[CatalogRecord]:
        """Catalog record already representing this shortcut, or None."""
        for step_name, step in self._steps:
            try:
                game = step(shortcut)
            except (LookupFailure, ValueError, OSError) as e:
                logger.warning(
                    f"[MatchResolver] Step '{step_name}' failed for '{shortcut.app_name}': {e}"
                )
                continue
            if game is not None:
                logger.debug(
                    f"[MatchResolver] '{shortcut.app_name}' matched '{game.name}' via {step_name}"
                )
                return game
        return None

    def exists_any_match(self, shortcut: ShortcutRecord) -> bool:
        return self.find_match(shortcut) is not None

    def _match_by_mapping(self, shortcut: ShortcutRecord) -> Optional[CatalogRecord]:
        app_id = shortcut.effective_app_id()
        if not app_id:
            return None
        catalog_id = self.id_mapping.get(str(app_id))
        if catalog_id is None:
            return None
        if not catalog_id.strip():
            raise LookupFailure(f"Empty catalog id mapped for app id {app_id}")
        return self._by_id.get(catalog_id.strip())

    def _match_by_foreign_name(self, shortcut: ShortcutRecord) -> Optional[CatalogRecord]:
        for game in self._by_name.get(_fold(shortcut.app_name), []):
            if game.plugin_id != self.plugin_id and not game.hidden:
                return game
        return None

    def find_library_game_by_ids(self, shortcut: ShortcutRecord) -> Optional[CatalogRecord]:
        """Game owned by this integration whose key is the shortcut's stable or app id."""
        game = self._own_by_game_id.get(_fold(shortcut.stable_id))
        if game is not None:
            return game
        app_id = shortcut.effective_app_id()
        if app_id:
            return self._own_by_game_id.get(str(app_id))
        return None

    def _match_by_exe_path(self, shortcut: ShortcutRecord) -> Optional[CatalogRecord]:
        if not shortcut.exe_path:
            return None
        for game in self._by_name.get(_fold(shortcut.app_name), []):
            action = game.play_action()
            if action is None or action.kind != ActionKind.FILE or not action.path:
                continue
            expanded = resolve_path(self.expander(game, action.path), game.install_directory)
            if paths_equal(expanded, shortcut.exe_path):
                return game
        return None

    def _match_by_steam_url(self, shortcut: ShortcutRecord) -> Optional[CatalogRecord]:
        expected = rungameid_url(shortcut.effective_app_id()).casefold()
        for game in self._by_name.get(_fold(shortcut.app_name), []):
            action = game.play_action()
            if action is None or action.kind != ActionKind.URL:
                continue
            url = (action.path or "").strip()
            if (expected and url.casefold() == expected) or is_rungameid_url(url):
                return game
        return None


class ShortcutIndex:
    """Lookup of existing shortcuts by id, for pairing catalog records on export."""

    def __init__(self, shortcuts: Iterable[ShortcutRecord]):
        self.by_app_id: Dict[int, ShortcutRecord] = {}
        self.by_stable_id: Dict[str, ShortcutRecord] = {}
        for shortcut in shortcuts:
            self.add(shortcut)

    def add(self, shortcut: ShortcutRecord) -> None:
        app_id = shortcut.effective_app_id()
        if app_id:
            self.by_app_id.setdefault(app_id, shortcut)
        self.by_stable_id.setdefault(shortcut.stable_id.casefold(), shortcut)

    def find_for_game(self, game: CatalogRecord, id_mapping: Mapping[str, str], plugin_id: str,
                      exe_path: Optional[str] = None) -> Optional[ShortcutRecord]:
        """Existing shortcut paired with game, or None.

        Tried in order: the id mapping, the game's own key when this
        integration owns it, a rungameid action, then the stable and derived
        ids of exe_path + name.
        """
        app_id = app_id_for_catalog_id(id_mapping, game.id)
        if app_id and app_id in self.by_app_id:
            return self.by_app_id[app_id]

        if game.plugin_id == plugin_id and game.game_id:
            found = self.by_stable_id.get(game.game_id.casefold())
            if found is not None:
                return found
            try:
                found = self.by_app_id.get(parse_app_id_key(game.game_id))
            except LookupFailure:
                found = None
            if found is not None:
                return found

        for action in game.actions:
            if action.kind == ActionKind.URL:
                parsed = parse_composite_id(action.path)
                if parsed and parsed in self.by_app_id:
                    return self.by_app_id[parsed]

        if exe_path:
            found = self.by_stable_id.get(stable_id(exe_path, game.name).casefold())
            if found is not None:
                return found
            return self.by_app_id.get(shortcut_app_id(exe_path, game.name))
        return None
