"""
Reconciliation passes between shortcuts.vdf and the catalog.

Both passes are pure: they take snapshots (shortcut list, catalog records,
id mapping) and return what should change. Reading and writing the file and
the catalog is left to ReconcileService.

Import: every shortcut the catalog does not already know about becomes a new
catalog record owned by this integration.

Export: every catalog record with something launchable becomes, or updates,
exactly one shortcut, and the pairing is recorded in the id mapping.
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from shortcutsync.cache.id_mapping import app_id_for_catalog_id
from shortcutsync.catalog.actions import build_actions_for_shortcut, ensure_steam_launch_action, with_actions
from shortcutsync.catalog.base import ActionKind, Catalog, CatalogRecord
from shortcutsync.controllers.match_resolver import MatchResolver, ShortcutIndex
from shortcutsync.services.launch_resolvers import (
    ExeChooser,
    LaunchResolver,
    LaunchTarget,
    ResolveContext,
    ResolveStatus,
    SkipReason,
    resolve_launch_target,
)
from shortcutsync.shortcuts.app_id import rungameid_url, shortcut_app_id, unquote
from shortcutsync.shortcuts.records import ShortcutRecord
from shortcutsync.utils.path_vars import resolve_path

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_NAME = "Steam Shortcuts"


@dataclass
class ImportResult:
    created: List[CatalogRecord] = field(default_factory=list)
    skipped: List[Tuple[ShortcutRecord, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'created': len(self.created),
            'skipped': len(self.skipped),
            'created_games': [g.name for g in self.created],
        }


@dataclass
class ExportResult:
    created: List[Tuple[CatalogRecord, ShortcutRecord]] = field(default_factory=list)
    updated: List[Tuple[CatalogRecord, ShortcutRecord]] = field(default_factory=list)
    skipped: List[Tuple[CatalogRecord, SkipReason]] = field(default_factory=list)
    shortcuts: List[ShortcutRecord] = field(default_factory=list)
    mapping_updates: Dict[str, str] = field(default_factory=dict)
    game_updates: List[CatalogRecord] = field(default_factory=list)
    # Ranked executables for games skipped while waiting on a person
    candidates: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'created': len(self.created),
            'updated': len(self.updated),
            'skipped': len(self.skipped),
            'skipped_games': [
                {'name': game.name, 'reason': reason.value} for game, reason in self.skipped
            ],
        }


@dataclass
class ImportCandidate:
    shortcut: ShortcutRecord
    is_new: bool

    @property
    def label(self) -> str:
        return f"{self.shortcut.app_name} - {self.shortcut.exe_path}"


@dataclass
class ExportCandidate:
    game: CatalogRecord
    exists_in_steam: bool
    needs_exe_discovery: bool

    @property
    def label(self) -> str:
        return self.game.name


def mint_catalog_record(shortcut: ShortcutRecord, game_id: str, plugin_id: str,
                        source: str = DEFAULT_SOURCE_NAME,
                        launch_via_steam: bool = True) -> CatalogRecord:
    """New catalog record describing a shortcut."""
    return CatalogRecord(
        name=shortcut.app_name,
        plugin_id=plugin_id,
        game_id=game_id,
        source=source,
        install_directory=unquote(shortcut.start_dir),
        is_installed=True,
        actions=build_actions_for_shortcut(shortcut, launch_via_steam),
    )


def import_shortcuts(shortcuts: Iterable[ShortcutRecord], resolver: MatchResolver,
                     source: str = DEFAULT_SOURCE_NAME,
                     launch_via_steam: bool = True,
                     existing_game_ids: Iterable[str] = ()) -> ImportResult:
    """Create catalog records for shortcuts the catalog does not know yet.

    Running it twice over the same file creates nothing the second time: the
    minted key (stable id, else app id) of every record is checked against
    existing keys and against records minted earlier in the same pass.
    """
    result = ImportResult()
    seen: Set[str] = {gid.casefold() for gid in existing_game_ids}

    for shortcut in shortcuts:
        if not shortcut.app_name and not shortcut.exe_path:
            result.skipped.append((shortcut, 'empty'))
            continue

        match = resolver.find_match(shortcut)
        if match is not None:
            logger.debug(f"[Import] '{shortcut.app_name}' already in catalog as '{match.name}'")
            result.skipped.append((shortcut, 'matched'))
            continue

        game_id = shortcut.stable_id or str(shortcut.effective_app_id())
        if game_id.casefold() in seen:
            result.skipped.append((shortcut, 'duplicate'))
            continue
        seen.add(game_id.casefold())

        result.created.append(mint_catalog_record(
            shortcut, game_id, resolver.plugin_id, source, launch_via_steam
        ))

    logger.info(
        f"[Import] {len(result.created)} new games, {len(result.skipped)} shortcuts skipped"
    )
    return result


def preview_import(shortcuts: Iterable[ShortcutRecord], resolver: MatchResolver) -> List[ImportCandidate]:
    """Import candidates with an is_new flag, for a selection UI."""
    return [ImportCandidate(s, not resolver.exists_any_match(s)) for s in shortcuts]


def _shortcut_exe(target: LaunchTarget) -> str:
    if target.kind == ActionKind.URL:
        return target.exe
    exe = unquote(target.exe)
    return f'"{exe}"' if exe else ""


def _shortcut_start_dir(working_dir: str) -> str:
    working_dir = unquote(working_dir)
    return f'"{working_dir}"' if working_dir else ""


def _game_actions_after_export(game: CatalogRecord, target: LaunchTarget, app_id: int,
                               launch_via_steam: bool) -> Optional[CatalogRecord]:
    """Catalog record with its actions brought in line with the shortcut, or None."""
    actions = list(game.actions)
    changed = False
    if target.new_action is not None:
        actions.insert(0, target.new_action)
        changed = True
    if launch_via_steam and app_id:
        steam_changed, actions = ensure_steam_launch_action(actions, rungameid_url(app_id))
        changed = changed or steam_changed
    if not changed:
        return None
    return with_actions(game, actions)


def export_games(games: Iterable[CatalogRecord], shortcuts: Sequence[ShortcutRecord],
                 catalog: Catalog, id_mapping: Mapping[str, str], plugin_id: str,
                 launch_via_steam: bool = True,
                 exe_chooser: Optional[ExeChooser] = None,
                 resolvers: Optional[Sequence[LaunchResolver]] = None,
                 create_missing: bool = True) -> ExportResult:
    """Create or update one shortcut per catalog record.

    Args:
        games: Records to export
        shortcuts: Current file contents; not modified
        catalog: Used for emulator lookup and variable expansion
        id_mapping: Snapshot of app id -> catalog id
        plugin_id: This integration's source tag
        launch_via_steam: Also make a rungameid action the game's play action
        exe_chooser: Asked when an executable cannot be found automatically
        resolvers: Launch resolver strategies, in order
        create_missing: When False only already paired shortcuts are updated

    Returns:
        ExportResult with the complete new shortcut list
    """
    result = ExportResult(shortcuts=[copy.deepcopy(s) for s in shortcuts])
    index = ShortcutIndex(result.shortcuts)
    ctx = ResolveContext(
        catalog=catalog,
        id_mapping=id_mapping,
        shortcuts_by_app_id=index.by_app_id,
        exe_chooser=exe_chooser,
    )
    paired: Set[int] = set()

    for game in games:
        resolved = resolve_launch_target(game, ctx, resolvers)
        if resolved.status != ResolveStatus.RESOLVED or resolved.target is None:
            reason = resolved.reason or SkipReason.NO_EXECUTABLE
            logger.info(f"[Export] Skipping '{game.name}': {reason.value}")
            result.skipped.append((game, reason))
            if resolved.candidates:
                result.candidates[game.id] = resolved.candidates
            continue

        target = resolved.target
        existing = None
        if target.app_id:
            existing = index.by_app_id.get(target.app_id)
        if existing is None:
            key_exe = None if target.kind == ActionKind.URL else target.exe
            existing = index.find_for_game(game, id_mapping, plugin_id, exe_path=key_exe)

        if existing is not None and id(existing) in paired:
            logger.warning(f"[Export] Shortcut '{existing.app_name}' already paired in this pass, skipping '{game.name}'")
            result.skipped.append((game, SkipReason.ALREADY_PAIRED))
            continue
        if existing is None and not create_missing:
            logger.debug(f"[Export] No shortcut paired with '{game.name}', not creating one")
            continue

        name = game.name or os.path.splitext(os.path.basename(unquote(target.exe)))[0]
        if existing is not None:
            app_id = existing.effective_app_id()
            existing.app_name = name
            existing.exe = _shortcut_exe(target)
            if target.working_dir:
                existing.start_dir = _shortcut_start_dir(target.working_dir)
            existing.launch_options = target.launch_options or ""
            if not existing.app_id:
                existing.app_id = app_id
            shortcut = existing
            result.updated.append((game, shortcut))
        else:
            app_id = (target.app_id
                      or app_id_for_catalog_id(id_mapping, game.id)
                      or shortcut_app_id(target.exe, name))
            shortcut = ShortcutRecord(
                app_name=name,
                exe=_shortcut_exe(target),
                start_dir=_shortcut_start_dir(target.working_dir),
                launch_options=target.launch_options or "",
                app_id=app_id,
            )
            result.shortcuts.append(shortcut)
            index.add(shortcut)
            result.created.append((game, shortcut))

        paired.add(id(shortcut))
        result.mapping_updates[str(app_id)] = game.id

        updated_game = _game_actions_after_export(game, target, app_id, launch_via_steam)
        if updated_game is not None:
            result.game_updates.append(updated_game)

    logger.info(
        f"[Export] created={len(result.created)} updated={len(result.updated)} "
        f"skipped={len(result.skipped)}"
    )
    return result


def preview_export(games: Iterable[CatalogRecord], shortcuts: Sequence[ShortcutRecord],
                   catalog: Catalog, id_mapping: Mapping[str, str],
                   plugin_id: str) -> List[ExportCandidate]:
    """Export candidates flagged with whether a paired shortcut exists.

    Games with neither an action nor an install directory are left out.
    """
    index = ShortcutIndex(shortcuts)
    candidates = []
    for game in games:
        file_action = next((a for a in game.actions if a.kind == ActionKind.FILE and a.path), None)
        needs_discovery = file_action is None and not game.actions and bool(game.install_directory)
        if not game.actions and not needs_discovery:
            continue
        exe_path = None
        if file_action is not None:
            exe_path = resolve_path(catalog.expand_variables(game, file_action.path), game.install_directory)
        exists = index.find_for_game(game, id_mapping, plugin_id, exe_path=exe_path) is not None
        candidates.append(ExportCandidate(game, exists, needs_discovery))
    return candidates
