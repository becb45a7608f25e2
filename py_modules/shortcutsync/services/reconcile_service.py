"""
ReconcileService - runs reconciliation passes against the real stores.

Responsibilities:
- Resolve which shortcuts.vdf to use
- Serialize read-modify-write cycles on that file
- Snapshot the catalog and id mapping at the start of each pass
- Back up the file before rewriting it
- Apply catalog additions and action updates produced by a pass
- Own the debounced write-back of catalog edits
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from shortcutsync.catalog.base import CatalogRecord
from shortcutsync.catalog.local import MemoryCatalog
from shortcutsync.context import SyncContext
from shortcutsync.controllers.match_resolver import MatchResolver
from shortcutsync.controllers.write_back import WriteBackScheduler
from shortcutsync.errors import ConfigurationError
from shortcutsync.services.reconcile import (
    ExportCandidate,
    ExportResult,
    ImportCandidate,
    ImportResult,
    export_games,
    import_shortcuts,
    preview_export,
    preview_import,
)
from shortcutsync.shortcuts.records import ShortcutRecord
from shortcutsync.shortcuts.vdf import encode_shortcuts, load_shortcuts_vdf, parse_shortcuts, read_raw, save_shortcuts_vdf
from shortcutsync.utils.backups import create_managed_backup, steam_user_from_path

logger = logging.getLogger(__name__)


class ReconcileService:
    """Service for import, export and write-back passes."""

    def __init__(self, context: SyncContext):
        """Initialize ReconcileService.

        Args:
            context: SyncContext with settings, catalog and stores
        """
        self.context = context
        self._lock = asyncio.Lock()
        self._is_running = False
        self._write_back: Optional[WriteBackScheduler] = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def plugin_id(self) -> str:
        return self.context.settings.plugin_id

    @property
    def write_back_scheduler(self) -> Optional[WriteBackScheduler]:
        return self._write_back

    def start_write_back(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> WriteBackScheduler:
        """Write edits of this integration's catalog records back to Steam.

        Edits are coalesced until settings.write_back_delay seconds pass
        without another one, then write_back() runs once. Call on the event
        loop the passes run on, or pass that loop explicitly.

        Raises:
            ConfigurationError: when the catalog does not report changes
        """
        if self._write_back is not None:
            return self._write_back
        catalog = self.context.catalog
        if not isinstance(catalog, MemoryCatalog):
            raise ConfigurationError(f"{type(catalog).__name__} does not report changes; write-back needs a MemoryCatalog")

        scheduler = WriteBackScheduler(self.write_back, delay=self.context.settings.write_back_delay, loop=loop)
        scheduler.attach(catalog, self.plugin_id)
        self._write_back = scheduler
        logger.info(f"[Reconcile] Write-back enabled ({scheduler.delay}s delay)")
        return scheduler

    async def stop_write_back(self) -> None:
        """Detach from the catalog; a pending flush is dropped."""
        scheduler, self._write_back = self._write_back, None
        if scheduler is not None:
            await scheduler.stop()

    def _resolver(self, games: List[CatalogRecord]) -> MatchResolver:
        return MatchResolver(
            games,
            self.context.id_mappings.snapshot(),
            self.plugin_id,
            expander=self.context.catalog.expand_variables,
        )

    def _load(self, vdf_path: str) -> List[ShortcutRecord]:
        return load_shortcuts_vdf(vdf_path)

    def _write(self, vdf_path: str, previous: Optional[bytes], shortcuts: List[ShortcutRecord]) -> bool:
        if previous is not None and encode_shortcuts(shortcuts) == previous:
            logger.debug(f"[Reconcile] {vdf_path} already up to date")
            return False
        if previous is not None:
            user_id = self.context.settings.selected_steam_user_id or steam_user_from_path(vdf_path)
            try:
                create_managed_backup(vdf_path, user_id, self.context.backups_root)
            except OSError as e:
                logger.warning(f"[Reconcile] Creating shortcuts.vdf backup failed: {e}")
        return save_shortcuts_vdf(vdf_path, shortcuts, previous=previous)

    async def import_from_steam(self, selected: Optional[Iterable[str]] = None) -> ImportResult:
        """Add shortcuts.vdf entries missing from the catalog.

        Args:
            selected: Stable ids of the shortcuts to import; None imports all

        Returns:
            ImportResult with the records added to the catalog
        """
        vdf_path = self.context.resolve_vdf_path()
        async with self._lock:
            self._is_running = True
            try:
                shortcuts = self._load(vdf_path)
                if selected is not None:
                    wanted = {s.casefold() for s in selected}
                    shortcuts = [s for s in shortcuts if s.stable_id.casefold() in wanted]

                games = self.context.catalog.list_games()
                own_ids = [g.game_id for g in games if g.plugin_id == self.plugin_id and g.game_id]
                result = import_shortcuts(
                    shortcuts,
                    self._resolver(games),
                    source=self.context.settings.source_name,
                    launch_via_steam=self.context.settings.launch_via_steam,
                    existing_game_ids=own_ids,
                )
                if result.created:
                    self.context.catalog.add_games(result.created)
                logger.info(f"[Reconcile] Imported {len(result.created)} shortcuts from {vdf_path}")
                return result
            finally:
                self._is_running = False

    async def export_to_steam(self, games: Optional[List[CatalogRecord]] = None) -> ExportResult:
        """Create or update shortcuts for catalog records.

        Args:
            games: Records to export; defaults to every record from other sources

        Returns:
            ExportResult with counts and per-game skip reasons
        """
        vdf_path = self.context.resolve_vdf_path()
        async with self._lock:
            self._is_running = True
            try:
                if games is None:
                    games = [g for g in self.context.catalog.list_games() if g.plugin_id != self.plugin_id]
                return self._export(vdf_path, games, create_missing=True)
            finally:
                self._is_running = False

    async def write_back(self) -> ExportResult:
        """Push edits of this integration's own records to their shortcuts.

        Shortcuts removed from Steam are not recreated.
        """
        vdf_path = self.context.resolve_vdf_path()
        async with self._lock:
            self._is_running = True
            try:
                games = self.context.catalog.games_for_plugin(self.plugin_id)
                logger.info(f"[Reconcile] Write-back of {len(games)} games to {vdf_path}")
                return self._export(vdf_path, games, create_missing=False)
            finally:
                self._is_running = False

    def _export(self, vdf_path: str, games: List[CatalogRecord], create_missing: bool) -> ExportResult:
        previous = read_raw(vdf_path)
        shortcuts = parse_shortcuts(previous)
        id_mapping = self.context.id_mappings.snapshot()

        result = export_games(
            games,
            shortcuts,
            self.context.catalog,
            id_mapping,
            self.plugin_id,
            launch_via_steam=self.context.settings.launch_via_steam,
            exe_chooser=self.context.exe_chooser,
            resolvers=self.context.resolvers,
            create_missing=create_missing,
        )

        if result.changed:
            self._write(vdf_path, previous, result.shortcuts)
        if result.mapping_updates:
            self.context.id_mappings.update(result.mapping_updates)
        for game in result.game_updates:
            try:
                self.context.catalog.update_game(game)
            except KeyError:
                logger.warning(f"[Reconcile] '{game.name}' was removed from the catalog during export")
        return result

    async def preview_import(self) -> List[ImportCandidate]:
        vdf_path = self.context.resolve_vdf_path()
        async with self._lock:
            shortcuts = self._load(vdf_path)
            return preview_import(shortcuts, self._resolver(self.context.catalog.list_games()))

    async def preview_export(self, games: Optional[List[CatalogRecord]] = None) -> List[ExportCandidate]:
        vdf_path = self.context.resolve_vdf_path()
        async with self._lock:
            shortcuts = self._load(vdf_path)
            if games is None:
                games = [g for g in self.context.catalog.list_games() if g.plugin_id != self.plugin_id]
            return preview_export(
                games, shortcuts, self.context.catalog, self.context.id_mappings.snapshot(), self.plugin_id
            )
