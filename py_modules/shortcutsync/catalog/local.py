"""
Local catalog implementations.

MemoryCatalog keeps records in a dict and is what embedders and tests use.
JsonFileCatalog persists the same data to a JSON file for the command line.
"""
import copy
import json
import logging
import os
import tempfile
from typing import Callable, Dict, Iterable, List, Optional

from shortcutsync.catalog.base import Catalog, CatalogRecord, Emulator

logger = logging.getLogger(__name__)

ChangeListener = Callable[[List[CatalogRecord]], None]


class MemoryCatalog(Catalog):
    """In-process catalog with change notifications."""

    def __init__(self, games: Optional[Iterable[CatalogRecord]] = None,
                 emulators: Optional[Iterable[Emulator]] = None):
        self._games: Dict[str, CatalogRecord] = {}
        self._emulators: Dict[str, Emulator] = {e.id: e for e in (emulators or [])}
        self._listeners: List[ChangeListener] = []
        for game in games or []:
            self._games[game.id] = copy.deepcopy(game)

    def add_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked with the records of every add/update."""
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, games: List[CatalogRecord]) -> None:
        for listener in list(self._listeners):
            try:
                listener(games)
            except Exception as e:
                logger.error(f"[Catalog] Change listener failed: {e}", exc_info=True)

    def list_games(self) -> List[CatalogRecord]:
        return [copy.deepcopy(g) for g in self._games.values()]

    def get_game(self, catalog_id: str) -> Optional[CatalogRecord]:
        game = self._games.get(catalog_id)
        return copy.deepcopy(game) if game else None

    def add_games(self, games: List[CatalogRecord]) -> None:
        if not games:
            return
        for game in games:
            self._games[game.id] = copy.deepcopy(game)
        self._on_changed()
        self._notify([copy.deepcopy(g) for g in games])

    def update_game(self, game: CatalogRecord) -> None:
        if game.id not in self._games:
            raise KeyError(f"Unknown catalog id: {game.id}")
        self._games[game.id] = copy.deepcopy(game)
        self._on_changed()
        self._notify([copy.deepcopy(game)])

    def remove_game(self, catalog_id: str) -> bool:
        removed = self._games.pop(catalog_id, None) is not None
        if removed:
            self._on_changed()
        return removed

    def add_emulator(self, emulator: Emulator) -> None:
        self._emulators[emulator.id] = emulator
        self._on_changed()

    def get_emulator(self, emulator_id: Optional[str]) -> Optional[Emulator]:
        if not emulator_id:
            return None
        emulator = self._emulators.get(emulator_id)
        return copy.deepcopy(emulator) if emulator else None

    def _on_changed(self) -> None:
        """Hook for subclasses that persist."""


class JsonFileCatalog(MemoryCatalog):
    """MemoryCatalog saved to a JSON file after every change"""

    def __init__(self, path: str):
        self.path = path
        super().__init__()
        self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"[Catalog] Error loading catalog {self.path}: {e}")
            raise
        for entry in data.get('games', []):
            game = CatalogRecord.from_dict(entry)
            self._games[game.id] = game
        for entry in data.get('emulators', []):
            emulator = Emulator.from_dict(entry)
            self._emulators[emulator.id] = emulator
        logger.debug(f"[Catalog] Loaded {len(self._games)} games from {self.path}")

    def _on_changed(self) -> None:
        self.save()

    def save(self) -> None:
        data = {
            'games': [g.to_dict() for g in self._games.values()],
            'emulators': [e.to_dict() for e in self._emulators.values()],
        }
        directory = os.path.dirname(self.path) or '.'
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
