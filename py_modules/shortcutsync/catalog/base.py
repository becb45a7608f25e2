"""
Catalog model and the collaborator interface every game library implements.

The catalog is the external, Playnite-like game database that shortcuts are
imported into and exported from. shortcutsync never keeps its own copy of it:
each pass takes a fresh snapshot through this interface.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Dict, List, Optional
import logging
import uuid

from shortcutsync.utils.path_vars import expand_variables

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    FILE = "file"
    URL = "url"
    EMULATOR = "emulator"


@dataclass
class LaunchAction:
    """A way to start a game, as stored in the catalog"""
    name: str = ""
    kind: ActionKind = ActionKind.FILE
    path: str = ""
    working_dir: str = ""
    arguments: str = ""
    is_play_action: bool = False
    # Emulator actions only
    emulator_id: Optional[str] = None
    emulator_profile_id: Optional[str] = None
    additional_arguments: str = ""
    override_default_args: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['kind'] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LaunchAction':
        return cls(
            name=data.get('name', ''),
            kind=ActionKind(data.get('kind', ActionKind.FILE.value)),
            path=data.get('path', ''),
            working_dir=data.get('working_dir', ''),
            arguments=data.get('arguments', ''),
            is_play_action=bool(data.get('is_play_action', False)),
            emulator_id=data.get('emulator_id'),
            emulator_profile_id=data.get('emulator_profile_id'),
            additional_arguments=data.get('additional_arguments', ''),
            override_default_args=bool(data.get('override_default_args', False)),
        )


@dataclass
class EmulatorProfile:
    id: str
    name: str = ""
    executable: str = ""
    arguments: str = ""
    working_directory: str = ""


@dataclass
class Emulator:
    """Emulator installation with its custom launch profiles"""
    id: str
    name: str = ""
    install_dir: str = ""
    profiles: List[EmulatorProfile] = field(default_factory=list)

    def get_profile(self, profile_id: Optional[str]) -> Optional[EmulatorProfile]:
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Emulator':
        return cls(
            id=data['id'],
            name=data.get('name', ''),
            install_dir=data.get('install_dir', ''),
            profiles=[EmulatorProfile(**p) for p in data.get('profiles', [])],
        )


@dataclass
class CatalogRecord:
    """Represents a game in the external catalog"""
    name: str
    plugin_id: str  # which integration owns the record
    game_id: str = ""  # integration-assigned key
    id: str = field(default_factory=lambda: str(uuid.uuid4()))  # catalog-assigned
    source: str = ""
    install_directory: str = ""
    is_installed: bool = False
    hidden: bool = False
    actions: List[LaunchAction] = field(default_factory=list)

    def play_action(self) -> Optional[LaunchAction]:
        """The primary action, or the first one when none is marked."""
        for action in self.actions:
            if action.is_play_action:
                return action
        return self.actions[0] if self.actions else None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['actions'] = [a.to_dict() for a in self.actions]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CatalogRecord':
        return cls(
            name=data.get('name', ''),
            plugin_id=data.get('plugin_id', ''),
            game_id=data.get('game_id', ''),
            id=data.get('id') or str(uuid.uuid4()),
            source=data.get('source', ''),
            install_directory=data.get('install_directory', ''),
            is_installed=bool(data.get('is_installed', False)),
            hidden=bool(data.get('hidden', False)),
            actions=[LaunchAction.from_dict(a) for a in data.get('actions', [])],
        )


class Catalog(ABC):
    """
    Abstract interface of the game catalog.

    Implementations must return copies from list_games/get_game so callers can
    treat them as snapshots; changes go back through add_games/update_game.
    """

    @abstractmethod
    def list_games(self) -> List[CatalogRecord]:
        """Return every record in the catalog."""
        pass

    @abstractmethod
    def get_game(self, catalog_id: str) -> Optional[CatalogRecord]:
        """Return the live record with this catalog id, or None."""
        pass

    @abstractmethod
    def add_games(self, games: List[CatalogRecord]) -> None:
        pass

    @abstractmethod
    def update_game(self, game: CatalogRecord) -> None:
        pass

    def get_emulator(self, emulator_id: Optional[str]) -> Optional[Emulator]:
        """Return an emulator definition; catalogs without emulators return None."""
        return None

    def expand_variables(self, game: CatalogRecord, text: Optional[str]) -> str:
        """Expand {InstallDir}-style placeholders and environment variables."""
        return expand_variables(text, game.install_directory, game.name)

    def games_for_plugin(self, plugin_id: str) -> List[CatalogRecord]:
        return [g for g in self.list_games() if g.plugin_id == plugin_id]
