from __future__ import annotations

import json
import os
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from shortcutsync.catalog.base import ActionKind, CatalogRecord, Emulator, EmulatorProfile, LaunchAction
from shortcutsync.catalog.local import JsonFileCatalog, MemoryCatalog
from shortcutsync.utils.path_vars import expand_variables, normalize_path, paths_equal, resolve_path


def _game(**kwargs) -> CatalogRecord:
    defaults = dict(
        name="Foo",
        plugin_id="gog",
        install_directory="/games/foo",
        actions=[LaunchAction(name="Play", kind=ActionKind.FILE, path="{InstallDir}/foo.exe", is_play_action=True)],
    )
    defaults.update(kwargs)
    return CatalogRecord(**defaults)


def test_memory_catalog_returns_copies() -> None:
    game = _game()
    catalog = MemoryCatalog([game])

    snapshot = catalog.list_games()[0]
    snapshot.name = "Changed"

    assert catalog.get_game(game.id).name == "Foo"
    assert catalog.get_game("missing") is None


def test_update_unknown_game_raises() -> None:
    with pytest.raises(KeyError):
        MemoryCatalog().update_game(_game())


def test_listeners_receive_changes_and_failures_are_contained() -> None:
    catalog = MemoryCatalog()
    failing = Mock(side_effect=RuntimeError("listener bug"))
    listener = Mock()
    catalog.add_listener(failing)
    catalog.add_listener(listener)

    game = _game()
    catalog.add_games([game])

    listener.assert_called_once()
    assert listener.call_args[0][0][0].id == game.id

    catalog.remove_listener(listener)
    catalog.update_game(game)
    listener.assert_called_once()


def test_games_for_plugin() -> None:
    catalog = MemoryCatalog([_game(), _game(plugin_id="steam-shortcuts", name="Mine")])
    assert [g.name for g in catalog.games_for_plugin("steam-shortcuts")] == ["Mine"]


def test_play_action_falls_back_to_first() -> None:
    first = LaunchAction(name="a")
    second = LaunchAction(name="b")
    assert _game(actions=[first, second]).play_action() is first
    second.is_play_action = True
    assert _game(actions=[first, second]).play_action() is second
    assert _game(actions=[]).play_action() is None


def test_json_catalog_persists_games_and_emulators(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    catalog = JsonFileCatalog(str(path))
    catalog.add_emulator(Emulator(id="emu", name="Emu", install_dir="/emu",
                                  profiles=[EmulatorProfile(id="p", executable="emu.exe")]))
    game = _game(actions=[LaunchAction(kind=ActionKind.EMULATOR, emulator_id="emu", emulator_profile_id="p")])
    catalog.add_games([game])

    reloaded = JsonFileCatalog(str(path))

    assert reloaded.get_game(game.id) == game
    assert reloaded.get_emulator("emu").get_profile("p").executable == "emu.exe"
    assert json.loads(path.read_text())["games"][0]["actions"][0]["kind"] == "emulator"


def test_json_catalog_failed_save_keeps_file(tmp_path: Path) -> None:
    path = tmp_path / "catalog.json"
    catalog = JsonFileCatalog(str(path))
    catalog.add_games([_game()])
    before = path.read_text()

    with patch("shortcutsync.catalog.local.os.replace", side_effect=OSError("nope")):
        with pytest.raises(OSError):
            catalog.add_games([_game(name="Other")])

    assert path.read_text() == before
    assert os.listdir(tmp_path) == ["catalog.json"]


def test_expand_variables(monkeypatch) -> None:
    monkeypatch.setenv("GAMES_ROOT", "/mnt/games")
    assert expand_variables("{InstallDir}/bin", '"/games/foo"', "Foo") == "/games/foo/bin"
    assert expand_variables("{installdirname}-{Name}", "/games/foo/", "Foo") == "foo-Foo"
    assert expand_variables("%GAMES_ROOT%/x", None) == "/mnt/games/x"
    assert expand_variables("$GAMES_ROOT/x", None) == "/mnt/games/x"
    assert expand_variables("%UNSET_VARIABLE_XYZ%", None) == "%UNSET_VARIABLE_XYZ%"
    assert expand_variables(None) == ""


def test_resolve_path() -> None:
    assert resolve_path("bin/foo.exe", "/games/foo") == "/games/foo/bin/foo.exe"
    assert resolve_path('"/abs/foo.exe"', "/games/foo") == "/abs/foo.exe"
    assert resolve_path("foo.exe", "C:\\Games\\Foo") == "C:\\Games\\Foo\\foo.exe"
    assert resolve_path("", "/games/foo") == ""


def test_paths_equal() -> None:
    assert paths_equal('"/games/foo/./foo.exe"', "/GAMES/foo/foo.exe")
    assert paths_equal("C:\\Games\\Foo.exe", '"c:/games/foo.exe"')
    assert not paths_equal("", "")
    assert normalize_path('  ""  ') == ""
