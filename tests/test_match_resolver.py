from __future__ import annotations

import logging

import pytest

from shortcutsync.catalog.base import ActionKind, CatalogRecord, LaunchAction
from shortcutsync.controllers.match_resolver import MatchResolver, ShortcutIndex
from shortcutsync.shortcuts.app_id import rungameid_url
from shortcutsync.shortcuts.records import ShortcutRecord

PLUGIN = "steam-shortcuts"


def _file_action(path: str, play: bool = True) -> LaunchAction:
    return LaunchAction(name="Play", kind=ActionKind.FILE, path=path, is_play_action=play)


@pytest.fixture
def shortcut() -> ShortcutRecord:
    return ShortcutRecord(app_name="Foo", exe='"/games/foo/foo.exe"', start_dir='"/games/foo"')


def test_mapping_wins_over_path_match(shortcut) -> None:
    mapped = CatalogRecord(name="Renamed Foo", plugin_id="epic")
    same_path = CatalogRecord(name="Foo", plugin_id=PLUGIN, actions=[_file_action("/games/foo/foo.exe")])
    mapping = {str(shortcut.effective_app_id()): mapped.id}

    resolver = MatchResolver([same_path, mapped], mapping, PLUGIN)

    assert resolver.find_match(shortcut) is mapped


def test_mapping_to_missing_record_falls_through(shortcut) -> None:
    same_path = CatalogRecord(name="Foo", plugin_id=PLUGIN, actions=[_file_action("/games/foo/foo.exe")])
    mapping = {str(shortcut.effective_app_id()): "deleted-record"}

    assert MatchResolver([same_path], mapping, PLUGIN).find_match(shortcut) is same_path


def test_empty_mapping_value_is_logged_and_skipped(shortcut, caplog) -> None:
    same_path = CatalogRecord(name="Foo", plugin_id=PLUGIN, actions=[_file_action("/games/foo/foo.exe")])
    mapping = {str(shortcut.effective_app_id()): "  "}

    with caplog.at_level(logging.WARNING):
        match = MatchResolver([same_path], mapping, PLUGIN).find_match(shortcut)

    assert match is same_path
    assert "mapping" in caplog.text


def test_visible_game_from_other_source_matches_by_name(shortcut) -> None:
    foreign = CatalogRecord(name="  FOO ", plugin_id="gog")
    assert MatchResolver([foreign], {}, PLUGIN).find_match(shortcut) is foreign


def test_hidden_or_own_games_do_not_match_by_name_alone(shortcut) -> None:
    hidden = CatalogRecord(name="Foo", plugin_id="gog", hidden=True)
    own = CatalogRecord(name="Foo", plugin_id=PLUGIN, game_id="unrelated")
    assert MatchResolver([hidden, own], {}, PLUGIN).find_match(shortcut) is None


def test_own_game_keyed_by_stable_id(shortcut) -> None:
    own = CatalogRecord(name="Old Name", plugin_id=PLUGIN, game_id=shortcut.stable_id)
    resolver = MatchResolver([own], {}, PLUGIN)
    assert resolver.find_match(shortcut) is own
    assert resolver.find_library_game_by_ids(shortcut) is own


def test_own_game_keyed_by_app_id(shortcut) -> None:
    own = CatalogRecord(name="Old Name", plugin_id=PLUGIN, game_id=str(shortcut.effective_app_id()))
    assert MatchResolver([own], {}, PLUGIN).find_match(shortcut) is own


def test_other_sources_are_not_matched_by_game_id(shortcut) -> None:
    other = CatalogRecord(name="Other", plugin_id="gog", game_id=shortcut.stable_id)
    assert MatchResolver([other], {}, PLUGIN).find_match(shortcut) is None


def test_name_and_expanded_path_match(shortcut) -> None:
    own = CatalogRecord(
        name="foo",
        plugin_id=PLUGIN,
        game_id="x",
        install_directory="/games/foo",
        actions=[_file_action("{InstallDir}/foo.exe")],
    )
    assert MatchResolver([own], {}, PLUGIN).find_match(shortcut) is own


def test_relative_action_path_is_anchored_at_install_dir(shortcut) -> None:
    own = CatalogRecord(
        name="Foo",
        plugin_id=PLUGIN,
        install_directory="/games/foo",
        actions=[_file_action("foo.exe")],
    )
    assert MatchResolver([own], {}, PLUGIN).find_match(shortcut) is own


def test_path_match_requires_same_name(shortcut) -> None:
    own = CatalogRecord(name="Bar", plugin_id=PLUGIN, actions=[_file_action("/games/foo/foo.exe")])
    assert MatchResolver([own], {}, PLUGIN).find_match(shortcut) is None


def test_name_and_steam_url_match(shortcut) -> None:
    own = CatalogRecord(
        name="Foo",
        plugin_id=PLUGIN,
        actions=[LaunchAction(kind=ActionKind.URL, path=rungameid_url(shortcut.effective_app_id()),
                              is_play_action=True)],
    )
    resolver = MatchResolver([own], {}, PLUGIN)
    assert resolver.find_match(shortcut) is own
    assert resolver.exists_any_match(shortcut)


def test_no_match(shortcut) -> None:
    assert MatchResolver([], {}, PLUGIN).find_match(shortcut) is None


def test_shortcut_index_lookup_order() -> None:
    a = ShortcutRecord(app_name="A", exe='"/games/a/a.exe"', app_id=0x80000001)
    b = ShortcutRecord(app_name="B", exe='"/games/b/b.exe"')
    index = ShortcutIndex([a, b])

    mapped = CatalogRecord(name="Anything", plugin_id="gog")
    assert index.find_for_game(mapped, {str(0x80000001): mapped.id}, PLUGIN) is a

    own = CatalogRecord(name="B", plugin_id=PLUGIN, game_id=b.stable_id)
    assert index.find_for_game(own, {}, PLUGIN) is b

    by_url = CatalogRecord(name="X", plugin_id="gog",
                           actions=[LaunchAction(kind=ActionKind.URL, path=rungameid_url(0x80000001))])
    assert index.find_for_game(by_url, {}, PLUGIN) is a

    by_exe = CatalogRecord(name="B", plugin_id="gog")
    assert index.find_for_game(by_exe, {}, PLUGIN, exe_path="/games/b/b.exe") is b
    assert index.find_for_game(by_exe, {}, PLUGIN) is None
