from __future__ import annotations

from shortcutsync.catalog.actions import (
    PLAY_DIRECT_ACTION_NAME,
    PLAY_STEAM_ACTION_NAME,
    build_actions_for_shortcut,
    ensure_steam_launch_action,
    with_actions,
)
from shortcutsync.catalog.base import ActionKind, CatalogRecord, LaunchAction
from shortcutsync.shortcuts.app_id import rungameid_url
from shortcutsync.shortcuts.records import ShortcutRecord

URL = rungameid_url(0x80000001)


def _shortcut() -> ShortcutRecord:
    return ShortcutRecord(app_name="Foo", exe='"/games/foo/foo.exe"', start_dir="/games/foo",
                          launch_options="-fullscreen", app_id=0x80000001)


def test_actions_for_shortcut_via_steam() -> None:
    steam, direct = build_actions_for_shortcut(_shortcut(), launch_via_steam=True)

    assert steam.kind == ActionKind.URL
    assert steam.path == URL
    assert steam.is_play_action
    assert steam.name == PLAY_STEAM_ACTION_NAME
    assert direct.kind == ActionKind.FILE
    assert direct.path == "/games/foo/foo.exe"
    assert direct.arguments == "-fullscreen"
    assert not direct.is_play_action


def test_actions_for_shortcut_direct_only() -> None:
    [direct] = build_actions_for_shortcut(_shortcut(), launch_via_steam=False)
    assert direct.name == PLAY_DIRECT_ACTION_NAME
    assert direct.is_play_action


def test_ensure_steam_action_added_first_and_only_play_action() -> None:
    actions = [LaunchAction(name="Play", kind=ActionKind.FILE, path="/g/foo.exe", is_play_action=True)]

    changed, result = ensure_steam_launch_action(actions, URL)

    assert changed
    assert [a.kind for a in result] == [ActionKind.URL, ActionKind.FILE]
    assert result[0].is_play_action
    assert not result[1].is_play_action
    # input untouched
    assert actions[0].is_play_action
    assert len(actions) == 1


def test_ensure_steam_action_is_idempotent() -> None:
    _, first = ensure_steam_launch_action([], URL)
    changed, second = ensure_steam_launch_action(first, URL)

    assert not changed
    assert second == first


def test_ensure_steam_action_dedups_and_moves_existing() -> None:
    actions = [
        LaunchAction(name="Play", kind=ActionKind.FILE, path="/g/foo.exe", is_play_action=True),
        LaunchAction(name="steam", kind=ActionKind.URL, path=URL.upper()),
        LaunchAction(name="dup", kind=ActionKind.URL, path=URL),
    ]

    changed, result = ensure_steam_launch_action(actions, URL)

    assert changed
    assert len(result) == 2
    assert result[0].path == URL
    assert result[0].name == PLAY_STEAM_ACTION_NAME
    assert [a.is_play_action for a in result] == [True, False]


def test_with_actions_copies_and_marks_installed() -> None:
    game = CatalogRecord(name="Foo", plugin_id="x")
    updated = with_actions(game, [LaunchAction(path="a")])

    assert updated.is_installed
    assert updated.id == game.id
    assert game.actions == []
    assert not game.is_installed
