"""Building and normalizing catalog launch actions for shortcuts."""

import copy
from typing import List, Optional, Tuple

from shortcutsync.catalog.base import ActionKind, CatalogRecord, LaunchAction
from shortcutsync.shortcuts.app_id import rungameid_url, unquote
from shortcutsync.shortcuts.records import ShortcutRecord

PLAY_DIRECT_ACTION_NAME = "Play (Direct)"
PLAY_STEAM_ACTION_NAME = "Play (Steam)"


def build_file_action(shortcut: ShortcutRecord, is_play_action: bool) -> LaunchAction:
    return LaunchAction(
        name=PLAY_DIRECT_ACTION_NAME,
        kind=ActionKind.FILE,
        path=unquote(shortcut.exe),
        arguments=shortcut.launch_options,
        working_dir=shortcut.start_dir,
        is_play_action=is_play_action,
    )


def build_steam_action(app_id: int, is_play_action: bool) -> LaunchAction:
    return LaunchAction(
        name=PLAY_STEAM_ACTION_NAME,
        kind=ActionKind.URL,
        path=rungameid_url(app_id),
        is_play_action=is_play_action,
    )


def build_actions_for_shortcut(shortcut: ShortcutRecord, launch_via_steam: bool) -> List[LaunchAction]:
    """Steam URL as the default with the exe as secondary, or the exe alone."""
    app_id = shortcut.effective_app_id()
    if launch_via_steam and app_id:
        return [build_steam_action(app_id, True), build_file_action(shortcut, False)]
    return [build_file_action(shortcut, True)]


def ensure_steam_launch_action(actions: Optional[List[LaunchAction]],
                               expected_url: str) -> Tuple[bool, List[LaunchAction]]:
    """Make a rungameid URL action the first and only play action.

    An existing URL action with the same target is reused; duplicates of it are
    dropped and every other action loses its play flag.

    Returns:
        (changed, new action list). The input list is not modified.
    """
    actions = [copy.copy(a) for a in (actions or [])]
    changed = False

    steam = next(
        (a for a in actions
         if a.kind == ActionKind.URL and a.path.casefold() == expected_url.casefold()),
        None,
    )
    if steam is None:
        steam = LaunchAction(name=PLAY_STEAM_ACTION_NAME, kind=ActionKind.URL, path=expected_url)
        actions.append(steam)
        changed = True
    else:
        if steam.path != expected_url:
            steam.path = expected_url
            changed = True
        if steam.name != PLAY_STEAM_ACTION_NAME:
            steam.name = PLAY_STEAM_ACTION_NAME
            changed = True

    kept = []
    for action in actions:
        if action is not steam and action.kind == ActionKind.URL \
                and action.path.casefold() == expected_url.casefold():
            changed = True
            continue
        kept.append(action)
    actions = kept

    for action in actions:
        if action is not steam and action.is_play_action:
            action.is_play_action = False
            changed = True
    if not steam.is_play_action:
        steam.is_play_action = True
        changed = True

    if actions[0] is not steam:
        actions.remove(steam)
        actions.insert(0, steam)
        changed = True

    return changed, actions


def with_actions(game: CatalogRecord, actions: List[LaunchAction]) -> CatalogRecord:
    """Copy of game with a new action list, marked installed."""
    updated = copy.deepcopy(game)
    updated.actions = actions
    updated.is_installed = True
    return updated
