"""
Launch target resolution for exports.

Each strategy looks at a catalog record and either resolves what the Steam
shortcut should launch, declares itself not applicable, or reports that a
person has to pick the executable. ``resolve_launch_target`` runs them in
order: file action, emulator action, URL action, filesystem discovery, and
finally the optional manual chooser.
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Mapping, Optional, Sequence

from shortcutsync.cache.id_mapping import app_id_for_catalog_id
from shortcutsync.catalog.actions import PLAY_DIRECT_ACTION_NAME
from shortcutsync.catalog.base import ActionKind, Catalog, CatalogRecord, LaunchAction
from shortcutsync.discovery.executables import discover_candidates
from shortcutsync.shortcuts.app_id import parse_composite_id, unquote
from shortcutsync.shortcuts.records import ShortcutRecord
from shortcutsync.utils.path_vars import resolve_path

logger = logging.getLogger(__name__)

# Returned by an exe chooser to skip this and every remaining game
SKIP_ALL = object()

ExeChooser = Callable[[CatalogRecord, List[str]], object]


class ResolveStatus(str, Enum):
    RESOLVED = "resolved"
    NOT_APPLICABLE = "not_applicable"
    NEEDS_USER_INPUT = "needs_user_input"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    NO_INSTALL_DIR = "no_install_dir"
    NO_EXECUTABLE = "no_executable_found"
    USER_DECLINED = "user_declined"
    UNSUPPORTED_LAUNCH_KIND = "unsupported_launch_kind"
    ALREADY_PAIRED = "already_paired"


@dataclass
class LaunchTarget:
    """What a shortcut launches: an executable or a URL"""
    exe: str
    working_dir: str = ""
    launch_options: str = ""
    kind: ActionKind = ActionKind.FILE
    # URL targets: id of the shortcut the URL points back to, if known
    app_id: Optional[int] = None
    # File action created during resolution that should be saved to the catalog
    new_action: Optional[LaunchAction] = None


@dataclass
class ResolveResult:
    status: ResolveStatus
    target: Optional[LaunchTarget] = None
    reason: Optional[SkipReason] = None
    candidates: List[str] = field(default_factory=list)

    @classmethod
    def not_applicable(cls) -> 'ResolveResult':
        return cls(ResolveStatus.NOT_APPLICABLE)

    @classmethod
    def resolved(cls, target: LaunchTarget) -> 'ResolveResult':
        return cls(ResolveStatus.RESOLVED, target)


@dataclass
class ResolveContext:
    """Per-pass inputs shared by the strategies."""
    catalog: Catalog
    id_mapping: Mapping[str, str]
    shortcuts_by_app_id: Mapping[int, ShortcutRecord]
    exe_chooser: Optional[ExeChooser] = None
    skip_all: bool = False


class LaunchResolver:
    """Base strategy."""

    def resolve(self, game: CatalogRecord, ctx: ResolveContext) -> ResolveResult:
        raise NotImplementedError


def _working_dir_for(exe_path: str, working_dir: str) -> str:
    if working_dir:
        return working_dir
    return os.path.dirname(exe_path) if exe_path else ""


class FileActionResolver(LaunchResolver):
    """First file action with a path, variables expanded."""

    def resolve(self, game, ctx):
        action = next((a for a in game.actions if a.kind == ActionKind.FILE and a.path), None)
        if action is None:
            return ResolveResult.not_applicable()
        expand = ctx.catalog.expand_variables
        exe = resolve_path(expand(game, action.path), game.install_directory)
        working_dir = unquote(expand(game, action.working_dir))
        return ResolveResult.resolved(LaunchTarget(
            exe=exe,
            working_dir=_working_dir_for(exe, working_dir),
            launch_options=expand(game, action.arguments),
        ))


class EmulatorActionResolver(LaunchResolver):
    """Emulator action resolved through the emulator's custom profile."""

    def resolve(self, game, ctx):
        action = next((a for a in game.actions if a.kind == ActionKind.EMULATOR), None)
        if action is None:
            return ResolveResult.not_applicable()

        emulator = ctx.catalog.get_emulator(action.emulator_id)
        if emulator is None:
            logger.warning(f"[LaunchResolver] Emulator {action.emulator_id} not found for '{game.name}'")
            return ResolveResult.not_applicable()
        profile = emulator.get_profile(action.emulator_profile_id)
        if profile is None or not profile.executable:
            logger.warning(
                f"[LaunchResolver] Emulator profile {action.emulator_profile_id} unusable for '{game.name}'"
            )
            return ResolveResult.not_applicable()

        if action.override_default_args:
            args = action.additional_arguments or ""
        else:
            args = " ".join(a for a in (profile.arguments, action.additional_arguments) if a and a.strip())

        def expand(text: str) -> str:
            text = (text or "").replace('{EmulatorDir}', emulator.install_dir or "")
            return ctx.catalog.expand_variables(game, text)

        exe = resolve_path(expand(profile.executable), emulator.install_dir)
        working_dir = unquote(expand(profile.working_directory)) or emulator.install_dir or ""
        logger.info(f"[LaunchResolver] Resolved emulator for '{game.name}': exe={exe}, args={expand(args)}")
        return ResolveResult.resolved(LaunchTarget(
            exe=exe,
            working_dir=_working_dir_for(exe, working_dir),
            launch_options=expand(args),
        ))


class UrlActionResolver(LaunchResolver):
    """URL action: reuse the shortcut it points back to, else launch the URL itself."""

    def resolve(self, game, ctx):
        action = next((a for a in game.actions if a.kind == ActionKind.URL and a.path), None)
        if action is None:
            return ResolveResult.not_applicable()

        url = action.path.strip()
        app_id = app_id_for_catalog_id(ctx.id_mapping, game.id) or parse_composite_id(url)
        previous = ctx.shortcuts_by_app_id.get(app_id) if app_id else None
        if previous is not None:
            return ResolveResult.resolved(LaunchTarget(
                exe=previous.exe,
                working_dir=previous.start_dir,
                launch_options=url,
                kind=ActionKind.URL,
                app_id=app_id,
            ))

        working_dir = game.install_directory if game.install_directory and \
            os.path.isdir(game.install_directory) else ""
        logger.info(f"[LaunchResolver] Creating URL shortcut for '{game.name}': {url}")
        return ResolveResult.resolved(LaunchTarget(
            exe=url,
            working_dir=working_dir,
            launch_options=url,
            kind=ActionKind.URL,
            app_id=app_id,
        ))


def _new_file_action(game: CatalogRecord, exe_path: str) -> LaunchAction:
    return LaunchAction(
        name=PLAY_DIRECT_ACTION_NAME,
        kind=ActionKind.FILE,
        path=exe_path,
        working_dir=os.path.dirname(exe_path),
        is_play_action=not any(a.is_play_action for a in game.actions),
    )


def _file_target(game: CatalogRecord, exe_path: str) -> LaunchTarget:
    return LaunchTarget(
        exe=exe_path,
        working_dir=os.path.dirname(exe_path),
        new_action=_new_file_action(game, exe_path),
    )


class DiscoveryResolver(LaunchResolver):
    """Look for the executable in the install directory."""

    def resolve(self, game, ctx):
        if not game.install_directory or not os.path.isdir(game.install_directory):
            return ResolveResult.not_applicable()
        result = discover_candidates(game.install_directory, game.name)
        if result.path:
            return ResolveResult.resolved(_file_target(game, result.path))
        return ResolveResult(
            ResolveStatus.NEEDS_USER_INPUT,
            reason=SkipReason.NO_EXECUTABLE,
            candidates=result.candidates,
        )


def choose_executable(game: CatalogRecord, ctx: ResolveContext,
                      candidates: Sequence[str]) -> ResolveResult:
    """Ask the exe chooser; without one the game is skipped."""
    if ctx.exe_chooser is None:
        return ResolveResult(ResolveStatus.NEEDS_USER_INPUT, reason=SkipReason.NO_EXECUTABLE,
                             candidates=list(candidates))
    choice = ctx.exe_chooser(game, list(candidates))
    if choice is SKIP_ALL:
        ctx.skip_all = True
        return ResolveResult(ResolveStatus.SKIPPED, reason=SkipReason.USER_DECLINED)
    if not choice:
        return ResolveResult(ResolveStatus.SKIPPED, reason=SkipReason.USER_DECLINED)
    return ResolveResult.resolved(_file_target(game, str(choice)))


DEFAULT_RESOLVERS: List[LaunchResolver] = [
    FileActionResolver(),
    EmulatorActionResolver(),
    UrlActionResolver(),
    DiscoveryResolver(),
]


def resolve_launch_target(game: CatalogRecord, ctx: ResolveContext,
                          resolvers: Optional[Sequence[LaunchResolver]] = None) -> ResolveResult:
    """Run the strategies in order; the first non-'not applicable' answer wins."""
    if ctx.skip_all:
        return ResolveResult(ResolveStatus.SKIPPED, reason=SkipReason.USER_DECLINED)

    for resolver in resolvers if resolvers is not None else DEFAULT_RESOLVERS:
        result = resolver.resolve(game, ctx)
        if result.status == ResolveStatus.NEEDS_USER_INPUT:
            return choose_executable(game, ctx, result.candidates)
        if result.status != ResolveStatus.NOT_APPLICABLE:
            return result

    if any(a.kind == ActionKind.EMULATOR for a in game.actions):
        return ResolveResult(ResolveStatus.SKIPPED, reason=SkipReason.UNSUPPORTED_LAUNCH_KIND)
    if not game.install_directory or not os.path.isdir(game.install_directory):
        return ResolveResult(ResolveStatus.SKIPPED, reason=SkipReason.NO_INSTALL_DIR)
    return ResolveResult(ResolveStatus.SKIPPED, reason=SkipReason.NO_EXECUTABLE)
