"""Command line entry point: inspect shortcuts.vdf files and run sync passes."""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from shortcutsync import __version__
from shortcutsync.catalog.local import JsonFileCatalog
from shortcutsync.config import load_settings
from shortcutsync.context import SyncContext, create_context
from shortcutsync.discovery.executables import discover_candidates
from shortcutsync.errors import ShortcutSyncError
from shortcutsync.services.reconcile_service import ReconcileService
from shortcutsync.shortcuts.app_id import rungameid_url, shortcut_app_id, stable_id
from shortcutsync.shortcuts.records import ShortcutRecord
from shortcutsync.shortcuts.vdf import load_shortcuts_vdf, save_shortcuts_vdf
from shortcutsync.utils.backups import list_backups, restore_backup, steam_user_from_path
from shortcutsync.utils.paths import CATALOG_FILE, SETTINGS_FILE, SHORTCUTSYNC_DATA_DIR

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_ERROR = 2

SAMPLE_SHORTCUTS = [
    ShortcutRecord(
        app_name="My Game",
        exe="C:/Games/MyGame/MyGame.exe",
        start_dir="C:/Games/MyGame",
        launch_options="-windowed",
        tags=["Action", "Indie"],
    ),
    ShortcutRecord(
        app_name="Emulator Title",
        exe="C:/Emu/emu.exe",
        start_dir="C:/Emu",
        launch_options="--rom C:/Roms/title.rom",
        tags=["Emulator"],
    ),
]


class _Parser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="shortcutsync", description="Sync Steam non-Steam shortcuts with a game catalog")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--data-dir", default=SHORTCUTSYNC_DATA_DIR,
                        help="Directory for settings, id mapping and backups")
    parser.add_argument("--catalog", help="Catalog JSON file (default: <data-dir>/catalog.json)")
    parser.add_argument("--steam-root", help="Steam installation directory")
    parser.add_argument("--user", help="Steam user id (userdata folder name)")
    parser.add_argument("--vdf", help="Use this shortcuts.vdf instead of detecting one")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    p = sub.add_parser("read", help="List the shortcuts in a shortcuts.vdf")
    p.add_argument("path")

    p = sub.add_parser("write-sample", help="Write a small example shortcuts.vdf")
    p.add_argument("out")

    p = sub.add_parser("roundtrip", help="Read a shortcuts.vdf and write it back out")
    p.add_argument("src")
    p.add_argument("out")

    p = sub.add_parser("appid", help="Print the Steam ids derived from an exe and name")
    p.add_argument("exe")
    p.add_argument("name")

    p = sub.add_parser("discover", help="Find the main executable in an install directory")
    p.add_argument("directory")
    p.add_argument("name")

    p = sub.add_parser("import", help="Add Steam shortcuts to the catalog")
    p.add_argument("--select", action="append", metavar="STABLE_ID",
                   help="Only import these shortcuts (repeatable)")
    p.add_argument("--dry-run", action="store_true", help="Only list what would be imported")

    p = sub.add_parser("export", help="Create or update Steam shortcuts for catalog games")
    p.add_argument("--dry-run", action="store_true", help="Only list what would be exported")

    p = sub.add_parser("backups", help="List or restore shortcuts.vdf backups")
    p.add_argument("--restore", metavar="FILE", help="Backup file to restore")

    return parser


def _make_context(args) -> SyncContext:
    settings = load_settings(os.path.join(args.data_dir, SETTINGS_FILE))
    if args.steam_root:
        settings.steam_root_path = args.steam_root
    if args.user:
        settings.selected_steam_user_id = args.user
    catalog = JsonFileCatalog(args.catalog or os.path.join(args.data_dir, CATALOG_FILE))
    return create_context(catalog, data_dir=args.data_dir, settings=settings, vdf_path=args.vdf)


def cmd_read(args) -> int:
    items = load_shortcuts_vdf(args.path)
    print(f"Read {len(items)} shortcuts from {args.path}")
    for s in items:
        print(f"- {s.app_name}")
        print(f"  exe: {s.exe}")
        print(f"  dir: {s.start_dir}")
        print(f"  args: {s.launch_options}")
        print(f"  appid: {s.effective_app_id()}")
        if s.tags:
            print(f"  tags: {', '.join(s.tags)}")
    return EXIT_OK


def cmd_write_sample(args) -> int:
    save_shortcuts_vdf(args.out, SAMPLE_SHORTCUTS)
    print(f"Wrote sample to {args.out}")
    return EXIT_OK


def cmd_roundtrip(args) -> int:
    items = load_shortcuts_vdf(args.src)
    save_shortcuts_vdf(args.out, items)
    print(f"Roundtripped {len(items)} entries from {args.src} -> {args.out}")
    return EXIT_OK


def cmd_appid(args) -> int:
    app_id = shortcut_app_id(args.exe, args.name)
    print(f"appid: {app_id}")
    print(f"url: {rungameid_url(app_id)}")
    print(f"stable id: {stable_id(args.exe, args.name)}")
    return EXIT_OK


def cmd_discover(args) -> int:
    result = discover_candidates(args.directory, args.name)
    print(f"outcome: {result.outcome}")
    if result.path:
        print(f"exe: {result.path}")
    for candidate in result.candidates:
        print(f"  candidate: {candidate}")
    return EXIT_OK if result.path else EXIT_ERROR


def cmd_import(args) -> int:
    service = ReconcileService(_make_context(args))
    if args.dry_run:
        for candidate in asyncio.run(service.preview_import()):
            status = "new" if candidate.is_new else "in catalog"
            print(f"[{status}] {candidate.label} ({candidate.shortcut.stable_id})")
        return EXIT_OK

    result = asyncio.run(service.import_from_steam(selected=args.select))
    print(f"Imported {len(result.created)} shortcuts, skipped {len(result.skipped)}")
    for game in result.created:
        print(f"+ {game.name}")
    return EXIT_OK


def cmd_export(args) -> int:
    service = ReconcileService(_make_context(args))
    if args.dry_run:
        for candidate in asyncio.run(service.preview_export()):
            status = "update" if candidate.exists_in_steam else "create"
            note = " (needs executable)" if candidate.needs_exe_discovery else ""
            print(f"[{status}] {candidate.label}{note}")
        return EXIT_OK

    result = asyncio.run(service.export_to_steam())
    print(f"Created {len(result.created)}, updated {len(result.updated)}, skipped {len(result.skipped)}")
    for game, reason in result.skipped:
        print(f"- {game.name}: {reason.value}")
    return EXIT_OK


def cmd_backups(args) -> int:
    context = _make_context(args)
    vdf_path = context.resolve_vdf_path()
    user_id = context.settings.selected_steam_user_id or steam_user_from_path(vdf_path)

    if args.restore:
        if not restore_backup(args.restore, vdf_path, user_id, context.backups_root):
            print(f"Restore of {args.restore} failed", file=sys.stderr)
            return EXIT_ERROR
        print(f"Restored {args.restore} -> {vdf_path}")
        return EXIT_OK

    backups = list_backups(user_id, context.backups_root)
    if not backups:
        print("No backups found")
    for path in backups:
        print(path)
    return EXIT_OK


COMMANDS = {
    "read": cmd_read,
    "write-sample": cmd_write_sample,
    "roundtrip": cmd_roundtrip,
    "appid": cmd_appid,
    "discover": cmd_discover,
    "import": cmd_import,
    "export": cmd_export,
    "backups": cmd_backups,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else EXIT_USAGE

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='[%(asctime)s] %(levelname)s - %(name)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        return COMMANDS[args.command](args)
    except (ShortcutSyncError, OSError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
