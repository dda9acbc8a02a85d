"""Application entry point — wires services and runs a backup / restore command.

Usage:
    python main.py scan
    python main.py backup [--all | WIKI_ID ...]
    python main.py list
    python main.py restore [--replace-all | --skip-all] [--all | WIKI_ID ...]
    python main.py migrate NEW_BACKUP_FOLDER
    python main.py configure [--backup-path DIR] [--game-install DIR] [--steam-path DIR] ...
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

from loguru import logger

from game_save_manager.config import Config, get_config
from game_save_manager.context import AppContext
from game_save_manager.core.backup import BackupManager
from game_save_manager.core.conflict import ConflictAction, PromptAnswer
from game_save_manager.core.restore import RestoreManager
from game_save_manager.core.scanner import Scanner
from game_save_manager.core.storefronts import build_resolution_context
from game_save_manager.data.game_database import (
    CUSTOM_DATABASE_NAME,
    CustomGameDatabase,
    SqliteGameDatabase,
)
from game_save_manager.i18n import set_language, supported_languages, t
from game_save_manager.logger import setup_logger
from game_save_manager.utils import format_size


def create_context(config: Config) -> AppContext:
    """Wire all services and return an AppContext."""
    resolution_context = build_resolution_context(config)

    backup_manager = BackupManager(config, resolution_context)
    database = SqliteGameDatabase(config.database_path)
    if not database.exists:
        logger.warning(f"Game database not found at {config.database_path}, only custom games are scanned")
    sources = [
        database,
        CustomGameDatabase(backup_manager.backup_root / CUSTOM_DATABASE_NAME),
    ]
    scanner = Scanner(config, resolution_context, sources, backup_manager)
    restore_manager = RestoreManager(config, resolution_context, prompt=console_prompt)

    return AppContext(
        config=config,
        resolution_context=resolution_context,
        scanner=scanner,
        backup_manager=backup_manager,
        restore_manager=restore_manager,
    )


def console_prompt(game_name: str, local_time: datetime, backup_time: datetime) -> PromptAnswer:
    """Ask on the terminal whether the backup may overwrite newer saves."""
    print(t("alert.save_conflict_detected", game=game_name))
    print(t("alert.machine_save_date", time=local_time.strftime("%Y-%m-%d %H:%M")))
    print(t("alert.backup_save_date", time=backup_time.strftime("%Y-%m-%d %H:%M")))
    while True:
        answer = input(f"{t('alert.overwrite_prompt')} ").strip()
        if answer in ("r", "R"):
            return PromptAnswer(ConflictAction.REPLACE, apply_to_all=answer == "R")
        if answer in ("s", "S", ""):
            return PromptAnswer(ConflictAction.SKIP, apply_to_all=answer == "S")


def _select(items: list, ids: list[str], select_all: bool) -> list:
    if select_all or not ids:
        return items
    wanted = set(ids)
    return [item for item in items if item.wiki_page_id in wanted]


def _print_errors(errors: list[str]) -> None:
    for error in errors:
        print(f"  ! {error}")


def cmd_scan(ctx: AppContext, args: argparse.Namespace) -> int:
    result = ctx.scanner.scan()
    language = ctx.config.language
    if not result.games:
        print(t("main.no_games"))
    for game in result.games:
        latest = game.latest_backup or t("main.no_backups")
        print(f"[{game.wiki_page_id}] {game.display_name(language)}  {format_size(game.backup_size)}  ({latest})")
        for resolved in game.resolved_paths:
            print(f"    {resolved.type}: {resolved.resolved}")
    _print_errors(result.errors)
    return 1 if result.errors else 0


def cmd_backup(ctx: AppContext, args: argparse.Namespace) -> int:
    scan = ctx.scanner.scan()
    games = _select(scan.games, args.ids, args.all)
    result = ctx.backup_manager.backup_games(games)
    print(t("main.backup_done", count=result.succeeded))
    errors = scan.errors + result.errors
    _print_errors(errors)
    return 1 if errors else 0


def cmd_list(ctx: AppContext, args: argparse.Namespace) -> int:
    games, errors = ctx.restore_manager.list_restorable()
    language = ctx.config.language
    if not games:
        print(t("main.no_backups"))
    for game in games:
        print(
            f"[{game.wiki_page_id}] {game.display_name(language)}  "
            f"{game.latest_backup}  {format_size(game.backup_size)}  x{len(game.backups)}"
        )
    _print_errors(errors)
    return 1 if errors else 0


def cmd_restore(ctx: AppContext, args: argparse.Namespace) -> int:
    games, errors = ctx.restore_manager.list_restorable()
    games = _select(games, args.ids, args.all)
    action = None
    if args.replace_all:
        action = ConflictAction.REPLACE
    elif args.skip_all:
        action = ConflictAction.SKIP
    result = ctx.restore_manager.restore_games(games, action)
    print(t("main.restore_done", count=result.succeeded))
    errors = errors + result.errors
    _print_errors(errors)
    return 1 if errors else 0


def cmd_migrate(ctx: AppContext, args: argparse.Namespace) -> int:
    def progress(moved: int, total: int) -> None:
        percent = round(moved / total * 100) if total else 100
        print(f"\r{percent:3d}%", end="", flush=True)

    errors = ctx.backup_manager.migrate_backups(Path(args.destination), progress)
    print()
    print(t("main.migrate_done", path=args.destination))
    _print_errors(errors)
    return 1 if errors else 0


_STOREFRONT_OPTIONS = {
    "steam_path": "storefronts.steam_path",
    "ubisoft_path": "storefronts.ubisoft_path",
    "steam_id64": "storefronts.steam_user_id64",
    "ubisoft_id": "storefronts.ubisoft_user_id",
}


def cmd_configure(ctx: AppContext, args: argparse.Namespace) -> int:
    config = ctx.config
    with config.batch_update():
        if args.language:
            config.language = args.language
        if args.backup_path:
            config.backup_path = Path(args.backup_path)
        if args.max_backups is not None:
            config.max_backups = args.max_backups
        if args.game_install:
            config.game_installs = config.game_installs + [
                path for path in args.game_install if path not in config.game_installs
            ]
        for option, key in _STOREFRONT_OPTIONS.items():
            value = getattr(args, option)
            if value is not None:
                config.set(key, value)
        if args.steam_id64 is not None:
            # Re-derived from the SteamID64 on the next run
            config.set("storefronts.steam_user_id3", "")
    print(f"language: {config.language}")
    print(f"backup_path: {config.backup_path or ''}")
    print(f"max_backups: {config.max_backups}")
    print(f"game_installs: {', '.join(config.game_installs)}")
    for key, value in config.storefronts.items():
        print(f"{key}: {value}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Back up and restore PC game saves.")
    parser.add_argument("--config-dir", type=Path, help="Directory holding config.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("scan", help="List games with save data").set_defaults(func=cmd_scan)

    backup = sub.add_parser("backup", help="Back up games")
    backup.add_argument("ids", nargs="*", help="Wiki page ids (default: all)")
    backup.add_argument("--all", action="store_true")
    backup.set_defaults(func=cmd_backup)

    sub.add_parser("list", help="List backed-up games").set_defaults(func=cmd_list)

    restore = sub.add_parser("restore", help="Restore the newest backups")
    restore.add_argument("ids", nargs="*", help="Wiki page ids (default: all)")
    restore.add_argument("--all", action="store_true")
    conflict = restore.add_mutually_exclusive_group()
    conflict.add_argument("--replace-all", action="store_true", help="Overwrite newer saves")
    conflict.add_argument("--skip-all", action="store_true", help="Keep newer saves")
    restore.set_defaults(func=cmd_restore)

    migrate = sub.add_parser("migrate", help="Move the backup folder")
    migrate.add_argument("destination")
    migrate.set_defaults(func=cmd_migrate)

    configure = sub.add_parser("configure", help="Change settings")
    configure.add_argument("--language", choices=supported_languages())
    configure.add_argument("--backup-path")
    configure.add_argument("--max-backups", type=int)
    configure.add_argument("--game-install", action="append", help="Add a game library folder")
    configure.add_argument("--steam-path")
    configure.add_argument("--ubisoft-path")
    configure.add_argument("--steam-id64")
    configure.add_argument("--ubisoft-id")
    configure.set_defaults(func=cmd_configure)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    config = Config(args.config_dir) if args.config_dir else get_config()
    setup_logger(config.data_dir / "logs", verbose=args.verbose)
    set_language(config.language)

    ctx = create_context(config)
    logger.debug(f"Running command '{args.command}'")
    return args.func(ctx, args)


if __name__ == "__main__":
    sys.exit(main())
