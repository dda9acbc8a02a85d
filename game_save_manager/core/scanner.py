"""Game scanner — match installed games against metadata and resolve their save paths."""

from __future__ import annotations

import platform
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from game_save_manager.core import registry
from game_save_manager.core.path_resolver import (
    expand_template,
    parse_registry_path,
    resolve_registry_template,
)
from game_save_manager.data.game_database import CUSTOM_ENTRIES_NAME, load_custom_entries
from game_save_manager.i18n import t
from game_save_manager.models.game import OS_KEYS, GameEntry
from game_save_manager.models.resolution import PathType, ResolutionContext, ResolvedPath
from game_save_manager.utils import directory_size

if TYPE_CHECKING:
    from game_save_manager.config import Config
    from game_save_manager.core.backup import BackupQueryProtocol
    from game_save_manager.data.game_database import GameSource


@dataclass
class ScanResult:
    games: list[GameEntry] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


class Scanner:
    """
    Finds games with save data on this machine.

    Every sub-folder of the configured install roots is looked up by name in
    the metadata sources; games from ``custom_entries.json`` are processed
    without an install path. Only games with at least one existing save
    location are returned.
    """

    def __init__(
        self,
        config: Config,
        context: ResolutionContext,
        sources: list[GameSource],
        backup_query: BackupQueryProtocol,
        os_key: str | None = None,
    ) -> None:
        self._config = config
        self._context = context
        self._sources = sources
        self._backup_query = backup_query
        self._os_key = os_key or OS_KEYS.get(platform.system(), "")

    def scan(self) -> ScanResult:
        result = ScanResult()
        language = self._config.language
        # wiki_page_id of collected games; the first match with save data wins
        seen: set[str] = set()

        try:
            for install_root in self._config.game_installs:
                root = Path(install_root)
                if not root.is_dir():
                    logger.warning(f"Game install folder not found: {root}")
                    continue
                for folder in sorted(p for p in root.iterdir() if p.is_dir()):
                    for source in self._sources:
                        for game in source.find_by_install_folder(folder.name):
                            game.install_path = str(folder)
                            self._collect(game, result, "alert.backup_process_error_db", language, seen)
        except (OSError, sqlite3.Error) as e:
            logger.error(f"Error scanning game installs: {e}")
            result.errors.append(f"{t('alert.backup_process_error_display')}: {e}")

        custom_path = self._custom_entries_path()
        if custom_path is not None:
            try:
                custom_games = load_custom_entries(custom_path)
            except (OSError, ValueError) as e:
                logger.error(f"Failed to read {custom_path}: {e}")
                result.errors.append(f"{t('alert.backup_process_error_display')}: {e}")
                custom_games = []
            for game in custom_games:
                self._collect(game, result, "alert.backup_process_error_custom", language, seen)

        logger.info(f"Found {len(result.games)} game(s) with save data")
        return result

    def _custom_entries_path(self) -> Path | None:
        root = self._backup_query.backup_root
        return root / CUSTOM_ENTRIES_NAME if root else None

    def _collect(
        self,
        game: GameEntry,
        result: ScanResult,
        error_key: str,
        language: str,
        seen: set[str],
    ) -> None:
        if game.wiki_page_id in seen:
            logger.debug(f"Skipping duplicate match for {game.title} at {game.install_path}")
            return
        try:
            self.process_game(game)
        except (OSError, registry.RegistryError) as e:
            name = game.display_name(language)
            logger.error(f"Error processing game {name}: {e}")
            result.errors.append(f"{t(error_key, game_name=name)}: {e}")
            return
        if game.resolved_paths:
            seen.add(game.wiki_page_id)
            result.games.append(game)

    def process_game(self, game: GameEntry) -> GameEntry:
        """Resolve every save template of *game* and record size / newest backup."""
        context = self._context.for_game(game.install_path)
        resolved_paths: list[ResolvedPath] = []
        total_size = 0

        for template in game.templates_for(self._os_key):
            for resolved in expand_template(template, context):
                total_size += directory_size(resolved.resolved)
                resolved_paths.append(resolved)

        if self._os_key == "win":
            for template in game.templates_for("reg"):
                resolution = resolve_registry_template(template, context)
                if not resolution:
                    continue
                hive, _key = parse_registry_path(resolution.path)
                if not registry.is_supported_hive(hive):
                    logger.warning(f"Invalid registry hive: {hive}")
                    continue
                if registry.key_exists(resolution.path):
                    resolved_paths.append(
                        ResolvedPath(
                            template=template,
                            resolved=resolution.path,
                            uid=resolution.uid,
                            type=PathType.REG,
                        )
                    )

        game.resolved_paths = resolved_paths
        game.backup_size = total_size
        game.latest_backup = self._backup_query.newest_backup(game.wiki_page_id)
        logger.debug(f"{game.title}: {len(resolved_paths)} save location(s)")
        return game
