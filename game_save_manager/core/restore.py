"""Restore manager — put backed-up saves back where they belong on this machine."""

from __future__ import annotations

import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from game_save_manager.core import registry
from game_save_manager.core.backup import BatchResult
from game_save_manager.core.conflict import ConflictAction, RestorePair, decide
from game_save_manager.core.path_resolver import resolve_registry_template, resolve_template
from game_save_manager.core.placeholders import GAME, STEAM, UBISOFT_CONNECT, UPLAY, token
from game_save_manager.i18n import t
from game_save_manager.models.backup_record import (
    MANIFEST_NAME,
    STAGING_PREFIX,
    BackupInstance,
    BackupManifest,
    RestorableGame,
    format_instance_date,
)
from game_save_manager.models.resolution import PathType
from game_save_manager.utils import directory_size, ensure_writable

if TYPE_CHECKING:
    from game_save_manager.config import Config
    from game_save_manager.core.conflict import ConflictPrompt
    from game_save_manager.models.backup_record import BackupPathRecord
    from game_save_manager.models.resolution import ResolutionContext

# Placeholder whose absence explains an unresolvable destination
_NOT_INSTALLED_REASONS = (
    ((GAME,), "alert.game_not_installed"),
    ((STEAM,), "alert.steam_not_installed"),
    ((UPLAY, UBISOFT_CONNECT), "alert.ubisoft_not_installed"),
)


@dataclass
class RestoreResult:
    """Outcome of restoring one game, carrying the remembered batch decision."""

    action: ConflictAction | None = None
    error: str | None = None


class RestoreManager:
    """Restores the newest backup instance of each selected game."""

    def __init__(
        self,
        config: Config,
        context: ResolutionContext,
        prompt: ConflictPrompt | None = None,
    ) -> None:
        self._config = config
        self._context = context
        self._prompt = prompt

    @property
    def backup_root(self) -> Path:
        return self._config.backup_path or self._config.data_dir / "backups"

    # ── Discovery ──

    def list_restorable(self) -> tuple[list[RestorableGame], list[str]]:
        """Games with at least one valid (manifest-bearing) backup instance."""
        games: list[RestorableGame] = []
        errors: list[str] = []
        root = self.backup_root
        if not root.is_dir():
            return games, errors

        for game_dir in sorted(root.iterdir()):
            if not game_dir.is_dir():
                continue
            try:
                backups = self._load_instances(game_dir, errors)
            except OSError as e:
                logger.error(f"Error processing {game_dir} for restore: {e}")
                errors.append(f"{t('alert.restore_process_error_path', backup_path=game_dir)}: {e}")
                continue
            if not backups:
                continue

            latest = backups[0]
            games.append(
                RestorableGame(
                    wiki_page_id=game_dir.name,
                    title=latest.manifest.title,
                    zh_CN=latest.manifest.zh_CN,
                    latest_backup=format_instance_date(latest.date),
                    backup_size=latest.backup_size,
                    backups=backups,
                )
            )
        return games, errors

    @staticmethod
    def _load_instances(game_dir: Path, errors: list[str]) -> list[BackupInstance]:
        backups: list[BackupInstance] = []
        for instance_dir in sorted(game_dir.iterdir(), reverse=True):
            if instance_dir.name.startswith(STAGING_PREFIX):
                continue
            manifest_path = instance_dir / MANIFEST_NAME
            if not manifest_path.is_file():
                # Interrupted backups never got a manifest
                continue
            try:
                with open(manifest_path, encoding="utf-8") as f:
                    manifest = BackupManifest.from_dict(json.load(f))
            except (ValueError, KeyError, TypeError) as e:
                # ValueError covers bad JSON and non-UTF-8 bytes
                logger.error(f"Error reading backup config file at {manifest_path}: {e}")
                errors.append(
                    f"{t('alert.restore_process_error_config', config_path=manifest_path)}: {e}"
                )
                continue
            backups.append(
                BackupInstance(
                    date=instance_dir.name,
                    path=str(instance_dir),
                    manifest=manifest,
                    backup_size=directory_size(instance_dir),
                )
            )
        return backups

    def find_game_install_path(self, install_folder: str | None) -> str | None:
        """Locate *install_folder* under the configured game library roots."""
        if not install_folder:
            return None
        for install_root in self._config.game_installs:
            candidate = Path(install_root) / install_folder
            if candidate.is_dir():
                return str(candidate)
        return None

    # ── Restore ──

    def restore_games(
        self, games: list[RestorableGame], action: ConflictAction | None = None
    ) -> BatchResult:
        """Restore games in order; a remembered decision carries over to the next game."""
        result = BatchResult()
        for game in games:
            outcome = self.restore_game(game, action)
            action = outcome.action
            if outcome.error:
                result.errors.append(outcome.error)
            else:
                result.succeeded += 1
        logger.info(f"Restored {result.succeeded}/{len(games)} game(s)")
        return result

    def restore_game(
        self, game: RestorableGame, action_for_all: ConflictAction | None = None
    ) -> RestoreResult:
        name = game.display_name(self._config.language)
        action = action_for_all

        try:
            if not game.backups:
                raise FileNotFoundError(f"No backup instance for {game.wiki_page_id}")
            instance = max(game.backups, key=lambda b: b.date)

            pairs: list[RestorePair] = []
            not_installed: str | None = None
            for record in instance.manifest.backup_paths:
                source = Path(instance.path) / record.folder_name
                if not source.exists():
                    logger.warning(f"Source path does not exist: {source}")
                    continue
                destination = self._resolve_destination(record)
                if destination is None:
                    not_installed = not_installed or _not_installed_reason(record)
                    continue
                pairs.append(RestorePair(str(source), destination, record.type))

            decision = decide(pairs, name, action, self._prompt)
            if decision.action_for_all:
                action = decision.action_for_all
            if decision.skip:
                return RestoreResult(
                    action, f"{t('alert.restore_game_error', game_name=name)}: {t('alert.manually_skipped')}"
                )

            for pair in pairs:
                self._apply(pair)

            if not_installed:
                return RestoreResult(action, f"{t('alert.restore_game_error', game_name=name)}: {t(not_installed)}")
        except (OSError, registry.RegistryError) as e:
            logger.error(f"Error during restore for game {name}: {e}")
            return RestoreResult(action, f"{t('alert.restore_game_error', game_name=name)}: {e}")

        logger.info(f"Restored {name} from {instance.date}")
        return RestoreResult(action)

    def _resolve_destination(self, record: BackupPathRecord) -> str | None:
        context = self._context.for_game(self.find_game_install_path(record.install_folder))
        if record.type == PathType.REG:
            resolution = resolve_registry_template(record.template, context)
        else:
            resolution = resolve_template(record.template, context)
        if not resolution or "*" in resolution.path:
            logger.warning(f"Cannot resolve restore destination for {record.template}")
            return None
        return resolution.path

    @staticmethod
    def _apply(pair: RestorePair) -> None:
        destination = Path(pair.destination)
        if pair.backup_type == PathType.FOLDER:
            ensure_writable(destination)
            destination.mkdir(parents=True, exist_ok=True)
            shutil.copytree(pair.source, destination, dirs_exist_ok=True)
        elif pair.backup_type == PathType.FILE:
            ensure_writable(destination)
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(Path(pair.source) / destination.name, destination)
        elif pair.backup_type == PathType.REG:
            registry.import_key(Path(pair.source) / registry.REG_FILE_NAME)
        else:
            logger.warning(f"Unknown backup type: {pair.backup_type}")


def _not_installed_reason(record: BackupPathRecord) -> str | None:
    template = record.template.lower().replace("\\", "/")
    for names, key in _NOT_INSTALLED_REASONS:
        if any(token(name) in template for name in names):
            return key
    return None

