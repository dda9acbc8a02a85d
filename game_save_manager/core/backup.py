"""Backup manager — timestamped backup instances with a JSON manifest and bounded retention."""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Protocol

from loguru import logger

from game_save_manager.core import registry
from game_save_manager.core.template_finalizer import finalize_template
from game_save_manager.i18n import t
from game_save_manager.models.backup_record import (
    INSTANCE_FORMAT,
    MANIFEST_NAME,
    STAGING_PREFIX,
    BackupManifest,
    BackupPathRecord,
    format_instance_date,
)
from game_save_manager.models.resolution import PathType
from game_save_manager.utils import directory_size, ensure_writable

if TYPE_CHECKING:
    from game_save_manager.config import Config
    from game_save_manager.models.game import GameEntry
    from game_save_manager.models.resolution import ResolutionContext

ProgressCallback = Callable[[int, int], None]

_CHUNK_SIZE = 1024 * 1024


class BackupQueryProtocol(Protocol):
    """Read-only backup query interface used by the scanner."""

    @property
    def backup_root(self) -> Path | None: ...

    def newest_backup(self, wiki_page_id: str) -> str | None: ...


@dataclass
class BatchResult:
    """Outcome of a backup or restore run over several games."""

    succeeded: int = 0
    errors: list[str] = field(default_factory=list)


class BackupManager:
    """Creates and evicts backup instances. Also implements BackupQueryProtocol."""

    def __init__(
        self,
        config: Config,
        context: ResolutionContext,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._config = config
        self._context = context
        self._clock = clock

    @property
    def backup_root(self) -> Path:
        return self._config.backup_path or self._config.data_dir / "backups"

    def _game_backup_dir(self, wiki_page_id: str) -> Path:
        return self.backup_root / str(wiki_page_id)

    # ── Backup ──

    def backup_games(self, games: list[GameEntry]) -> BatchResult:
        """Back up each game in turn; one failure never stops the others."""
        result = BatchResult()
        for game in games:
            error = self.backup_game(game)
            if error:
                result.errors.append(error)
            else:
                result.succeeded += 1
        logger.info(f"Backed up {result.succeeded}/{len(games)} game(s)")
        return result

    def backup_game(self, game: GameEntry) -> str | None:
        """Back up one game. Returns a user-facing error message, or ``None``."""
        game_dir = self._game_backup_dir(game.wiki_page_id)
        instance_dir = game_dir / self._clock().strftime(INSTANCE_FORMAT)
        staging_dir = game_dir / f"{STAGING_PREFIX}{instance_dir.name}"
        name = game.display_name(self._config.language)

        try:
            if staging_dir.exists():
                shutil.rmtree(staging_dir)

            manifest = BackupManifest(title=game.title, zh_CN=game.zh_CN)
            manifest.backup_paths = self._copy_paths(game, staging_dir)

            # Written last: an instance without a manifest is ignored by restore
            with open(staging_dir / MANIFEST_NAME, "w", encoding="utf-8") as f:
                json.dump(asdict(manifest), f, ensure_ascii=False, indent=4)

            if instance_dir.exists():
                logger.debug(f"Replacing backup instance from the same minute: {instance_dir}")
                shutil.rmtree(instance_dir)
            staging_dir.rename(instance_dir)

            self._rotate_backups(game_dir)
        except (OSError, registry.RegistryError) as e:
            logger.error(f"Error during backup for game {name}: {e}")
            self._discard_staging(staging_dir)
            return f"{t('alert.backup_game_error', game_name=name)}: {e}"

        logger.info(f"Created backup {instance_dir.name} for {name}")
        return None

    def _copy_paths(self, game: GameEntry, instance_dir: Path) -> list[BackupPathRecord]:
        context = self._context.for_game(game.install_path)
        records: list[BackupPathRecord] = []
        instance_dir.mkdir(parents=True, exist_ok=True)

        for index, resolved in enumerate(game.resolved_paths, start=1):
            folder_name = f"path{index}"
            target = instance_dir / folder_name
            target.mkdir(parents=True, exist_ok=True)

            if resolved.type == PathType.REG:
                registry.export_key(resolved.resolved, target / registry.REG_FILE_NAME)
                records.append(
                    BackupPathRecord(
                        folder_name=folder_name,
                        template=resolved.template,
                        type=PathType.REG.value,
                        install_folder=game.install_folder,
                    )
                )
                continue

            source = Path(resolved.resolved)
            ensure_writable(source)
            if source.is_dir():
                data_type = PathType.FOLDER
                shutil.copytree(source, target, dirs_exist_ok=True)
            else:
                data_type = PathType.FILE
                shutil.copy2(source, target / source.name)

            records.append(
                BackupPathRecord(
                    folder_name=folder_name,
                    template=finalize_template(
                        resolved.template, resolved.resolved, resolved.uid, context
                    ),
                    type=data_type.value,
                    install_folder=game.install_folder,
                )
            )
        return records

    @staticmethod
    def _discard_staging(staging_dir: Path) -> None:
        if not staging_dir.exists():
            return
        try:
            shutil.rmtree(staging_dir)
        except OSError as e:
            logger.warning(f"Failed to remove incomplete backup {staging_dir}: {e}")

    def _rotate_backups(self, game_dir: Path) -> None:
        """Delete the oldest instances beyond ``max_backups``."""
        instances = self._instance_names(game_dir)
        max_backups = max(self._config.max_backups, 1)
        for name in instances[: max(len(instances) - max_backups, 0)]:
            try:
                shutil.rmtree(game_dir / name)
                logger.debug(f"Rotated old backup: {game_dir.name}/{name}")
            except OSError as e:
                logger.warning(f"Failed to rotate backup {name}: {e}")

    # ── Queries ──

    @staticmethod
    def _instance_names(game_dir: Path) -> list[str]:
        if not game_dir.is_dir():
            return []
        # The timestamp format sorts chronologically
        return sorted(
            p.name for p in game_dir.iterdir() if p.is_dir() and not p.name.startswith(STAGING_PREFIX)
        )

    def list_instances(self, wiki_page_id: str) -> list[str]:
        """Instance directory names of a game, oldest first."""
        return self._instance_names(self._game_backup_dir(wiki_page_id))

    def newest_backup(self, wiki_page_id: str) -> str | None:
        """Newest instance formatted as ``YYYY/MM/DD HH:mm``, or ``None``."""
        instances = self.list_instances(wiki_page_id)
        if not instances:
            return None
        return format_instance_date(instances[-1])

    # ── Migration ──

    def migrate_backups(
        self, destination: Path, progress: ProgressCallback | None = None
    ) -> list[str]:
        """
        Move the whole backup root to *destination* and point the config at it.

        Files are moved one by one with their timestamps; *progress* receives
        ``(moved_bytes, total_bytes)``. The move cannot be cancelled; errors
        are collected and the remaining files are still attempted.
        """
        source = self.backup_root
        errors: list[str] = []

        if source.exists() and source.resolve() != destination.resolve():
            total = directory_size(source, ignore_manifest=False)
            moved = 0
            for dirpath, _dirnames, filenames in os.walk(source):
                rel = Path(dirpath).relative_to(source)
                dest_dir = destination / rel
                for filename in filenames:
                    src_file = Path(dirpath) / filename
                    try:
                        dest_dir.mkdir(parents=True, exist_ok=True)
                        moved = self._move_file(src_file, dest_dir / filename, moved, total, progress)
                    except OSError as e:
                        logger.error(f"Error moving {src_file}: {e}")
                        errors.append(f"{t('alert.migration_error')}: {e}")
            if not errors:
                shutil.rmtree(source, ignore_errors=True)

        self._config.backup_path = destination
        logger.info(f"Backup folder moved to {destination} ({len(errors)} error(s))")
        return errors

    @staticmethod
    def _move_file(
        src: Path, dest: Path, moved: int, total: int, progress: ProgressCallback | None
    ) -> int:
        with open(src, "rb") as fin, open(dest, "wb") as fout:
            while True:
                chunk = fin.read(_CHUNK_SIZE)
                if not chunk:
                    break
                fout.write(chunk)
                moved += len(chunk)
                if progress:
                    progress(moved, total)
        shutil.copystat(src, dest)
        src.unlink()
        return moved
