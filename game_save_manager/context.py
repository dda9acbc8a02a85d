"""Application context — service container for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from game_save_manager.config import Config
    from game_save_manager.core.backup import BackupManager
    from game_save_manager.core.restore import RestoreManager
    from game_save_manager.core.scanner import Scanner
    from game_save_manager.models.resolution import ResolutionContext


@dataclass
class AppContext:
    """
    Central service container.

    Built once per run by ``main.create_context``; the resolution context
    is passed explicitly to every service instead of a global lookup.
    """

    config: Config
    resolution_context: ResolutionContext

    scanner: Scanner
    backup_manager: BackupManager
    restore_manager: RestoreManager
