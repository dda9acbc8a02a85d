"""Restore conflict policy — decide whether a backup may overwrite newer live saves."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Protocol

from loguru import logger

from game_save_manager.models.resolution import PathType
from game_save_manager.utils import latest_modification_time


class ConflictAction(StrEnum):
    REPLACE = "replace"
    SKIP = "skip"


@dataclass
class PromptAnswer:
    action: ConflictAction
    apply_to_all: bool = False


class ConflictPrompt(Protocol):
    """Asks the user what to do when the live save is newer than the backup."""

    def __call__(
        self, game_name: str, local_time: datetime, backup_time: datetime
    ) -> PromptAnswer: ...


@dataclass
class RestorePair:
    """One backed-up location and where it goes back to."""

    source: str
    destination: str
    backup_type: str


@dataclass
class ConflictDecision:
    skip: bool
    action_for_all: ConflictAction | None = None


def _truncate_to_minute(timestamp: float) -> datetime:
    # Filesystems and copies disagree on sub-minute precision
    return datetime.fromtimestamp(timestamp).replace(second=0, microsecond=0)


def latest_times(pairs: list[RestorePair]) -> tuple[datetime, datetime]:
    """Latest ``(backup, live)`` modification times; registry data has none."""
    epoch = datetime.fromtimestamp(0)
    latest_source = latest_dest = epoch
    for pair in pairs:
        if pair.backup_type == PathType.REG:
            continue
        src_time = latest_modification_time(pair.source)
        dest_time = latest_modification_time(pair.destination)
        if src_time:
            latest_source = max(latest_source, _truncate_to_minute(src_time))
        if dest_time:
            latest_dest = max(latest_dest, _truncate_to_minute(dest_time))
    return latest_source, latest_dest


def decide(
    pairs: list[RestorePair],
    game_name: str,
    action_for_all: ConflictAction | None,
    prompt: ConflictPrompt | None,
) -> ConflictDecision:
    """
    Gate a restore on the modification times of backup vs. live data.

    A remembered *action_for_all* is applied silently. Without a prompt a
    conflict is skipped, the safe default of the interactive dialog.
    """
    backup_time, local_time = latest_times(pairs)

    if backup_time >= local_time:
        return ConflictDecision(skip=False)

    logger.info(f"Save conflict for {game_name}: live {local_time} is newer than backup {backup_time}")
    if action_for_all:
        return ConflictDecision(skip=action_for_all == ConflictAction.SKIP, action_for_all=action_for_all)

    if prompt is None:
        return ConflictDecision(skip=True)

    answer = prompt(game_name, local_time, backup_time)
    return ConflictDecision(
        skip=answer.action == ConflictAction.SKIP,
        action_for_all=answer.action if answer.apply_to_all else None,
    )
