"""Shared filesystem helpers — sizes, modification times, permissions."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Iterable

from loguru import logger

from game_save_manager.models.backup_record import MANIFEST_NAME


def format_size(size_bytes: int) -> str:
    """Format byte count to human-readable string."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.2f} GB"


def _walk_files(root: str | Path) -> Iterable[str]:
    # Symlinked directories are not followed, so link cycles cannot recurse forever
    for dirpath, _dirnames, filenames in os.walk(root, followlinks=False):
        for name in filenames:
            yield os.path.join(dirpath, name)


def latest_modification_time(path: str | Path) -> float:
    """
    Latest mtime under *path*.

    For a directory this is the newest file found recursively (the
    directory's own metadata is ignored); for a file its own mtime.
    Missing paths report ``0.0``.
    """
    path = Path(path)
    try:
        if not path.is_dir():
            return path.stat().st_mtime if path.exists() else 0.0
    except OSError:
        return 0.0

    latest = 0.0
    for file_path in _walk_files(path):
        try:
            mtime = os.stat(file_path).st_mtime
        except OSError as e:
            logger.debug(f"Cannot stat {file_path}: {e}")
            continue
        if mtime > latest:
            latest = mtime
    return latest


def find_latest_path(paths: Iterable[str]) -> str | None:
    """Pick the most recently modified path; ties keep the first seen."""
    latest_path: str | None = None
    latest_time = -1.0
    for candidate in paths:
        mtime = latest_modification_time(candidate)
        if mtime > latest_time:
            latest_time = mtime
            latest_path = candidate
    return latest_path


def directory_size(path: str | Path, ignore_manifest: bool = True) -> int:
    """Total size in bytes of a file or directory tree."""
    path = Path(path)
    try:
        if not path.is_dir():
            return path.stat().st_size
    except OSError as e:
        logger.error(f"Error calculating size for {path}: {e}")
        return 0

    total = 0
    for file_path in _walk_files(path):
        if ignore_manifest and os.path.basename(file_path) == MANIFEST_NAME:
            continue
        try:
            total += os.stat(file_path).st_size
        except OSError as e:
            logger.debug(f"Cannot stat {file_path}: {e}")
    return total


def ensure_writable(path: str | Path) -> None:
    """Clear the read-only bit on a file, or on every file in a tree."""
    path = Path(path)
    if not path.exists():
        return
    targets = _walk_files(path) if path.is_dir() else [str(path)]
    for target in targets:
        try:
            mode = os.stat(target).st_mode
            if not mode & stat.S_IWUSR:
                os.chmod(target, mode | stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH)
                logger.debug(f"Changed permissions for file: {target}")
        except OSError as e:
            logger.warning(f"Error changing permissions for file {target}: {e}")
