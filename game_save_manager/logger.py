"""Loguru sinks for the command line: terse stderr output plus a rotating debug log."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

LOG_FILE_NAME = "game-save-manager.log"


def setup_logger(log_dir: Path | None = None, verbose: bool = False) -> None:
    """Replace loguru's default sink.

    stderr gets INFO and up (DEBUG with *verbose*); per-game details such as
    skipped templates and resolved paths only land in ``log_dir``.
    """
    logger.remove()

    console_format = "<level>{level:<7}</level> | {message}"
    if verbose:
        console_format = "<green>{time:HH:mm:ss}</green> | <cyan>{name}</cyan> | " + console_format
    logger.add(
        sys.stderr,
        level="DEBUG" if verbose else "INFO",
        format=console_format,
        colorize=True,
    )

    if log_dir:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / LOG_FILE_NAME),
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level:<7} | {name}:{function}:{line} | {message}",
            rotation="5 MB",
            retention=3,
            encoding="utf-8",
        )
