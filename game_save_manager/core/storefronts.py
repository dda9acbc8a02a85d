"""Storefront roots and user identities — assembled into a ResolutionContext."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from game_save_manager.models.resolution import ResolutionContext
from game_save_manager.utils import latest_modification_time

if TYPE_CHECKING:
    from game_save_manager.config import Config

# SteamID64 of account id 0 in the public universe
STEAM_ID64_BASE = 76561197960265728


def steam_id3_from_id64(id64: str) -> str | None:
    """Account id used in ``Steam/userdata/<id>`` for a SteamID64."""
    try:
        value = int(id64) - STEAM_ID64_BASE
    except ValueError:
        return None
    return str(value) if value >= 0 else None


def detect_ubisoft_user_id(ubisoft_path: str | Path) -> str | None:
    """The ``savegames`` sub-folder with the most recent activity."""
    savegames = Path(ubisoft_path) / "savegames"
    if not savegames.is_dir():
        return None

    latest_id: str | None = None
    latest_time = 0.0
    for entry in savegames.iterdir():
        if not entry.is_dir():
            continue
        mtime = latest_modification_time(entry)
        if mtime > latest_time:
            latest_time = mtime
            latest_id = entry.name
    return latest_id


def build_resolution_context(config: Config) -> ResolutionContext:
    """Assemble the per-run context from the configured storefront values."""
    stores = config.storefronts
    steam_path = stores.get("steam_path") or None
    ubisoft_path = stores.get("ubisoft_path") or None

    steam_id64 = stores.get("steam_user_id64") or None
    steam_id3 = stores.get("steam_user_id3") or None
    if steam_id64 and not steam_id3:
        steam_id3 = steam_id3_from_id64(steam_id64)

    ubisoft_id = stores.get("ubisoft_user_id") or None
    if ubisoft_path and not ubisoft_id:
        ubisoft_id = detect_ubisoft_user_id(ubisoft_path)

    logger.info(
        f"Steam id64: {steam_id64}, Steam id3: {steam_id3}, Ubisoft user id: {ubisoft_id}"
    )
    user_ids = tuple(uid for uid in (steam_id64, steam_id3, ubisoft_id) if uid)
    return ResolutionContext(
        steam_path=os.path.normpath(steam_path) if steam_path else None,
        ubisoft_path=os.path.normpath(ubisoft_path) if ubisoft_path else None,
        user_ids=user_ids,
    )
