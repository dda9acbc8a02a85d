"""Game metadata sources — the read-only SQLite game database and user-defined JSON entries."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from game_save_manager.models.game import GameEntry

CUSTOM_DATABASE_NAME = "custom_database.json"
CUSTOM_ENTRIES_NAME = "custom_entries.json"


class GameSource(Protocol):
    """Anything that can look games up by their install folder name."""

    def find_by_install_folder(self, install_folder: str) -> list[GameEntry]: ...


def _json_field(value: Any, default: Any) -> Any:
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value) if value else default
    return value


def _template_list(entries: list[Any]) -> list[str]:
    # Custom entries store {"template": ...} objects, the database plain strings
    return [e["template"] if isinstance(e, dict) else e for e in entries]


def game_from_row(row: dict[str, Any]) -> GameEntry:
    """Build a GameEntry from a database row or a JSON object."""
    if not isinstance(row, dict):
        raise ValueError(f"expected an object, got {type(row).__name__}")
    save_location = _json_field(row.get("save_location"), {})
    if not isinstance(save_location, dict):
        raise ValueError(f"save_location must be an object, got {type(save_location).__name__}")
    return GameEntry(
        title=row["title"],
        wiki_page_id=str(row["wiki_page_id"]),
        install_folder=row.get("install_folder") or None,
        save_location={
            key: _template_list(list(templates or []))
            for key, templates in save_location.items()
        },
        platform=list(_json_field(row.get("platform"), [])),
        zh_CN=row.get("zh_CN") or None,
    )


class SqliteGameDatabase:
    """Read-only view over the ``games`` table of the bundled database."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def exists(self) -> bool:
        return self._path.exists()

    def _query(self, sql: str, params: tuple[Any, ...] = ()) -> list[GameEntry]:
        if not self._path.exists():
            return []
        uri = f"{self._path.resolve().as_uri()}?mode=ro"
        conn = sqlite3.connect(uri, uri=True)
        conn.row_factory = sqlite3.Row
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()

        games: list[GameEntry] = []
        for row in rows:
            try:
                games.append(game_from_row(dict(row)))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed game row {dict(row).get('title')}: {e}")
        return games

    def find_by_install_folder(self, install_folder: str) -> list[GameEntry]:
        return self._query("SELECT * FROM games WHERE install_folder = ?", (install_folder,))


class CustomGameDatabase:
    """User additions to the database, kept as ``custom_database.json`` in the backup root."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._games: list[GameEntry] | None = None

    def _load(self) -> list[GameEntry]:
        if self._games is None:
            try:
                self._games = load_custom_entries(self._path)
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load custom database {self._path}: {e}")
                self._games = []
        return self._games

    def find_by_install_folder(self, install_folder: str) -> list[GameEntry]:
        return [g for g in self._load() if g.install_folder == install_folder]


def load_custom_entries(path: Path) -> list[GameEntry]:
    """
    Load a user-maintained JSON list of games, e.g. ``custom_entries.json``.

    Raises ``OSError`` / ``ValueError`` for an unreadable file or one that
    does not hold a list; callers report it as a batch error. Malformed
    entries inside the list are skipped.
    """
    if not path.exists():
        return []
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path.name} must contain a list of games, got {type(data).__name__}")

    games: list[GameEntry] = []
    for item in data:
        try:
            game = game_from_row(item)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed custom entry: {e}")
            continue
        game.platform = ["Custom"]
        games.append(game)
    return games
