"""Game metadata models."""

from __future__ import annotations

from dataclasses import dataclass, field

from game_save_manager.models.resolution import ResolvedPath

# platform.system() → save_location key
OS_KEYS = {
    "Windows": "win",
    "Darwin": "mac",
    "Linux": "linux",
}


@dataclass
class GameEntry:
    """A game row from the metadata source, plus what was found on this machine."""

    title: str
    wiki_page_id: str
    install_folder: str | None = None
    save_location: dict[str, list[str]] = field(default_factory=dict)
    platform: list[str] = field(default_factory=list)
    zh_CN: str | None = None
    install_path: str | None = None
    latest_backup: str | None = None
    resolved_paths: list[ResolvedPath] = field(default_factory=list)
    backup_size: int = 0

    def templates_for(self, os_key: str) -> list[str]:
        return list(self.save_location.get(os_key) or [])

    def display_name(self, language: str) -> str:
        if language.startswith("zh") and self.zh_CN:
            return self.zh_CN
        return self.title
