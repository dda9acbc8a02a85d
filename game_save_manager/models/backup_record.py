"""Backup manifest and backup instance models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

MANIFEST_NAME = "backup_info.json"
INSTANCE_FORMAT = "%Y-%m-%d_%H-%M"
# Instances are assembled under this prefix and renamed once complete
STAGING_PREFIX = "."


@dataclass
class BackupPathRecord:
    """One ``pathN`` subfolder of a backup instance."""

    folder_name: str
    template: str  # Portable template (finalized for files/folders)
    type: str  # "folder" | "file" | "reg"
    install_folder: str | None = None


@dataclass
class BackupManifest:
    """Contents of ``backup_info.json``."""

    title: str
    zh_CN: str | None = None
    backup_paths: list[BackupPathRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> BackupManifest:
        return cls(
            title=data["title"],
            zh_CN=data.get("zh_CN"),
            backup_paths=[BackupPathRecord(**bp) for bp in data.get("backup_paths", [])],
        )


@dataclass
class BackupInstance:
    """A timestamped backup directory that carries a manifest."""

    date: str  # Directory name, YYYY-MM-DD_HH-mm
    path: str
    manifest: BackupManifest
    backup_size: int = 0


@dataclass
class RestorableGame:
    """All valid backup instances of one game, newest first."""

    wiki_page_id: str
    title: str
    zh_CN: str | None = None
    latest_backup: str = ""
    backup_size: int = 0
    backups: list[BackupInstance] = field(default_factory=list)

    def display_name(self, language: str) -> str:
        if language.startswith("zh") and self.zh_CN:
            return self.zh_CN
        return self.title


def format_instance_date(date: str) -> str:
    """``2024-05-01_18-30`` → ``2024/05/01 18:30``; unknown names pass through."""
    try:
        return datetime.strptime(date, INSTANCE_FORMAT).strftime("%Y/%m/%d %H:%M")
    except ValueError:
        return date
