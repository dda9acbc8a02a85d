"""Placeholder registry — the fixed ``{{p|name}}`` vocabulary and its static values."""

from __future__ import annotations

import getpass
import os
import platform
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

PLACEHOLDER_RE = re.compile(r"\{\{p\|[^}]+\}\}", re.IGNORECASE)

UID = "uid"
GAME = "game"
STEAM = "steam"
UPLAY = "uplay"
UBISOFT_CONNECT = "ubisoftconnect"


class PlaceholderKind(Enum):
    """How a placeholder gets its value."""

    STATIC = "static"  # Known from the OS environment
    CONTEXTUAL = "contextual"  # Needs the resolution context (game / storefront roots)
    DEFERRED = "deferred"  # Only discoverable by probing the filesystem


@dataclass(frozen=True)
class Placeholder:
    name: str
    kind: PlaceholderKind


_STATIC_NAMES = (
    "username",
    "userprofile",
    "userprofile/documents",
    "userprofile/appdata/locallow",
    "appdata",
    "localappdata",
    "programfiles",
    "programdata",
    "public",
    "windir",
    "hkcu",
    "hklm",
    "wow64",
    "osxhome",
    "linuxhome",
    "xdgdatahome",
    "xdgconfighome",
)

PLACEHOLDERS: dict[str, Placeholder] = {
    **{name: Placeholder(name, PlaceholderKind.STATIC) for name in _STATIC_NAMES},
    GAME: Placeholder(GAME, PlaceholderKind.CONTEXTUAL),
    STEAM: Placeholder(STEAM, PlaceholderKind.CONTEXTUAL),
    UPLAY: Placeholder(UPLAY, PlaceholderKind.CONTEXTUAL),
    UBISOFT_CONNECT: Placeholder(UBISOFT_CONNECT, PlaceholderKind.CONTEXTUAL),
    UID: Placeholder(UID, PlaceholderKind.DEFERRED),
}


def canonical_name(token_text: str) -> str:
    """``{{P|UserProfile\\Documents}}`` → ``userprofile/documents``."""
    inner = token_text[len("{{p|") : -len("}}")]
    return inner.strip().lower().replace("\\", "/")


def token(name: str) -> str:
    """Render the canonical token for a placeholder name."""
    return "{{p|" + name + "}}"


UID_TOKEN = token(UID)


def lookup(name: str) -> Placeholder | None:
    return PLACEHOLDERS.get(name)


def _get_documents_path(home: Path) -> Path:
    """Get the real Documents path (handles relocated folders on Windows)."""
    if platform.system() == "Windows":
        try:
            import ctypes.wintypes

            buf = ctypes.create_unicode_buffer(ctypes.wintypes.MAX_PATH)
            # CSIDL_PERSONAL = 0x0005
            ctypes.windll.shell32.SHGetFolderPathW(None, 0x0005, None, 0, buf)  # type: ignore[attr-defined]
            if buf.value:
                return Path(buf.value)
        except (ImportError, AttributeError, OSError):
            pass
    return home / "Documents"


def default_static_values() -> dict[str, str]:
    """Build the static placeholder table for the current machine."""
    env = os.environ
    home = Path.home()
    profile = Path(env.get("USERPROFILE", str(home)))
    try:
        username = getpass.getuser()
    except (KeyError, OSError):
        username = profile.name

    return {
        "username": username,
        "userprofile": str(profile),
        "userprofile/documents": str(_get_documents_path(profile)),
        "userprofile/appdata/locallow": str(profile / "AppData" / "LocalLow"),
        "appdata": env.get("APPDATA", str(profile / "AppData" / "Roaming")),
        "localappdata": env.get("LOCALAPPDATA", str(profile / "AppData" / "Local")),
        "programfiles": env.get("PROGRAMFILES", "C:\\Program Files"),
        "programdata": env.get("PROGRAMDATA", "C:\\ProgramData"),
        "public": env.get("PUBLIC", "C:\\Users\\Public"),
        "windir": env.get("WINDIR", "C:\\Windows"),
        "hkcu": "HKEY_CURRENT_USER",
        "hklm": "HKEY_LOCAL_MACHINE",
        "wow64": "HKEY_LOCAL_MACHINE\\SOFTWARE\\WOW6432Node",
        "osxhome": str(home),
        "linuxhome": str(home),
        "xdgdatahome": env.get("XDG_DATA_HOME", str(home / ".local" / "share")),
        "xdgconfighome": env.get("XDG_CONFIG_HOME", str(home / ".config")),
    }
