"""Resolution context and resolved-path models."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Mapping

from game_save_manager.core.placeholders import (
    GAME,
    STEAM,
    UBISOFT_CONNECT,
    UPLAY,
    PlaceholderKind,
    default_static_values,
    lookup,
)


class PathType(StrEnum):
    """Kind of data behind a resolved path."""

    FOLDER = "folder"
    FILE = "file"
    REG = "reg"


@dataclass(frozen=True)
class ResolutionContext:
    """
    Machine-specific values needed to expand a template.

    Built once per run and bound to a game with :meth:`for_game`; the
    resolver and finalizer read nothing else.
    """

    game_install_path: str | None = None
    steam_path: str | None = None
    ubisoft_path: str | None = None
    # Candidate uids in priority order: Steam64, Steam3, Ubisoft
    user_ids: tuple[str, ...] = ()
    static_values: Mapping[str, str] = field(default_factory=default_static_values)
    sep: str = os.sep

    def for_game(self, install_path: str | None) -> ResolutionContext:
        return replace(self, game_install_path=install_path)

    def value_of(self, name: str) -> str | None:
        """Value for a static or contextual placeholder, ``None`` if unknown."""
        placeholder = lookup(name)
        if placeholder is None:
            return None
        if placeholder.kind is PlaceholderKind.STATIC:
            return self.static_values.get(name)
        if placeholder.kind is PlaceholderKind.CONTEXTUAL:
            if name == GAME:
                return self.game_install_path
            if name == STEAM:
                return self.steam_path
            if name in (UPLAY, UBISOFT_CONNECT):
                return self.ubisoft_path
            raise ValueError(f"Unhandled contextual placeholder: {name}")
        # Deferred placeholders have no value before filesystem probing
        return None


@dataclass
class ResolvedPath:
    """One concrete location produced by expanding a template."""

    template: str
    resolved: str
    uid: str | None = None
    type: PathType | None = None
