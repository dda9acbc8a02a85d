"""Tests for the save-path template resolver."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from game_save_manager.core import path_resolver
from game_save_manager.core.path_resolver import (
    expand_template,
    extract_uid,
    normalize_separators,
    parse_registry_path,
    resolve_registry_template,
    resolve_template,
)
from game_save_manager.core.placeholders import (
    PLACEHOLDERS,
    PlaceholderKind,
    canonical_name,
    default_static_values,
    lookup,
    token,
)
from game_save_manager.models.resolution import PathType, ResolutionContext


def _touch(path: Path, mtime: float | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"save")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def context(tmp_path: Path) -> ResolutionContext:
    return ResolutionContext(
        steam_path=str(tmp_path / "Steam"),
        static_values={
            "appdata": str(tmp_path / "AppData" / "Roaming"),
            "userprofile/documents": str(tmp_path / "Documents"),
            "hkcu": "HKEY_CURRENT_USER",
        },
    )


class TestSubstitution:
    def test_plain_path_unchanged(self, context: ResolutionContext, tmp_path: Path) -> None:
        template = str(tmp_path / "saves" / "slot1.sav")
        result = resolve_template(template, context)
        assert result.path == template
        assert result.uid is None

    def test_static_placeholder(self, context: ResolutionContext, tmp_path: Path) -> None:
        result = resolve_template("{{p|appdata}}/Studio/Game", context)
        assert result.path == str(tmp_path / "AppData" / "Roaming" / "Studio" / "Game")

    def test_case_insensitive_and_backslash_name(self, context: ResolutionContext, tmp_path: Path) -> None:
        result = resolve_template("{{P|UserProfile\\Documents}}\\My Games", context)
        assert result.path == str(tmp_path / "Documents" / "My Games")

    def test_game_placeholder(self, context: ResolutionContext, tmp_path: Path) -> None:
        game_ctx = context.for_game(str(tmp_path / "Games" / "Hades"))
        result = resolve_template("{{p|game}}/Saves", game_ctx)
        assert result.path == str(tmp_path / "Games" / "Hades" / "Saves")

    def test_game_without_install_path_fails(self, context: ResolutionContext) -> None:
        assert not resolve_template("{{p|game}}/Saves", context)

    def test_missing_storefront_fails(self, context: ResolutionContext) -> None:
        assert not resolve_template("{{p|uplay}}/savegames", context)

    def test_unknown_placeholder_fails(self, context: ResolutionContext) -> None:
        result = resolve_template("{{p|nosuchthing}}/save", context)
        assert not result
        assert result.path == ""

    def test_wildcard_left_unexpanded(self, context: ResolutionContext, tmp_path: Path) -> None:
        result = resolve_template("{{p|appdata}}/Studio/*.sav", context)
        assert result.path == str(tmp_path / "AppData" / "Roaming" / "Studio" / "*.sav")


class TestUidDiscovery:
    def test_second_candidate_selected(self, context: ResolutionContext, tmp_path: Path) -> None:
        (tmp_path / "Steam" / "userdata" / "B" / "327030").mkdir(parents=True)
        ctx = ResolutionContext(steam_path=context.steam_path, user_ids=("A", "B"), static_values={})

        result = resolve_template("{{p|steam}}/userdata/{{p|uid}}/327030", ctx)

        assert result.uid == "B"
        assert result.path == str(tmp_path / "Steam" / "userdata" / "B" / "327030")

    def test_first_candidate_wins(self, context: ResolutionContext, tmp_path: Path) -> None:
        for uid in ("A", "B"):
            (tmp_path / "Steam" / "userdata" / uid / "327030").mkdir(parents=True)
        ctx = ResolutionContext(steam_path=context.steam_path, user_ids=("A", "B"), static_values={})

        assert resolve_template("{{p|steam}}/userdata/{{p|uid}}/327030", ctx).uid == "A"

    def test_candidate_match_skips_wildcard_search(
        self, context: ResolutionContext, tmp_path: Path
    ) -> None:
        _touch(tmp_path / "Steam" / "userdata" / "B" / "327030" / "old.sav", mtime=1_000)
        _touch(tmp_path / "Steam" / "userdata" / "C" / "327030" / "new.sav", mtime=9_000)
        ctx = ResolutionContext(steam_path=context.steam_path, user_ids=("A", "B"), static_values={})

        assert resolve_template("{{p|steam}}/userdata/{{p|uid}}/327030", ctx).uid == "B"

    def test_wildcard_fallback_picks_latest_recursive_mtime(
        self, context: ResolutionContext, tmp_path: Path
    ) -> None:
        _touch(tmp_path / "Steam" / "userdata" / "111" / "327030" / "remote" / "a.sav", mtime=1_000)
        _touch(tmp_path / "Steam" / "userdata" / "222" / "327030" / "remote" / "b.sav", mtime=2_000)
        # Directory metadata of the older match must not count
        os.utime(tmp_path / "Steam" / "userdata" / "111" / "327030", (5_000, 5_000))

        result = resolve_template("{{p|steam}}/userdata/{{p|uid}}/327030", context)

        assert result.uid == "222"
        assert result.path == str(tmp_path / "Steam" / "userdata" / "222" / "327030")

    def test_uid_prefix_stripped(self, context: ResolutionContext, tmp_path: Path) -> None:
        (tmp_path / "Documents" / "Game" / "user_477235894").mkdir(parents=True)

        result = resolve_template("{{p|userprofile/documents}}/Game/user_{{p|uid}}", context)

        assert result.uid == "477235894"
        assert result.path == str(tmp_path / "Documents" / "Game" / "user_477235894")

    def test_no_match_fails(self, context: ResolutionContext) -> None:
        assert not resolve_template("{{p|steam}}/userdata/{{p|uid}}/327030", context)

    def test_windows_literal_example(self, monkeypatch: pytest.MonkeyPatch) -> None:
        existing = "D:/Steam/userdata/477235894/327030"
        monkeypatch.setattr(
            path_resolver,
            "_glob",
            lambda pattern: [existing] if pattern.replace("\\", "/") == existing else [],
        )
        ctx = ResolutionContext(
            steam_path="D:\\Steam",
            user_ids=("477235894",),
            static_values={},
            sep="\\",
        )

        result = resolve_template("{{p|steam}}\\userdata\\{{p|uid}}\\327030", ctx)

        assert result.path == "D:\\Steam\\userdata\\477235894\\327030"
        assert result.uid == "477235894"


class TestExtractUid:
    def test_plain_segment(self) -> None:
        assert extract_uid("/s/userdata/{{p|uid}}/1", "/s/userdata/42/1", "/") == "42"

    def test_prefix_and_suffix(self) -> None:
        assert extract_uid("/s/{{p|uid}}_profile", "/s/42_profile", "/") == "42"

    def test_missing_segment(self) -> None:
        assert extract_uid("/s/x/{{p|uid}}", "/s/x", "/") is None


class TestExpandTemplate:
    def test_wildcard_matches_every_existing_entry(
        self, context: ResolutionContext, tmp_path: Path
    ) -> None:
        studio = tmp_path / "AppData" / "Roaming" / "Studio"
        _touch(studio / "slot1.sav")
        _touch(studio / "slot2.sav")
        _touch(studio / "notes.txt")

        results = expand_template("{{p|appdata}}/Studio/*.sav", context)

        assert [r.resolved for r in results] == [str(studio / "slot1.sav"), str(studio / "slot2.sav")]
        assert all(r.type == PathType.FILE for r in results)
        assert all(r.template == "{{p|appdata}}/Studio/*.sav" for r in results)

    def test_missing_path_yields_nothing(self, context: ResolutionContext) -> None:
        assert expand_template("{{p|appdata}}/Nothing/Here", context) == []

    def test_folder_type(self, context: ResolutionContext, tmp_path: Path) -> None:
        (tmp_path / "AppData" / "Roaming" / "Studio").mkdir(parents=True)
        results = expand_template("{{p|appdata}}/Studio", context)
        assert len(results) == 1
        assert results[0].type == PathType.FOLDER

    def test_failed_resolution_yields_nothing(self, context: ResolutionContext) -> None:
        assert expand_template("{{p|bogus}}/x", context) == []


class TestRegistry:
    def test_registry_template(self, context: ResolutionContext) -> None:
        result = resolve_registry_template("{{p|hkcu}}/Software/Studio/Game", context)
        assert result.path == "HKEY_CURRENT_USER\\Software\\Studio\\Game"

    def test_registry_uid_left_unresolved(self, context: ResolutionContext) -> None:
        assert not resolve_registry_template("{{p|hkcu}}\\Software\\{{p|uid}}", context)

    def test_parse_registry_path(self) -> None:
        assert parse_registry_path("HKEY_CURRENT_USER\\Software\\Game") == (
            "HKEY_CURRENT_USER",
            "\\Software\\Game",
        )


class TestNormalizeSeparators:
    def test_mixed_and_repeated(self) -> None:
        assert normalize_separators("C:/Games\\\\Hades//Saves", "\\") == "C:\\Games\\Hades\\Saves"

    def test_unc_prefix_kept(self) -> None:
        assert normalize_separators("\\\\server/share\\saves", "\\") == "\\\\server\\share\\saves"


class TestPlaceholders:
    def test_canonical_name(self) -> None:
        assert canonical_name("{{P|UserProfile\\AppData\\LocalLow}}") == "userprofile/appdata/locallow"
        assert token("steam") == "{{p|steam}}"

    def test_kinds(self) -> None:
        assert lookup("appdata").kind is PlaceholderKind.STATIC
        assert lookup("game").kind is PlaceholderKind.CONTEXTUAL
        assert lookup("uid").kind is PlaceholderKind.DEFERRED
        assert lookup("nosuchthing") is None

    def test_static_values_cover_vocabulary(self) -> None:
        values = default_static_values()
        static = {name for name, p in PLACEHOLDERS.items() if p.kind is PlaceholderKind.STATIC}
        assert static == set(values)
        assert values["hkcu"] == "HKEY_CURRENT_USER"

    def test_uid_never_has_value(self) -> None:
        assert ResolutionContext(user_ids=("42",)).value_of("uid") is None
