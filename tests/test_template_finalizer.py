"""Tests for reducing resolved paths back to portable templates."""

from __future__ import annotations

from pathlib import Path

import pytest

from game_save_manager.core.path_resolver import expand_template, resolve_template
from game_save_manager.core.template_finalizer import finalize_template
from game_save_manager.models.resolution import ResolutionContext


@pytest.fixture
def win_context() -> ResolutionContext:
    return ResolutionContext(
        game_install_path="E:\\Games\\Hades",
        steam_path="D:\\Steam",
        static_values={
            "appdata": "C:\\Users\\me\\AppData\\Roaming",
            "userprofile/documents": "C:\\Users\\me\\Documents",
        },
        sep="\\",
    )


class TestFinalize:
    def test_steam_uid_example(self, win_context: ResolutionContext) -> None:
        result = finalize_template(
            "{{p|steam}}\\userdata\\{{p|uid}}\\327030",
            "D:\\Steam\\userdata\\477235894\\327030",
            "477235894",
            win_context,
        )
        assert result == "{{p|steam}}\\userdata\\477235894\\327030"

    def test_wildcard_collapsed_after_multi_segment_placeholder(
        self, win_context: ResolutionContext
    ) -> None:
        result = finalize_template(
            "{{p|appdata}}\\Studio\\*.sav",
            "C:\\Users\\me\\AppData\\Roaming\\Studio\\slot1.sav",
            None,
            win_context,
        )
        assert result == "{{p|appdata}}\\Studio\\slot1.sav"

    def test_game_placeholder(self, win_context: ResolutionContext) -> None:
        result = finalize_template(
            "{{p|game}}\\Saves\\*",
            "E:\\Games\\Hades\\Saves\\Profile1",
            None,
            win_context,
        )
        assert result == "{{p|game}}\\Saves\\Profile1"

    def test_slash_inside_placeholder_name(self, win_context: ResolutionContext) -> None:
        result = finalize_template(
            "{{p|userprofile/documents}}/My Games/*/Saves",
            "C:\\Users\\me\\Documents\\My Games\\Skyrim\\Saves",
            None,
            win_context,
        )
        assert result == "{{p|userprofile/documents}}\\My Games\\Skyrim\\Saves"

    def test_tokens_canonicalized(self, win_context: ResolutionContext) -> None:
        result = finalize_template(
            "{{P|Steam}}/userdata\\{{p|UID}}/327030",
            "D:\\Steam\\userdata\\42\\327030",
            "42",
            win_context,
        )
        assert result == "{{p|steam}}\\userdata\\42\\327030"

    def test_unknown_uid_kept_as_placeholder(self, win_context: ResolutionContext) -> None:
        result = finalize_template(
            "{{p|steam}}\\userdata\\{{p|uid}}\\327030",
            "D:\\Steam\\userdata\\42\\327030",
            None,
            win_context,
        )
        assert result == "{{p|steam}}\\userdata\\{{p|uid}}\\327030"

    def test_posix_home(self) -> None:
        ctx = ResolutionContext(static_values={"linuxhome": "/home/u"}, sep="/")
        result = finalize_template(
            "{{p|linuxhome}}/.local/share/*/saves",
            "/home/u/.local/share/Game/saves",
            None,
            ctx,
        )
        assert result == "{{p|linuxhome}}/.local/share/Game/saves"


class TestRoundTrip:
    def test_finalized_template_resolves_to_same_path(self, tmp_path: Path) -> None:
        save = tmp_path / "Steam" / "userdata" / "99" / "327030" / "remote" / "a.sav"
        save.parent.mkdir(parents=True)
        save.write_bytes(b"data")
        ctx = ResolutionContext(steam_path=str(tmp_path / "Steam"), static_values={})
        template = "{{p|steam}}/userdata/{{p|uid}}/327030/remote/*.sav"

        [resolved] = expand_template(template, ctx)
        portable = finalize_template(template, resolved.resolved, resolved.uid, ctx)

        assert resolved.uid == "99"
        assert "*" not in portable
        assert portable.startswith("{{p|steam}}")
        assert resolve_template(portable, ctx).path == resolved.resolved
