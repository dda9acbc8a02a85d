"""Tests for message translation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from game_save_manager import i18n
from game_save_manager.i18n import normalize_language, set_language, t


@pytest.fixture(autouse=True)
def _english():
    set_language("en_US")
    yield
    set_language("en_US")


class TestLanguage:
    @pytest.mark.parametrize("code", ["zh_CN", "zh-CN", "zh_cn", "zh"])
    def test_chinese_spellings(self, code: str) -> None:
        assert normalize_language(code) == "zh_CN"

    @pytest.mark.parametrize("code", ["fr_FR", "", None])
    def test_unknown_falls_back_to_english(self, code) -> None:
        assert normalize_language(code) == "en_US"

    def test_set_language_normalizes(self) -> None:
        set_language("zh-CN")
        assert i18n.current_language() == "zh_CN"


class TestTranslate:
    def test_placeholders_filled(self) -> None:
        assert t("alert.backup_game_error", game_name="Hades") == "Error backing up Hades"

    def test_chinese_table_used(self) -> None:
        set_language("zh_CN")
        assert t("main.no_games") == "未找到游戏"

    def test_unknown_key_returned_as_is(self) -> None:
        assert t("main.nothing_here") == "main.nothing_here"

    def test_missing_placeholder_keeps_template(self) -> None:
        assert t("alert.backup_game_error") == "Error backing up {game_name}"
        assert t("alert.backup_game_error", other="x") == "Error backing up {game_name}"

    def test_every_key_translated(self) -> None:
        base = Path(i18n.__file__).parent
        en = json.loads((base / "en_US.json").read_text(encoding="utf-8"))
        zh = json.loads((base / "zh_CN.json").read_text(encoding="utf-8"))
        assert set(zh) == set(en)
