"""Translated user-facing messages for game save manager (en_US and zh_CN).

Error lines gathered by scan, backup and restore are built from these tables,
so every key used by the core modules must exist in en_US.json.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

DEFAULT_LANGUAGE = "en_US"
_SUPPORTED = ("en_US", "zh_CN")
_I18N_DIR = Path(__file__).parent

_current_lang: str = DEFAULT_LANGUAGE
_tables: dict[str, dict[str, str]] = {}


def _table(lang: str) -> dict[str, str]:
    if lang not in _tables:
        path = _I18N_DIR / f"{lang}.json"
        _tables[lang] = json.loads(path.read_text(encoding="utf-8")) if path.exists() else {}
    return _tables[lang]


def normalize_language(lang: str | None) -> str:
    """Map ``zh-CN``, ``zh_cn`` or plain ``zh`` style codes onto a supported one.

    Anything unrecognised becomes :data:`DEFAULT_LANGUAGE`.
    """
    if not lang:
        return DEFAULT_LANGUAGE
    wanted = lang.replace("-", "_").lower()
    for code in _SUPPORTED:
        if wanted in (code.lower(), code.split("_")[0].lower()):
            return code
    return DEFAULT_LANGUAGE


def set_language(lang: str | None) -> None:
    global _current_lang
    _current_lang = normalize_language(lang)


def current_language() -> str:
    return _current_lang


def supported_languages() -> tuple[str, ...]:
    return _SUPPORTED


def t(key: str, **kwargs: Any) -> str:
    """Look up *key* in the active language and fill its ``{placeholders}``.

    ::

        t("main.backup_done", count=3)
        # → "Backed up 3 game(s)" (en_US)

    A key missing from the zh_CN table uses the en_US text. A key missing
    everywhere is returned as-is, as is a template whose placeholders were
    not all supplied.
    """
    text = _table(_current_lang).get(key)
    if text is None:
        text = _table(DEFAULT_LANGUAGE).get(key, key)
    if not kwargs:
        return text
    try:
        return text.format(**kwargs)
    except (KeyError, IndexError):
        return text
