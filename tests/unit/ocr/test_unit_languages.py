# tests/unit/ocr/test_unit_languages.py — v1
"""Tests for ocr/languages.py — language table and character allow-lists."""

from __future__ import annotations

from visionrecall.ocr.languages import (
    LANGUAGES,
    get_language,
    is_allowed_char,
    prompt_language_modifier,
)


class TestLanguageTable:
    def test_lookup(self):
        lang = get_language("deu")
        assert lang.name == "German"
        assert lang.native_name == "Deutsch"

    def test_unknown(self):
        assert get_language("xxx") is None

    def test_codes_are_keys(self):
        assert all(code == lang.code for code, lang in LANGUAGES.items())


class TestAllowedChars:
    def test_english_is_ascii_only(self):
        assert is_allowed_char("a", "eng")
        assert is_allowed_char("7", "eng")
        assert is_allowed_char("?", "eng")
        assert not is_allowed_char("é", "eng")
        assert not is_allowed_char("€", "eng")

    def test_latin_accepts_accents(self):
        assert is_allowed_char("é", "fra")
        assert is_allowed_char("ß", "deu")

    def test_cyrillic(self):
        assert is_allowed_char("д", "rus")
        assert not is_allowed_char("a", "rus")

    def test_all_languages(self):
        assert is_allowed_char("é", "all")
        assert is_allowed_char("д", "all")
        assert not is_allowed_char("€", "all")
        assert not is_allowed_char("\x07", "all")


class TestPromptModifier:
    def test_english_and_unknown_empty(self):
        assert prompt_language_modifier("eng") == ""
        assert prompt_language_modifier(None) == ""
        assert prompt_language_modifier("xxx") == ""

    def test_other_language(self):
        modifier = prompt_language_modifier("deu")
        assert "German (Deutsch)" in modifier
        assert modifier.startswith("\n\n")
