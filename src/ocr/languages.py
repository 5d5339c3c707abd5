# src/ocr/languages.py — v1
"""Tesseract language table and per-script character allow-lists."""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Language:
    """Tesseract language with display names."""

    code: str
    name: str
    native_name: str
    script: str = "latin"


_LANGS = [
    Language("afr", "Afrikaans", "Afrikaans"),
    Language("amh", "Amharic", "አማርኛ", "ethiopic"),
    Language("ara", "Arabic", "العربية", "arabic"),
    Language("asm", "Assamese", "অসমীয়া", "bengali"),
    Language("aze", "Azerbaijani", "Azərbaycanca"),
    Language("aze_cyrl", "Azerbaijani - Cyrillic", "Азәрбајҹан", "cyrillic"),
    Language("bel", "Belarusian", "Беларуская", "cyrillic"),
    Language("ben", "Bengali", "বাংলা", "bengali"),
    Language("bod", "Tibetan", "བོད་སྐད་", "tibetan"),
    Language("bos", "Bosnian", "Bosanski"),
    Language("bul", "Bulgarian", "Български", "cyrillic"),
    Language("cat", "Catalan", "Català"),
    Language("ceb", "Cebuano", "Cebuano"),
    Language("ces", "Czech", "Čeština"),
    Language("chi_sim", "Chinese - Simplified", "简体中文", "han"),
    Language("chi_tra", "Chinese - Traditional", "繁體中文", "han"),
    Language("chr", "Cherokee", "ᏣᎳᎩ", "cherokee"),
    Language("cym", "Welsh", "Cymraeg"),
    Language("dan", "Danish", "Dansk"),
    Language("deu", "German", "Deutsch"),
    Language("ell", "Greek", "Ελληνικά", "greek"),
    Language("eng", "English", "English", "ascii"),
    Language("epo", "Esperanto", "Esperanto"),
    Language("est", "Estonian", "Eesti"),
    Language("fas", "Persian", "فارسی", "arabic"),
    Language("fin", "Finnish", "Suomi"),
    Language("fra", "French", "Français"),
    Language("glg", "Galician", "Galego"),
    Language("heb", "Hebrew", "עברית", "hebrew"),
    Language("hin", "Hindi", "हिन्दी", "devanagari"),
    Language("hrv", "Croatian", "Hrvatski"),
    Language("hun", "Hungarian", "Magyar"),
    Language("ind", "Indonesian", "Bahasa Indonesia"),
    Language("isl", "Icelandic", "Íslenska"),
    Language("ita", "Italian", "Italiano"),
    Language("jpn", "Japanese", "日本語", "japanese"),
    Language("kor", "Korean", "한국어", "hangul"),
    Language("lav", "Latvian", "Latviešu"),
    Language("lit", "Lithuanian", "Lietuvių"),
    Language("mal", "Malayalam", "മലയാളം", "malayalam"),
    Language("mar", "Marathi", "मराठी", "devanagari"),
    Language("mkd", "Macedonian", "Македонски", "cyrillic"),
    Language("msa", "Malay", "Bahasa Melayu"),
    Language("mya", "Burmese", "မြန်မာစာ", "myanmar"),
    Language("nld", "Dutch", "Nederlands"),
    Language("nor", "Norwegian", "Norsk"),
    Language("pol", "Polish", "Polski"),
    Language("por", "Portuguese", "Português"),
    Language("ron", "Romanian", "Română"),
    Language("rus", "Russian", "Русский", "cyrillic"),
    Language("slk", "Slovak", "Slovenčina"),
    Language("slv", "Slovenian", "Slovenščina"),
    Language("spa", "Spanish", "Español"),
    Language("swe", "Swedish", "Svenska"),
    Language("tur", "Turkish", "Türkçe"),
    Language("ukr", "Ukrainian", "Українська", "cyrillic"),
    Language("urd", "Urdu", "اردو", "arabic"),
    Language("vie", "Vietnamese", "Tiếng Việt"),
    Language("yid", "Yiddish", "ייִדיש", "hebrew"),
]

LANGUAGES: dict[str, Language] = {lang.code: lang for lang in _LANGS}

# Code point ranges per script, in regex character-class syntax.
_SCRIPT_RANGES: dict[str, str] = {
    "ascii": "a-zA-Z",
    "latin": "a-zA-Z\\u00c0-\\u024f\\u1e00-\\u1eff",
    "cyrillic": "\\u0400-\\u04ff\\u0500-\\u052f",
    "greek": "\\u0370-\\u03ff\\u1f00-\\u1fff",
    "arabic": "\\u0600-\\u06ff\\u0750-\\u077f\\ufb50-\\ufdff\\ufe70-\\ufeff",
    "hebrew": "\\u0590-\\u05ff\\ufb1d-\\ufb4f",
    "devanagari": "\\u0900-\\u097f",
    "bengali": "\\u0980-\\u09ff",
    "malayalam": "\\u0d00-\\u0d7f",
    "tibetan": "\\u0f00-\\u0fff",
    "myanmar": "\\u1000-\\u109f",
    "ethiopic": "\\u1200-\\u137f",
    "cherokee": "\\u13a0-\\u13ff\\uab70-\\uabbf",
    "han": "\\u3000-\\u303f\\u3400-\\u4dbf\\u4e00-\\u9fff",
    "japanese": "\\u3000-\\u30ff\\u31f0-\\u31ff\\u3400-\\u4dbf\\u4e00-\\u9fff\\uff00-\\uffef",
    "hangul": "\\u1100-\\u11ff\\u3130-\\u318f\\uac00-\\ud7af",
}

_PUNCTUATION = ".,!?'\"():;«»„“”‘’–—،؛、。"
_COMMON_SET = frozenset(_PUNCTUATION + "-")

_ALLOWED_CHAR: dict[str, re.Pattern[str]] = {
    script: re.compile(f"[{ranges}0-9 \\-{re.escape(_PUNCTUATION)}]")
    for script, ranges in _SCRIPT_RANGES.items()
}


def get_language(code: str) -> Language | None:
    """Look up a language by its Tesseract code."""
    return LANGUAGES.get(code)


def is_allowed_char(char: str, language: str = "all") -> bool:
    """Whether a character belongs to the language's allow-list.

    "all" (or an unknown code) accepts any letter, digit, whitespace or
    punctuation and rejects control and symbol characters.
    """
    lang = LANGUAGES.get(language)
    if lang is None:
        return char.isalnum() or char.isspace() or char in _COMMON_SET
    return bool(_ALLOWED_CHAR[lang.script].fullmatch(char))


def prompt_language_modifier(code: str | None) -> str:
    """Prompt suffix asking for an answer in the OCR language.

    Empty for English, unknown codes and None.
    """
    if not code or code == "eng":
        return ""
    lang = LANGUAGES.get(code)
    if lang is None:
        return ""
    return (
        "\n\nGenerate the response in the following language: "
        f"{lang.name} ({lang.native_name})\n\n"
    )
