# src/ocr/validation.py — v1
"""OCR output cleanup and plausibility checks.

Tesseract happily returns noise for photos and UI chrome. Text is first
reduced to the characters the configured language can produce, then
accepted only if its length and share of ordinary characters look like
real text. A last check asks lingua whether the text reads as any
known language at all; digit and symbol soup does not.
"""

from __future__ import annotations

import functools
import logging
import re
from typing import TYPE_CHECKING

from visionrecall.ocr.languages import is_allowed_char

if TYPE_CHECKING:
    from lingua import LanguageDetector

logger = logging.getLogger(__name__)

# Word characters, whitespace and common punctuation (incl. dashes)
_VALID_CHAR_RE = re.compile(r"[\w\s.,!?'\"\-–—()]")


def clean_ocr_text(text: str, language: str = "all") -> str:
    """Drop characters outside the language allow-list; newlines are kept."""
    return "".join(c for c in text if c == "\n" or is_allowed_char(c, language))


def is_valid_length(text: str, min_length: int = 5, max_length: int = 5000) -> bool:
    return min_length < len(text) < max_length


def valid_char_ratio(text: str) -> float:
    """Share of characters that are word characters, whitespace or punctuation."""
    if not text:
        return 0.0
    valid = sum(1 for c in text if _VALID_CHAR_RE.match(c))
    return valid / len(text)


@functools.lru_cache(maxsize=1)
def _detector() -> LanguageDetector:
    from lingua import LanguageDetectorBuilder

    return LanguageDetectorBuilder.from_all_languages().with_low_accuracy_mode().build()


def detect_language(text: str) -> str | None:
    """ISO 639-3 code of the language of text, None when undetermined."""
    language = _detector().detect_language_of(text[:5000])
    if language is None:
        return None
    return language.iso_code_639_3.name.lower()


def check_ocr_text(
    text: str,
    min_length: int = 5,
    max_length: int = 5000,
    min_ratio: float = 0.8,
    detect: bool = True,
) -> str | None:
    """Return the text when it passes all checks, None otherwise."""
    if not is_valid_length(text, min_length, max_length):
        logger.info("OCR text rejected: length %d outside (%d, %d)", len(text), min_length, max_length)
        return None
    ratio = valid_char_ratio(text)
    if ratio < min_ratio:
        logger.info("OCR text rejected: valid character ratio %.2f < %.2f", ratio, min_ratio)
        return None
    if detect:
        language = detect_language(text)
        if language is None:
            logger.info("OCR text rejected: language detection failed")
            return None
        logger.debug("OCR text language: %s", language)
    return text
