# src/pipeline/tags.py — v1
"""Tag and title normalization helpers."""

from __future__ import annotations

import json
import re
from typing import Any

MAX_TAGS = 5
MAX_TITLE_LENGTH = 200
DEFAULT_TITLE = "Untitled"

_WRAPPER_RE = re.compile(r"^[\[({]|[\])}]$")
_SPLIT_RE = re.compile(r"[,;\n]")
_DISALLOWED_RE = re.compile(r"[\[\]*/\\`'\")(}{\n]")
_WHITESPACE_RE = re.compile(r"\s+")
_TITLE_JUNK_RE = re.compile(r"[\\\"]")
_FILENAME_JUNK_RE = re.compile(r"[\\/:*?\"<>|#^\[\]\x00-\x1f]")
_LINK_TAG_JUNK_RE = re.compile(r"[^a-zA-Z0-9_/-]")


def sanitize_tags(raw: Any) -> list[str]:
    """Normalize an LLM tag payload into at most five clean tags.

    Accepts a list, a JSON array string or a delimited string. Each tag is
    stripped of brackets, quotes and slashes, trimmed and has its internal
    whitespace collapsed; empty tags are dropped.
    """
    if isinstance(raw, str):
        trimmed = _WRAPPER_RE.sub("", raw.strip())
        parsed: Any = None
        if trimmed.startswith("[") and trimmed.endswith("]"):
            try:
                parsed = json.loads(trimmed)
            except json.JSONDecodeError:
                parsed = None
        raw = parsed if isinstance(parsed, list) else [t.strip() for t in _SPLIT_RE.split(trimmed)]
    elif raw is None:
        raw = []
    elif not isinstance(raw, list):
        raw = [str(raw)]

    tags: list[str] = []
    for tag in raw:
        cleaned = _WHITESPACE_RE.sub(" ", _DISALLOWED_RE.sub("", str(tag)).strip())
        if cleaned:
            tags.append(cleaned)
    return tags[:MAX_TAGS]


def sanitize_title(raw: Any) -> str:
    """Strip quotes and backslashes; fall back to the default title."""
    if not isinstance(raw, str):
        return DEFAULT_TITLE
    title = _TITLE_JUNK_RE.sub("", raw).strip()
    return title[:MAX_TITLE_LENGTH] or DEFAULT_TITLE


def format_tags(tags: list[str]) -> list[str]:
    """Hashtag form: spaces become underscores."""
    return [f"#{tag.replace(' ', '_')}" for tag in tags]


def tags_to_comma_string(tags: list[str]) -> str:
    return ", ".join(tags)


def tags_from_comma_string(tags: str) -> list[str]:
    return [t.strip() for t in tags.split(",") if t.strip()]


def formatted_tag_string(tags: list[str]) -> str:
    """Tag line used in notes and metadata ("#a, #b_c")."""
    return tags_to_comma_string(format_tags(tags))


def sanitize_filename(name: str, max_length: int = 100) -> str:
    """Make a title safe as a file name on all major filesystems."""
    cleaned = _WHITESPACE_RE.sub(" ", _FILENAME_JUNK_RE.sub("", name)).strip(" .")
    return cleaned[:max_length].rstrip(" .") or DEFAULT_TITLE


def sanitize_link_tag(value: str) -> str | None:
    """Reduce a value to a valid hashtag path, None if nothing usable remains."""
    tag = _LINK_TAG_JUNK_RE.sub("", _WHITESPACE_RE.sub("_", value))
    if not re.search(r"[a-zA-Z_/-]", tag):
        return None
    return tag
