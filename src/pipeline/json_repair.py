# src/pipeline/json_repair.py — v1
"""Recover {title, tags} from imperfect LLM output.

Parsers are tried in order and each returns None instead of raising, so
the chain stops at the first one that yields a result:

1. strict JSON matching the TagsAndTitle schema
2. relaxed JSON: code fences and trailing commas first; escaped quotes,
   bare keys and single-quoted strings only when that still fails to parse
3. regex extraction of the title from raw text, tags from delimiters
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from pydantic import BaseModel, ConfigDict, ValidationError

from visionrecall.pipeline.tags import DEFAULT_TITLE, sanitize_tags, sanitize_title

logger = logging.getLogger(__name__)

_BLOCK_RE = re.compile(r"```(?:json)?([\s\S]*?)```|\{[\s\S]*\}")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r"(?<=[{,])(\s*)(\w+)(\s*):")
_SINGLE_QUOTED_RE = re.compile(r"'([^'\"]*)'")
_TITLE_PATTERNS = [
    re.compile(r"\"title\":\s*\"?(.*?)\"?([,}]|$)", re.IGNORECASE | re.MULTILINE),
    re.compile(r"'title':\s*['\"]?(.*?)['\"]?([,}]|$)", re.IGNORECASE | re.MULTILINE),
    re.compile(r"title:\s*\"?(.*?)\"?([,}]|$)", re.IGNORECASE | re.MULTILINE),
]


class TagsAndTitle(BaseModel):
    """Structured tag/title answer requested from the LLM."""

    model_config = ConfigDict(extra="forbid")

    title: str
    tags: list[str]


DEFAULT_TAGS_AND_TITLE = TagsAndTitle(title=DEFAULT_TITLE, tags=[])


def _normalize(data: Any) -> TagsAndTitle | None:
    if not isinstance(data, dict):
        return None
    tags = data.get("tags")
    if not isinstance(tags, list):
        tags = []
    return TagsAndTitle(
        title=sanitize_title(data.get("title")),
        tags=sanitize_tags([t for t in tags if isinstance(t, str)]),
    )


def parse_strict(text: str) -> TagsAndTitle | None:
    try:
        parsed = TagsAndTitle.model_validate_json(text.strip())
    except ValidationError:
        return None
    return _normalize(parsed.model_dump())


def _loads(text: str) -> TagsAndTitle | None:
    try:
        return _normalize(json.loads(text))
    except json.JSONDecodeError:
        return None


def parse_relaxed(text: str) -> TagsAndTitle | None:
    match = _BLOCK_RE.search(text)
    if not match:
        return None
    candidate = _TRAILING_COMMA_RE.sub(r"\1", (match.group(1) or match.group(0)).strip())
    result = _loads(candidate)
    if result is not None:
        return result

    # Repairs below may touch string values, so they only run on broken JSON.
    candidate = candidate.replace('\\"', '"').replace("\\n", "")
    candidate = _BARE_KEY_RE.sub(r'\1"\2"\3:', candidate)
    for attempt in (candidate, _SINGLE_QUOTED_RE.sub(r'"\1"', candidate)):
        result = _loads(attempt)
        if result is not None:
            return result
    return None


def parse_regex(text: str) -> TagsAndTitle | None:
    for pattern in _TITLE_PATTERNS:
        match = pattern.search(text)
        if match:
            return TagsAndTitle(title=sanitize_title(match.group(1)), tags=sanitize_tags(text))
    return None


PARSER_CHAIN: list[Callable[[str], TagsAndTitle | None]] = [
    parse_strict,
    parse_relaxed,
    parse_regex,
]


def extract_tags_and_title(text: str | None) -> TagsAndTitle:
    """Run the parser chain; the default result when nothing matches."""
    if not text:
        return DEFAULT_TAGS_AND_TITLE.model_copy(deep=True)
    for parser in PARSER_CHAIN:
        result = parser(text)
        if result is not None:
            logger.debug("Tags/title recovered by %s", parser.__name__)
            return result
    logger.warning("Could not recover tags/title from LLM output")
    return DEFAULT_TAGS_AND_TITLE.model_copy(deep=True)
