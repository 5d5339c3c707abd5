# src/logging/handlers.py — v1
"""File handlers for the application log and the per-screenshot failure log.

The application log takes everything the console shows. The failure log
only keeps warnings and errors raised while a queue item is in flight, one
JSON object per line, so a user can see which screenshots went wrong and
in which stage without reading the whole application log.
"""

from __future__ import annotations

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

from visionrecall.logging.context import get_context

_SIZE_RE = re.compile(r"^(\d+)\s*(B|KB|MB|GB)$", re.IGNORECASE)
_MULTIPLIERS = {"B": 1, "KB": 1024, "MB": 1024**2, "GB": 1024**3}


def parse_size(size_str: str) -> int:
    """Parse a size string like '10MB' into bytes (B, KB, MB, GB)."""
    match = _SIZE_RE.match(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    return int(match.group(1)) * _MULTIPLIERS[match.group(2).upper()]


class ItemProblemFilter(logging.Filter):
    """Pass records at min_level or above that belong to a queue item."""

    def __init__(self, min_level: int = logging.WARNING) -> None:
        super().__init__()
        self.min_level = min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno < self.min_level:
            return False
        return get_context().item_path is not None


def _rotating_file(path: Path, rotation: str, retention: int) -> RotatingFileHandler:
    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
    )


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 5,
    level: int = logging.NOTSET,
) -> RotatingFileHandler:
    """Application log file, parent directory created on demand."""
    handler = _rotating_file(Path(log_file), rotation, retention)
    handler.setLevel(level)
    return handler


def create_failure_handler(
    log_file: str,
    rotation: str = "1MB",
    retention: int = 3,
) -> RotatingFileHandler:
    """Failure log: item-scoped warnings and errors as JSON lines.

    Args:
        log_file: Path to the failure log.
        rotation: Max file size before rotation.
        retention: Number of rotated files to keep.
    """
    from visionrecall.logging.logger import JsonFormatter

    handler = _rotating_file(Path(log_file), rotation, retention)
    handler.addFilter(ItemProblemFilter())
    handler.setFormatter(JsonFormatter())
    return handler
