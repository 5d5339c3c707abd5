# src/notify/notifier.py — v1
"""Fire-and-forget user notifications.

Notifiers never raise into the caller: a failing backend is logged and the
message is dropped.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Literal

logger = logging.getLogger(__name__)

Level = Literal["info", "warning", "error"]

_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class BaseNotifier(ABC):
    """Unified interface for notification sinks."""

    def notify(self, message: str, level: Level = "info") -> None:
        try:
            self._emit(message, level)
        except Exception:
            logger.exception("Notifier %s failed", type(self).__name__)

    @abstractmethod
    def _emit(self, message: str, level: Level) -> None:
        """Deliver one message."""


class LoggingNotifier(BaseNotifier):
    """Route notifications to a dedicated logger (default for the CLI)."""

    def __init__(self, name: str = "visionrecall.notifications") -> None:
        self._logger = logging.getLogger(name)

    def _emit(self, message: str, level: Level) -> None:
        self._logger.log(_LEVELS.get(level, logging.INFO), message)


class MemoryNotifier(BaseNotifier):
    """Keep notifications in memory, for embedding and tests."""

    def __init__(self) -> None:
        self.messages: list[tuple[Level, str]] = []

    def _emit(self, message: str, level: Level) -> None:
        self.messages.append((level, message))
