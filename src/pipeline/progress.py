# src/pipeline/progress.py — v1
"""Progress and cooperative stop flag for the in-flight item.

Idle -> Running -> Idle. set_stopped() is valid in any state; stages poll
is_stopped() after every await and bail out with a "stopped" outcome.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from visionrecall.queue.state import QueueObservableState

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Writes progress_percent and message into the shared state."""

    def __init__(self, state: QueueObservableState) -> None:
        self._state = state
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self, message: str) -> None:
        self._running = True
        self._state.update(progress_percent=0, message=message)

    def advance(self, message: str, increment: int) -> None:
        """Add increment to the cumulative progress, clamped to 0..100."""
        if self.is_stopped():
            return
        current = self._state.get("progress_percent")
        value = max(0, min(100, current + increment))
        self._state.update(progress_percent=value, message=message)

    def end(self, success: bool) -> None:
        """Back to idle.

        Message and progress are left untouched once the run was stopped;
        the stop handling path finalizes them.
        """
        self._running = False
        if self.is_stopped():
            logger.debug("Progress end after stop, leaving status for stop handling")
            return
        if not success:
            logger.debug("Progress ended without success")
        self._state.update(progress_percent=0, message="")

    def is_stopped(self) -> bool:
        return bool(self._state.get("is_stopped"))

    def set_stopped(self, stopped: bool) -> None:
        self._state.update(is_stopped=stopped)
