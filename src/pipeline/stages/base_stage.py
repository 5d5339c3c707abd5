# src/pipeline/stages/base_stage.py — v1
"""Common stage interface, outcome type and per-item working context.

Every stage returns a StageResult instead of raising: ok carries the
stage value, stopped means the cooperative stop flag was seen after an
await, failed carries a human-readable reason the queue records on the
item.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import BaseModel, ConfigDict

from visionrecall.logging.context import set_stage_context
from visionrecall.storage.models import FileRef

logger = logging.getLogger(__name__)

T = TypeVar("T")

StopCheck = Callable[[], bool]

MEDIA_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
}


def media_type_for(extension: str) -> str:
    """MIME type for an image extension, PNG when unknown."""
    return MEDIA_TYPES.get(extension.lower().lstrip("."), "image/png")


class StageStatus(str, Enum):
    OK = "ok"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class StageResult:
    """Outcome of one stage."""

    status: StageStatus
    value: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, value: Any) -> StageResult:
        return cls(status=StageStatus.OK, value=value)

    @classmethod
    def stopped(cls) -> StageResult:
        return cls(status=StageStatus.STOPPED)

    @classmethod
    def failed(cls, error: str) -> StageResult:
        return cls(status=StageStatus.FAILED, error=error)


class ItemContext(BaseModel):
    """Working data of the item being processed."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    file: FileRef
    image: bytes
    media_type: str = "image/png"
    ocr_text: str = ""
    vision_response: str = ""
    notes: str = ""


class StageTimeoutError(Exception):
    """Raised when a stage call exceeds its time budget."""


class BaseStage(ABC):
    """One step of the per-item pipeline.

    Args:
        is_stopped: Callable polled after every await.
        timeout: Seconds allowed per external call, None for no limit.
    """

    def __init__(self, is_stopped: StopCheck, timeout: float | None = None) -> None:
        self._is_stopped = is_stopped
        self._timeout = timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """Stage identifier used in logs and failure messages."""

    @abstractmethod
    async def run(self, ctx: ItemContext) -> StageResult:
        """Stage logic; implementations never raise for expected failures."""

    async def execute(self, ctx: ItemContext) -> StageResult:
        """Run the stage with the log context set to its name."""
        set_stage_context(self.name)
        try:
            if self._is_stopped():
                return StageResult.stopped()
            result = await self.run(ctx)
        finally:
            set_stage_context(None)
        if result.status == StageStatus.FAILED:
            logger.warning("Stage '%s' failed: %s", self.name, result.error)
        return result

    def stopped(self) -> bool:
        return self._is_stopped()

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        """Await with the stage timeout applied."""
        if self._timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise StageTimeoutError(
                f"{self.name} timed out after {self._timeout:g}s"
            ) from e
