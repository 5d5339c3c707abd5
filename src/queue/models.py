# src/queue/models.py — v1
"""Queue domain models: ItemStatus, QueueItem, ProcessingStatus."""

from __future__ import annotations

import uuid
from enum import Enum

from pydantic import BaseModel, Field

from visionrecall.storage.models import FileRef


class ItemStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.COMPLETED, ItemStatus.FAILED)


class QueueItem(BaseModel):
    """One enqueued screenshot."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    source_file: FileRef
    status: ItemStatus = ItemStatus.PENDING
    error: str | None = None

    @property
    def path(self) -> str:
        return self.source_file.path


class ProcessingStatus(BaseModel):
    """Everything observers need to render "what is happening now".

    is_processing and is_paused are never both true.
    """

    is_processing: bool = False
    is_paused: bool = False
    is_stopped: bool = False
    current_item: FileRef | None = None
    progress_percent: int = Field(default=0, ge=0, le=100)
    message: str = ""
    queue: list[QueueItem] = Field(default_factory=list)
    total: int = 0
    skipped: int = 0

    def count(self, status: ItemStatus) -> int:
        return sum(1 for item in self.queue if item.status == status)

    @property
    def pending_count(self) -> int:
        return self.count(ItemStatus.PENDING)
