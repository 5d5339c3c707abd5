# src/queue/state.py — v1
"""Observable processing state shared by the queue and its observers.

One writer (the JobQueue loop and its control methods, plus the
ProgressReporter) and any number of readers. Every mutation happens under
an RLock; listeners are called after the lock is released with a deep
copy, so they can never mutate or block the live state.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Iterable

from visionrecall.queue.models import ItemStatus, ProcessingStatus, QueueItem
from visionrecall.storage.models import FileRef

logger = logging.getLogger(__name__)

Listener = Callable[[ProcessingStatus], None]


class QueueObservableState:
    """Lock-guarded ProcessingStatus with subscribe/notify."""

    def __init__(self) -> None:
        self._status = ProcessingStatus()
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []

    # --- Observation ---

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> ProcessingStatus:
        with self._lock:
            return self._status.model_copy(deep=True)

    def get(self, field: str) -> Any:
        """Read one top-level scalar field without copying the queue."""
        if field == "queue":
            raise AttributeError("Use snapshot() to read the queue")
        with self._lock:
            return getattr(self._status, field)

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
            snap = self._status.model_copy(deep=True)
        for listener in listeners:
            try:
                listener(snap)
            except Exception:
                logger.exception("State listener %r failed", listener)

    # --- Flags and scalar fields ---

    def update(self, **changes: Any) -> None:
        """Set top-level status fields and notify."""
        with self._lock:
            for key in changes:
                if key == "queue" or key not in ProcessingStatus.model_fields:
                    raise AttributeError(f"Cannot update status field {key!r}")
            processing = changes.get("is_processing", self._status.is_processing)
            paused = changes.get("is_paused", self._status.is_paused)
            if processing and paused:
                raise RuntimeError("is_processing and is_paused cannot both be true")
            for key, value in changes.items():
                setattr(self._status, key, value)
        self._notify()

    def reset(self) -> None:
        """Back to defaults: empty queue, all flags cleared."""
        with self._lock:
            self._status = ProcessingStatus()
        self._notify()

    def increment_skipped(self) -> None:
        with self._lock:
            self._status.skipped += 1
        self._notify()

    # --- Queue items ---

    def add_items(self, files: Iterable[FileRef]) -> list[QueueItem]:
        items = [QueueItem(source_file=f) for f in files]
        if not items:
            return []
        with self._lock:
            self._status.queue.extend(items)
            self._status.total += len(items)
        self._notify()
        return [item.model_copy() for item in items]

    def update_item_status(
        self, item_id: str, status: ItemStatus, error: str | None = None
    ) -> bool:
        with self._lock:
            item = self._by_id(item_id)
            if item is None:
                return False
            item.status = status
            item.error = error
        self._notify()
        return True

    def remove_item(self, path: str) -> bool:
        """Remove one item with this path regardless of state; decrements total.

        When the path was enqueued more than once, an in-flight or pending
        entry is removed before a finished one.
        """
        with self._lock:
            matches = [item for item in self._status.queue if item.path == path]
            if not matches:
                return False
            rank = {ItemStatus.PROCESSING: 0, ItemStatus.PENDING: 1}
            target = min(matches, key=lambda item: rank.get(item.status, 2))
            self._remove(target.id)
        self._notify()
        return True

    def remove_item_by_id(self, item_id: str) -> bool:
        with self._lock:
            removed = self._remove(item_id)
        if removed:
            self._notify()
        return removed

    def next_pending(self) -> QueueItem | None:
        """First Pending item in enqueue order."""
        with self._lock:
            for item in self._status.queue:
                if item.status == ItemStatus.PENDING:
                    return item.model_copy(deep=True)
        return None

    def has_pending(self) -> bool:
        return self.next_pending() is not None

    def _by_id(self, item_id: str) -> QueueItem | None:
        for item in self._status.queue:
            if item.id == item_id:
                return item
        return None

    def _remove(self, item_id: str) -> bool:
        for index, item in enumerate(self._status.queue):
            if item.id == item_id:
                del self._status.queue[index]
                self._status.total = max(0, self._status.total - 1)
                return True
        return False
