# src/queue/job_queue.py — v1
"""Single-worker FIFO queue driving the per-item pipeline.

One asyncio task runs the loop; it processes exactly one item at a time
and polls the stop/pause flags only at checkpoints: before each item,
after the dedup gate, after each stage (inside the stages) and after each
item. An in-flight external call is never interrupted; its result is
discarded at the next checkpoint.

Item lifecycle:
    Pending -> Processing -> Completed | Failed
    Pending -> removed (duplicate content, counted in skipped)
    Processing -> Pending (stopped; resumable)
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Iterable

from visionrecall.logging.context import set_item_context, set_run_context
from visionrecall.pipeline.processor import (
    ItemProcessingError,
    PersistenceError,
    ProcessStatus,
)
from visionrecall.queue.models import ItemStatus, QueueItem

if TYPE_CHECKING:
    from visionrecall.cache.fingerprint import ContentFingerprinter
    from visionrecall.notify.notifier import BaseNotifier
    from visionrecall.pipeline.processor import ScreenshotProcessor
    from visionrecall.queue.state import QueueObservableState
    from visionrecall.storage.base_file_store import BaseFileStore
    from visionrecall.storage.models import FileRef

logger = logging.getLogger(__name__)

DEFAULT_INTER_ITEM_DELAY_S = 0.5
STOPPED_MESSAGE = "Processing stopped"


class JobQueue:
    """Orchestrates queued screenshots through ScreenshotProcessor.

    Args:
        state: Shared observable status (single writer: this queue).
        processor: Per-item pipeline.
        fingerprinter: Dedup gate.
        files: Vault file store, used to trash processed sources.
        notifier: Optional sink for failure notifications.
        inter_item_delay_s: Pause between items.
        check_duplicates: Run the content-hash dedup gate before each item.
    """

    def __init__(
        self,
        state: QueueObservableState,
        processor: ScreenshotProcessor,
        fingerprinter: ContentFingerprinter,
        files: BaseFileStore,
        notifier: BaseNotifier | None = None,
        inter_item_delay_s: float = DEFAULT_INTER_ITEM_DELAY_S,
        check_duplicates: bool = True,
    ) -> None:
        self._state = state
        self._processor = processor
        self._fingerprinter = fingerprinter
        self._files = files
        self._notifier = notifier
        self._delay = inter_item_delay_s
        self._check_duplicates = check_duplicates
        self._task: asyncio.Task[None] | None = None
        self._loop_active = False

    @property
    def state(self) -> QueueObservableState:
        return self._state

    @property
    def is_running(self) -> bool:
        """True while the worker loop is alive (even when marked paused)."""
        return self._loop_active

    # --- Enqueue ---

    async def enqueue(self, file: FileRef) -> QueueItem:
        """Append one Pending item and start the loop when idle."""
        return (await self.enqueue_many([file]))[0]

    async def enqueue_many(self, files: Iterable[FileRef]) -> list[QueueItem]:
        """Append Pending items in order with a single loop start."""
        items = self._state.add_items(files)
        if not items:
            return items
        logger.info("Enqueued %d item(s)", len(items))
        if not self._state.get("is_processing") and not self._state.get("is_paused"):
            self._start()
        return items

    def _start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.get_running_loop().create_task(self.run_loop())

    # --- Loop ---

    async def run_loop(self) -> None:
        """Process Pending items in FIFO order until none is left.

        Returns immediately when a loop is already running or the queue is
        paused, so at most one item is ever Processing.
        """
        if self._loop_active or self._state.get("is_processing") or self._state.get("is_paused"):
            return
        if self._state.get("is_stopped") or not self._state.has_pending():
            self._state.update(is_processing=False)
            return

        self._loop_active = True
        set_run_context(uuid.uuid4().hex[:8])
        self._state.update(is_processing=True)
        try:
            await self._drain()
        finally:
            self._loop_active = False

    async def _drain(self) -> None:
        while True:
            if self._state.get("is_stopped"):
                logger.info("Queue stopped")
                self._state.update(
                    is_processing=False,
                    current_item=None,
                    progress_percent=0,
                    message=STOPPED_MESSAGE,
                )
                return
            if self._state.get("is_paused"):
                logger.info("Queue paused")
                self._state.update(is_processing=False)
                return

            item = self._state.next_pending()
            if item is None:
                break
            if not self._state.get("is_processing"):
                self._state.update(is_processing=True)

            await self._process_item(item)

            if self._delay > 0 and self._state.has_pending():
                await asyncio.sleep(self._delay)

        self._state.update(is_processing=False, current_item=None)
        logger.info("Queue drained")

    async def _process_item(self, item: QueueItem) -> None:
        set_item_context(item.path)
        try:
            file_hash = None
            if self._check_duplicates:
                try:
                    decision = await self._fingerprinter.check(item.source_file, hash_only=True)
                except OSError as e:
                    await self._fail(item, f"Cannot read file: {e}", None)
                    return
                if not decision.accepted:
                    logger.info("Skipping duplicate %s", item.path)
                    self._state.remove_item_by_id(item.id)
                    self._state.increment_skipped()
                    return
                file_hash = decision.hash
                if self._state.get("is_stopped"):
                    await self._release(file_hash)
                    return

            self._state.update_item_status(item.id, ItemStatus.PROCESSING)
            self._state.update(current_item=item.source_file)

            try:
                outcome = await self._processor.process(item.source_file, file_hash)
            except (ItemProcessingError, PersistenceError) as e:
                await self._fail(item, str(e), file_hash)
                return
            except Exception as e:
                logger.exception("Unexpected error processing %s", item.path)
                await self._fail(item, f"Unexpected error: {e}", file_hash)
                return

            if outcome.status == ProcessStatus.STOPPED:
                self._state.update_item_status(item.id, ItemStatus.PENDING)
                await self._release(file_hash)
                return

            self._state.update_item_status(item.id, ItemStatus.COMPLETED)
            await self._trash_source(item.source_file)
        finally:
            set_item_context(None)

    async def _fail(self, item: QueueItem, error: str, file_hash: str | None) -> None:
        logger.error("Failed to process %s: %s", item.path, error)
        self._state.update_item_status(item.id, ItemStatus.FAILED, error)
        await self._release(file_hash)
        if self._notifier:
            self._notifier.notify(f"Failed to process {item.source_file.name}: {error}", "error")

    async def _release(self, file_hash: str | None) -> None:
        if file_hash is None:
            return
        try:
            await self._fingerprinter.release(file_hash)
        except OSError as e:
            logger.warning("Could not release dedup claim %s: %s", file_hash[:12], e)

    async def _trash_source(self, file: FileRef) -> None:
        try:
            await self._files.trash(file.path)
        except OSError as e:
            logger.warning("Could not trash processed source %s: %s", file.path, e)

    # --- Control ---

    async def pause(self) -> None:
        """Suspend after the in-flight item; nothing is cleared."""
        self._state.update(is_paused=True, is_processing=False)
        logger.info("Pause requested")

    async def resume(self) -> None:
        """Clear pause and stop, then continue with the Pending items."""
        self._state.update(is_paused=False, is_stopped=False)
        if self._loop_active:
            self._state.update(is_processing=True)
        elif self._state.has_pending():
            self._start()
        logger.info("Resume requested")

    async def stop(self) -> None:
        """Stop at the next checkpoint; not-yet-finished items stay Pending."""
        self._state.update(is_stopped=True, is_processing=False, is_paused=False)
        logger.info("Stop requested")

    async def clear(self) -> None:
        """Reset the whole status to defaults."""
        self._state.reset()

    async def remove_item(self, path: str) -> bool:
        return self._state.remove_item(path)

    async def wait_idle(self) -> None:
        """Wait until the worker task has exited."""
        while self._task is not None and not self._task.done():
            await asyncio.shield(self._task)
