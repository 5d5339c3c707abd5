# src/queue/intake.py — v1
"""Intake folder discovery, periodic polling and raw image ingestion.

Discovery uses the read-only dedup check so that a scan never consumes
the one-time claim the queue's gate makes when the item actually runs.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import contextlib
import logging
import posixpath
import re
import time
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from visionrecall.config.runtime_config import MIN_POLLING_INTERVAL_S
from visionrecall.queue.models import ItemStatus

if TYPE_CHECKING:
    from visionrecall.cache.fingerprint import ContentFingerprinter
    from visionrecall.config.runtime_config import RuntimeConfig
    from visionrecall.config.settings import Settings
    from visionrecall.notify.notifier import BaseNotifier
    from visionrecall.queue.job_queue import JobQueue
    from visionrecall.queue.models import QueueItem
    from visionrecall.storage.base_file_store import BaseFileStore
    from visionrecall.storage.models import FileRef

logger = logging.getLogger(__name__)

MAX_TEMP_NAME_ATTEMPTS = 100
IMAGE_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "webp", "bmp"})

_DATA_URL_RE = re.compile(r"^data:image/([a-zA-Z0-9+.-]+);base64,")

# Leading bytes -> extension
_MAGIC_BYTES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"\xff\xd8\xff", "jpg"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
    (b"BM", "bmp"),
]

_MIME_EXTENSIONS = {"jpeg": "jpg", "svg+xml": "svg", "x-ms-bmp": "bmp"}


class UnsupportedImageError(ValueError):
    """Raised when ingested bytes are not a supported image."""


@dataclass
class ScanResult:
    """Outcome of one intake folder scan."""

    found: int = 0
    enqueued: int = 0
    already_processed: int = 0
    already_queued: int = 0
    errors: int = 0


def is_image_path(path: str) -> bool:
    _, ext = posixpath.splitext(path)
    return ext.lower().lstrip(".") in IMAGE_EXTENSIONS


def sniff_extension(data: bytes) -> str | None:
    """Image extension from magic bytes, None when unknown."""
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "webp"
    for magic, ext in _MAGIC_BYTES:
        if data.startswith(magic):
            return ext
    return None


def decode_image_payload(payload: str | bytes) -> tuple[bytes, str]:
    """Decode raw bytes, base64 or a data URL into (bytes, extension).

    Raises:
        UnsupportedImageError: Undecodable payload or unknown format.
    """
    mime_ext: str | None = None
    if isinstance(payload, str):
        match = _DATA_URL_RE.match(payload)
        if match:
            mime_ext = match.group(1).lower()
            payload = payload[match.end():]
        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UnsupportedImageError(f"Invalid base64 image payload: {e}") from e
    else:
        data = payload

    ext = sniff_extension(data)
    if ext is None and mime_ext is not None:
        ext = _MIME_EXTENSIONS.get(mime_ext, mime_ext)
    if ext is None or ext not in IMAGE_EXTENSIONS:
        raise UnsupportedImageError("Unsupported or unrecognized image format")
    return data, ext


class IntakeScanner:
    """Feed the queue from the intake folder and from uploaded bytes.

    Args:
        settings: Application settings (folders, dedup toggle).
        files: Vault file store.
        fingerprinter: Dedup gate, used read-only here.
        queue: Queue receiving discovered images.
        config: Callable returning the current runtime config.
        notifier: Optional sink for user-visible messages.
    """

    def __init__(
        self,
        settings: Settings,
        files: BaseFileStore,
        fingerprinter: ContentFingerprinter,
        queue: JobQueue,
        config: Callable[[], RuntimeConfig],
        notifier: BaseNotifier | None = None,
    ) -> None:
        self._settings = settings
        self._files = files
        self._fingerprinter = fingerprinter
        self._queue = queue
        self._config = config
        self._notifier = notifier
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def scan(self) -> ScanResult:
        """Enqueue every new image of the intake folder in one batch."""
        result = ScanResult()
        queued = self._queued_paths()
        to_enqueue: list[FileRef] = []

        for ref in await self._files.list_files(self._settings.intake_folder):
            if ref.extension not in IMAGE_EXTENSIONS:
                continue
            result.found += 1
            if ref.path in queued:
                result.already_queued += 1
                continue
            try:
                if await self._seen(ref):
                    result.already_processed += 1
                    continue
            except OSError as e:
                logger.warning("Cannot fingerprint %s: %s", ref.path, e)
                result.errors += 1
                continue
            to_enqueue.append(ref)

        if to_enqueue:
            await self._queue.enqueue_many(to_enqueue)
        result.enqueued = len(to_enqueue)
        logger.info(
            "Intake scan: %d found, %d enqueued, %d already processed, %d already queued",
            result.found,
            result.enqueued,
            result.already_processed,
            result.already_queued,
        )
        return result

    async def handle_new_file(self, path: str) -> QueueItem | None:
        """Auto-intake hook for a file that just appeared in the vault."""
        if not self._config().enable_auto_intake_folder_processing:
            return None
        folder = self._settings.intake_folder.rstrip("/") + "/"
        if not path.startswith(folder) or not is_image_path(path):
            return None
        ref = await self._files.ref(path)
        if await self._seen(ref):
            logger.info("Skipping already processed image: %s", path)
            return None
        logger.info("Processing new image: %s", path)
        return await self._queue.enqueue(ref)

    async def ingest_bytes(
        self, payload: str | bytes, filename: str | None = None
    ) -> QueueItem | None:
        """Save an uploaded image into the temp folder and enqueue it.

        Args:
            payload: Raw bytes, base64 text or a data URL.
            filename: Target file name; generated from the time when absent.

        Returns:
            The queued item, or None when the content was already processed.

        Raises:
            UnsupportedImageError: Payload is not a supported image.
        """
        data, ext = decode_image_payload(payload)
        name = filename or f"screenshot-{int(time.time() * 1000)}.{ext}"
        path = await self._free_temp_path(name)
        ref = await self._files.write_bytes(path, data)

        # Upload timestamps are synthetic, so only the content hash counts.
        if not self._settings.disable_duplicate_file_check:
            file_hash = await self._fingerprinter.hash_file(ref)
            if self._fingerprinter.has_hash(file_hash):
                await self._files.delete(path)
                logger.info("Uploaded image already processed (hash %s)", file_hash[:12])
                if self._notifier:
                    self._notifier.notify("Screenshot already processed")
                return None
        return await self._queue.enqueue(ref)

    async def _free_temp_path(self, name: str) -> str:
        """Temp folder path for name, with a -n suffix while the name is taken."""
        folder = self._settings.temp_folder
        stem, ext = posixpath.splitext(name)
        candidate = name
        for n in range(1, MAX_TEMP_NAME_ATTEMPTS + 1):
            path = posixpath.join(folder, candidate)
            if not await self._files.exists(path):
                return path
            candidate = f"{stem}-{n}{ext}"
        return posixpath.join(folder, f"{stem}-{uuid.uuid4().hex[:8]}{ext}")

    # --- Polling ---

    def start_polling(self) -> bool:
        """Start periodic scans when enabled in the runtime config."""
        config = self._config()
        if not config.enable_periodic_intake_folder_processing:
            return False
        interval = config.intake_folder_polling_interval
        if interval < MIN_POLLING_INTERVAL_S:
            logger.warning(
                "Intake polling interval %ss is below %ss, polling disabled",
                interval,
                MIN_POLLING_INTERVAL_S,
            )
            return False
        if self.polling:
            return True
        self._poll_task = asyncio.get_running_loop().create_task(self._poll(interval))
        logger.info("Intake polling every %ss", interval)
        return True

    async def stop_polling(self) -> None:
        if self._poll_task is None:
            return
        self._poll_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._poll_task
        self._poll_task = None

    async def _poll(self, interval: float) -> None:
        while True:
            try:
                await self.scan()
            except OSError as e:
                logger.error("Intake scan failed: %s", e)
            await asyncio.sleep(interval)

    # --- Helpers ---

    async def _seen(self, ref: FileRef) -> bool:
        if self._settings.disable_duplicate_file_check:
            return False
        return await self._fingerprinter.is_processed(ref)

    def _queued_paths(self) -> set[str]:
        status = self._queue.state.snapshot()
        return {
            item.path
            for item in status.queue
            if item.status in (ItemStatus.PENDING, ItemStatus.PROCESSING)
        }
