# src/cache/fingerprint.py — v1
"""Content fingerprinting for screenshot dedup.

Two levels: a cheap size/mtime match against the record cached for the
same path, then SHA-256 over the raw bytes checked against the global
known-hash set (catches renamed and copied duplicates).
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING

from visionrecall.cache.models import DedupDecision

if TYPE_CHECKING:
    from visionrecall.cache.dedup_store import DedupStore
    from visionrecall.storage.base_file_store import BaseFileStore
    from visionrecall.storage.models import FileRef

logger = logging.getLogger(__name__)


def compute_content_hash(data: bytes) -> str:
    """SHA-256 hex digest of raw file bytes."""
    return hashlib.sha256(data).hexdigest()


class ContentFingerprinter:
    """Decides whether an image still needs processing.

    Reading or hashing errors propagate as OSError; callers treat them as
    "do not process".
    """

    def __init__(self, store: DedupStore, files: BaseFileStore) -> None:
        self._store = store
        self._files = files

    async def check(self, file: FileRef, hash_only: bool = False) -> DedupDecision:
        """Run the dedup gate and claim the content when it is new.

        Args:
            file: File to check.
            hash_only: Skip the size/mtime shortcut and always hash. Used
                when timestamps are synthetic (uploads, clipboard pastes).

        Returns:
            DedupDecision; accepted=True at most once per distinct content.
        """
        if not hash_only and self._unchanged(file):
            logger.debug("Fast-path dedup hit for %s", file.path)
            return DedupDecision(accepted=False, fast_path=True)

        file_hash = await self.hash_file(file)
        accepted = self._store.claim(file.path, file.size, file.mtime_ms, file_hash)
        await self._store.persist()
        if not accepted:
            logger.info("Duplicate content for %s (hash %s)", file.path, file_hash[:12])
        return DedupDecision(accepted=accepted, hash=file_hash)

    async def should_process(self, file: FileRef, hash_only: bool = False) -> bool:
        """True when the file's content has not been processed before."""
        return (await self.check(file, hash_only=hash_only)).accepted

    async def is_processed(self, file: FileRef) -> bool:
        """Read-only variant of the gate: never records anything."""
        if self._unchanged(file):
            return True
        return self.has_hash(await self.hash_file(file))

    def has_hash(self, file_hash: str) -> bool:
        return self._store.has_hash(file_hash)

    async def release(self, file_hash: str) -> None:
        """Give back a claim whose item produced no result."""
        removed = self._store.release(file_hash)
        await self._store.persist()
        logger.debug("Released hash %s (%d records)", file_hash[:12], removed)

    async def hash_file(self, file: FileRef) -> str:
        data = await self._files.read_bytes(file.path)
        return compute_content_hash(data)

    def _unchanged(self, file: FileRef) -> bool:
        record = self._store.get_record(file.path)
        return record is not None and record.matches(file.size, file.mtime_ms)
