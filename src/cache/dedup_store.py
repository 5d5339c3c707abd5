# src/cache/dedup_store.py — v1
"""Fingerprint records and the global known-hash set.

A hash stays in the known set only while a result entry or a live
fingerprint record references it. All mutations happen under one lock and
are written through to the KV blob by persist().
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Iterable

from visionrecall.cache.kv_store import decode_set, encode_set
from visionrecall.cache.models import FingerprintRecord

if TYPE_CHECKING:
    from visionrecall.cache.kv_store import BasePersistentKV

logger = logging.getLogger(__name__)

RECORDS_KEY = "processedFileRecords"
HASHES_KEY = "processedHashes"

_MS_PER_DAY = 86_400_000


def _now_ms() -> int:
    return int(time.time() * 1000)


class DedupStore:
    """Lock-guarded, write-through dedup state."""

    def __init__(self, kv: BasePersistentKV) -> None:
        self._kv = kv
        self._records: dict[str, FingerprintRecord] = {}
        self._hashes: set[str] = set()
        self._lock = threading.RLock()

    async def load(self) -> None:
        """Read records and hashes from the blob."""
        blob = await self._kv.load()
        now = _now_ms()
        records: dict[str, FingerprintRecord] = {}
        for path, raw in (blob.get(RECORDS_KEY) or {}).items():
            try:
                record = FingerprintRecord.model_validate(raw)
            except ValueError as e:
                logger.warning("Dropping malformed fingerprint record %s: %s", path, e)
                continue
            if record.recorded_at is None:
                record.recorded_at = now
            records[path] = record
        with self._lock:
            self._records = records
            self._hashes = decode_set(blob.get(HASHES_KEY))
        logger.debug(
            "Loaded %d fingerprint records, %d known hashes",
            len(records), len(self._hashes),
        )

    async def persist(self) -> None:
        """Write the current state through to the blob."""
        with self._lock:
            sections = {
                RECORDS_KEY: {
                    path: rec.model_dump(by_alias=True, exclude_none=True)
                    for path, rec in self._records.items()
                },
                HASHES_KEY: encode_set(self._hashes),
            }
        await self._kv.merge(sections)

    # --- Queries ---

    def get_record(self, path: str) -> FingerprintRecord | None:
        with self._lock:
            record = self._records.get(path)
            return record.model_copy() if record else None

    def has_hash(self, file_hash: str) -> bool:
        with self._lock:
            return file_hash in self._hashes

    @property
    def hashes(self) -> set[str]:
        with self._lock:
            return set(self._hashes)

    @property
    def record_count(self) -> int:
        with self._lock:
            return len(self._records)

    # --- Mutations ---

    def claim(self, path: str, size: int, mtime: int, file_hash: str) -> bool:
        """Record a file and report whether its content is new.

        The check and insert are one atomic step: for a given hash this
        returns True at most once until the hash is released.
        """
        record = FingerprintRecord(
            size=size, mtime=mtime, hash=file_hash, recorded_at=_now_ms()
        )
        with self._lock:
            self._records[path] = record
            if file_hash in self._hashes:
                return False
            self._hashes.add(file_hash)
            return True

    def release(self, file_hash: str) -> int:
        """Forget a hash and every record pointing at it.

        Returns the number of records removed.
        """
        with self._lock:
            self._hashes.discard(file_hash)
            stale = [p for p, r in self._records.items() if r.hash == file_hash]
            for path in stale:
                del self._records[path]
        return len(stale)

    def reconcile(self, referenced_hashes: Iterable[str]) -> int:
        """Drop hashes (and their records) no result entry references.

        Used at startup: a claim whose item never produced a result entry
        was interrupted and must not block reprocessing.
        """
        referenced = set(referenced_hashes)
        with self._lock:
            orphans = self._hashes - referenced
            for file_hash in orphans:
                self.release(file_hash)
            # Records may also point at hashes that were never in the set
            dangling = [
                p for p, r in self._records.items() if r.hash not in self._hashes
            ]
            for path in dangling:
                del self._records[path]
        if orphans or dangling:
            logger.info(
                "Reconciled dedup state: %d orphan hashes, %d dangling records",
                len(orphans), len(dangling),
            )
        return len(orphans)

    def evict_older_than(
        self,
        max_age_days: int,
        referenced_hashes: Iterable[str] = (),
        now_ms: int | None = None,
    ) -> int:
        """Retention cleanup: remove records older than max_age_days.

        Hashes that lose their last record are removed too, unless a result
        entry still references them. Returns the number of records evicted.
        """
        cutoff = (now_ms if now_ms is not None else _now_ms()) - max_age_days * _MS_PER_DAY
        referenced = set(referenced_hashes)
        with self._lock:
            expired = [
                p for p, r in self._records.items()
                if (r.recorded_at or 0) < cutoff
            ]
            for path in expired:
                del self._records[path]
            live = {r.hash for r in self._records.values()} | referenced
            self._hashes &= live
        logger.info("Evicted %d fingerprint records older than %d days", len(expired), max_age_days)
        return len(expired)
