# src/storage/result_store.py — v1
"""Ordered, write-through store of ResultEntry records.

Kept in the "userData" section of the persistent blob as an id list (entry
order) plus an id -> entry map. Every mutation is saved immediately.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from visionrecall.storage.models import ResultEntry

if TYPE_CHECKING:
    from visionrecall.cache.kv_store import BasePersistentKV

logger = logging.getLogger(__name__)

USER_DATA_KEY = "userData"


class ResultStore:
    """Read-many/write-one map of processed screenshots."""

    def __init__(self, kv: BasePersistentKV) -> None:
        self._kv = kv
        self._order: list[str] = []
        self._entries: dict[str, ResultEntry] = {}
        self._lock = threading.RLock()

    async def load(self) -> None:
        blob = await self._kv.load()
        section = blob.get(USER_DATA_KEY) or {}
        order = section.get("list") if isinstance(section.get("list"), list) else []
        raw_map = section.get("map") if isinstance(section.get("map"), dict) else {}

        entries: dict[str, ResultEntry] = {}
        for entry_id, raw in raw_map.items():
            try:
                entries[entry_id] = ResultEntry.model_validate(raw)
            except ValueError as e:
                logger.warning("Dropping malformed result entry %s: %s", entry_id, e)
        with self._lock:
            self._order = [i for i in order if i in entries]
            self._order += [i for i in entries if i not in self._order]
            self._entries = entries
        logger.debug("Loaded %d result entries", len(entries))

    async def persist(self) -> None:
        with self._lock:
            section = {
                "list": list(self._order),
                "map": {i: self._entries[i].to_json_dict() for i in self._order},
            }
        await self._kv.merge({USER_DATA_KEY: section})

    # --- Queries ---

    def entries(self) -> list[ResultEntry]:
        with self._lock:
            return [self._entries[i].model_copy(deep=True) for i in self._order]

    def get(self, entry_id: str) -> ResultEntry | None:
        with self._lock:
            entry = self._entries.get(entry_id)
            return entry.model_copy(deep=True) if entry else None

    def find_by_hash(self, file_hash: str) -> list[ResultEntry]:
        with self._lock:
            return [
                self._entries[i].model_copy(deep=True)
                for i in self._order
                if self._entries[i].hash == file_hash
            ]

    def referenced_hashes(self) -> set[str]:
        with self._lock:
            return {e.hash for e in self._entries.values() if e.hash}

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    # --- Mutations ---

    async def add(self, entry: ResultEntry) -> None:
        """Insert or replace an entry, keeping its original position."""
        stored = entry.model_copy(update={"generated_notes": None}, deep=True)
        with self._lock:
            if stored.id not in self._entries:
                self._order.append(stored.id)
            self._entries[stored.id] = stored
        await self.persist()

    def discard(self, entry_id: str) -> None:
        """Forget an entry in memory only, after its write failed."""
        with self._lock:
            if self._entries.pop(entry_id, None) is not None:
                self._order.remove(entry_id)

    async def remove(self, entry_id: str) -> ResultEntry | None:
        with self._lock:
            entry = self._entries.pop(entry_id, None)
            if entry is None:
                return None
            self._order.remove(entry_id)
        await self.persist()
        return entry
