# src/cache/kv_store.py — v1
"""Persistent key-value blob store.

The whole application state (fingerprint records, known hashes, result
entries, runtime config) lives in one JSON blob. Each owner reads and
writes its own top-level section through merge(), which serializes the
read-modify-write cycle so owners never clobber each other's sections.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable

logger = logging.getLogger(__name__)

_SET_TYPE = "Set"


def encode_set(values: Iterable[str]) -> dict[str, Any]:
    """Encode a set in the tagged form used by the persisted blob."""
    return {"__type": _SET_TYPE, "values": sorted(values)}


def decode_set(raw: Any) -> set[str]:
    """Decode a tagged set; plain lists are accepted as well."""
    if isinstance(raw, dict) and raw.get("__type") == _SET_TYPE:
        return set(raw.get("values") or [])
    if isinstance(raw, list):
        return set(raw)
    return set()


class BasePersistentKV(ABC):
    """Load/save interface for the application blob."""

    def __init__(self) -> None:
        self._merge_lock = asyncio.Lock()

    @abstractmethod
    async def load(self) -> dict[str, Any]:
        """Return the full blob ({} when nothing was saved yet)."""

    @abstractmethod
    async def save(self, blob: dict[str, Any]) -> None:
        """Replace the full blob."""

    async def merge(self, sections: dict[str, Any]) -> None:
        """Overwrite the given top-level sections, keeping all others."""
        async with self._merge_lock:
            blob = await self.load()
            blob.update(sections)
            await self.save(blob)


class MemoryKV(BasePersistentKV):
    """In-process store, used by tests and dry runs."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__()
        self._blob: dict[str, Any] = copy.deepcopy(initial or {})
        self.save_count = 0

    async def load(self) -> dict[str, Any]:
        return copy.deepcopy(self._blob)

    async def save(self, blob: dict[str, Any]) -> None:
        self._blob = copy.deepcopy(blob)
        self.save_count += 1


class JsonFileKV(BasePersistentKV):
    """Blob persisted as one JSON file, replaced atomically on save."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._read)

    async def save(self, blob: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, blob)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            backup = self._path.with_suffix(self._path.suffix + ".corrupt")
            logger.warning(
                "Data file %s is not valid JSON (%s); moved to %s",
                self._path, e, backup,
            )
            os.replace(self._path, backup)
            return {}
        if not isinstance(data, dict):
            logger.warning("Data file %s does not hold an object, ignoring", self._path)
            return {}
        return data

    def _write(self, blob: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(blob, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self._path)
