# src/storage/entries.py — v1
"""Edits on processed screenshots: retag, delete, cleanup, export.

Keeps the three copies of an entry consistent: the result store, the
metadata JSON next to the stored image and the tag line of the note.
"""

from __future__ import annotations

import json
import logging
import re
from collections import Counter
from typing import TYPE_CHECKING, Any

from visionrecall.pipeline.tags import formatted_tag_string, sanitize_tags
from visionrecall.storage.result_store import USER_DATA_KEY

if TYPE_CHECKING:
    from visionrecall.cache.dedup_store import DedupStore
    from visionrecall.cache.kv_store import BasePersistentKV
    from visionrecall.storage.base_file_store import BaseFileStore
    from visionrecall.storage.models import ResultEntry
    from visionrecall.storage.result_store import ResultStore

logger = logging.getLogger(__name__)

_TAGS_LINE_RE = re.compile(r"^\*Tags:\*.*$", re.MULTILINE)


class EntryNotFoundError(KeyError):
    """No result entry with the given id."""


class InvalidImportError(ValueError):
    """Imported data is not a stored-data object."""


class EntryService:
    """Operations on stored result entries."""

    def __init__(
        self,
        results: ResultStore,
        dedup: DedupStore,
        files: BaseFileStore,
        kv: BasePersistentKV,
    ) -> None:
        self._results = results
        self._dedup = dedup
        self._files = files
        self._kv = kv

    def _require(self, entry_id: str) -> ResultEntry:
        entry = self._results.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    async def update_tags(self, entry_id: str, tags: list[str]) -> ResultEntry:
        """Replace the tags of an entry everywhere they are stored.

        Raises:
            EntryNotFoundError: Unknown entry id.
        """
        entry = self._require(entry_id)
        clean = sanitize_tags(tags)
        formatted = formatted_tag_string(clean)
        updated = entry.model_copy(
            update={"extracted_tags": clean, "formatted_tags": formatted}
        )
        await self._results.add(updated)
        await self._rewrite_metadata(updated)
        await self._rewrite_note_tags(updated)
        logger.info("Updated tags of %s: %s", entry_id, formatted or "(none)")
        return updated

    async def delete_entry(self, entry_id: str) -> ResultEntry:
        """Remove an entry, its dedup claim and its stored files.

        The note itself is kept. The content hash is only released when no
        other entry shares it.

        Raises:
            EntryNotFoundError: Unknown entry id.
        """
        entry = self._require(entry_id)
        await self._results.remove(entry_id)

        if entry.hash and entry.hash not in self._results.referenced_hashes():
            self._dedup.release(entry.hash)
            await self._dedup.persist()

        for path in (entry.metadata_path, entry.screenshot_storage_path):
            if not path or not await self._files.exists(path):
                continue
            try:
                await self._files.trash(path)
            except OSError as e:
                logger.warning("Could not trash %s: %s", path, e)
        logger.info("Deleted entry %s (%s)", entry_id, entry.title)
        return entry

    async def cleanup_fingerprints(self, max_age_days: int) -> int:
        """Evict fingerprint records older than max_age_days."""
        if max_age_days < 0:
            raise ValueError("max_age_days must be >= 0")
        evicted = self._dedup.evict_older_than(
            max_age_days, self._results.referenced_hashes()
        )
        await self._dedup.persist()
        return evicted

    async def export_data(self) -> dict[str, Any]:
        """Whole persisted blob (entries, config, dedup state)."""
        return await self._kv.load()

    async def import_data(self, data: Any) -> int:
        """Replace the whole persisted blob with previously exported data.

        The dedup and result stores are reloaded from the new blob.

        Returns:
            Number of result entries after the import.

        Raises:
            InvalidImportError: data is not an exported-data object.
        """
        if not isinstance(data, dict):
            raise InvalidImportError("Imported data must be a JSON object")
        section = data.get(USER_DATA_KEY)
        if section is not None and not isinstance(section, dict):
            raise InvalidImportError(f"'{USER_DATA_KEY}' must be an object")

        await self._kv.save(data)
        await self._dedup.load()
        await self._results.load()
        logger.info("Imported data: %d entries", len(self._results))
        return len(self._results)

    def tag_counts(self) -> dict[str, int]:
        """Tag usage across all entries, most used first."""
        counts = Counter(
            tag for entry in self._results.entries() for tag in entry.extracted_tags
        )
        return dict(counts.most_common())

    async def _rewrite_metadata(self, entry: ResultEntry) -> None:
        path = entry.metadata_path
        if not path or not await self._files.exists(path):
            logger.warning("Metadata file missing for %s", entry.id)
            return
        try:
            data = json.loads(await self._files.read_text(path))
        except (OSError, ValueError) as e:
            logger.warning("Cannot read metadata %s: %s", path, e)
            return
        data["extractedTags"] = entry.extracted_tags
        data["formattedTags"] = entry.formatted_tags
        await self._files.write_text(path, json.dumps(data, indent=2, ensure_ascii=False))

    async def _rewrite_note_tags(self, entry: ResultEntry) -> None:
        path = entry.note_path
        if not path or not await self._files.exists(path):
            return
        content = await self._files.read_text(path)
        updated, count = _TAGS_LINE_RE.subn(
            lambda _: f"*Tags:* {entry.formatted_tags}", content, count=1
        )
        if count:
            await self._files.write_text(path, updated)
