# src/cache/models.py — v1
"""Dedup domain models: FingerprintRecord, DedupDecision."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class FingerprintRecord(BaseModel):
    """Cached size/mtime/hash of one processed path.

    Serialized as {size, mtime, hash[, recordedAt]} under the
    processedFileRecords section, keyed by path.
    """

    model_config = ConfigDict(populate_by_name=True)

    size: int
    mtime: int
    hash: str
    recorded_at: int | None = Field(default=None, alias="recordedAt")

    def matches(self, size: int, mtime: int) -> bool:
        """True when the file looks unchanged since it was recorded."""
        return self.size == size and self.mtime == mtime


class DedupDecision(BaseModel):
    """Outcome of a fingerprint check."""

    accepted: bool
    hash: str | None = None
    fast_path: bool = False
