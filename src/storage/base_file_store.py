# src/storage/base_file_store.py — v1
"""Abstract file store interface over the vault."""

from __future__ import annotations

from abc import ABC, abstractmethod

from visionrecall.storage.models import FileRef


class BaseFileStore(ABC):
    """Unified interface for vault storage backends.

    Paths are vault-relative strings; absolute paths are accepted as is.
    """

    @abstractmethod
    async def read_bytes(self, path: str) -> bytes:
        """Read raw file content."""

    @abstractmethod
    async def read_text(self, path: str) -> str:
        """Read UTF-8 file content."""

    @abstractmethod
    async def write_bytes(self, path: str, content: bytes) -> FileRef:
        """Create or replace a file, creating parent folders."""

    @abstractmethod
    async def write_text(self, path: str, content: str) -> FileRef:
        """Create or replace a UTF-8 text file, creating parent folders."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if path exists."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove a file permanently (missing files are ignored)."""

    @abstractmethod
    async def trash(self, path: str) -> None:
        """Move a file to the store's trash."""

    @abstractmethod
    async def copy(self, src: str, dst: str) -> FileRef:
        """Copy a file."""

    @abstractmethod
    async def ref(self, path: str) -> FileRef:
        """Stat a file into a FileRef."""

    @abstractmethod
    async def list_files(self, folder: str) -> list[FileRef]:
        """List regular files directly inside a folder, sorted by name."""
