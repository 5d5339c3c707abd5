# src/storage/local_store.py — v1
"""Local filesystem file store (default backend)."""

from __future__ import annotations

import asyncio
import logging
import shutil
import time
from pathlib import Path

from visionrecall.storage.base_file_store import BaseFileStore
from visionrecall.storage.models import FileRef

logger = logging.getLogger(__name__)


class LocalFileStore(BaseFileStore):
    """Read and write vault files on the local filesystem."""

    def __init__(self, base_path: str | Path, trash_folder: str = ".trash") -> None:
        """Initialize with the vault root.

        Args:
            base_path: Root directory for vault-relative paths.
            trash_folder: Vault-relative folder receiving trashed files.
        """
        self._base = Path(base_path).expanduser()
        self._trash = self._base / trash_folder

    @property
    def base_path(self) -> Path:
        return self._base

    def resolve(self, path: str) -> Path:
        """Resolve a path relative to the vault root."""
        return self._base / path

    async def read_bytes(self, path: str) -> bytes:
        return await asyncio.to_thread(self.resolve(path).read_bytes)

    async def read_text(self, path: str) -> str:
        return await asyncio.to_thread(self.resolve(path).read_text, encoding="utf-8")

    async def write_bytes(self, path: str, content: bytes) -> FileRef:
        p = self.resolve(path)
        await asyncio.to_thread(self._write, p, content)
        return await self.ref(path)

    async def write_text(self, path: str, content: str) -> FileRef:
        return await self.write_bytes(path, content.encode("utf-8"))

    async def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    async def delete(self, path: str) -> None:
        self.resolve(path).unlink(missing_ok=True)

    async def trash(self, path: str) -> None:
        """Move a file under the trash folder, suffixing on name clashes."""
        src = self.resolve(path)
        self._trash.mkdir(parents=True, exist_ok=True)
        dst = self._trash / src.name
        if dst.exists():
            dst = self._trash / f"{src.stem}-{int(time.time() * 1000)}{src.suffix}"
        await asyncio.to_thread(shutil.move, str(src), str(dst))
        logger.debug("Trashed %s -> %s", src, dst)

    async def copy(self, src: str, dst: str) -> FileRef:
        dst_path = self.resolve(dst)
        dst_path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(shutil.copy2, str(self.resolve(src)), str(dst_path))
        return await self.ref(dst)

    async def ref(self, path: str) -> FileRef:
        st = self.resolve(path).stat()
        return FileRef(path=path, size=st.st_size, mtime_ms=int(st.st_mtime * 1000))

    async def list_files(self, folder: str) -> list[FileRef]:
        p = self.resolve(folder)
        if not p.is_dir():
            return []
        refs: list[FileRef] = []
        for entry in sorted(p.iterdir()):
            if entry.is_file():
                rel = f"{folder.rstrip('/')}/{entry.name}" if folder else entry.name
                refs.append(await self.ref(rel))
        return refs

    @staticmethod
    def _write(p: Path, content: bytes) -> None:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(content)
