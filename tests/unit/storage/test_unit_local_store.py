# tests/unit/storage/test_unit_local_store.py — v1
"""Tests for storage/local_store.py — vault file operations."""

from __future__ import annotations

import pytest

from visionrecall.storage.local_store import LocalFileStore


class TestReadWrite:
    @pytest.mark.asyncio
    async def test_write_creates_parents_and_returns_ref(self, file_store, vault):
        ref = await file_store.write_bytes("a/b/c.png", b"12345")
        assert (vault / "a" / "b" / "c.png").read_bytes() == b"12345"
        assert ref.path == "a/b/c.png"
        assert ref.size == 5
        assert ref.mtime_ms > 0

    @pytest.mark.asyncio
    async def test_text_round_trip(self, file_store):
        await file_store.write_text("notes/n.md", "héllo")
        assert await file_store.read_text("notes/n.md") == "héllo"

    @pytest.mark.asyncio
    async def test_absolute_paths_pass_through(self, file_store, tmp_path):
        outside = tmp_path / "outside.bin"
        outside.write_bytes(b"x")
        assert await file_store.read_bytes(str(outside)) == b"x"

    @pytest.mark.asyncio
    async def test_delete_missing_is_ignored(self, file_store):
        await file_store.delete("nope.png")
        assert not await file_store.exists("nope.png")


class TestTrashAndCopy:
    @pytest.mark.asyncio
    async def test_trash_moves_file(self, file_store, vault):
        await file_store.write_bytes("in/a.png", b"1")
        await file_store.trash("in/a.png")
        assert not (vault / "in" / "a.png").exists()
        assert (vault / ".trash" / "a.png").read_bytes() == b"1"

    @pytest.mark.asyncio
    async def test_trash_name_clash_gets_suffix(self, file_store, vault):
        await file_store.write_bytes("in/a.png", b"1")
        await file_store.trash("in/a.png")
        await file_store.write_bytes("in/a.png", b"2")
        await file_store.trash("in/a.png")
        assert len(list((vault / ".trash").iterdir())) == 2

    @pytest.mark.asyncio
    async def test_trash_missing_raises(self, file_store):
        with pytest.raises(OSError):
            await file_store.trash("in/missing.png")

    @pytest.mark.asyncio
    async def test_copy(self, file_store):
        await file_store.write_bytes("in/a.png", b"data")
        ref = await file_store.copy("in/a.png", "out/deep/b.png")
        assert ref.size == 4
        assert await file_store.read_bytes("out/deep/b.png") == b"data"
        assert await file_store.exists("in/a.png")


class TestListFiles:
    @pytest.mark.asyncio
    async def test_sorted_files_only(self, file_store):
        await file_store.write_bytes("in/b.png", b"1")
        await file_store.write_bytes("in/a.jpg", b"1")
        await file_store.write_bytes("in/sub/c.png", b"1")
        refs = await file_store.list_files("in")
        assert [r.path for r in refs] == ["in/a.jpg", "in/b.png"]

    @pytest.mark.asyncio
    async def test_missing_folder(self, file_store):
        assert await file_store.list_files("nowhere") == []

    def test_custom_trash_folder(self, vault):
        store = LocalFileStore(vault, trash_folder="bin")
        assert store.base_path == vault
