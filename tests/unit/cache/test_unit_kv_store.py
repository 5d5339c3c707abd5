# tests/unit/cache/test_unit_kv_store.py — v1
"""Tests for cache/kv_store.py — tagged sets, memory and JSON file blobs."""

from __future__ import annotations

import json

import pytest

from visionrecall.cache.kv_store import JsonFileKV, MemoryKV, decode_set, encode_set


class TestSetEncoding:
    def test_encode_sorted(self):
        assert encode_set({"b", "a"}) == {"__type": "Set", "values": ["a", "b"]}

    def test_decode_tagged(self):
        assert decode_set({"__type": "Set", "values": ["x", "y"]}) == {"x", "y"}

    def test_decode_plain_list(self):
        assert decode_set(["x", "x"]) == {"x"}

    def test_decode_garbage(self):
        assert decode_set(None) == set()
        assert decode_set({"values": ["x"]}) == set()


class TestMemoryKV:
    @pytest.mark.asyncio
    async def test_load_returns_copy(self):
        kv = MemoryKV({"a": {"n": 1}})
        blob = await kv.load()
        blob["a"]["n"] = 2
        assert (await kv.load())["a"]["n"] == 1

    @pytest.mark.asyncio
    async def test_merge_keeps_other_sections(self):
        kv = MemoryKV({"a": 1, "b": 2})
        await kv.merge({"b": 3, "c": 4})
        assert await kv.load() == {"a": 1, "b": 3, "c": 4}
        assert kv.save_count == 1


class TestJsonFileKV:
    @pytest.mark.asyncio
    async def test_missing_file_is_empty(self, tmp_path):
        kv = JsonFileKV(tmp_path / "data.json")
        assert await kv.load() == {}

    @pytest.mark.asyncio
    async def test_save_and_reload(self, tmp_path):
        path = tmp_path / "nested" / "data.json"
        kv = JsonFileKV(path)
        await kv.save({"config": {"x": 1}})
        assert json.loads(path.read_text(encoding="utf-8")) == {"config": {"x": 1}}
        assert await JsonFileKV(path).load() == {"config": {"x": 1}}
        assert not path.with_suffix(".json.tmp").exists()

    @pytest.mark.asyncio
    async def test_merge_sections(self, tmp_path):
        kv = JsonFileKV(tmp_path / "data.json")
        await kv.merge({"a": 1})
        await kv.merge({"b": 2})
        assert await kv.load() == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_corrupt_file_moved_aside(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{not json", encoding="utf-8")
        kv = JsonFileKV(path)
        assert await kv.load() == {}
        assert (tmp_path / "data.json.corrupt").exists()
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_non_object_ignored(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert await JsonFileKV(path).load() == {}
