# tests/unit/llm/adapters/test_unit_anthropic_adapter.py — v1
"""Tests for llm/adapters/anthropic_adapter.py — SDK client is mocked."""

from __future__ import annotations

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from visionrecall.llm.adapters.anthropic_adapter import AnthropicAdapter
from visionrecall.llm.models import ImageInput, Message
from visionrecall.pipeline.json_repair import TagsAndTitle


def _adapter(
    blocks: list, stop_reason: str = "end_turn"
) -> tuple[AnthropicAdapter, AsyncMock]:
    adapter = AnthropicAdapter(model="claude-test", api_key="k")
    create = AsyncMock(return_value=SimpleNamespace(
        content=blocks,
        usage=SimpleNamespace(input_tokens=5, output_tokens=3),
        model="claude-test",
        stop_reason=stop_reason,
    ))
    client = MagicMock()
    client.messages.create = create
    adapter._AnthropicAdapter__client = client
    return adapter, create


class TestAnthropicAdapter:
    @pytest.mark.asyncio
    async def test_text_completion(self):
        adapter, create = _adapter([SimpleNamespace(type="text", text="hello")])
        resp = await adapter.complete([Message(role="user", content="hi")], system="sys")
        assert resp.content == "hello"
        assert create.call_args.kwargs["system"] == "sys"
        assert "tools" not in create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_structured_output_via_tool(self):
        payload = {"title": "T", "tags": ["a"]}
        adapter, create = _adapter([SimpleNamespace(type="tool_use", input=payload)])
        resp = await adapter.complete(
            [Message(role="user", content="hi")], response_format=TagsAndTitle
        )
        assert json.loads(resp.content) == payload
        assert create.call_args.kwargs["tool_choice"]["name"] == "structured_output"

    @pytest.mark.asyncio
    async def test_vision_puts_image_first(self):
        adapter, create = _adapter([SimpleNamespace(type="text", text="desc")])
        await adapter.complete_with_vision(
            [Message(role="user", content="describe")],
            [ImageInput(data=b"abc", media_type="image/jpeg")],
        )
        blocks = create.call_args.kwargs["messages"][0]["content"]
        assert blocks[0]["source"]["media_type"] == "image/jpeg"
        assert blocks[0]["source"]["data"] == "YWJj"
        assert blocks[1] == {"type": "text", "text": "describe"}

    @pytest.mark.asyncio
    async def test_no_text_block(self):
        adapter, _ = _adapter([])
        resp = await adapter.complete([Message(role="user", content="hi")])
        assert resp.content == ""

    @pytest.mark.asyncio
    async def test_max_tokens_stop_marks_truncated(self):
        adapter, create = _adapter(
            [SimpleNamespace(type="text", text="partial")], stop_reason="max_tokens"
        )
        resp = await adapter.complete([Message.user("hi")])
        assert resp.truncated
        assert create.call_args.kwargs["max_tokens"] == 500
