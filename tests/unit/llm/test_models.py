# tests/unit/llm/test_models.py — v1
"""Tests for llm/models.py — LLM interface types."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from visionrecall.llm.models import ImageInput, LLMResponse, Message


class TestMessage:
    def test_all_roles(self):
        for role in ["user", "assistant", "system"]:
            assert Message(role=role, content="test").role == role

    def test_invalid_role(self):
        with pytest.raises(ValidationError):
            Message(role="tool", content="x")

    def test_user_shortcut(self):
        assert Message.user("hi") == Message(role="user", content="hi")


class TestImageInput:
    def test_defaults(self):
        img = ImageInput(data=b"\x89PNG")
        assert img.media_type == "image/png"
        assert img.source_id is None
        assert img.detail == "high"

    def test_encodings(self):
        img = ImageInput(data=b"abc", media_type="image/jpeg")
        assert img.b64 == "YWJj"
        assert img.data_url == "data:image/jpeg;base64,YWJj"

    def test_unknown_detail_rejected(self):
        with pytest.raises(ValidationError):
            ImageInput(data=b"abc", detail="ultra")


class TestLLMResponse:
    def test_defaults(self):
        r = LLMResponse(content="output", model="m", provider="p")
        assert r.input_tokens == 0
        assert r.raw_response is None
        assert not r.truncated

    def test_text_and_token_total(self):
        r = LLMResponse(
            content="  notes \n", model="m", provider="p", input_tokens=10, output_tokens=4
        )
        assert r.text == "notes"
        assert r.total_tokens == 14
