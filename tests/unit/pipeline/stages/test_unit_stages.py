# tests/unit/pipeline/stages/test_unit_stages.py — v1
"""Tests for the OCR, vision, notes and tags stages."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from visionrecall.config.runtime_config import RuntimeConfig
from visionrecall.llm.models import LLMResponse
from visionrecall.pipeline.json_repair import TagsAndTitle
from visionrecall.pipeline.stages.base_stage import (
    BaseStage,
    ItemContext,
    StageResult,
    StageStatus,
    media_type_for,
)
from visionrecall.pipeline.stages.notes_stage import NotesStage
from visionrecall.pipeline.stages.ocr_stage import OCRStage
from visionrecall.pipeline.stages.tags_stage import TagsStage
from visionrecall.pipeline.stages.vision_stage import VisionStage
from visionrecall.storage.models import FileRef


def _resp(content: str) -> LLMResponse:
    return LLMResponse(content=content, model="m", provider="mock")


def _never() -> bool:
    return False


def _ctx(**kwargs) -> ItemContext:
    return ItemContext(
        file=FileRef(path="Intake/shot.png", size=3, mtime_ms=1),
        image=b"img",
        **kwargs,
    )


class _Flag:
    def __init__(self) -> None:
        self.value = False

    def __call__(self) -> bool:
        return self.value


class TestBaseStage:
    def test_media_types(self):
        assert media_type_for("JPG") == "image/jpeg"
        assert media_type_for(".webp") == "image/webp"
        assert media_type_for("tiff") == "image/png"

    @pytest.mark.asyncio
    async def test_execute_honors_stop_before_run(self):
        class _Boom(BaseStage):
            name = "boom"

            async def run(self, ctx):
                raise AssertionError("must not run")

        result = await _Boom(lambda: True).execute(_ctx())
        assert result.status == StageStatus.STOPPED

    @pytest.mark.asyncio
    async def test_timeout_becomes_failure(self):
        class _Slow(BaseStage):
            name = "slow"

            async def run(self, ctx):
                try:
                    await self._bounded(asyncio.sleep(1))
                except Exception as e:
                    return StageResult.failed(str(e))
                return StageResult.ok(None)

        result = await _Slow(_never, timeout=0.01).execute(_ctx())
        assert result.status == StageStatus.FAILED
        assert result.error == "slow timed out after 0.01s"


class TestOCRStage:
    @pytest.mark.asyncio
    async def test_valid_text(self, mock_ocr_engine):
        result = await OCRStage(mock_ocr_engine, _never).execute(_ctx())
        assert result.status == StageStatus.OK
        assert result.value == "Hello world, this is screenshot text."
        mock_ocr_engine.reinitialize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_short_text_becomes_empty(self, mock_ocr_engine):
        mock_ocr_engine.recognize.return_value = "abc"
        result = await OCRStage(mock_ocr_engine, _never).execute(_ctx())
        assert result.status == StageStatus.OK
        assert result.value == ""

    @pytest.mark.asyncio
    async def test_text_without_language_becomes_empty(self, mock_ocr_engine):
        mock_ocr_engine.recognize.return_value = "1234 5678 9012"
        result = await OCRStage(mock_ocr_engine, _never).execute(_ctx())
        assert result.value == ""

        result = await OCRStage(mock_ocr_engine, _never, detect_language=False).execute(_ctx())
        assert result.value == "1234 5678 9012"

    @pytest.mark.asyncio
    async def test_language_switch_reinitializes(self, mock_ocr_engine):
        await OCRStage(mock_ocr_engine, _never, language="deu").execute(_ctx())
        mock_ocr_engine.reinitialize.assert_awaited_once_with("deu")

    @pytest.mark.asyncio
    async def test_engine_error_fails(self, mock_ocr_engine):
        mock_ocr_engine.recognize.side_effect = RuntimeError("no tesseract")
        result = await OCRStage(mock_ocr_engine, _never).execute(_ctx())
        assert result.status == StageStatus.FAILED
        assert result.error == "OCR failed: no tesseract"

    @pytest.mark.asyncio
    async def test_stop_during_recognition(self, mock_ocr_engine):
        flag = _Flag()

        async def recognize(image):
            flag.value = True
            return "Hello world text"

        mock_ocr_engine.recognize.side_effect = recognize
        result = await OCRStage(mock_ocr_engine, flag).execute(_ctx())
        assert result.status == StageStatus.STOPPED


class TestVisionStage:
    @pytest.mark.asyncio
    async def test_describes_image(self, mock_llm_client):
        stage = VisionStage(mock_llm_client, RuntimeConfig, _never, language_modifier="[de]")
        result = await stage.execute(_ctx(media_type="image/jpeg"))
        assert result.value == "A web page showing an article."
        kwargs = mock_llm_client.complete_with_vision.call_args.kwargs
        assert kwargs["messages"][0].content.endswith("[de]")
        assert kwargs["images"][0].media_type == "image/jpeg"
        assert kwargs["images"][0].source_id == "Intake/shot.png"

    @pytest.mark.asyncio
    async def test_empty_response_fails(self, mock_llm_client):
        mock_llm_client.complete_with_vision.return_value = _resp("  ")
        result = await VisionStage(mock_llm_client, RuntimeConfig, _never).execute(_ctx())
        assert result.status == StageStatus.FAILED
        assert result.error == "Vision model returned no content"

    @pytest.mark.asyncio
    async def test_client_error_fails(self, mock_llm_client):
        mock_llm_client.complete_with_vision.side_effect = ConnectionError("down")
        result = await VisionStage(mock_llm_client, RuntimeConfig, _never).execute(_ctx())
        assert result.error == "Vision analysis failed: down"

    @pytest.mark.asyncio
    async def test_model_without_vision_fails_early(self, mock_llm_client):
        mock_llm_client.supports_vision = False
        result = await VisionStage(mock_llm_client, RuntimeConfig, _never).execute(_ctx())
        assert result.status == StageStatus.FAILED
        assert result.error == "Configured mock model cannot read images"
        mock_llm_client.complete_with_vision.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_detail_and_budget_forwarded(self, mock_llm_client):
        stage = VisionStage(mock_llm_client, RuntimeConfig, _never, max_tokens=120, detail="low")
        await stage.execute(_ctx())
        kwargs = mock_llm_client.complete_with_vision.call_args.kwargs
        assert kwargs["images"][0].detail == "low"
        assert kwargs["max_tokens"] == 120

    @pytest.mark.asyncio
    async def test_truncated_response_still_used(self, mock_llm_client, caplog):
        mock_llm_client.complete_with_vision.return_value = LLMResponse(
            content="A chart of", model="m", provider="mock", truncated=True
        )
        with caplog.at_level(logging.WARNING):
            result = await VisionStage(mock_llm_client, RuntimeConfig, _never).execute(_ctx())
        assert result.value == "A chart of"
        assert "cut off at 300 tokens" in caplog.text


class TestNotesStage:
    @pytest.mark.asyncio
    async def test_generates_notes(self, mock_llm_client):
        mock_llm_client.complete.return_value = _resp(" The notes. ")
        stage = NotesStage(mock_llm_client, RuntimeConfig, _never)
        result = await stage.execute(_ctx(ocr_text="words", vision_response="a photo"))
        assert result.value == "The notes."
        prompt = mock_llm_client.complete.call_args.kwargs["messages"][0].content
        assert "OCR text:\nwords" in prompt

    @pytest.mark.asyncio
    async def test_empty_notes_fail(self, mock_llm_client):
        mock_llm_client.complete.return_value = _resp("")
        result = await NotesStage(mock_llm_client, RuntimeConfig, _never).execute(_ctx())
        assert result.status == StageStatus.FAILED

    @pytest.mark.asyncio
    async def test_truncated_notes_kept(self, mock_llm_client, caplog):
        mock_llm_client.complete.return_value = LLMResponse(
            content="Half a note", model="m", provider="mock", truncated=True
        )
        with caplog.at_level(logging.WARNING):
            result = await NotesStage(mock_llm_client, RuntimeConfig, _never).execute(_ctx())
        assert result.value == "Half a note"
        assert "cut off at 500 tokens" in caplog.text


class TestTagsStage:
    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self, mock_llm_client):
        result = await TagsStage(mock_llm_client, _never).execute(_ctx(notes="n"))
        assert result.value == TagsAndTitle(title="Mock title", tags=["alpha", "beta"])
        assert mock_llm_client.complete.call_args.kwargs["response_format"] is TagsAndTitle

    @pytest.mark.asyncio
    async def test_retries_until_tags(self, mock_llm_client):
        mock_llm_client.complete.side_effect = [
            _resp('{"title": "Only title", "tags": []}'),
            _resp('{"title": "Both", "tags": ["x"]}'),
        ]
        result = await TagsStage(mock_llm_client, _never).execute(_ctx())
        assert result.value.title == "Both"
        assert mock_llm_client.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_keeps_best_title_when_tags_never_come(self, mock_llm_client):
        mock_llm_client.complete.side_effect = [
            _resp('{"title": "Only title", "tags": []}'),
            RuntimeError("rate limited"),
            _resp("garbage"),
        ]
        result = await TagsStage(mock_llm_client, _never, max_attempts=3).execute(_ctx())
        assert result.status == StageStatus.OK
        assert result.value == TagsAndTitle(title="Only title", tags=[])

    @pytest.mark.asyncio
    async def test_never_fails(self):
        client = AsyncMock()
        client.complete.side_effect = RuntimeError("down")
        result = await TagsStage(client, _never, max_attempts=2).execute(_ctx())
        assert result.status == StageStatus.OK
        assert result.value == TagsAndTitle(title="Untitled", tags=[])
        assert client.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_stop_between_attempts(self, mock_llm_client):
        flag = _Flag()

        async def complete(**kwargs):
            flag.value = True
            return _resp('{"title": "T", "tags": []}')

        mock_llm_client.complete.side_effect = complete
        result = await TagsStage(mock_llm_client, flag).execute(_ctx())
        assert result.status == StageStatus.STOPPED
        assert mock_llm_client.complete.await_count == 1
