# src/pipeline/stages/notes_stage.py — v1
"""Notes stage: synthesize OCR text and vision analysis into notes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from visionrecall.llm.models import Message
from visionrecall.pipeline.prompts import build_notes_prompt
from visionrecall.pipeline.stages.base_stage import (
    BaseStage,
    ItemContext,
    StageResult,
    StageTimeoutError,
    StopCheck,
)

if TYPE_CHECKING:
    from visionrecall.config.runtime_config import RuntimeConfig
    from visionrecall.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)


class NotesStage(BaseStage):
    """Generate the note body with the text model."""

    def __init__(
        self,
        client: BaseLLMClient,
        config: Callable[[], RuntimeConfig],
        is_stopped: StopCheck,
        max_tokens: int = 500,
        temperature: float = 0.2,
        language_modifier: str = "",
        timeout: float | None = None,
    ) -> None:
        super().__init__(is_stopped, timeout)
        self._client = client
        self._config = config
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._language_modifier = language_modifier

    @property
    def name(self) -> str:
        return "notes"

    async def run(self, ctx: ItemContext) -> StageResult:
        prompt = build_notes_prompt(
            self._config(), ctx.ocr_text, ctx.vision_response, self._language_modifier
        )
        try:
            response = await self._bounded(
                self._client.complete(
                    messages=[Message.user(prompt)],
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                )
            )
        except StageTimeoutError as e:
            return StageResult.failed(str(e))
        except Exception as e:
            logger.error("Notes request failed for %s: %s", ctx.file.path, e)
            return StageResult.failed(f"Notes generation failed: {e}")

        if self.stopped():
            return StageResult.stopped()

        text = response.text
        if not text:
            return StageResult.failed("Text model returned no notes")
        if response.truncated:
            logger.warning("Notes for %s cut off at %d tokens", ctx.file.path, self._max_tokens)
        return StageResult.ok(text)
