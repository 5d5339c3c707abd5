# src/pipeline/stages/vision_stage.py — v1
"""Vision stage: describe the screenshot with a vision-capable model."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from visionrecall.llm.models import ImageDetail, ImageInput, Message
from visionrecall.pipeline.prompts import vision_prompt
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


class VisionStage(BaseStage):
    """Ask the vision model for a description of the image.

    A missing or empty response fails the item.
    """

    def __init__(
        self,
        client: BaseLLMClient,
        config: Callable[[], RuntimeConfig],
        is_stopped: StopCheck,
        max_tokens: int = 300,
        language_modifier: str = "",
        detail: ImageDetail = "high",
        timeout: float | None = None,
    ) -> None:
        super().__init__(is_stopped, timeout)
        self._client = client
        self._config = config
        self._max_tokens = max_tokens
        self._detail = detail
        self._language_modifier = language_modifier

    @property
    def name(self) -> str:
        return "vision"

    async def run(self, ctx: ItemContext) -> StageResult:
        if not self._client.supports_vision:
            return StageResult.failed(
                f"Configured {self._client.provider_name} model cannot read images"
            )
        prompt = vision_prompt(self._config()) + self._language_modifier
        image = ImageInput(
            data=ctx.image,
            media_type=ctx.media_type,
            detail=self._detail,
            source_id=ctx.file.path,
        )
        try:
            response = await self._bounded(
                self._client.complete_with_vision(
                    messages=[Message.user(prompt)],
                    images=[image],
                    max_tokens=self._max_tokens,
                )
            )
        except StageTimeoutError as e:
            return StageResult.failed(str(e))
        except Exception as e:
            logger.error("Vision request failed for %s: %s", ctx.file.path, e)
            return StageResult.failed(f"Vision analysis failed: {e}")

        if self.stopped():
            return StageResult.stopped()

        text = response.text
        if not text:
            return StageResult.failed("Vision model returned no content")
        if response.truncated:
            logger.warning("Vision response cut off at %d tokens", self._max_tokens)
        logger.debug(
            "Vision response: %d chars, %d output tokens",
            len(text),
            response.output_tokens,
        )
        return StageResult.ok(text)
