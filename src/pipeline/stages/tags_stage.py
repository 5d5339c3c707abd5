# src/pipeline/stages/tags_stage.py — v1
"""Tags stage: derive a title and up to five tags from the notes.

Asks for schema-constrained JSON, repairs whatever comes back, and retries
while the tag list is empty. This stage never fails the item: when every
attempt is unusable it yields the default title with no tags.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from visionrecall.llm.models import Message
from visionrecall.pipeline.json_repair import (
    DEFAULT_TAGS_AND_TITLE,
    TagsAndTitle,
    extract_tags_and_title,
)
from visionrecall.pipeline.prompts import build_tags_prompt
from visionrecall.pipeline.stages.base_stage import (
    BaseStage,
    ItemContext,
    StageResult,
    StopCheck,
)
from visionrecall.pipeline.tags import DEFAULT_TITLE

if TYPE_CHECKING:
    from visionrecall.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)


class TagsStage(BaseStage):
    """Produce a TagsAndTitle for the item."""

    def __init__(
        self,
        client: BaseLLMClient,
        is_stopped: StopCheck,
        max_tokens: int = 500,
        max_attempts: int = 3,
        temperature: float = 0.2,
        language_modifier: str = "",
        timeout: float | None = None,
    ) -> None:
        super().__init__(is_stopped, timeout)
        self._client = client
        self._max_tokens = max_tokens
        self._max_attempts = max(1, max_attempts)
        self._temperature = temperature
        self._language_modifier = language_modifier

    @property
    def name(self) -> str:
        return "tags"

    async def run(self, ctx: ItemContext) -> StageResult:
        prompt = build_tags_prompt(ctx.notes, self._language_modifier)
        best: TagsAndTitle | None = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                response = await self._bounded(
                    self._client.complete(
                        messages=[Message.user(prompt)],
                        max_tokens=self._max_tokens,
                        temperature=self._temperature,
                        response_format=TagsAndTitle,
                    )
                )
            except Exception as e:
                logger.warning(
                    "Tag request failed (attempt %d/%d): %s",
                    attempt,
                    self._max_attempts,
                    e,
                )
                response = None

            if self.stopped():
                return StageResult.stopped()
            if response is None:
                continue

            parsed = extract_tags_and_title(response.content)
            if parsed.tags:
                return StageResult.ok(parsed)
            if parsed.title != DEFAULT_TITLE:
                best = parsed
            logger.info(
                "No tags extracted (attempt %d/%d), retrying",
                attempt,
                self._max_attempts,
            )

        if best is not None:
            return StageResult.ok(best)
        logger.warning("Tag extraction exhausted, using default title")
        return StageResult.ok(DEFAULT_TAGS_AND_TITLE.model_copy(deep=True))
