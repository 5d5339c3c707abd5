# src/pipeline/stages/ocr_stage.py — v1
"""OCR stage: recognize text, then clean and validate it.

Engine errors fail the item. Text that is too short, too long or mostly
noise is not an error: the stage succeeds with an empty string and the
later stages work from the vision analysis alone.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from visionrecall.ocr.validation import check_ocr_text, clean_ocr_text
from visionrecall.pipeline.stages.base_stage import (
    BaseStage,
    ItemContext,
    StageResult,
    StageTimeoutError,
    StopCheck,
)

if TYPE_CHECKING:
    from visionrecall.ocr.base_engine import BaseOCREngine

logger = logging.getLogger(__name__)


class OCRStage(BaseStage):
    """Run the OCR engine on the item image."""

    def __init__(
        self,
        engine: BaseOCREngine,
        is_stopped: StopCheck,
        language: str = "eng",
        min_length: int = 5,
        max_length: int = 5000,
        min_valid_ratio: float = 0.8,
        detect_language: bool = True,
        timeout: float | None = None,
    ) -> None:
        super().__init__(is_stopped, timeout)
        self._engine = engine
        self._language = language
        self._min_length = min_length
        self._max_length = max_length
        self._min_valid_ratio = min_valid_ratio
        self._detect_language = detect_language

    @property
    def name(self) -> str:
        return "ocr"

    async def run(self, ctx: ItemContext) -> StageResult:
        try:
            if self._engine.language != self._language:
                logger.info("Initializing OCR engine for language '%s'", self._language)
                await self._bounded(self._engine.reinitialize(self._language))
                if self.stopped():
                    return StageResult.stopped()
            raw = await self._bounded(self._engine.recognize(ctx.image))
        except StageTimeoutError as e:
            return StageResult.failed(str(e))
        except Exception as e:
            logger.error("OCR engine error for %s: %s", ctx.file.path, e)
            return StageResult.failed(f"OCR failed: {e}")

        if self.stopped():
            return StageResult.stopped()

        cleaned = clean_ocr_text(raw or "", self._language)
        valid = check_ocr_text(
            cleaned,
            self._min_length,
            self._max_length,
            self._min_valid_ratio,
            detect=self._detect_language,
        )
        if valid is None:
            logger.info("No usable OCR text in %s", ctx.file.path)
            return StageResult.ok("")
        logger.debug("OCR extracted %d characters", len(valid))
        return StageResult.ok(valid)
