# src/ocr/tesseract_engine.py — v1
"""Tesseract OCR engine via pytesseract and Pillow.

pytesseract shells out to the tesseract binary, so every call runs in a
worker thread to keep the event loop responsive.
"""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from typing import Any

from visionrecall.ocr.base_engine import BaseOCREngine

logger = logging.getLogger(__name__)


class TesseractEngine(BaseOCREngine):
    """OCR engine backed by the tesseract binary."""

    def __init__(
        self,
        language: str | None = None,
        tesseract_cmd: str | None = None,
        config: str = "",
    ) -> None:
        self._language = language
        self._tesseract_cmd = tesseract_cmd
        self._config = config
        self._ready = False

    @property
    def language(self) -> str | None:
        return self._language if self._ready else None

    async def recognize(self, image: bytes) -> str:
        if not self._ready:
            await self.reinitialize(self._language or "eng")
        return await asyncio.to_thread(self._recognize_sync, image)

    async def reinitialize(self, language: str) -> None:
        await self.terminate()
        await asyncio.to_thread(self._check_language, language)
        self._language = language
        self._ready = True
        logger.info("Tesseract ready for language %s", language)

    async def terminate(self) -> None:
        if self._ready:
            logger.debug("Tesseract engine for %s terminated", self._language)
        self._ready = False

    def _pytesseract(self) -> Any:
        import pytesseract

        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd
        return pytesseract

    def _check_language(self, language: str) -> None:
        """Fail early when the traineddata for a language is not installed."""
        pytesseract = self._pytesseract()
        available = set(pytesseract.get_languages(config=self._config))
        missing = [code for code in language.split("+") if code not in available]
        if missing:
            raise RuntimeError(
                f"Tesseract language data not installed: {', '.join(missing)}"
            )

    def _recognize_sync(self, image: bytes) -> str:
        from PIL import Image

        pytesseract = self._pytesseract()
        with Image.open(BytesIO(image)) as img:
            return pytesseract.image_to_string(
                img, lang=self._language or "eng", config=self._config
            )
