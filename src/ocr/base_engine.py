# src/ocr/base_engine.py — v1
"""Abstract OCR engine interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseOCREngine(ABC):
    """Text recognition over raw image bytes."""

    @abstractmethod
    async def recognize(self, image: bytes) -> str:
        """Return the raw recognized text."""

    @abstractmethod
    async def reinitialize(self, language: str) -> None:
        """Tear down and recreate the engine for another language."""

    @abstractmethod
    async def terminate(self) -> None:
        """Release engine resources."""

    @property
    @abstractmethod
    def language(self) -> str | None:
        """Language the engine is currently set up for (None = not started)."""
