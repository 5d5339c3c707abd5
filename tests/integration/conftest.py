# tests/integration/conftest.py — v1
"""Shared fixtures for integration tests.

The whole application runs for real (JSON data file, local vault, queue,
stages); only the LLM providers and the OCR engine are replaced by
in-process fakes.
"""

from __future__ import annotations

import logging
from typing import Any

import pytest
from pydantic import BaseModel

from visionrecall.llm.base_client import BaseLLMClient
from visionrecall.llm.models import LLMResponse, Message
from visionrecall.ocr.base_engine import BaseOCREngine

logger = logging.getLogger(__name__)


class MockLLMClient(BaseLLMClient):
    """Mock LLM client for integration testing without real LLM services.

    Queued responses are consumed first, then the default is returned.
    """

    def __init__(self, default_response: str = "mock response"):
        self._default_response = default_response
        self._response_queue: list[str] = []
        self.calls: list[dict[str, Any]] = []

    def set_responses(self, *responses: str) -> None:
        self._response_queue = list(responses)

    def set_default(self, response: str) -> None:
        self._default_response = response

    def _next(self) -> str:
        return self._response_queue.pop(0) if self._response_queue else self._default_response

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 500,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        content = self._next()
        self.calls.append({
            "messages": messages, "system": system,
            "max_tokens": max_tokens, "temperature": temperature,
            "response_format": response_format,
        })
        return LLMResponse(
            content=content, input_tokens=50, output_tokens=len(content) // 4,
            model="mock-model", provider="mock", latency_ms=10,
        )

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list,
        system: str | None = None,
        max_tokens: int = 300,
    ) -> LLMResponse:
        content = self._next()
        self.calls.append({"messages": messages, "images": images, "system": system})
        return LLMResponse(
            content=content, input_tokens=100, output_tokens=len(content) // 4,
            model="mock-vision", provider="mock", latency_ms=15,
        )

    @property
    def supports_vision(self) -> bool:
        return True

    @property
    def provider_name(self) -> str:
        return "mock"


class MockOCREngine(BaseOCREngine):
    """OCR engine returning a fixed text and tracking its lifecycle."""

    def __init__(self, text: str = "Quarterly report attached, please review.") -> None:
        self.text = text
        self._language: str | None = None
        self.initializations: list[str] = []
        self.terminated = False

    @property
    def language(self) -> str | None:
        return self._language

    async def recognize(self, image: bytes) -> str:
        return self.text

    async def reinitialize(self, language: str) -> None:
        self._language = language
        self.initializations.append(language)

    async def terminate(self) -> None:
        self._language = None
        self.terminated = True


@pytest.fixture
def vision_client() -> MockLLMClient:
    return MockLLMClient("A screenshot of an email about the quarterly report.")


@pytest.fixture
def text_client() -> MockLLMClient:
    return MockLLMClient()


@pytest.fixture
def ocr_engine() -> MockOCREngine:
    return MockOCREngine()
