# src/llm/adapters/openai_adapter.py — v1
"""OpenAI-compatible chat completions adapter implementing BaseLLMClient.

Uses the official openai SDK against any OpenAI-compatible base URL
(OpenAI, OpenRouter, LM Studio, vLLM). Supports vision and structured
outputs through json_schema response formats.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pydantic import BaseModel

from visionrecall.llm.base_client import (
    DEFAULT_TEXT_MAX_TOKENS,
    DEFAULT_VISION_MAX_TOKENS,
    BaseLLMClient,
)
from visionrecall.llm.models import ImageInput, LLMResponse, Message

logger = logging.getLogger(__name__)

_OPENROUTER_HEADERS = {
    "HTTP-Referer": "https://github.com/visionrecall/visionrecall",
    "X-Title": "VisionRecall",
}


class OpenAIAdapter(BaseLLMClient):
    """OpenAI-compatible adapter."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: str = "",
        base_url: str | None = None,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._base_url = base_url
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init AsyncOpenAI client (only on first API call)."""
        if self.__client is None:
            import openai

            headers = None
            if self._base_url and "openrouter" in self._base_url:
                headers = dict(_OPENROUTER_HEADERS)
            self.__client = openai.AsyncOpenAI(
                api_key=self._api_key or "not-needed",
                base_url=self._base_url,
                default_headers=headers,
            )
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = DEFAULT_TEXT_MAX_TOKENS,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})

        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": oai_messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if response_format is not None:
            kwargs["response_format"] = self._json_schema_format(response_format)

        return await self._create(kwargs)

    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = DEFAULT_VISION_MAX_TOKENS,
    ) -> LLMResponse:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})

        # Build multimodal content
        content_parts: list[dict[str, Any]] = []
        for m in messages:
            content_parts.append({"type": "text", "text": m.content})
        for img in images:
            content_parts.append({
                "type": "image_url",
                "image_url": {
                    "url": img.data_url,
                    "detail": img.detail,
                },
            })
        oai_messages.append({"role": "user", "content": content_parts})

        return await self._create(
            {"model": self._model, "messages": oai_messages, "max_tokens": max_tokens}
        )

    @property
    def supports_vision(self) -> bool:
        return True

    @property
    def provider_name(self) -> str:
        return "openai"

    # --- Internal helpers ---

    async def _create(self, kwargs: dict[str, Any]) -> LLMResponse:
        t0 = time.monotonic()
        resp = await self._client.chat.completions.create(**kwargs)
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        usage = resp.usage
        return LLMResponse(
            content=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            truncated=choice.finish_reason == "length",
            raw_response=resp,
        )

    @staticmethod
    def _json_schema_format(response_format: type[BaseModel]) -> dict[str, Any]:
        return {
            "type": "json_schema",
            "json_schema": {
                "name": response_format.__name__,
                "schema": response_format.model_json_schema(),
                "strict": True,
            },
        }
