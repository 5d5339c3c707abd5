# src/llm/base_client.py — v1
"""Abstract LLM client interface.

The pipeline makes two kinds of calls. The vision stage sends one prompt
with one screenshot under a small token budget; the notes and tags stages
send plain text prompts, the tags stage with a JSON schema the answer must
follow. Adapters report a budget cut-off through LLMResponse.truncated.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from visionrecall.llm.models import ImageInput, LLMResponse, Message

DEFAULT_TEXT_MAX_TOKENS = 500
DEFAULT_VISION_MAX_TOKENS = 300


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = DEFAULT_TEXT_MAX_TOKENS,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        """Text completion.

        With response_format the provider is asked for JSON matching the
        model's schema; callers still parse defensively.
        """

    @abstractmethod
    async def complete_with_vision(
        self,
        messages: list[Message],
        images: list[ImageInput],
        system: str | None = None,
        max_tokens: int = DEFAULT_VISION_MAX_TOKENS,
    ) -> LLMResponse:
        """User text plus inline images in a single user turn."""

    @property
    @abstractmethod
    def supports_vision(self) -> bool:
        """Whether the configured model can read images."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, anthropic, ollama)."""

    def __repr__(self) -> str:
        model = getattr(self, "_model", "?")
        return f"{type(self).__name__}(provider={self.provider_name!r}, model={model!r})"
