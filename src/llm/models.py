# src/llm/models.py — v1
"""Request and response types shared by every LLM adapter.

A screenshot travels to the vision model as one ImageInput; adapters
only choose the wire shape (data URL, base64 block, raw base64 list).
"""

from __future__ import annotations

import base64
from typing import Any, Literal

from pydantic import BaseModel

ImageDetail = Literal["auto", "low", "high"]


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)


class ImageInput(BaseModel):
    """Screenshot payload for vision-enabled completions.

    detail is the resolution hint OpenAI-compatible endpoints understand;
    other providers ignore it.
    """

    data: bytes
    media_type: str = "image/png"
    detail: ImageDetail = "high"
    source_id: str | None = None

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_url(self) -> str:
        """Inline `data:` URI of the image."""
        return f"data:{self.media_type};base64,{self.b64}"


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider.

    truncated is set when the provider stopped because the token budget
    ran out, so the text may end mid-sentence.
    """

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str
    provider: str
    latency_ms: int = 0
    truncated: bool = False
    raw_response: Any = None

    @property
    def text(self) -> str:
        """Content without surrounding whitespace."""
        return (self.content or "").strip()

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens
