# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides settings rooted in a temp vault, an in-memory KV blob, mock LLM
clients and a mock OCR engine. No network, no tesseract binary.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from visionrecall.cache.kv_store import MemoryKV
from visionrecall.config.settings import Settings
from visionrecall.llm.models import LLMResponse
from visionrecall.storage.local_store import LocalFileStore

# Smallest byte strings the magic-byte sniffer recognizes.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x01" * 16
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x02" * 16


# === FIXTURES: Configuration and storage ===


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    path = tmp_path / "vault"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path, vault: Path) -> Settings:
    """Settings isolated from any .env file, with no pacing delays."""
    return Settings(
        _env_file=None,
        vault_root=vault,
        data_file=tmp_path / "data.json",
        inter_item_delay_s=0,
        stage_timeout_s=5,
    )


@pytest.fixture
def file_store(vault: Path) -> LocalFileStore:
    return LocalFileStore(vault)


@pytest.fixture
def memory_kv() -> MemoryKV:
    return MemoryKV()


# === FIXTURES: Mock collaborators ===


@pytest.fixture
def mock_llm_client() -> AsyncMock:
    """Mock LLM client returning canned responses."""
    client = AsyncMock()
    client.complete.return_value = LLMResponse(
        content='{"title": "Mock title", "tags": ["alpha", "beta"]}',
        input_tokens=100,
        output_tokens=50,
        model="mock-model",
        provider="mock",
        latency_ms=100,
    )
    client.complete_with_vision.return_value = LLMResponse(
        content="A web page showing an article.",
        input_tokens=500,
        output_tokens=50,
        model="mock-vision",
        provider="mock",
        latency_ms=200,
    )
    client.supports_vision = True
    client.provider_name = "mock"
    return client


@pytest.fixture
def mock_ocr_engine() -> MagicMock:
    """Mock OCR engine already initialized for English."""
    engine = MagicMock()
    engine.language = "eng"
    engine.recognize = AsyncMock(return_value="Hello world, this is screenshot text.")
    engine.reinitialize = AsyncMock()
    engine.terminate = AsyncMock()
    return engine


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG_BYTES
