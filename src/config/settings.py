# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: LLM access,
OCR behaviour, vault layout, queue pacing and logging. User-facing toggles
that change at runtime live in config/runtime_config.py instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_provider: Literal["openai", "ollama", "anthropic"] = "openai"
    llm_api_key: str = ""
    llm_base_url: str = "https://api.openai.com/v1"
    ollama_base_url: str = "http://localhost:11434"
    vision_model: str = "gpt-4o-mini"
    text_model: str = "gpt-4o-mini"
    llm_temperature: float = 0.2

    # Token budgets
    max_tokens: int = 500
    vision_max_tokens: int = 300
    vision_detail: Literal["auto", "low", "high"] = "high"
    tag_max_tokens: int = 500
    tag_max_attempts: int = 3

    # === Queue pacing ===
    inter_item_delay_s: float = 0.5
    stage_timeout_s: float = 300.0

    # === OCR ===
    ocr_language: str = "eng"
    ocr_min_length: int = 5
    ocr_max_length: int = 5000
    ocr_min_valid_ratio: float = 0.8
    ocr_detect_language: bool = True
    respond_in_ocr_language: bool = False

    # === Vault layout ===
    vault_root: Path = Path("~/VisionRecall")
    screenshots_folder: str = "VisionRecall/Screenshots"
    intake_folder: str = "VisionRecall/Intake"
    notes_folder: str = "VisionRecall/Notes"
    temp_folder: str = "VisionRecall/Temp"
    trash_folder: str = ".trash"

    # === Notes ===
    tag_prefix: str = "VisionRecall"
    include_metadata_in_note: bool = True
    truncate_ocr_text: int = 500
    truncate_vision_response: int = 500

    # === Dedup ===
    disable_duplicate_file_check: bool = False
    data_file: Path = Path("~/.visionrecall/data.json")
    fingerprint_retention_days: int = 0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5
    failure_log_file: Path | None = None

    # --- Validators ---

    @field_validator("tag_max_attempts")
    @classmethod
    def validate_tag_attempts(cls, v: int) -> int:  # noqa: N805
        """At least one tag/title attempt is always made."""
        if v < 1:
            raise ValueError("tag_max_attempts must be >= 1")
        return v

    @field_validator("inter_item_delay_s", "stage_timeout_s")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:  # noqa: N805
        if v < 0:
            raise ValueError("delays and timeouts must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.ocr_min_length >= self.ocr_max_length:
            errors.append("OCR_MIN_LENGTH must be < OCR_MAX_LENGTH")

        if not 0.0 <= self.ocr_min_valid_ratio <= 1.0:
            errors.append("OCR_MIN_VALID_RATIO must be within [0, 1]")

        folders = {
            self.screenshots_folder,
            self.intake_folder,
            self.notes_folder,
            self.temp_folder,
        }
        if len(folders) < 4:
            errors.append("Vault folders must be distinct")

        if self.fingerprint_retention_days < 0:
            errors.append("FINGERPRINT_RETENTION_DAYS must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def vault_path(self) -> Path:
        """Expanded vault root."""
        return self.vault_root.expanduser()

    @property
    def stage_timeout(self) -> float | None:
        """Per-stage timeout in seconds, None when disabled."""
        return self.stage_timeout_s or None

    def folder_path(self, folder: str) -> Path:
        """Absolute path of a vault-relative folder."""
        return self.vault_path / folder


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
