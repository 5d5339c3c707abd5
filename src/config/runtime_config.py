# src/config/runtime_config.py — v1
"""User-toggled runtime configuration persisted in the KV blob.

Unlike Settings (deployment-level, read once from .env), these values are
edited while the application runs and are stored under the "config" key of
the persistent blob with camelCase keys for compatibility with existing
data files.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from visionrecall.cache.kv_store import BasePersistentKV

logger = logging.getLogger(__name__)

MIN_POLLING_INTERVAL_S = 30
DEFAULT_POLLING_INTERVAL_S = 300

CONFIG_KEY = "config"


class RuntimeConfig(BaseModel):
    """Feature toggles and prompt overrides."""

    model_config = ConfigDict(populate_by_name=True)

    enable_auto_intake_folder_processing: bool = Field(
        default=False, alias="enableAutoIntakeFolderProcessing"
    )
    enable_periodic_intake_folder_processing: bool = Field(
        default=False, alias="enablePeriodicIntakeFolderProcessing"
    )
    intake_folder_polling_interval: int = Field(
        default=DEFAULT_POLLING_INTERVAL_S, alias="intakeFolderPollingInterval"
    )
    vision_llm_prompt: str = Field(default="", alias="visionLLMPrompt")
    notes_llm_prompt: str = Field(default="", alias="notesLLMPrompt")
    enable_category_detection: bool = Field(
        default=True, alias="enableCategoryDetection"
    )

    @field_validator("intake_folder_polling_interval")
    @classmethod
    def validate_polling_interval(cls, v: int) -> int:  # noqa: N805
        if v < MIN_POLLING_INTERVAL_S:
            raise ValueError(
                f"intakeFolderPollingInterval must be >= {MIN_POLLING_INTERVAL_S}s"
            )
        return v

    def to_blob(self) -> dict[str, Any]:
        """Serialize with the persisted camelCase keys."""
        return self.model_dump(by_alias=True)


async def load_runtime_config(kv: BasePersistentKV) -> RuntimeConfig:
    """Read the runtime config section, falling back to defaults.

    An invalid stored section is logged and replaced by defaults rather
    than blocking startup.
    """
    blob = await kv.load()
    raw = blob.get(CONFIG_KEY) or {}
    try:
        return RuntimeConfig.model_validate(raw)
    except ValueError as e:
        logger.warning("Invalid stored runtime config, using defaults: %s", e)
        return RuntimeConfig()


async def save_runtime_config(kv: BasePersistentKV, config: RuntimeConfig) -> None:
    """Persist the runtime config section."""
    await kv.merge({CONFIG_KEY: config.to_blob()})
