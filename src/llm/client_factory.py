# src/llm/client_factory.py — v1
"""Factory: instantiate LLM client from provider name.

Called by the application facade to build the vision and text clients
from Settings.
"""

from __future__ import annotations

import importlib
import logging

from visionrecall.config.settings import Settings
from visionrecall.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "visionrecall.llm.adapters.openai_adapter.OpenAIAdapter",
    "ollama": "visionrecall.llm.adapters.ollama_adapter.OllamaAdapter",
    "anthropic": "visionrecall.llm.adapters.anthropic_adapter.AnthropicAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (openai, ollama, anthropic).
        model: Model name (e.g. gpt-4o-mini).
        settings: Application settings (for API keys and base URLs).
        **kwargs: Additional provider-specific arguments.

    Returns:
        Configured BaseLLMClient instance.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[provider])

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model

    if settings is not None:
        if provider == "ollama":
            init_kwargs.setdefault("host", settings.ollama_base_url)
        else:
            init_kwargs.setdefault("api_key", settings.llm_api_key)
            if provider == "openai":
                init_kwargs.setdefault("base_url", settings.llm_base_url)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def create_clients(settings: Settings) -> tuple[BaseLLMClient, BaseLLMClient]:
    """Build the (vision, text) client pair configured in settings."""
    vision = create_llm_client(settings.llm_provider, settings.vision_model, settings)
    text = create_llm_client(settings.llm_provider, settings.text_model, settings)
    return vision, text


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
