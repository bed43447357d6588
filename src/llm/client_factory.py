# src/llm/client_factory.py — v3
"""Factory: instantiate an LLM client from a provider name."""

from __future__ import annotations

import importlib
import logging

from i18ndiff.config.settings import Settings
from i18ndiff.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Registry of provider name -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": "i18ndiff.llm.adapters.openai_adapter.OpenAIAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the adapter registered for ``provider``.

    Args:
        provider: Provider identifier.
        model: Model name.
        settings: Application settings (API key, endpoint, timeout).
        **kwargs: Additional adapter arguments.

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
        init_kwargs.setdefault("api_key", settings.llm_api_key)
        init_kwargs.setdefault("base_url", settings.llm_base_url)
        init_kwargs.setdefault("timeout_s", settings.llm_timeout_s)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def create_from_settings(settings: Settings) -> BaseLLMClient:
    """Build the client configured by ``llm_provider`` / ``llm_model``."""
    return create_llm_client(settings.llm_provider, settings.llm_model, settings=settings)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter (fully qualified class path)."""
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
