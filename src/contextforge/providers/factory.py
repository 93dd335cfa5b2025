"""
Provider Adapter Table

Maps provider tags to adapter classes. The dispatcher looks adapters up
here; adding a provider family means adding one entry.
"""

import logging

from ..errors import UnsupportedProviderError
from .anthropic_provider import AnthropicAdapter
from .base import ProviderAdapter
from .gemini_provider import GeminiAdapter
from .openai_provider import OpenAIAdapter

logger = logging.getLogger(__name__)

# Tag used for user-registered OpenAI-compatible endpoints
CUSTOM_PROVIDER = "custom"

_ADAPTERS: dict[str, type[ProviderAdapter]] = {
    "openai": OpenAIAdapter,
    "anthropic": AnthropicAdapter,
    "gemini": GeminiAdapter,
}

_ALIASES: dict[str, str] = {
    "google": "gemini",
}


def supported_providers() -> list[str]:
    """Provider tags accepted by the dispatcher."""
    return [*_ADAPTERS, CUSTOM_PROVIDER]


def normalize_provider(provider: str) -> str:
    """
    Canonicalize a provider tag.

    Raises:
        UnsupportedProviderError: If no adapter is registered for the tag
    """
    tag = provider.lower().strip()
    tag = _ALIASES.get(tag, tag)
    if tag not in _ADAPTERS and tag != CUSTOM_PROVIDER:
        raise UnsupportedProviderError(provider, supported_providers())
    return tag


def create_adapter(
    provider: str,
    api_key: str,
    base_url: str | None = None,
    timeout: float = 60.0,
) -> ProviderAdapter:
    """
    Instantiate the adapter for a built-in provider family.

    Args:
        provider: Canonical provider tag
        api_key: Credential for the provider
        base_url: Optional base URL override
        timeout: Request timeout in seconds

    Returns:
        Provider adapter instance

    Raises:
        UnsupportedProviderError: If the tag has no built-in adapter
    """
    adapter_class = _ADAPTERS.get(provider)
    if adapter_class is None:
        raise UnsupportedProviderError(provider, supported_providers())

    adapter = adapter_class(api_key=api_key, base_url=base_url, timeout=timeout)
    logger.info(
        f"Created {provider} adapter",
        extra={"provider": provider, "base_url": base_url or "default", "timeout": timeout},
    )
    return adapter
