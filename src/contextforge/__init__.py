"""
ContextForge — Multi-Provider Generation & Optimization Engine

Chat generation across OpenAI, Anthropic, Gemini and OpenAI-compatible
endpoints, token/cost estimation, budget-driven content optimization,
model recommendations and concurrent model comparison.
"""

__version__ = "1.0.0"

from .engine import ContextForgeEngine
from .errors import (
    ConfigurationError,
    ContextForgeError,
    ProviderError,
    ProviderNotInitializedError,
    UnsupportedModelError,
    UnsupportedProviderError,
)

__all__ = [
    "__version__",
    "ContextForgeEngine",
    "ContextForgeError",
    "ConfigurationError",
    "ProviderError",
    "ProviderNotInitializedError",
    "UnsupportedModelError",
    "UnsupportedProviderError",
]
