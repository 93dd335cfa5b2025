"""
ContextForge — Provider Adapters

Canonical chat types and one adapter per provider family.
"""

from .anthropic_provider import AnthropicAdapter
from .base import (
    ChatMessage,
    FinishReason,
    FunctionCall,
    FunctionDefinition,
    GenerationConfig,
    GenerationResult,
    MessageRole,
    ProviderAdapter,
    StreamingChunk,
    Usage,
)
from .custom_endpoint import CustomEndpoint, CustomEndpointAdapter
from .factory import CUSTOM_PROVIDER, create_adapter, normalize_provider, supported_providers
from .gemini_provider import GeminiAdapter
from .openai_provider import OpenAIAdapter

__all__ = [
    # Canonical types
    "ChatMessage",
    "MessageRole",
    "FunctionCall",
    "FunctionDefinition",
    "GenerationConfig",
    "GenerationResult",
    "FinishReason",
    "StreamingChunk",
    "Usage",
    # Adapters
    "ProviderAdapter",
    "OpenAIAdapter",
    "AnthropicAdapter",
    "GeminiAdapter",
    "CustomEndpoint",
    "CustomEndpointAdapter",
    # Lookup table
    "CUSTOM_PROVIDER",
    "create_adapter",
    "normalize_provider",
    "supported_providers",
]
