"""
ContextForge — Model Registry

Static catalog of providers and models with cost, context-window and
formatting-preference metadata.
"""

from .catalog import DEFAULT_MODEL, DEFAULT_MODELS, DEFAULT_TRIMMING_MODEL
from .models import FormatPreferences, ModelDescriptor, ModelTier, SpecialTokens
from .registry import ModelRegistry, get_model_registry, reset_model_registry

__all__ = [
    "ModelDescriptor",
    "SpecialTokens",
    "FormatPreferences",
    "ModelTier",
    "ModelRegistry",
    "get_model_registry",
    "reset_model_registry",
    "DEFAULT_MODELS",
    "DEFAULT_MODEL",
    "DEFAULT_TRIMMING_MODEL",
]
