"""
ContextForge — Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config
from .schemas import (
    ContextForgeConfig,
    Environment,
    GenerationSettings,
    LogLevel,
    ObservabilityConfig,
    OptimizationSettings,
    ProviderConfig,
    ProvidersConfig,
    RegistryConfig,
    StorageBackend,
    StorageConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    # Main config
    "ContextForgeConfig",
    # Enums
    "Environment",
    "LogLevel",
    "StorageBackend",
    # Config sections
    "ProviderConfig",
    "ProvidersConfig",
    "GenerationSettings",
    "OptimizationSettings",
    "StorageConfig",
    "ObservabilityConfig",
    "RegistryConfig",
]
