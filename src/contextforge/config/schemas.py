"""
ContextForge — Configuration Schemas

Typed configuration models validated at startup. Every setting can be
supplied through environment variables (see loader.py).
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..registry.catalog import DEFAULT_TRIMMING_MODEL


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageBackend(str, Enum):
    """Supported optimization store backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"
    REDIS = "redis"


class ProviderConfig(BaseModel):
    """Credential and transport settings for a single provider."""

    api_key: str | None = Field(default=None, description="API key for the provider")
    base_url: str | None = Field(default=None, description="Override base URL (optional)")
    timeout: float = Field(default=60.0, ge=1.0, description="Request timeout in seconds")

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class ProvidersConfig(BaseModel):
    """Configuration for all built-in provider families."""

    openai: ProviderConfig = Field(default_factory=ProviderConfig, description="OpenAI provider configuration")
    anthropic: ProviderConfig = Field(default_factory=ProviderConfig, description="Anthropic provider configuration")
    gemini: ProviderConfig = Field(default_factory=ProviderConfig, description="Google Gemini provider configuration")


class GenerationSettings(BaseModel):
    """Dispatcher defaults."""

    default_timeout: float = Field(default=60.0, ge=1.0, description="Per-call timeout in seconds")
    trimming_model: str = Field(
        default=DEFAULT_TRIMMING_MODEL,
        description="Registry id of the cheap model used by intelligent trimming",
    )
    custom_endpoint_timeout: float = Field(default=60.0, ge=1.0, description="Timeout for custom endpoints")
    endpoints_file: str | None = Field(
        default=None,
        description="JSON file persisting custom endpoints (in-memory when unset)",
    )


class OptimizationSettings(BaseModel):
    """Optimizer defaults."""

    context_safety_margin: float = Field(
        default=0.8,
        gt=0.0,
        le=1.0,
        description="Fraction of the context window used as the default token budget",
    )


class StorageConfig(BaseModel):
    """Optimization store configuration."""

    backend: StorageBackend = Field(default=StorageBackend.MEMORY, description="Store backend to use")
    db_path: str = Field(default="./data/optimizations.db", description="SQLite database path")
    namespace: str = Field(default="contextforge", description="Key namespace (redis backend)")
    redis_url: str | None = Field(default=None, description="Redis connection URL")

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: str | None, info: Any) -> str | None:
        """Ensure redis_url is provided when backend is redis."""
        if info.data.get("backend") == StorageBackend.REDIS and not v:
            raise ValueError("redis_url is required when storage backend is 'redis'")
        return v


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    enable_metrics: bool = Field(default=True, description="Enable in-process metrics collection")
    json_logs: bool = Field(default=True, description="Emit structured JSON log lines")


class RegistryConfig(BaseModel):
    """Model catalog configuration."""

    models_file: str | None = Field(
        default=None,
        description="JSON file with extra or overriding model descriptors",
    )


class ContextForgeConfig(BaseModel):
    """Root configuration."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    optimization: OptimizationSettings = Field(default_factory=OptimizationSettings)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
