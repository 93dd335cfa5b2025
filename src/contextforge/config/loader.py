"""
ContextForge — Configuration Loader

Loads and validates configuration from environment variables and .env files.
Provides a singleton configuration instance for the runtime.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from ..registry.catalog import DEFAULT_TRIMMING_MODEL
from .schemas import ContextForgeConfig

logger = logging.getLogger(__name__)

_config_instance: ContextForgeConfig | None = None


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _provider_env(prefix: str, default_timeout: str) -> dict[str, object]:
    return {
        "api_key": os.getenv(f"{prefix}_API_KEY"),
        "base_url": os.getenv(f"{prefix}_BASE_URL"),
        "timeout": float(os.getenv(f"{prefix}_TIMEOUT", default_timeout)),
    }


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> ContextForgeConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in the working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated ContextForgeConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
                exc_info=True,
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    # Storage backend: explicit setting wins, else redis when REDIS_URL is set
    redis_url = os.getenv("REDIS_URL")
    default_backend = "redis" if redis_url else "memory"
    default_timeout = os.getenv("GENERATION_TIMEOUT", "60")

    try:
        config_dict = {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "providers": {
                "openai": _provider_env("OPENAI", default_timeout),
                "anthropic": _provider_env("ANTHROPIC", default_timeout),
                # GOOGLE_API_KEY is accepted as a fallback for the Gemini key
                "gemini": {
                    **_provider_env("GEMINI", default_timeout),
                    "api_key": os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
                },
            },
            "generation": {
                "default_timeout": float(default_timeout),
                "trimming_model": os.getenv("TRIMMING_MODEL", DEFAULT_TRIMMING_MODEL),
                "custom_endpoint_timeout": float(os.getenv("CUSTOM_ENDPOINT_TIMEOUT", default_timeout)),
                "endpoints_file": os.getenv("CUSTOM_ENDPOINTS_FILE"),
            },
            "optimization": {
                "context_safety_margin": float(os.getenv("CONTEXT_SAFETY_MARGIN", "0.8")),
            },
            "storage": {
                "backend": os.getenv("STORAGE_BACKEND", default_backend),
                "db_path": os.getenv("STORAGE_DB_PATH", "./data/optimizations.db"),
                "namespace": os.getenv("STORAGE_NAMESPACE", "contextforge"),
                "redis_url": redis_url,
            },
            "observability": {
                "enable_metrics": _env_flag("ENABLE_METRICS", "true"),
                "json_logs": _env_flag("JSON_LOGS", "true"),
            },
            "registry": {
                "models_file": os.getenv("MODELS_FILE"),
            },
        }
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid numeric configuration value: {e}",
            details={"error": str(e)},
        ) from e

    try:
        _config_instance = ContextForgeConfig(**config_dict)  # type: ignore[arg-type]
        logger.info(
            f"Configuration loaded successfully (environment: {_config_instance.environment.value})",
            extra={
                "environment": _config_instance.environment.value,
                "storage_backend": _config_instance.storage.backend.value,
            },
        )
        return _config_instance
    except ValidationError as e:
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": e.errors(), "config_dict_keys": list(config_dict.keys())},
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables and configuration.",
            details={"validation_errors": e.errors()},
        ) from e


def get_config() -> ContextForgeConfig:
    """
    Get the current configuration instance.

    Loads configuration on first access.

    Returns:
        Current ContextForgeConfig instance
    """
    if _config_instance is None:
        return load_config()

    return _config_instance


def reload_config(env_file: str | None = None) -> ContextForgeConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded ContextForgeConfig instance
    """
    return load_config(env_file=env_file, reload=True)
