"""
Unit Tests for Configuration Loading
"""

import pytest

from contextforge.config import (
    Environment,
    StorageBackend,
    StorageConfig,
    get_config,
    load_config,
    reload_config,
)
from contextforge.errors import ConfigurationError

MANAGED_VARS = (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "REDIS_URL",
    "STORAGE_BACKEND",
    "GENERATION_TIMEOUT",
    "TRIMMING_MODEL",
    "CONTEXT_SAFETY_MARGIN",
    "CUSTOM_ENDPOINTS_FILE",
    "ENABLE_METRICS",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in MANAGED_VARS:
        monkeypatch.delenv(name, raising=False)
    # Point at a .env that does not exist so a developer's file is never read
    return str(tmp_path / ".env")


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, clean_env):
        config = load_config(env_file=clean_env, reload=True)

        assert config.environment == Environment.TEST
        assert config.storage.backend == StorageBackend.MEMORY
        assert config.generation.default_timeout == 60.0
        assert config.generation.trimming_model == "openai-gpt4o-mini"
        assert config.optimization.context_safety_margin == 0.8
        assert not config.providers.openai.enabled

    def test_provider_keys(self, clean_env, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("GOOGLE_API_KEY", "gm-test")
        monkeypatch.setenv("GENERATION_TIMEOUT", "20")

        config = load_config(env_file=clean_env, reload=True)

        assert config.providers.openai.api_key == "sk-test"
        assert config.providers.gemini.api_key == "gm-test"
        assert config.providers.anthropic.api_key is None
        assert config.providers.openai.timeout == 20.0
        assert config.generation.default_timeout == 20.0

    def test_redis_url_selects_redis_backend(self, clean_env, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")

        config = load_config(env_file=clean_env, reload=True)

        assert config.storage.backend == StorageBackend.REDIS
        assert config.storage.redis_url == "redis://localhost:6379/0"

    def test_explicit_backend_wins(self, clean_env, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
        monkeypatch.setenv("STORAGE_BACKEND", "sqlite")

        assert load_config(env_file=clean_env, reload=True).storage.backend == StorageBackend.SQLITE

    def test_dotenv_file(self, clean_env, monkeypatch, tmp_path):
        # Registered with monkeypatch so the value loaded from the file is undone afterwards
        monkeypatch.setenv("TRIMMING_MODEL", "placeholder")
        env_file = tmp_path / "custom.env"
        env_file.write_text("TRIMMING_MODEL=anthropic-claude3-haiku\n")

        config = load_config(env_file=str(env_file), reload=True)

        assert config.generation.trimming_model == "anthropic-claude3-haiku"

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("GENERATION_TIMEOUT", "soon"),
            ("STORAGE_BACKEND", "mongo"),
            ("CONTEXT_SAFETY_MARGIN", "1.5"),
        ],
    )
    def test_invalid_values(self, clean_env, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ConfigurationError):
            load_config(env_file=clean_env, reload=True)

    def test_singleton(self, clean_env):
        first = load_config(env_file=clean_env, reload=True)

        assert get_config() is first
        assert load_config() is first
        assert reload_config(env_file=clean_env) is not first


class TestStorageConfig:
    """Tests for StorageConfig validation."""

    def test_redis_requires_url(self):
        with pytest.raises(ValueError):
            StorageConfig(backend=StorageBackend.REDIS, redis_url=None)
