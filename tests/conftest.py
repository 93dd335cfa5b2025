"""
ContextForge — Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import asyncio
import os
from collections.abc import Callable, Generator
from typing import Any

import pytest

from contextforge.errors import ProviderError
from contextforge.providers.base import (
    ChatMessage,
    GenerationConfig,
    GenerationResult,
    MessageRole,
    ProviderAdapter,
    Usage,
)
from contextforge.registry import ModelRegistry

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


class FakeAdapter(ProviderAdapter):
    """
    In-process adapter used in place of a real provider.

    Replies with ``responses[model]`` (or ``content``), raises for models in
    ``fail_models`` and can sleep to exercise timeouts.
    """

    supports_functions = True

    def __init__(
        self,
        provider: str = "openai",
        content: str = "Hello from the fake provider",
        responses: dict[str, str] | None = None,
        usage: Usage | None = None,
        fail_models: tuple[str, ...] = (),
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.provider = provider
        self.content = content
        self.responses = responses or {}
        self.usage = usage or Usage(prompt_tokens=100, completion_tokens=50, total_tokens=150)
        self.fail_models = fail_models
        self.error = error
        self.delay = delay
        self.calls: list[tuple[list[ChatMessage], GenerationConfig, str]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return self.provider

    async def complete(self, messages: list[ChatMessage], config: GenerationConfig, model: str) -> GenerationResult:
        self.calls.append((messages, config, model))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if model in self.fail_models:
            raise ProviderError(f"{model} is unavailable", details={"model": model})
        return GenerationResult(
            content=self.responses.get(model, self.content),
            usage=self.usage,
            model=model,
        )

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_adapter_factory() -> Callable[..., FakeAdapter]:
    """Factory for FakeAdapter instances."""
    return FakeAdapter


@pytest.fixture
def registry() -> ModelRegistry:
    """Registry with the built-in catalog."""
    return ModelRegistry()


@pytest.fixture
def user_message() -> Callable[[str], list[ChatMessage]]:
    """Build a single-message conversation."""

    def _build(content: str = "Say hello") -> list[ChatMessage]:
        return [ChatMessage(role=MessageRole.USER, content=content)]

    return _build


@pytest.fixture
def test_redis_url() -> str:
    """Get Redis URL for testing (database 15 for isolation)."""
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest.fixture
def sample_text_long() -> str:
    """Long text sample with repeated phrases and loose whitespace."""
    paragraph = (
        "Artificial intelligence has   revolutionized numerous industries.  The quick brown fox jumps\n"
        "over the lazy dog while the quick brown fox jumps again.   Teams say the quick brown fox jumps\n\n\n\n"
        "whenever machine learning pipelines   need fresh data.\n"
    )
    return paragraph * 3


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset global configuration, registry and observability between tests."""
    from contextforge.config import loader
    from contextforge.observability import monitoring
    from contextforge.registry import reset_model_registry

    yield

    loader._config_instance = None
    monitoring._observability_adapter = None
    reset_model_registry()


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: tests spanning several components")
