"""
Unit Tests for Provider Lookup and Shared Provider Types
"""

import pytest

from contextforge.errors import UnsupportedProviderError
from contextforge.providers import create_adapter, normalize_provider, supported_providers
from contextforge.providers.base import FinishReason, FunctionCall, normalize_finish_reason
from contextforge.providers.openai_provider import OpenAIAdapter


class TestNormalizeProvider:
    """Tests for provider tag canonicalization."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("openai", "openai"),
            (" OpenAI ", "openai"),
            ("ANTHROPIC", "anthropic"),
            ("google", "gemini"),
            ("custom", "custom"),
        ],
    )
    def test_known_tags(self, raw, expected):
        assert normalize_provider(raw) == expected

    def test_supported_tags_come_from_adapter_table(self):
        assert supported_providers() == ["openai", "anthropic", "gemini", "custom"]

    def test_unknown_tag(self):
        with pytest.raises(UnsupportedProviderError) as exc_info:
            normalize_provider("cohere")
        assert exc_info.value.details["supported"] == supported_providers()
        assert not exc_info.value.retryable


class TestCreateAdapter:
    """Tests for create_adapter."""

    def test_openai(self):
        adapter = create_adapter("openai", api_key="sk-test", timeout=5.0)
        assert isinstance(adapter, OpenAIAdapter)
        assert adapter.timeout == 5.0

    def test_custom_has_no_builtin_adapter(self):
        with pytest.raises(UnsupportedProviderError):
            create_adapter("custom", api_key="x")


class TestSharedTypes:
    """Tests for helpers in providers.base."""

    def test_finish_reason_defaults_to_stop(self):
        mapping = {"length": FinishReason.LENGTH}
        assert normalize_finish_reason(None, mapping) == FinishReason.STOP
        assert normalize_finish_reason("LENGTH", mapping) == FinishReason.LENGTH
        assert normalize_finish_reason("mystery", mapping) == FinishReason.STOP

    def test_parsed_arguments(self):
        assert FunctionCall(name="f", arguments='{"a": 1}').parsed_arguments() == {"a": 1}
        assert FunctionCall(name="f", arguments="not json").parsed_arguments() == "not json"
        assert FunctionCall(name="f", arguments="").parsed_arguments() == {}
