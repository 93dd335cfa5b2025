"""
Unit Tests for the Gemini Adapter
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from google.genai import errors as genai_errors

from contextforge.errors import ProviderError, ProviderRateLimitError, ValidationError
from contextforge.providers.base import ChatMessage, FinishReason, GenerationConfig, MessageRole
from contextforge.providers.gemini_provider import GeminiAdapter


def make_adapter(generate_content: AsyncMock) -> GeminiAdapter:
    client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    return GeminiAdapter(api_key="gm-test", client=client)


def gemini_response(text="Bonjour", finish="STOP", usage=(7, 3)):
    return SimpleNamespace(
        text=text,
        candidates=[SimpleNamespace(finish_reason=SimpleNamespace(name=finish))],
        usage_metadata=SimpleNamespace(prompt_token_count=usage[0], candidates_token_count=usage[1])
        if usage
        else None,
    )


@pytest.fixture
def config() -> GenerationConfig:
    return GenerationConfig(provider="gemini", model="gemini-pro", max_tokens=128, response_format="json")


class TestComplete:
    """Tests for generate_content calls."""

    @pytest.mark.asyncio
    async def test_message_conversion(self, config):
        generate = AsyncMock(return_value=gemini_response())
        messages = [
            ChatMessage(role=MessageRole.SYSTEM, content="Answer in French"),
            ChatMessage(role=MessageRole.USER, content="Hello"),
            ChatMessage(role=MessageRole.ASSISTANT, content="Bonjour"),
            ChatMessage(role=MessageRole.USER, content="Again"),
        ]

        await make_adapter(generate).complete(messages, config, "gemini-pro")

        kwargs = generate.await_args.kwargs
        assert kwargs["model"] == "gemini-pro"
        assert [c["role"] for c in kwargs["contents"]] == ["user", "model", "user"]
        assert kwargs["contents"][1]["parts"] == [{"text": "Bonjour"}]
        assert kwargs["config"].system_instruction == "Answer in French"
        assert kwargs["config"].max_output_tokens == 128
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_normalizes_response(self, config, user_message):
        generate = AsyncMock(return_value=gemini_response(finish="MAX_TOKENS"))

        result = await make_adapter(generate).complete(user_message(), config, "gemini-pro")

        assert result.content == "Bonjour"
        assert result.finish_reason == FinishReason.LENGTH
        assert result.usage.total_tokens == 10

    @pytest.mark.asyncio
    async def test_safety_stop_maps_to_content_filter(self, config, user_message):
        generate = AsyncMock(return_value=gemini_response(text=None, finish="SAFETY"))

        result = await make_adapter(generate).complete(user_message(), config, "gemini-pro")

        assert result.content == ""
        assert result.finish_reason == FinishReason.CONTENT_FILTER

    @pytest.mark.asyncio
    async def test_usage_estimated_without_metadata(self, config, user_message):
        generate = AsyncMock(return_value=gemini_response(text="x" * 20, usage=None))

        result = await make_adapter(generate).complete(user_message("y" * 12), config, "gemini-pro")

        assert (result.usage.prompt_tokens, result.usage.completion_tokens) == (3, 5)

    @pytest.mark.asyncio
    async def test_system_only_conversation_rejected(self, config):
        generate = AsyncMock()

        with pytest.raises(ValidationError):
            await make_adapter(generate).complete(
                [ChatMessage(role=MessageRole.SYSTEM, content="Be brief")], config, "gemini-pro"
            )
        generate.assert_not_awaited()


class TestErrorTranslation:
    """Gemini API errors map onto the transport error hierarchy."""

    @pytest.mark.asyncio
    async def test_rate_limit(self, config, user_message):
        error = genai_errors.APIError(429, {"error": {"message": "quota", "status": "RESOURCE_EXHAUSTED"}})
        generate = AsyncMock(side_effect=error)

        with pytest.raises(ProviderRateLimitError):
            await make_adapter(generate).complete(user_message(), config, "gemini-pro")

    @pytest.mark.asyncio
    async def test_api_error(self, config, user_message):
        error = genai_errors.APIError(500, {"error": {"message": "boom", "status": "INTERNAL"}})
        generate = AsyncMock(side_effect=error)

        with pytest.raises(ProviderError) as exc_info:
            await make_adapter(generate).complete(user_message(), config, "gemini-pro")
        assert exc_info.value.details["status_code"] == 500

    @pytest.mark.asyncio
    async def test_stream_falls_back_to_single_chunk(self, config, user_message):
        generate = AsyncMock(return_value=gemini_response())

        chunks = [c async for c in make_adapter(generate).stream(user_message(), config, "gemini-pro")]

        assert len(chunks) == 1
        assert chunks[0].is_complete
        assert chunks[0].content == "Bonjour"
