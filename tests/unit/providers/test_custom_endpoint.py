"""
Unit Tests for Custom Endpoints

HTTP traffic goes through httpx.MockTransport.
"""

import json

import httpx
import pydantic
import pytest

from contextforge.errors import (
    CustomEndpointError,
    MalformedProviderResponseError,
    ProviderError,
    ProviderTimeoutError,
)
from contextforge.providers.base import FinishReason, GenerationConfig
from contextforge.providers.custom_endpoint import CustomEndpoint, CustomEndpointAdapter


@pytest.fixture
def endpoint() -> CustomEndpoint:
    return CustomEndpoint(
        id="local",
        name="Local LLM",
        base_url="https://llm.internal/v1/",
        api_key="secret",
        headers={"X-Team": "search"},
        model_mapping={"fast": "llama-3-8b"},
    )


@pytest.fixture
def config() -> GenerationConfig:
    return GenerationConfig(provider="custom", model="fast", endpoint_id="local")


def adapter_with(endpoint: CustomEndpoint, handler) -> CustomEndpointAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CustomEndpointAdapter(endpoint, client=client)


def ok_payload(content="pong") -> dict:
    return {
        "model": "llama-3-8b",
        "choices": [{"message": {"role": "assistant", "content": content}, "finish_reason": "length"}],
        "usage": {"prompt_tokens": 4, "completion_tokens": 1, "total_tokens": 5},
    }


class TestCustomEndpointModel:
    """Tests for the endpoint record."""

    def test_trailing_slash_stripped(self, endpoint):
        assert endpoint.base_url == "https://llm.internal/v1"

    def test_rejects_non_http_url(self):
        with pytest.raises(pydantic.ValidationError):
            CustomEndpoint(id="x", name="x", base_url="ftp://example.com")

    def test_model_mapping(self, endpoint):
        assert endpoint.resolve_model("fast") == "llama-3-8b"
        assert endpoint.resolve_model("other") == "other"

    def test_headers(self, endpoint):
        headers = endpoint.request_headers()
        assert headers["Authorization"] == "Bearer secret"
        assert headers["X-Team"] == "search"
        assert headers["Content-Type"] == "application/json"

    def test_no_auth_without_key(self):
        endpoint = CustomEndpoint(id="x", name="x", base_url="http://localhost:8000")
        assert "Authorization" not in endpoint.request_headers()


class TestComplete:
    """Tests for CustomEndpointAdapter.complete."""

    @pytest.mark.asyncio
    async def test_posts_openai_compatible_body(self, endpoint, config, user_message):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=ok_payload())

        result = await adapter_with(endpoint, handler).complete(user_message("ping"), config, "fast")

        assert seen["url"] == "https://llm.internal/v1/chat/completions"
        assert seen["auth"] == "Bearer secret"
        assert seen["body"]["model"] == "llama-3-8b"
        assert seen["body"]["messages"] == [{"role": "user", "content": "ping"}]
        assert result.content == "pong"
        assert result.finish_reason == FinishReason.LENGTH
        assert result.usage.total_tokens == 5
        assert result.metadata == {"endpoint_id": "local"}

    @pytest.mark.asyncio
    async def test_non_2xx_raises_endpoint_error(self, endpoint, config, user_message):
        adapter = adapter_with(endpoint, lambda request: httpx.Response(503))

        with pytest.raises(CustomEndpointError) as exc_info:
            await adapter.complete(user_message(), config, "fast")

        assert exc_info.value.status == 503
        assert exc_info.value.retryable
        assert "503" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_choices_is_malformed(self, endpoint, config, user_message):
        adapter = adapter_with(endpoint, lambda request: httpx.Response(200, json={"object": "error"}))

        with pytest.raises(MalformedProviderResponseError):
            await adapter.complete(user_message(), config, "fast")

    @pytest.mark.asyncio
    async def test_non_json_body_is_malformed(self, endpoint, config, user_message):
        adapter = adapter_with(endpoint, lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(MalformedProviderResponseError):
            await adapter.complete(user_message(), config, "fast")

    @pytest.mark.asyncio
    async def test_timeout(self, endpoint, config, user_message):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ProviderTimeoutError):
            await adapter_with(endpoint, handler).complete(user_message(), config, "fast")

    @pytest.mark.asyncio
    async def test_connection_failure(self, endpoint, config, user_message):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ProviderError) as exc_info:
            await adapter_with(endpoint, handler).complete(user_message(), config, "fast")
        assert exc_info.value.details["endpoint"] == "local"

    @pytest.mark.asyncio
    async def test_usage_estimated_when_absent(self, endpoint, config, user_message):
        payload = ok_payload(content="x" * 8)
        del payload["usage"]
        adapter = adapter_with(endpoint, lambda request: httpx.Response(200, json=payload))

        result = await adapter.complete(user_message("y" * 4), config, "fast")

        assert (result.usage.prompt_tokens, result.usage.completion_tokens, result.usage.total_tokens) == (1, 2, 3)

    @pytest.mark.asyncio
    async def test_tool_calls(self, endpoint, config, user_message):
        payload = ok_payload(content=None)
        payload["choices"][0]["message"]["tool_calls"] = [
            {"id": "c1", "type": "function", "function": {"name": "lookup", "arguments": "{}"}}
        ]
        adapter = adapter_with(endpoint, lambda request: httpx.Response(200, json=payload))

        result = await adapter.complete(user_message(), config, "fast")

        assert result.content == ""
        assert result.function_calls[0].name == "lookup"


class TestEndpointProbe:
    """Tests for test_endpoint."""

    @pytest.mark.asyncio
    async def test_reachable(self, endpoint):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.url.path == "/v1/models"
            return httpx.Response(200, json={"data": []})

        assert await adapter_with(endpoint, handler).test_endpoint() is True

    @pytest.mark.asyncio
    async def test_error_status(self, endpoint):
        assert await adapter_with(endpoint, lambda request: httpx.Response(401)).test_endpoint() is False

    @pytest.mark.asyncio
    async def test_unreachable(self, endpoint):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        assert await adapter_with(endpoint, handler).test_endpoint() is False


@pytest.mark.asyncio
async def test_shared_client_not_closed(endpoint):
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    adapter = CustomEndpointAdapter(endpoint, client=client)

    await adapter.close()

    assert not client.is_closed
    await client.aclose()
