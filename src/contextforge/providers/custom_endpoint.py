"""
Custom Endpoint Adapter

Any OpenAI-compatible chat-completions server reachable over HTTP. Requests
are POSTed to ``<base_url>/chat/completions`` with optional bearer
authentication, extra headers and model-name remapping.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field, field_validator

from ..errors import CustomEndpointError, MalformedProviderResponseError, ProviderError, ProviderTimeoutError
from .base import (
    ChatMessage,
    FunctionCall,
    GenerationConfig,
    GenerationResult,
    ProviderAdapter,
    Usage,
    estimate_usage,
    normalize_finish_reason,
)
from .openai_provider import FINISH_REASONS, build_chat_params

logger = logging.getLogger(__name__)

# Probe timeout for test_endpoint
ENDPOINT_PROBE_TIMEOUT = 10.0


class CustomEndpoint(BaseModel):
    """A user-registered OpenAI-compatible endpoint."""

    id: str = Field(..., min_length=1, description="Endpoint identifier")
    name: str = Field(..., description="Display name")
    base_url: str = Field(..., description="Base URL, e.g. https://llm.internal/v1")
    api_key: str | None = Field(default=None, description="Bearer token")
    headers: dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    model_mapping: dict[str, str] = Field(
        default_factory=dict,
        description="Requested model name -> endpoint model name",
    )
    supported_features: list[str] = Field(default_factory=list, description="Advertised features")
    timeout: float | None = Field(default=None, gt=0.0, description="Endpoint-specific timeout in seconds")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    def resolve_model(self, model: str) -> str:
        return self.model_mapping.get(model, model)

    def request_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **self.headers}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers


class CustomEndpointAdapter(ProviderAdapter):
    """Adapter for a single custom endpoint."""

    supports_functions = True

    def __init__(
        self,
        endpoint: CustomEndpoint,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = endpoint.timeout or timeout
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient()

    @property
    def name(self) -> str:
        return "custom"

    async def complete(
        self,
        messages: list[ChatMessage],
        config: GenerationConfig,
        model: str,
    ) -> GenerationResult:
        target_model = self.endpoint.resolve_model(model)
        url = f"{self.endpoint.base_url}/chat/completions"
        body = build_chat_params(messages, config, target_model)

        logger.debug(
            f"Calling custom endpoint {self.endpoint.id} with model {target_model}",
            extra={"provider": self.name, "endpoint": self.endpoint.id, "model": target_model},
        )

        try:
            response = await self.client.post(
                url,
                json=body,
                headers=self.endpoint.request_headers(),
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"custom:{self.endpoint.id}", self.timeout) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Custom endpoint request failed: {e}",
                details={"endpoint": self.endpoint.id, "url": url, "error": str(e)},
            ) from e

        if not response.is_success:
            logger.warning(
                f"Custom endpoint returned {response.status_code}",
                extra={"endpoint": self.endpoint.id, "status_code": response.status_code},
            )
            raise CustomEndpointError(self.endpoint.id, response.status_code, response.reason_phrase)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedProviderResponseError(
                self.name, "Invalid response from custom endpoint", {"endpoint": self.endpoint.id}
            ) from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise MalformedProviderResponseError(
                self.name, "Invalid response from custom endpoint", {"endpoint": self.endpoint.id}
            )

        choice = choices[0]
        message = choice.get("message") or {}
        content = message.get("content") or ""

        calls = [
            FunctionCall(name=call["function"]["name"], arguments=call["function"].get("arguments") or "{}")
            for call in message.get("tool_calls") or []
            if call.get("function")
        ]

        return GenerationResult(
            content=content,
            finish_reason=normalize_finish_reason(choice.get("finish_reason"), FINISH_REASONS),
            usage=self._usage_from_payload(data.get("usage"), messages, content),
            model=data.get("model") or target_model,
            function_calls=calls or None,
            metadata={"endpoint_id": self.endpoint.id},
        )

    @staticmethod
    def _usage_from_payload(payload: Any, messages: list[ChatMessage], content: str) -> Usage:
        if not isinstance(payload, dict):
            return estimate_usage(messages, content)
        prompt_tokens = int(payload.get("prompt_tokens") or 0)
        completion_tokens = int(payload.get("completion_tokens") or 0)
        return Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=int(payload.get("total_tokens") or prompt_tokens + completion_tokens),
        )

    async def test_endpoint(self) -> bool:
        """
        Probe the endpoint's model listing.

        Returns:
            True when ``GET <base_url>/models`` answers 2xx within 10 seconds
        """
        try:
            response = await self.client.get(
                f"{self.endpoint.base_url}/models",
                headers=self.endpoint.request_headers(),
                timeout=ENDPOINT_PROBE_TIMEOUT,
            )
            return response.is_success
        except httpx.HTTPError as e:
            logger.warning(
                f"Custom endpoint probe failed: {e}",
                extra={"endpoint": self.endpoint.id, "error": str(e)},
            )
            return False

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
