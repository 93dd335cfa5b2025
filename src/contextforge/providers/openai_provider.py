"""
OpenAI Provider Adapter

Chat completions through the official async SDK, including tool-based
function calling, JSON mode and native streaming.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

try:
    import openai
    from openai import AsyncOpenAI

    OPENAI_AVAILABLE = True
except ImportError:
    openai = None  # type: ignore[assignment]
    AsyncOpenAI = None  # type: ignore[assignment, misc]
    OPENAI_AVAILABLE = False

from ..errors import (
    DependencyError,
    MalformedProviderResponseError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)
from .base import (
    ChatMessage,
    FinishReason,
    FunctionCall,
    GenerationConfig,
    GenerationResult,
    MessageRole,
    ProviderAdapter,
    StreamingChunk,
    Usage,
    estimate_usage,
    normalize_finish_reason,
)

logger = logging.getLogger(__name__)

FINISH_REASONS: dict[str, FinishReason] = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "function_call": FinishReason.FUNCTION_CALL,
    "tool_calls": FinishReason.FUNCTION_CALL,
    "content_filter": FinishReason.CONTENT_FILTER,
}


def to_openai_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Translate canonical messages to the chat-completions wire shape."""
    converted: list[dict[str, Any]] = []
    for msg in messages:
        if msg.role == MessageRole.FUNCTION and msg.name:
            converted.append({"role": "function", "name": msg.name, "content": msg.content})
            continue

        role = msg.role.value if msg.role in (MessageRole.SYSTEM, MessageRole.USER) else "assistant"
        entry: dict[str, Any] = {"role": role, "content": msg.content}
        if msg.name:
            entry["name"] = msg.name
        if msg.function_call is not None:
            entry["function_call"] = {"name": msg.function_call.name, "arguments": msg.function_call.arguments}
        converted.append(entry)
    return converted


def build_chat_params(messages: list[ChatMessage], config: GenerationConfig, model: str) -> dict[str, Any]:
    """Request body shared by OpenAI and OpenAI-compatible endpoints."""
    params: dict[str, Any] = {
        "model": model,
        "messages": to_openai_messages(messages),
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "top_p": config.top_p,
        "frequency_penalty": config.frequency_penalty,
        "presence_penalty": config.presence_penalty,
    }

    if config.functions:
        params["tools"] = [{"type": "function", "function": fn.to_schema()} for fn in config.functions]

    if config.response_format == "json":
        params["response_format"] = {"type": "json_object"}

    return params


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat completions adapter."""

    supports_functions = True

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 60.0,
        client: Any | None = None,
    ) -> None:
        """
        Initialize OpenAI adapter.

        Args:
            api_key: OpenAI API key
            base_url: Optional API base URL override
            timeout: Request timeout in seconds
            client: Pre-built async client (tests inject a mock here)

        Raises:
            DependencyError: If the OpenAI SDK is not installed
        """
        self.timeout = timeout

        if client is not None:
            self.client = client
            return

        if not OPENAI_AVAILABLE or AsyncOpenAI is None:
            logger.error("OpenAI SDK is not installed", extra={"package": "openai", "provider": "openai"})
            raise DependencyError(
                package="openai",
                feature="OpenAI provider",
                install_hint="pip install 'openai>=1.40.0'",
                details={"provider": "openai"},
            )

        client_kwargs: dict[str, Any] = {"api_key": api_key, "timeout": timeout}
        if base_url:
            client_kwargs["base_url"] = base_url
        self.client = AsyncOpenAI(**client_kwargs)

        logger.debug(
            "OpenAI adapter initialized",
            extra={"provider": "openai", "base_url": base_url or "default", "timeout": timeout},
        )

    @property
    def name(self) -> str:
        return "openai"

    async def complete(
        self,
        messages: list[ChatMessage],
        config: GenerationConfig,
        model: str,
    ) -> GenerationResult:
        params = build_chat_params(messages, config, model)

        logger.debug(
            f"Calling OpenAI API with model {model}",
            extra={
                "provider": self.name,
                "model": model,
                "message_count": len(messages),
                "function_count": len(config.functions or []),
            },
        )

        try:
            response = await self.client.chat.completions.create(**params)
        except Exception as e:
            raise self._translate_error(e, model) from e

        return self._parse_response(response, messages, model)

    def _parse_response(self, response: Any, messages: list[ChatMessage], model: str) -> GenerationResult:
        choices = getattr(response, "choices", None)
        if not choices:
            raise MalformedProviderResponseError(self.name, "response contained no choices", {"model": model})

        choice = choices[0]
        message = choice.message
        content = message.content or ""

        calls: list[FunctionCall] = []
        for tool_call in getattr(message, "tool_calls", None) or []:
            calls.append(FunctionCall(name=tool_call.function.name, arguments=tool_call.function.arguments or "{}"))
        legacy_call = getattr(message, "function_call", None)
        if legacy_call is not None:
            calls.append(FunctionCall(name=legacy_call.name, arguments=legacy_call.arguments or "{}"))

        usage = getattr(response, "usage", None)
        if usage is not None:
            normalized_usage = Usage(
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
            )
        else:
            normalized_usage = estimate_usage(messages, content)

        return GenerationResult(
            content=content,
            finish_reason=normalize_finish_reason(choice.finish_reason, FINISH_REASONS),
            usage=normalized_usage,
            model=getattr(response, "model", None) or model,
            function_calls=calls or None,
        )

    async def stream(
        self,
        messages: list[ChatMessage],
        config: GenerationConfig,
        model: str,
    ) -> AsyncIterator[StreamingChunk]:
        params = build_chat_params(messages, config, model)
        params["stream"] = True
        params["stream_options"] = {"include_usage": True}

        content = ""
        # Tool-call fragments keyed by their stream index
        calls: dict[int, dict[str, str]] = {}
        usage: Usage | None = None

        try:
            stream = await self.client.chat.completions.create(**params)
            async for chunk in stream:
                chunk_usage = getattr(chunk, "usage", None)
                if chunk_usage is not None:
                    usage = Usage(
                        prompt_tokens=chunk_usage.prompt_tokens,
                        completion_tokens=chunk_usage.completion_tokens,
                        total_tokens=chunk_usage.total_tokens,
                    )

                if not chunk.choices:
                    continue

                delta = chunk.choices[0].delta
                if delta.content:
                    content += delta.content
                    yield StreamingChunk(content=content)

                for tool_delta in getattr(delta, "tool_calls", None) or []:
                    entry = calls.setdefault(tool_delta.index, {"name": "", "arguments": ""})
                    function = tool_delta.function
                    if function is not None:
                        entry["name"] += function.name or ""
                        entry["arguments"] += function.arguments or ""
                    yield StreamingChunk(content=content, function_call=FunctionCall(**entry))
        except Exception as e:
            raise self._translate_error(e, model) from e

        first_call = calls[min(calls)] if calls else None
        yield StreamingChunk(
            content=content,
            is_complete=True,
            usage=usage or estimate_usage(messages, content),
            function_call=FunctionCall(**first_call) if first_call else None,
        )

    def _translate_error(self, e: Exception, model: str) -> Exception:
        """Map SDK exceptions onto the transport error hierarchy."""
        if openai is not None:
            if isinstance(e, openai.APITimeoutError):
                logger.warning(
                    f"OpenAI API request timed out after {self.timeout}s",
                    extra={"provider": self.name, "model": model, "timeout": self.timeout},
                )
                return ProviderTimeoutError(self.name, self.timeout)

            if isinstance(e, openai.RateLimitError):
                retry_after = getattr(e, "retry_after", None)
                logger.warning(
                    "OpenAI rate limit exceeded",
                    extra={"provider": self.name, "model": model, "retry_after": retry_after},
                )
                return ProviderRateLimitError(self.name, retry_after)

            if isinstance(e, openai.APIError):
                status_code = getattr(e, "status_code", None)
                logger.error(
                    f"OpenAI API error: {e}",
                    extra={"provider": self.name, "model": model, "error": str(e), "status_code": status_code},
                )
                return ProviderError(
                    f"OpenAI API error: {e}",
                    details={"provider": self.name, "model": model, "status_code": status_code},
                )

        logger.error(
            f"Unexpected error calling OpenAI: {e}",
            extra={"provider": self.name, "model": model, "error": str(e)},
        )
        return ProviderError(
            f"Unexpected error calling OpenAI: {e}",
            details={"provider": self.name, "model": model, "error": str(e)},
        )

    async def close(self) -> None:
        """Clean up OpenAI client resources."""
        try:
            if hasattr(self.client, "close"):
                await self.client.close()
        except Exception as e:
            logger.warning(f"Error closing OpenAI client: {e}", extra={"provider": self.name, "error": str(e)})
