"""
Anthropic Provider Adapter

Claude models through the Messages API. System prompts travel in the
dedicated ``system`` field; function definitions are not forwarded.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

try:
    import anthropic
    from anthropic import AsyncAnthropic

    ANTHROPIC_AVAILABLE = True
except ImportError:
    anthropic = None  # type: ignore[assignment]
    AsyncAnthropic = None  # type: ignore[assignment, misc]
    ANTHROPIC_AVAILABLE = False

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
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
    "tool_use": FinishReason.FUNCTION_CALL,
    "refusal": FinishReason.CONTENT_FILTER,
}


class AnthropicAdapter(ProviderAdapter):
    """Anthropic (Claude) Messages API adapter."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 60.0,
        client: Any | None = None,
    ) -> None:
        """
        Initialize Anthropic adapter.

        Raises:
            DependencyError: If the Anthropic SDK is not installed
        """
        self.timeout = timeout

        if client is not None:
            self.client = client
            return

        if not ANTHROPIC_AVAILABLE or AsyncAnthropic is None:
            logger.error("Anthropic SDK is not installed", extra={"package": "anthropic", "provider": "anthropic"})
            raise DependencyError(
                package="anthropic",
                feature="Anthropic provider",
                install_hint="pip install 'anthropic>=0.34.0'",
                details={"provider": "anthropic"},
            )

        client_kwargs: dict[str, Any] = {"api_key": api_key, "timeout": timeout}
        if base_url:
            client_kwargs["base_url"] = base_url
        self.client = AsyncAnthropic(**client_kwargs)

    @property
    def name(self) -> str:
        return "anthropic"

    def _convert_messages(self, messages: list[ChatMessage]) -> tuple[str, list[dict[str, Any]]]:
        """
        Split the conversation into the system prompt and Anthropic messages.

        Multiple system messages are joined with a blank line. Function
        results are replayed as user turns.
        """
        system_parts: list[str] = []
        converted: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_parts.append(msg.content)
            elif msg.role == MessageRole.ASSISTANT:
                converted.append({"role": "assistant", "content": msg.content})
            else:
                converted.append({"role": "user", "content": msg.content})

        return "\n\n".join(system_parts), converted

    def _build_params(self, messages: list[ChatMessage], config: GenerationConfig, model: str) -> dict[str, Any]:
        system, converted = self._convert_messages(messages)
        params: dict[str, Any] = {
            "model": model,
            "messages": converted,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
        }
        if system:
            params["system"] = system
        # Newer Claude models reject temperature and top_p together; send top_p only when narrowed
        if config.top_p < 1.0:
            params["top_p"] = config.top_p
        return params

    async def complete(
        self,
        messages: list[ChatMessage],
        config: GenerationConfig,
        model: str,
    ) -> GenerationResult:
        self.warn_unsupported_functions(config)
        params = self._build_params(messages, config, model)

        logger.debug(
            f"Calling Anthropic API with model {model}",
            extra={
                "provider": self.name,
                "model": model,
                "message_count": len(params["messages"]),
                "has_system": "system" in params,
            },
        )

        try:
            response = await self.client.messages.create(**params)
        except Exception as e:
            raise self._translate_error(e, model) from e

        blocks = getattr(response, "content", None)
        if blocks is None:
            raise MalformedProviderResponseError(self.name, "response contained no content", {"model": model})

        # Anthropic returns content as a list of typed blocks
        content = "".join(block.text for block in blocks if getattr(block, "type", None) == "text")

        usage = getattr(response, "usage", None)
        if usage is not None:
            normalized_usage = Usage(
                prompt_tokens=usage.input_tokens,
                completion_tokens=usage.output_tokens,
                total_tokens=usage.input_tokens + usage.output_tokens,
            )
        else:
            normalized_usage = estimate_usage(messages, content)

        return GenerationResult(
            content=content,
            finish_reason=normalize_finish_reason(getattr(response, "stop_reason", None), FINISH_REASONS),
            usage=normalized_usage,
            model=getattr(response, "model", None) or model,
        )

    async def stream(
        self,
        messages: list[ChatMessage],
        config: GenerationConfig,
        model: str,
    ) -> AsyncIterator[StreamingChunk]:
        self.warn_unsupported_functions(config)
        params = self._build_params(messages, config, model)
        params["stream"] = True

        content = ""
        input_tokens = 0
        output_tokens = 0
        saw_usage = False

        try:
            stream = await self.client.messages.create(**params)
            async for event in stream:
                event_type = getattr(event, "type", None)

                if event_type == "message_start":
                    start_usage = getattr(event.message, "usage", None)
                    if start_usage is not None:
                        input_tokens = start_usage.input_tokens or 0
                        saw_usage = True

                elif event_type == "content_block_delta":
                    delta = event.delta
                    if getattr(delta, "type", None) == "text_delta" and delta.text:
                        content += delta.text
                        yield StreamingChunk(content=content)

                elif event_type == "message_delta":
                    delta_usage = getattr(event, "usage", None)
                    if delta_usage is not None:
                        output_tokens = delta_usage.output_tokens or 0
                        saw_usage = True
        except Exception as e:
            raise self._translate_error(e, model) from e

        if saw_usage:
            usage = Usage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            )
        else:
            usage = estimate_usage(messages, content)

        yield StreamingChunk(content=content, is_complete=True, usage=usage)

    def _translate_error(self, e: Exception, model: str) -> Exception:
        """Map SDK exceptions onto the transport error hierarchy."""
        if anthropic is not None:
            if isinstance(e, anthropic.APITimeoutError):
                logger.warning(
                    f"Anthropic API request timed out after {self.timeout}s",
                    extra={"provider": self.name, "model": model, "timeout": self.timeout},
                )
                return ProviderTimeoutError(self.name, self.timeout)

            if isinstance(e, anthropic.RateLimitError):
                retry_after = getattr(e, "retry_after", None)
                logger.warning(
                    "Anthropic rate limit exceeded",
                    extra={"provider": self.name, "model": model, "retry_after": retry_after},
                )
                return ProviderRateLimitError(self.name, retry_after)

            if isinstance(e, anthropic.APIError):
                status_code = getattr(e, "status_code", None)
                logger.error(
                    f"Anthropic API error: {e}",
                    extra={"provider": self.name, "model": model, "error": str(e), "status_code": status_code},
                )
                return ProviderError(
                    f"Anthropic API error: {e}",
                    details={"provider": self.name, "model": model, "status_code": status_code},
                )

        logger.error(
            f"Unexpected error calling Anthropic: {e}",
            extra={"provider": self.name, "model": model, "error": str(e)},
        )
        return ProviderError(
            f"Unexpected error calling Anthropic: {e}",
            details={"provider": self.name, "model": model, "error": str(e)},
        )

    async def close(self) -> None:
        """Clean up Anthropic client resources."""
        try:
            if hasattr(self.client, "close"):
                await self.client.close()
        except Exception as e:
            logger.warning(f"Error closing Anthropic client: {e}", extra={"provider": self.name, "error": str(e)})
