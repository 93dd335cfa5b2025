"""
Base Provider Interface

Canonical request/response types shared by every provider family, plus the
abstract adapter each provider implements. Adapters translate canonical
messages to the provider's wire shape and normalize the reply; cost and
duration are filled in uniformly by the dispatcher.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class MessageRole(str, Enum):
    """Chat message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


class FinishReason(str, Enum):
    """Normalized reasons a generation stopped."""

    STOP = "stop"
    LENGTH = "length"
    FUNCTION_CALL = "function_call"
    CONTENT_FILTER = "content_filter"


class FunctionCall(BaseModel):
    """A function invocation requested by the model."""

    name: str = Field(..., description="Function name")
    arguments: str = Field(default="{}", description="JSON-serialized arguments")

    def parsed_arguments(self) -> Any:
        """Decode the arguments; falls back to the raw string when it is not JSON."""
        try:
            return json.loads(self.arguments) if self.arguments else {}
        except json.JSONDecodeError:
            return self.arguments


class ChatMessage(BaseModel):
    """Canonical chat message."""

    role: MessageRole = Field(..., description="Message author role")
    content: str = Field(default="", description="Message text")
    name: str | None = Field(default=None, description="Author or function name")
    function_call: FunctionCall | None = Field(default=None, description="Function call payload")


class FunctionDefinition(BaseModel):
    """A function the model may call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(..., description="Function name")
    description: str = Field(default="", description="What the function does")
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        description="JSON schema of the arguments",
    )
    handler: Callable[[Any], Awaitable[Any]] | None = Field(
        default=None,
        exclude=True,
        description="Optional async handler invoked by execute_function_call",
    )

    def to_schema(self) -> dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


class GenerationConfig(BaseModel):
    """Per-request generation settings."""

    provider: str = Field(..., description="Provider tag (openai, anthropic, gemini, custom)")
    model: str = Field(..., description="Registry model id, or the endpoint model name for custom endpoints")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(default=1000, ge=1, description="Maximum tokens to generate")
    top_p: float = Field(default=1.0, ge=0.0, le=1.0, description="Nucleus sampling mass")
    frequency_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    presence_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)
    functions: list[FunctionDefinition] | None = Field(default=None, description="Callable functions")
    response_format: Literal["text", "json"] | None = Field(default=None, description="Response format hint")
    timeout: float | None = Field(
        default=None, gt=0.0, description="Timeout in seconds (dispatcher default when unset)"
    )
    endpoint_id: str | None = Field(default=None, description="Custom endpoint id (provider=custom)")


class Usage(BaseModel):
    """Token usage for one generation."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class GenerationResult(BaseModel):
    """Normalized generation outcome."""

    content: str = Field(..., description="Generated text")
    finish_reason: FinishReason = Field(default=FinishReason.STOP)
    usage: Usage = Field(default_factory=Usage)
    model: str = Field(..., description="Resolved model id")
    cost: float = Field(default=0.0, ge=0.0, description="Cost in USD")
    duration_ms: float = Field(default=0.0, ge=0.0, description="Wall-clock duration in milliseconds")
    function_calls: list[FunctionCall] | None = None
    metadata: dict[str, Any] | None = None


class StreamingChunk(BaseModel):
    """Incremental streaming update; content is the text accumulated so far."""

    content: str = ""
    is_complete: bool = False
    usage: Usage | None = None
    function_call: FunctionCall | None = None


def estimate_usage(messages: list[ChatMessage], completion: str) -> Usage:
    """Estimate usage from the prompt messages and the completion text."""
    from ..token_optimization.counter import estimate_text_tokens

    prompt_tokens = estimate_text_tokens(" ".join(m.content for m in messages))
    completion_tokens = estimate_text_tokens(completion)
    return Usage(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )


def normalize_finish_reason(raw: str | None, mapping: Mapping[str, FinishReason]) -> FinishReason:
    """Map a provider stop reason to a FinishReason; unknown values become STOP."""
    if raw is None:
        return FinishReason.STOP
    return mapping.get(str(raw).lower(), FinishReason.STOP)


class ProviderAdapter(ABC):
    """
    Abstract adapter for one provider family.

    Adapters receive the provider-side model name already resolved by the
    dispatcher and return a GenerationResult without cost or duration.
    """

    #: Whether function definitions are forwarded to the provider
    supports_functions: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name (e.g., 'openai', 'anthropic')."""

    @abstractmethod
    async def complete(
        self,
        messages: list[ChatMessage],
        config: GenerationConfig,
        model: str,
    ) -> GenerationResult:
        """
        Run one non-streaming generation.

        Args:
            messages: Canonical conversation
            config: Generation settings
            model: Provider-side model name

        Returns:
            GenerationResult with content, finish reason and usage

        Raises:
            ProviderError: On transport failures
            MalformedProviderResponseError: If the reply cannot be parsed
        """

    async def stream(
        self,
        messages: list[ChatMessage],
        config: GenerationConfig,
        model: str,
    ) -> AsyncIterator[StreamingChunk]:
        """
        Stream a generation.

        Providers without native streaming emit a single terminal chunk built
        from a non-streaming call.
        """
        result = await self.complete(messages, config, model)
        yield StreamingChunk(
            content=result.content,
            is_complete=True,
            usage=result.usage,
            function_call=result.function_calls[0] if result.function_calls else None,
        )

    def warn_unsupported_functions(self, config: GenerationConfig) -> None:
        if config.functions and not self.supports_functions:
            logger.warning(
                f"Provider {self.name} does not support function calling; ignoring functions",
                extra={"provider": self.name, "function_count": len(config.functions)},
            )

    async def close(self) -> None:
        """Clean up resources. Override if needed."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"
