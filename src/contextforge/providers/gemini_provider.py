"""
Gemini Provider Adapter

Google Gemini through the google-genai SDK. System prompts map to
``system_instruction`` and assistant turns to the ``model`` role. Usage is
taken from ``usage_metadata`` when present, otherwise estimated.
"""

import logging
from typing import Any

try:
    from google import genai
    from google.genai import errors as genai_errors
    from google.genai.types import GenerateContentConfig

    GEMINI_AVAILABLE = True
except ImportError:
    genai = None  # type: ignore[assignment]
    genai_errors = None  # type: ignore[assignment]
    GenerateContentConfig = None  # type: ignore[assignment, misc]
    GEMINI_AVAILABLE = False

from ..errors import (
    DependencyError,
    MalformedProviderResponseError,
    ProviderError,
    ProviderRateLimitError,
    ValidationError,
)
from .base import (
    ChatMessage,
    FinishReason,
    GenerationConfig,
    GenerationResult,
    MessageRole,
    ProviderAdapter,
    Usage,
    estimate_usage,
    normalize_finish_reason,
)

logger = logging.getLogger(__name__)

FINISH_REASONS: dict[str, FinishReason] = {
    "stop": FinishReason.STOP,
    "max_tokens": FinishReason.LENGTH,
    "safety": FinishReason.CONTENT_FILTER,
    "recitation": FinishReason.CONTENT_FILTER,
    "blocklist": FinishReason.CONTENT_FILTER,
    "prohibited_content": FinishReason.CONTENT_FILTER,
    "spii": FinishReason.CONTENT_FILTER,
}


class GeminiAdapter(ProviderAdapter):
    """Google Gemini adapter."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float = 60.0,
        client: Any | None = None,
    ) -> None:
        """
        Initialize Gemini adapter.

        Raises:
            DependencyError: If the google-genai SDK is not installed
        """
        self.timeout = timeout

        if not GEMINI_AVAILABLE or GenerateContentConfig is None:
            logger.error("Google Gemini SDK is not installed", extra={"package": "google-genai", "provider": "gemini"})
            raise DependencyError(
                package="google-genai",
                feature="Gemini provider",
                install_hint="pip install 'google-genai>=1.0.0'",
                details={"provider": "gemini"},
            )

        if client is not None:
            self.client = client
        else:
            self.client = genai.Client(api_key=api_key)

    @property
    def name(self) -> str:
        return "gemini"

    def _convert_messages(self, messages: list[ChatMessage]) -> tuple[str | None, list[dict[str, Any]]]:
        """
        Convert canonical messages to Gemini contents.

        Returns:
            Tuple of (system_instruction, contents)
        """
        system_parts: list[str] = []
        contents: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == MessageRole.SYSTEM:
                system_parts.append(msg.content)
            elif msg.role == MessageRole.ASSISTANT:
                contents.append({"role": "model", "parts": [{"text": msg.content}]})
            else:
                contents.append({"role": "user", "parts": [{"text": msg.content}]})

        return ("\n\n".join(system_parts) or None), contents

    def _build_config(self, config: GenerationConfig, system_instruction: str | None) -> Any:
        options: dict[str, Any] = {
            "temperature": config.temperature,
            "max_output_tokens": config.max_tokens,
            "top_p": config.top_p,
            "system_instruction": system_instruction,
        }
        if config.frequency_penalty:
            options["frequency_penalty"] = config.frequency_penalty
        if config.presence_penalty:
            options["presence_penalty"] = config.presence_penalty
        if config.response_format == "json":
            options["response_mime_type"] = "application/json"
        return GenerateContentConfig(**options)

    async def complete(
        self,
        messages: list[ChatMessage],
        config: GenerationConfig,
        model: str,
    ) -> GenerationResult:
        self.warn_unsupported_functions(config)
        system_instruction, contents = self._convert_messages(messages)
        if not contents:
            raise ValidationError(
                "Gemini requires at least one non-system message",
                details={"provider": self.name, "model": model},
            )

        logger.debug(
            f"Calling Gemini API with model {model}",
            extra={
                "provider": self.name,
                "model": model,
                "message_count": len(contents),
                "has_system": bool(system_instruction),
            },
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=self._build_config(config, system_instruction),
            )
        except Exception as e:
            raise self._translate_error(e, model) from e

        if response is None:
            raise MalformedProviderResponseError(self.name, "empty response", {"model": model})

        content = getattr(response, "text", None) or ""

        finish_reason = FinishReason.STOP
        candidates = getattr(response, "candidates", None)
        if candidates:
            raw_reason = getattr(candidates[0], "finish_reason", None)
            if raw_reason is not None:
                finish_reason = normalize_finish_reason(getattr(raw_reason, "name", str(raw_reason)), FINISH_REASONS)

        return GenerationResult(
            content=content,
            finish_reason=finish_reason,
            usage=self._usage_from_response(response, messages, content),
            model=model,
        )

    def _usage_from_response(self, response: Any, messages: list[ChatMessage], content: str) -> Usage:
        metadata = getattr(response, "usage_metadata", None)
        prompt_tokens = getattr(metadata, "prompt_token_count", None) if metadata is not None else None
        completion_tokens = getattr(metadata, "candidates_token_count", None) if metadata is not None else None

        if isinstance(prompt_tokens, int) and isinstance(completion_tokens, int):
            return Usage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            )
        return estimate_usage(messages, content)

    def _translate_error(self, e: Exception, model: str) -> Exception:
        """Map SDK exceptions onto the transport error hierarchy."""
        if genai_errors is not None and isinstance(e, genai_errors.APIError):
            code = getattr(e, "code", None)
            if code == 429:
                logger.warning("Gemini rate limit exceeded", extra={"provider": self.name, "model": model})
                return ProviderRateLimitError(self.name)

            logger.error(
                f"Gemini API error: {e}",
                extra={"provider": self.name, "model": model, "error": str(e), "status_code": code},
            )
            return ProviderError(
                f"Gemini API error: {e}",
                details={"provider": self.name, "model": model, "status_code": code},
            )

        logger.error(
            f"Unexpected error calling Gemini: {e}",
            extra={"provider": self.name, "model": model, "error": str(e)},
        )
        return ProviderError(
            f"Unexpected error calling Gemini: {e}",
            details={"provider": self.name, "model": model, "error": str(e)},
        )
