"""
Generation Dispatcher

Routes a chat request to the adapter for its provider, applies the call
timeout and fills in cost and duration uniformly.

Errors raised to callers are typed: configuration problems
(UnsupportedProviderError, UnsupportedModelError, ProviderNotInitializedError,
NotFoundError) are raised before any network call; transport problems
(ProviderError and subclasses) come from the call itself.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Mapping
from contextlib import nullcontext
from typing import Any

import httpx

from ..errors import (
    ContextForgeError,
    NotFoundError,
    ProviderError,
    ProviderNotInitializedError,
    ProviderTimeoutError,
    ValidationError,
)
from ..observability import ObservabilityAdapter
from ..providers.base import (
    ChatMessage,
    FunctionCall,
    FunctionDefinition,
    GenerationConfig,
    GenerationResult,
    ProviderAdapter,
    StreamingChunk,
)
from ..providers.custom_endpoint import CustomEndpoint, CustomEndpointAdapter
from ..providers.factory import CUSTOM_PROVIDER, create_adapter, normalize_provider
from ..registry.models import ModelDescriptor
from ..registry.registry import ModelRegistry
from .credentials import ProviderCredentials
from .endpoints import CustomEndpointStore

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


class GenerationDispatcher:
    """
    Provider-agnostic chat generation for one caller.

    The credential snapshot and registry are fixed at construction. Adapters
    are created lazily, once per provider, and reused.
    """

    def __init__(
        self,
        credentials: ProviderCredentials,
        registry: ModelRegistry,
        endpoint_store: CustomEndpointStore | None = None,
        default_timeout: float = DEFAULT_TIMEOUT,
        custom_endpoint_timeout: float = DEFAULT_TIMEOUT,
        adapters: Mapping[str, ProviderAdapter] | None = None,
        http_client: httpx.AsyncClient | None = None,
        observability: ObservabilityAdapter | None = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            credentials: Immutable credential snapshot for the caller
            registry: Model catalog
            endpoint_store: Custom endpoint store (a private in-memory one when omitted)
            default_timeout: Timeout for calls whose config sets none
            custom_endpoint_timeout: Default timeout for custom endpoints
            adapters: Pre-built adapters keyed by provider tag
            http_client: Shared HTTP client for custom endpoints
            observability: Metrics sink
        """
        self.credentials = credentials
        self.registry = registry
        self.endpoint_store = endpoint_store or CustomEndpointStore()
        self.default_timeout = default_timeout
        self.custom_endpoint_timeout = custom_endpoint_timeout
        self.observability = observability

        self._adapters: dict[str, ProviderAdapter] = dict(adapters or {})
        self._http_client = http_client
        self._owns_http_client = http_client is None

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _adapter_for(self, provider: str) -> ProviderAdapter:
        credential = self.credentials.get(provider)
        if credential is None:
            raise ProviderNotInitializedError(provider)

        adapter = self._adapters.get(provider)
        if adapter is None:
            adapter = create_adapter(
                provider,
                api_key=credential.api_key,
                base_url=credential.base_url,
                timeout=credential.timeout or self.default_timeout,
            )
            self._adapters[provider] = adapter
        return adapter

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        return self._http_client

    def _resolve(
        self, config: GenerationConfig
    ) -> tuple[str, ProviderAdapter, ModelDescriptor | None, str, float]:
        """
        Resolve provider, adapter, descriptor, wire model name and timeout.

        Raises:
            UnsupportedProviderError: Unknown provider tag
            UnsupportedModelError: Unknown model for a built-in provider
            ProviderNotInitializedError: No credential for the provider
            NotFoundError: Unknown custom endpoint
        """
        provider = normalize_provider(config.provider)

        if provider == CUSTOM_PROVIDER:
            if not config.endpoint_id:
                raise ValidationError(
                    "endpoint_id is required when provider is 'custom'",
                    details={"model": config.model},
                )
            endpoint = self.endpoint_store.get(config.endpoint_id)
            adapter = CustomEndpointAdapter(
                endpoint,
                timeout=self.custom_endpoint_timeout,
                client=self._get_http_client(),
            )
            timeout = config.timeout or endpoint.timeout or self.custom_endpoint_timeout
            return provider, adapter, self.registry.find(config.model), config.model, timeout

        descriptor = self.registry.describe(config.model)
        if descriptor.provider != provider:
            raise ValidationError(
                f"Model {descriptor.identifier} is served by {descriptor.provider}, not {provider}",
                details={"model": descriptor.identifier, "provider": provider},
            )

        adapter = self._adapter_for(provider)
        return provider, adapter, descriptor, descriptor.model, config.timeout or self.default_timeout

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, messages: list[ChatMessage], config: GenerationConfig) -> GenerationResult:
        """
        Run one chat generation.

        Args:
            messages: Conversation in canonical form
            config: Generation settings

        Returns:
            GenerationResult with cost = total_tokens * input_cost_per_1k / 1000
            and wall-clock duration since dispatch

        Raises:
            ConfigurationError subclasses: Before any network call
            ProviderError subclasses: On network failures, non-2xx answers,
                malformed payloads or timeouts
        """
        start_time = time.perf_counter()
        provider, adapter, descriptor, wire_model, timeout = self._resolve(config)
        tags = {"provider": provider}
        self._increment("generation.requests", tags)

        span = (
            self.observability.trace("generation.dispatch", {**tags, "model": config.model})
            if self.observability is not None
            else nullcontext()
        )
        try:
            with span:
                result = await asyncio.wait_for(adapter.complete(messages, config, wire_model), timeout=timeout)
        except TimeoutError as e:
            self._increment("generation.failures", tags)
            logger.warning(
                f"Generation timed out after {timeout}s",
                extra={"provider": provider, "model": config.model, "timeout": timeout},
            )
            raise ProviderTimeoutError(provider, timeout) from e
        except ContextForgeError:
            self._increment("generation.failures", tags)
            raise
        except Exception as e:
            self._increment("generation.failures", tags)
            logger.error(
                f"Generation failed: {e}",
                extra={"provider": provider, "model": config.model, "error": str(e)},
                exc_info=True,
            )
            raise ProviderError(
                f"Generation failed: {e}",
                details={"provider": provider, "model": config.model},
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        cost = result.usage.total_tokens * descriptor.input_cost_per_1k / 1000 if descriptor else 0.0

        if self.observability is not None:
            self.observability.histogram("generation.latency_ms", duration_ms, tags)

        logger.info(
            "Generation completed",
            extra={
                "provider": provider,
                "model": config.model,
                "latency_ms": round(duration_ms, 2),
                "total_tokens": result.usage.total_tokens,
                "finish_reason": result.finish_reason.value,
                "cost_usd": cost,
            },
        )

        return result.model_copy(
            update={
                "model": descriptor.identifier if descriptor else result.model,
                "cost": cost,
                "duration_ms": duration_ms,
            }
        )

    async def generate_streaming(
        self,
        messages: list[ChatMessage],
        config: GenerationConfig,
    ) -> AsyncIterator[StreamingChunk]:
        """
        Stream a generation as cumulative chunks.

        Each chunk must arrive within the call timeout. The final chunk has
        ``is_complete=True``. Configuration errors are raised on first
        iteration, before any network call.
        """
        provider, adapter, _descriptor, wire_model, timeout = self._resolve(config)
        tags = {"provider": provider}
        self._increment("generation.requests", tags)

        stream = adapter.stream(messages, config, wire_model)
        try:
            while True:
                try:
                    async with asyncio.timeout(timeout):
                        chunk = await anext(stream, None)
                except TimeoutError as e:
                    self._increment("generation.failures", tags)
                    raise ProviderTimeoutError(provider, timeout) from e
                except ContextForgeError:
                    self._increment("generation.failures", tags)
                    raise
                except Exception as e:
                    self._increment("generation.failures", tags)
                    raise ProviderError(
                        f"Streaming generation failed: {e}",
                        details={"provider": provider, "model": config.model},
                    ) from e

                if chunk is None:
                    break
                yield chunk
        finally:
            await stream.aclose()

    # ------------------------------------------------------------------
    # Functions and endpoints
    # ------------------------------------------------------------------

    async def execute_function_call(
        self,
        call: FunctionCall,
        functions: list[FunctionDefinition],
    ) -> Any:
        """
        Run the handler for a model-requested function call.

        Functions without a handler return an acknowledgement payload.

        Raises:
            NotFoundError: If no function with that name is available
        """
        definition = next((fn for fn in functions if fn.name == call.name), None)
        if definition is None:
            raise NotFoundError("Function", call.name)

        arguments = call.parsed_arguments()
        if definition.handler is not None:
            return await definition.handler(arguments)

        return {
            "status": "success",
            "message": f"Function {call.name} executed",
            "arguments": arguments,
        }

    def add_custom_endpoint(self, endpoint: CustomEndpoint) -> None:
        self.endpoint_store.add(endpoint)

    def remove_custom_endpoint(self, endpoint_id: str) -> bool:
        return self.endpoint_store.remove(endpoint_id)

    def get_custom_endpoints(self) -> list[CustomEndpoint]:
        return self.endpoint_store.list()

    async def test_endpoint(self, endpoint: CustomEndpoint) -> bool:
        """Probe ``GET <base_url>/models`` with a 10 second timeout."""
        adapter = CustomEndpointAdapter(endpoint, client=self._get_http_client())
        return await adapter.test_endpoint()

    def get_available_models(self) -> list[ModelDescriptor]:
        return self.registry.get_available_models()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _increment(self, metric: str, tags: dict[str, str]) -> None:
        if self.observability is not None:
            self.observability.increment(metric, tags=tags)

    async def close(self) -> None:
        """Close adapters and the shared HTTP client."""
        for adapter in self._adapters.values():
            await adapter.close()
        self._adapters.clear()

        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None
