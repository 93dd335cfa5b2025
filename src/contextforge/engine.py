"""
ContextForge Engine

Facade wiring the registry, optimizer, dispatcher, batch engine and
optimization store for one caller. Callers with their own credentials get
their own engine; the registry and store may be shared.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from .config import ContextForgeConfig, get_config
from .generation import (
    BatchEngine,
    BatchRequest,
    BatchResult,
    ComparisonResult,
    CustomEndpointStore,
    GenerationDispatcher,
    JsonFileEndpointPersistence,
    ProviderCredentials,
)
from .observability import ObservabilityAdapter, get_observability
from .providers import (
    ChatMessage,
    CustomEndpoint,
    FunctionCall,
    FunctionDefinition,
    GenerationConfig,
    GenerationResult,
    StreamingChunk,
)
from .registry import DEFAULT_TRIMMING_MODEL, ModelDescriptor, ModelRegistry, get_model_registry
from .storage import OptimizationStore, create_store
from .token_optimization import (
    ModelOptimizer,
    ModelRecommendation,
    OptimizationOptions,
    OptimizationResult,
    RecommendationRequirements,
    estimate_generation_cost,
    get_cost_estimates,
    recommend_models,
)

logger = logging.getLogger(__name__)


class ContextForgeEngine:
    """
    Multi-provider generation and optimization engine.

    Exposes optimize_for_model, get_cost_estimates, get_model_recommendations,
    generate, generate_streaming, batch_generate and compare_models.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        dispatcher: GenerationDispatcher,
        store: OptimizationStore | None = None,
        trimming_model: str = DEFAULT_TRIMMING_MODEL,
        context_safety_margin: float = 0.8,
        observability: ObservabilityAdapter | None = None,
    ) -> None:
        self.registry = registry
        self.dispatcher = dispatcher
        self.store = store
        self.observability = observability
        self.optimizer = ModelOptimizer(
            registry,
            generator=dispatcher,
            store=store,
            trimming_model=trimming_model,
            context_safety_margin=context_safety_margin,
            observability=observability,
        )
        self.batch = BatchEngine(dispatcher)

    @classmethod
    def from_config(
        cls,
        config: ContextForgeConfig | None = None,
        api_keys: Mapping[str, str | None] | None = None,
        registry: ModelRegistry | None = None,
        store: OptimizationStore | None = None,
        endpoint_store: CustomEndpointStore | None = None,
    ) -> "ContextForgeEngine":
        """
        Build an engine from configuration.

        Args:
            config: Root configuration (global config when omitted)
            api_keys: Per-user provider keys; replaces the configured keys
            registry: Model catalog (global registry when omitted)
            store: Optimization store (built from config when omitted)
            endpoint_store: Custom endpoint store (built from config when omitted)
        """
        config = config or get_config()
        registry = registry or get_model_registry()
        observability = get_observability() if config.observability.enable_metrics else None

        if api_keys is not None:
            credentials = ProviderCredentials.from_api_keys(api_keys)
        else:
            credentials = ProviderCredentials.from_config(config.providers)

        if endpoint_store is None:
            persistence = (
                JsonFileEndpointPersistence(config.generation.endpoints_file)
                if config.generation.endpoints_file
                else None
            )
            endpoint_store = CustomEndpointStore(persistence)
            endpoint_store.load()

        dispatcher = GenerationDispatcher(
            credentials,
            registry,
            endpoint_store=endpoint_store,
            default_timeout=config.generation.default_timeout,
            custom_endpoint_timeout=config.generation.custom_endpoint_timeout,
            observability=observability,
        )

        logger.info(
            "ContextForge engine created",
            extra={
                "providers": credentials.providers,
                "models": len(registry),
                "custom_endpoints": len(endpoint_store),
            },
        )

        return cls(
            registry,
            dispatcher,
            store=store if store is not None else create_store(config.storage),
            trimming_model=config.generation.trimming_model,
            context_safety_margin=config.optimization.context_safety_margin,
            observability=observability,
        )

    # ------------------------------------------------------------------
    # Optimization and estimation
    # ------------------------------------------------------------------

    async def optimize_for_model(
        self,
        content: str,
        model_id: str,
        options: OptimizationOptions | None = None,
        subject_id: str | None = None,
    ) -> OptimizationResult:
        """
        Optimize content for a model, storing the result when subject_id is given.

        Raises:
            UnsupportedModelError: If the model is unknown
        """
        result = await self.optimizer.optimize_for_model(content, model_id, options)
        if subject_id is not None:
            await self.optimizer.store_optimization(subject_id, result)
        return result

    async def get_optimization(self, subject_id: str, model_id: str) -> OptimizationResult | None:
        return await self.optimizer.get_optimization(subject_id, model_id)

    def get_cost_estimates(self, content: str, model_ids: list[str]) -> dict[str, dict[str, float | int]]:
        return get_cost_estimates(self.registry, content, model_ids)

    def get_model_recommendations(
        self,
        content: str,
        requirements: RecommendationRequirements | None = None,
    ) -> list[ModelRecommendation]:
        return recommend_models(self.registry, content, requirements)

    def estimate_generation_cost(
        self, prompt: str, model_id: str, max_completion_tokens: int = 1000
    ) -> dict[str, Any]:
        return estimate_generation_cost(self.registry, prompt, model_id, max_completion_tokens)

    def list_models(self, provider: str | None = None) -> list[ModelDescriptor]:
        if provider:
            return self.registry.list_by_provider(provider)
        return self.registry.get_available_models()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, messages: list[ChatMessage], config: GenerationConfig) -> GenerationResult:
        return await self.dispatcher.generate(messages, config)

    def generate_streaming(
        self, messages: list[ChatMessage], config: GenerationConfig
    ) -> AsyncIterator[StreamingChunk]:
        return self.dispatcher.generate_streaming(messages, config)

    async def batch_generate(self, requests: list[BatchRequest]) -> list[BatchResult]:
        return await self.batch.batch_generate(requests)

    async def compare_models(
        self,
        prompt: str,
        model_ids: list[str],
        config: Mapping[str, Any] | None = None,
    ) -> ComparisonResult:
        return await self.batch.compare_models(prompt, model_ids, config)

    async def execute_function_call(self, call: FunctionCall, functions: list[FunctionDefinition]) -> Any:
        return await self.dispatcher.execute_function_call(call, functions)

    # ------------------------------------------------------------------
    # Custom endpoints
    # ------------------------------------------------------------------

    async def add_custom_endpoint(self, endpoint: CustomEndpoint, test_connection: bool = False) -> bool:
        """
        Register a custom endpoint.

        Returns:
            Probe outcome when test_connection is set, otherwise True
        """
        reachable = await self.dispatcher.test_endpoint(endpoint) if test_connection else True
        if reachable:
            self.dispatcher.add_custom_endpoint(endpoint)
        return reachable

    def remove_custom_endpoint(self, endpoint_id: str) -> bool:
        return self.dispatcher.remove_custom_endpoint(endpoint_id)

    def get_custom_endpoints(self) -> list[CustomEndpoint]:
        return self.dispatcher.get_custom_endpoints()

    async def close(self) -> None:
        """Close the dispatcher and the store."""
        await self.dispatcher.close()
        if self.store is not None:
            await self.store.close()
