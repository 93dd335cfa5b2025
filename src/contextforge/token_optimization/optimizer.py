"""
Model Optimizer

Runs the strategy pipeline against a target model's budget and reports
token savings, cost savings and a weighted quality score.
"""

import logging
import math
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..errors import ConfigurationError
from ..observability import ObservabilityAdapter
from ..registry.catalog import DEFAULT_TRIMMING_MODEL
from ..registry.registry import ModelRegistry
from .counter import estimate_tokens
from .models import OptimizationOptions, OptimizationResult
from .strategies import (
    OptimizationStrategy,
    StrategyContext,
    StrategyOutcome,
    TextGenerator,
    TrimmingStrategy,
    WhitespaceStrategy,
    default_strategies,
)

if TYPE_CHECKING:
    from ..storage.base import OptimizationStore

logger = logging.getLogger(__name__)


def quality_score(outcomes: Sequence[StrategyOutcome]) -> float:
    """
    Savings-weighted quality: sum(q * a * s) / sum(a * s).

    Returns 1.0 when nothing applied or every weight is zero.
    """
    weighted_quality = 0.0
    total_weight = 0.0
    for outcome in outcomes:
        weight = outcome.applicability * outcome.token_savings
        weighted_quality += outcome.quality_impact * weight
        total_weight += weight
    return weighted_quality / total_weight if total_weight > 0 else 1.0


class ModelOptimizer:
    """
    Fits content to a model's token budget.

    Strategies run strictly in order: whitespace normalization (unless
    formatting is preserved), pattern compression, reformatting, then
    intelligent trimming while the content is still over budget. A step is
    adopted only when it shortens the content.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        generator: TextGenerator | None = None,
        store: "OptimizationStore | None" = None,
        trimming_model: str = DEFAULT_TRIMMING_MODEL,
        context_safety_margin: float = 0.8,
        strategies: Sequence[OptimizationStrategy] | None = None,
        observability: ObservabilityAdapter | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.context_safety_margin = context_safety_margin
        self.strategies = tuple(strategies or default_strategies(generator, registry, trimming_model))
        self.observability = observability

    def default_budget(self, context_window: int) -> int:
        return math.floor(context_window * self.context_safety_margin)

    async def optimize_for_model(
        self,
        content: str,
        target_model_id: str,
        options: OptimizationOptions | None = None,
    ) -> OptimizationResult:
        """
        Optimize content for a target model.

        Args:
            content: Content to optimize
            target_model_id: Registry id of the target model
            options: Optimizer options

        Returns:
            OptimizationResult; optimized tokens never exceed original tokens

        Raises:
            UnsupportedModelError: If the model is unknown (before any strategy runs)
        """
        options = options or OptimizationOptions()
        descriptor = self.registry.describe(target_model_id)
        start_time = time.perf_counter()

        original_tokens = estimate_tokens(content, descriptor)
        max_budget = options.max_token_budget or self.default_budget(descriptor.context_window)
        context = StrategyContext(descriptor=descriptor, max_budget=max_budget)

        optimized = content
        outcomes: list[StrategyOutcome] = []

        if original_tokens.total > max_budget or options.aggressive_optimization:
            for strategy in self.strategies:
                if isinstance(strategy, WhitespaceStrategy) and options.preserve_formatting:
                    continue
                if isinstance(strategy, TrimmingStrategy) and not strategy.is_needed(optimized, context):
                    continue

                candidate = await strategy.apply(optimized, context)
                if len(candidate) < len(optimized):
                    outcomes.append(strategy.outcome(optimized, candidate))
                    optimized = candidate

        optimized_tokens = estimate_tokens(optimized, descriptor)
        token_savings = original_tokens.total - optimized_tokens.total
        processing_time_ms = (time.perf_counter() - start_time) * 1000

        result = OptimizationResult(
            original_content=content,
            optimized_content=optimized,
            original_tokens=original_tokens,
            optimized_tokens=optimized_tokens,
            token_savings=token_savings,
            cost_savings=token_savings * descriptor.input_cost_per_1k / 1000,
            quality_score=quality_score(outcomes),
            strategies_applied=outcomes,
            target_model=descriptor.identifier,
            metadata={
                "model": descriptor.to_dict(),
                "options": options.model_dump(),
                "max_budget": max_budget,
                "processing_time_ms": round(processing_time_ms, 2),
            },
        )

        logger.info(
            f"Optimized content for {descriptor.identifier}",
            extra={
                "model": descriptor.identifier,
                "original_tokens": original_tokens.total,
                "optimized_tokens": optimized_tokens.total,
                "tokens_saved": token_savings,
                "strategies": [o.name for o in outcomes],
            },
        )
        if self.observability is not None:
            self.observability.increment("optimization.runs", tags={"model": descriptor.identifier})
            self.observability.histogram("optimization.tokens_saved", token_savings)

        return result

    async def store_optimization(self, subject_id: str, result: OptimizationResult) -> None:
        """
        Persist a result keyed on (subject, target model), replacing any previous one.

        Raises:
            ConfigurationError: If no store is configured
        """
        await self._require_store().upsert(subject_id, result.target_model, result)

    async def get_optimization(self, subject_id: str, model_id: str) -> OptimizationResult | None:
        """
        Fetch a stored result for (subject, model), or None.

        Provider model names resolve to the registry id results are stored under.
        """
        descriptor = self.registry.find(model_id)
        key = descriptor.identifier if descriptor is not None else model_id
        return await self._require_store().get(subject_id, key)

    def _require_store(self) -> "OptimizationStore":
        if self.store is None:
            raise ConfigurationError("No optimization store configured")
        return self.store
