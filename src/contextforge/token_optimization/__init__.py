"""
ContextForge — Token Optimization

Token estimation, content-reduction strategies, the model optimizer, cost
projection and model recommendations.
"""

from .cost_estimator import estimate_generation_cost, get_cost_estimates
from .counter import TokenCount, estimate_tokens
from .models import OptimizationOptions, OptimizationResult
from .optimizer import ModelOptimizer, quality_score
from .recommender import ModelRecommendation, RecommendationRequirements, recommend_models
from .strategies import (
    OptimizationStrategy,
    PatternCompressionStrategy,
    ReformattingStrategy,
    StrategyContext,
    StrategyOutcome,
    TrimmingStrategy,
    WhitespaceStrategy,
    normalize_whitespace,
)

__all__ = [
    # Estimation
    "TokenCount",
    "estimate_tokens",
    "get_cost_estimates",
    "estimate_generation_cost",
    # Optimizer
    "ModelOptimizer",
    "OptimizationOptions",
    "OptimizationResult",
    "quality_score",
    # Strategies
    "OptimizationStrategy",
    "StrategyContext",
    "StrategyOutcome",
    "WhitespaceStrategy",
    "PatternCompressionStrategy",
    "ReformattingStrategy",
    "TrimmingStrategy",
    "normalize_whitespace",
    # Recommendations
    "RecommendationRequirements",
    "ModelRecommendation",
    "recommend_models",
]
