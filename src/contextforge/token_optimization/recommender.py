"""
Recommendation Engine

Scores every registered model against caller constraints without invoking
any provider.
"""

from dataclasses import asdict, dataclass
from typing import Any

from pydantic import BaseModel, Field

from ..registry.registry import ModelRegistry
from .counter import estimate_tokens

# Cost at which the cost-efficiency term bottoms out
COST_CEILING = 0.1


class RecommendationRequirements(BaseModel):
    """Caller constraints for model recommendations."""

    max_cost: float | None = Field(default=None, ge=0.0, description="Hard ceiling on projected input cost (USD)")
    prioritize_quality: bool = Field(default=False, description="Favor top-tier models")
    requires_large_context: bool = Field(default=False, description="Reward context headroom")


@dataclass(frozen=True)
class ModelRecommendation:
    model_id: str
    score: float
    reasoning: str
    cost: float
    tokens: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def recommend_models(
    registry: ModelRegistry,
    content: str,
    requirements: RecommendationRequirements | None = None,
) -> list[ModelRecommendation]:
    """
    Rank registry models for a piece of content.

    Models whose projected cost exceeds ``max_cost`` or whose token total
    exceeds their context window are excluded outright. Survivors score:

    - 0.4 for top-tier models when quality is prioritized
    - (1 - min(cost / 0.1, 1)) * 0.3 for cost efficiency
    - 0.2 when large context is required and utilization < 0.8, otherwise
      0.1 when utilization < 0.5
    - 0.1 for fast, cost-efficient variants

    Returns:
        Recommendations sorted by descending score
    """
    requirements = requirements or RecommendationRequirements()
    recommendations: list[ModelRecommendation] = []

    for descriptor in registry.get_available_models():
        tokens = estimate_tokens(content, descriptor).total
        cost = descriptor.calculate_cost(tokens)

        if requirements.max_cost is not None and cost > requirements.max_cost:
            continue
        if tokens > descriptor.context_window:
            continue

        score = 0.0
        reasons: list[str] = []

        if requirements.prioritize_quality and descriptor.is_top_tier:
            score += 0.4
            reasons.append("High-quality model.")

        score += (1 - min(cost / COST_CEILING, 1)) * 0.3
        reasons.append(f"Cost-efficient ({cost:.4f}).")

        utilization = tokens / descriptor.context_window
        if requirements.requires_large_context and utilization < 0.8:
            score += 0.2
            reasons.append("Suitable for large context.")
        elif not requirements.requires_large_context and utilization < 0.5:
            score += 0.1
            reasons.append("Good context fit.")

        if descriptor.is_fast:
            score += 0.1
            reasons.append("Fast and efficient.")

        recommendations.append(
            ModelRecommendation(
                model_id=descriptor.identifier,
                score=score,
                reasoning=" ".join(reasons),
                cost=cost,
                tokens=tokens,
            )
        )

    recommendations.sort(key=lambda r: r.score, reverse=True)
    return recommendations
