"""
Optimization Data Models

Options accepted by the optimizer and the result it produces.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from .counter import TokenCount
from .strategies import StrategyOutcome


class OptimizationOptions(BaseModel):
    """Per-call optimizer options."""

    max_token_budget: int | None = Field(
        default=None,
        ge=1,
        description="Token budget (defaults to 80% of the model's context window)",
    )
    prioritize_quality: bool = Field(default=False, description="Prefer quality over savings")
    aggressive_optimization: bool = Field(default=False, description="Run strategies even when under budget")
    preserve_formatting: bool = Field(default=False, description="Skip whitespace normalization")


@dataclass
class OptimizationResult:
    """
    Outcome of optimizing content for one model.

    Invariant: optimized_tokens.total <= original_tokens.total.
    """

    original_content: str
    optimized_content: str
    original_tokens: TokenCount
    optimized_tokens: TokenCount
    token_savings: int
    cost_savings: float
    quality_score: float
    strategies_applied: list[StrategyOutcome]
    target_model: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def reduction_percentage(self) -> float:
        if self.original_tokens.total == 0:
            return 0.0
        return self.token_savings / self.original_tokens.total * 100

    def to_dict(self, include_original: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "optimized_content": self.optimized_content,
            "original_tokens": self.original_tokens.to_dict(),
            "optimized_tokens": self.optimized_tokens.to_dict(),
            "token_savings": self.token_savings,
            "cost_savings": self.cost_savings,
            "quality_score": self.quality_score,
            "strategies_applied": [s.to_dict() for s in self.strategies_applied],
            "target_model": self.target_model,
            "metadata": self.metadata,
        }
        if include_original:
            data["original_content"] = self.original_content
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OptimizationResult":
        return cls(
            original_content=data.get("original_content", ""),
            optimized_content=data["optimized_content"],
            original_tokens=TokenCount.from_dict(data["original_tokens"]),
            optimized_tokens=TokenCount.from_dict(data["optimized_tokens"]),
            token_savings=int(data["token_savings"]),
            cost_savings=float(data["cost_savings"]),
            quality_score=float(data["quality_score"]),
            strategies_applied=[StrategyOutcome.from_dict(s) for s in data.get("strategies_applied", [])],
            target_model=data["target_model"],
            metadata=dict(data.get("metadata") or {}),
        )
