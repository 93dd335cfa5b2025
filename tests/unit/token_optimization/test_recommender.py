"""
Unit Tests for Model Recommendations

Recommendations are a pure function of the registry and the content.
"""

import pytest

from contextforge.registry import ModelDescriptor, ModelRegistry, ModelTier
from contextforge.token_optimization import RecommendationRequirements, estimate_tokens, recommend_models


def descriptor(identifier: str, input_cost: float, context_window: int = 100_000, **kwargs) -> ModelDescriptor:
    return ModelDescriptor(
        identifier=identifier,
        provider="openai",
        model=identifier,
        max_tokens=100,
        input_cost_per_1k=input_cost,
        output_cost_per_1k=input_cost,
        context_window=context_window,
        **kwargs,
    )


class TestRecommendModels:
    """Tests for recommend_models."""

    def test_max_cost_hard_excludes_expensive_models(self, registry):
        content = "x" * 4000
        requirements = RecommendationRequirements(max_cost=0.0001)

        recommendations = recommend_models(registry, content, requirements)
        ids = {r.model_id for r in recommendations}

        for model in registry:
            cost = model.calculate_cost(estimate_tokens(content, model).total)
            if cost > 0.0001:
                assert model.identifier not in ids
        assert "anthropic-claude3-opus" not in ids

    def test_context_overflow_excluded(self):
        small = descriptor("small", 0.001, context_window=200)
        large = descriptor("large", 0.001, context_window=100_000)
        recommendations = recommend_models(ModelRegistry([small, large]), "x" * 4000)
        assert [r.model_id for r in recommendations] == ["large"]

    def test_sorted_by_descending_score(self, registry):
        recommendations = recommend_models(registry, "hello world " * 100)
        scores = [r.score for r in recommendations]
        assert scores == sorted(scores, reverse=True)
        assert len(recommendations) == len(registry)

    def test_quality_bonus_only_when_prioritized(self):
        premium = descriptor("premium", 0.01, tier=ModelTier.PREMIUM)
        registry = ModelRegistry([premium])

        plain = recommend_models(registry, "hello")[0]
        prioritized = recommend_models(registry, "hello", RecommendationRequirements(prioritize_quality=True))[0]

        assert prioritized.score == pytest.approx(plain.score + 0.4)
        assert "High-quality model." in prioritized.reasoning
        assert "High-quality model." not in plain.reasoning

    def test_score_terms(self):
        fast = descriptor("fast", 0.0, capabilities=("fast",))
        rec = recommend_models(ModelRegistry([fast]), "hello")[0]
        # cost efficiency 0.3 + modest headroom 0.1 + fast 0.1
        assert rec.score == pytest.approx(0.5)
        assert rec.reasoning == "Cost-efficient (0.0000). Good context fit. Fast and efficient."
        assert rec.cost == 0.0
        assert rec.tokens == 2

    def test_large_context_bonus(self):
        model = descriptor("big", 0.0)
        rec = recommend_models(
            ModelRegistry([model]), "hello", RecommendationRequirements(requires_large_context=True)
        )[0]
        assert rec.score == pytest.approx(0.5)
        assert "Suitable for large context." in rec.reasoning

    def test_cost_efficiency_bottoms_out(self):
        pricey = descriptor("pricey", 1.0)
        rec = recommend_models(ModelRegistry([pricey]), "x" * 4000)[0]
        # 1000 tokens at $1/1K is past the ceiling, so only the headroom term remains
        assert rec.score == pytest.approx(0.1)

    def test_budget_model_wins_on_cost(self, registry):
        recommendations = recommend_models(registry, "hello world " * 100)
        assert recommendations[0].model_id in {"openai-gpt4o-mini", "anthropic-claude3-haiku"}
