"""
Unit Tests for Cost Estimation

Input cost must equal estimated tokens / 1000 * input rate exactly.
"""

import pytest

from contextforge.errors import UnsupportedModelError
from contextforge.token_optimization import estimate_generation_cost, estimate_tokens, get_cost_estimates


class TestGetCostEstimates:
    """Tests for get_cost_estimates."""

    def test_input_cost_matches_token_estimate_exactly(self, registry):
        content = "Estimate the cost of this paragraph. " * 40
        for descriptor in registry:
            estimate = get_cost_estimates(registry, content, [descriptor.identifier])[descriptor.identifier]
            tokens = estimate_tokens(content, descriptor).total
            assert estimate["tokens"] == tokens
            assert estimate["input_cost"] == tokens / 1000 * descriptor.input_cost_per_1k
            assert estimate["output_cost"] == tokens / 1000 * descriptor.output_cost_per_1k

    def test_unknown_models_skipped(self, registry):
        estimates = get_cost_estimates(registry, "hello", ["gemini-pro", "nope"])
        assert list(estimates) == ["gemini-pro"]

    def test_empty_model_list(self, registry):
        assert get_cost_estimates(registry, "hello", []) == {}


class TestEstimateGenerationCost:
    """Tests for estimate_generation_cost."""

    def test_breakdown(self, registry):
        estimate = estimate_generation_cost(registry, "a" * 400, "openai-gpt4o", max_completion_tokens=500)

        breakdown = estimate["breakdown"]
        assert estimate["model"] == "openai-gpt4o"
        assert breakdown["prompt_tokens"] == 100
        assert breakdown["max_completion_tokens"] == 500
        assert breakdown["prompt_cost"] == pytest.approx(100 / 1000 * 0.005)
        assert breakdown["completion_cost"] == pytest.approx(500 / 1000 * 0.015)
        assert estimate["estimated_tokens"] == 600
        assert estimate["estimated_cost"] == pytest.approx(breakdown["prompt_cost"] + breakdown["completion_cost"])
        assert estimate["max_cost"] == pytest.approx(breakdown["completion_cost"] * 2)

    def test_default_completion_budget(self, registry):
        estimate = estimate_generation_cost(registry, "hi", "gemini-pro")
        assert estimate["breakdown"]["max_completion_tokens"] == 1000

    def test_unknown_model_raises(self, registry):
        with pytest.raises(UnsupportedModelError):
            estimate_generation_cost(registry, "hi", "nope")
