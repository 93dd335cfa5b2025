"""
Cost Estimator Module

Projects token costs per model from the registry's pricing. No network
calls are made; token counts come from the length-based estimator.
"""

import logging
from collections.abc import Iterable
from typing import Any

from ..registry.registry import ModelRegistry
from .counter import estimate_text_tokens, estimate_tokens

logger = logging.getLogger(__name__)

# Default completion length assumed by estimate_generation_cost
DEFAULT_COMPLETION_TOKENS = 1000


def get_cost_estimates(
    registry: ModelRegistry,
    content: str,
    model_ids: Iterable[str],
) -> dict[str, dict[str, float | int]]:
    """
    Estimate the cost of sending content to each model.

    Unknown model ids are skipped rather than reported as errors.

    Args:
        registry: Model catalog
        content: Content to be sent
        model_ids: Registry ids to estimate

    Returns:
        Mapping of model id -> {"tokens", "input_cost", "output_cost"} where
        input_cost == tokens / 1000 * input_cost_per_1k
    """
    estimates: dict[str, dict[str, float | int]] = {}

    for model_id in model_ids:
        descriptor = registry.find(model_id)
        if descriptor is None:
            logger.debug(f"Skipping cost estimate for unknown model {model_id}", extra={"model": model_id})
            continue

        tokens = estimate_tokens(content, descriptor).total
        estimates[model_id] = {
            "tokens": tokens,
            "input_cost": tokens / 1000 * descriptor.input_cost_per_1k,
            "output_cost": tokens / 1000 * descriptor.output_cost_per_1k,
        }

    return estimates


def estimate_generation_cost(
    registry: ModelRegistry,
    prompt: str,
    model_id: str,
    max_completion_tokens: int = DEFAULT_COMPLETION_TOKENS,
) -> dict[str, Any]:
    """
    Estimate the cost of one generation before running it.

    Args:
        registry: Model catalog
        prompt: Prompt text
        model_id: Registry id
        max_completion_tokens: Completion tokens to budget for

    Returns:
        Dictionary with estimated_cost, max_cost (2x the completion cost)
        and a breakdown of prompt/completion tokens and costs

    Raises:
        UnsupportedModelError: If the model is not registered
    """
    descriptor = registry.describe(model_id)

    prompt_tokens = estimate_text_tokens(prompt)
    prompt_cost = prompt_tokens / 1000 * descriptor.input_cost_per_1k
    completion_cost = max_completion_tokens / 1000 * descriptor.output_cost_per_1k

    return {
        "model": descriptor.identifier,
        "estimated_cost": prompt_cost + completion_cost,
        "estimated_tokens": prompt_tokens + max_completion_tokens,
        "max_cost": completion_cost * 2,
        "breakdown": {
            "prompt_tokens": prompt_tokens,
            "max_completion_tokens": max_completion_tokens,
            "prompt_cost": prompt_cost,
            "completion_cost": completion_cost,
        },
    }
