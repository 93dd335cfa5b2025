"""
Batch Generation and Model Comparison

Fans requests out to the dispatcher concurrently. Every request settles on
its own: a failure in one slot never cancels or corrupts its siblings, and
results always come back in input order.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field

from ..errors import error_category, extract_error_code, is_retryable_error
from ..providers.base import ChatMessage, GenerationConfig, GenerationResult, MessageRole
from .dispatcher import GenerationDispatcher

logger = logging.getLogger(__name__)

# Comparison score weights and normalization caps
LENGTH_WEIGHT = 0.4
COST_WEIGHT = 0.3
SPEED_WEIGHT = 0.3
LENGTH_CAP = 1000
COST_CAP = 0.1
DURATION_CAP_MS = 10000


class BatchRequest(BaseModel):
    """One independent generation request inside a batch."""

    id: str = Field(..., description="Caller-chosen request id")
    messages: list[ChatMessage]
    config: GenerationConfig


class BatchResult(BaseModel):
    """Settled outcome of one batch request: exactly one of result or error is set."""

    id: str
    result: GenerationResult | None = None
    error: str | None = None
    error_code: str | None = None
    category: str | None = None
    retryable: bool = False

    @property
    def ok(self) -> bool:
        return self.result is not None


class ComparisonEntry(BaseModel):
    model: str
    result: GenerationResult | None = None
    error: str | None = None
    score: float = 0.0
    rank: int = 0


class ComparisonMetrics(BaseModel):
    average_cost: float = 0.0
    average_duration_ms: float = 0.0
    average_tokens: float = 0.0
    quality_scores: dict[str, float] = Field(default_factory=dict)


class ComparisonResult(BaseModel):
    models: list[str]
    prompt: str
    results: list[ComparisonEntry]
    winner: str | None = None
    metrics: ComparisonMetrics = Field(default_factory=ComparisonMetrics)


def comparison_score(result: GenerationResult) -> float:
    """Favor fuller answers up to the length cap, then cheaper and faster ones."""
    length = min(len(result.content) / LENGTH_CAP, 1.0)
    cost = min(result.cost / COST_CAP, 1.0)
    duration = min(result.duration_ms / DURATION_CAP_MS, 1.0)
    return LENGTH_WEIGHT * length + COST_WEIGHT * (1 - cost) + SPEED_WEIGHT * (1 - duration)


class BatchEngine:
    """Concurrent batch dispatch and side-by-side model comparison."""

    def __init__(self, dispatcher: GenerationDispatcher) -> None:
        self.dispatcher = dispatcher

    async def _settle(self, request: BatchRequest) -> BatchResult:
        try:
            result = await self.dispatcher.generate(request.messages, request.config)
        except Exception as e:
            logger.warning(
                f"Batch request {request.id} failed: {e}",
                extra={"request_id": request.id, "model": request.config.model, "error": str(e)},
            )
            return BatchResult(
                id=request.id,
                error=str(e),
                error_code=extract_error_code(e).value,
                category=error_category(e).value,
                retryable=is_retryable_error(e),
            )
        return BatchResult(id=request.id, result=result)

    async def batch_generate(self, requests: list[BatchRequest]) -> list[BatchResult]:
        """
        Run every request concurrently and collect one outcome per request.

        Args:
            requests: Independent generation requests

        Returns:
            One BatchResult per request, in input order
        """
        if not requests:
            return []

        # _settle never raises, so the group never cancels a sibling
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(self._settle(request)) for request in requests]

        results = [task.result() for task in tasks]
        failures = sum(1 for r in results if not r.ok)
        logger.info(
            "Batch generation completed",
            extra={"requests": len(results), "failures": failures},
        )
        return results

    async def compare_models(
        self,
        prompt: str,
        model_ids: list[str],
        config: Mapping[str, Any] | None = None,
    ) -> ComparisonResult:
        """
        Run the same prompt against several models and rank the answers.

        Args:
            prompt: Shared user prompt
            model_ids: Registry model ids to compare
            config: Generation settings shared by every model
                (temperature, max_tokens, ...)

        Returns:
            ComparisonResult with entries sorted best first; failed models
            score 0 and rank after every successful one
        """
        overrides = {k: v for k, v in (config or {}).items() if k not in ("provider", "model")}
        messages = [ChatMessage(role=MessageRole.USER, content=prompt)]

        requests: list[BatchRequest] = []
        for model_id in model_ids:
            descriptor = self.dispatcher.registry.find(model_id)
            provider = descriptor.provider if descriptor else "openai"
            requests.append(
                BatchRequest(
                    id=model_id,
                    messages=messages,
                    config=GenerationConfig(provider=provider, model=model_id, **overrides),
                )
            )

        outcomes = await self.batch_generate(requests)

        entries = [
            ComparisonEntry(
                model=outcome.id,
                result=outcome.result,
                error=outcome.error,
                score=comparison_score(outcome.result) if outcome.result else 0.0,
            )
            for outcome in outcomes
        ]
        # sorted() is stable, so equal scores keep input order
        entries = sorted(entries, key=lambda e: (e.result is None, -e.score))
        for position, entry in enumerate(entries, start=1):
            entry.rank = position

        successes = [e for e in entries if e.result is not None]
        metrics = ComparisonMetrics(quality_scores={e.model: e.score for e in entries})
        if successes:
            count = len(successes)
            metrics.average_cost = sum(e.result.cost for e in successes) / count
            metrics.average_duration_ms = sum(e.result.duration_ms for e in successes) / count
            metrics.average_tokens = sum(e.result.usage.total_tokens for e in successes) / count

        return ComparisonResult(
            models=list(model_ids),
            prompt=prompt,
            results=entries,
            winner=successes[0].model if successes else None,
            metrics=metrics,
        )
