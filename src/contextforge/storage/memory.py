"""
In-Memory Optimization Store

Dictionary-backed store for tests and single-process deployments.
"""

import asyncio
import logging

from ..token_optimization.models import OptimizationResult
from .base import OptimizationStore

logger = logging.getLogger(__name__)


class MemoryOptimizationStore(OptimizationStore):
    """Optimization store keeping results in a dict keyed on (subject, model)."""

    def __init__(self) -> None:
        self._results: dict[tuple[str, str], OptimizationResult] = {}
        self._lock = asyncio.Lock()

    async def upsert(self, subject_id: str, model_id: str, result: OptimizationResult) -> None:
        async with self._lock:
            self._results[(subject_id, model_id)] = result
        logger.debug("Stored optimization", extra={"subject_id": subject_id, "model": model_id})

    async def get(self, subject_id: str, model_id: str) -> OptimizationResult | None:
        async with self._lock:
            return self._results.get((subject_id, model_id))

    async def delete(self, subject_id: str, model_id: str) -> bool:
        async with self._lock:
            return self._results.pop((subject_id, model_id), None) is not None

    async def list_for_subject(self, subject_id: str) -> list[OptimizationResult]:
        async with self._lock:
            keys = sorted(key for key in self._results if key[0] == subject_id)
            return [self._results[key] for key in keys]

    def __len__(self) -> int:
        return len(self._results)
