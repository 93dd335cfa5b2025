"""
Optimization Store Interface

Defines the persistence collaborator used to keep one optimization result
per (subject, target model) pair.
"""

from abc import ABC, abstractmethod

from ..token_optimization.models import OptimizationResult


class OptimizationStore(ABC):
    """
    Abstract base class for optimization stores.

    Keys are unique on (subject_id, model_id); writing the same pair again
    replaces the previous result.
    """

    @abstractmethod
    async def upsert(self, subject_id: str, model_id: str, result: OptimizationResult) -> None:
        """
        Insert or overwrite the result stored for (subject_id, model_id).

        Args:
            subject_id: Identifier of the optimized item
            model_id: Target model identifier
            result: Optimization result to store
        """

    @abstractmethod
    async def get(self, subject_id: str, model_id: str) -> OptimizationResult | None:
        """Fetch the stored result, or None when absent."""

    @abstractmethod
    async def delete(self, subject_id: str, model_id: str) -> bool:
        """Delete the stored result. Returns True if something was removed."""

    @abstractmethod
    async def list_for_subject(self, subject_id: str) -> list[OptimizationResult]:
        """All stored results for one subject, ordered by model id."""

    async def close(self) -> None:  # noqa: B027
        """Release backend resources."""
