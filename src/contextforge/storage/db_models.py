"""
Optimization Database Models

SQLAlchemy models for persisted optimization results.
"""

import json
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..token_optimization.models import OptimizationResult


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""

    pass


class OptimizationRecord(Base):
    """
    One optimization result per (subject, target model).

    The original content is not stored; it belongs to the subject record
    owned by the caller.
    """

    __tablename__ = "optimizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    target_model: Mapped[str] = mapped_column(String(255), nullable=False)
    optimized_content: Mapped[str] = mapped_column(Text, nullable=False)
    original_tokens: Mapped[str] = mapped_column(Text, nullable=False)  # JSON string
    optimized_tokens: Mapped[str] = mapped_column(Text, nullable=False)  # JSON string
    token_savings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cost_savings: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    quality_score: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    strategies_applied: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON string
    metadata_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    __table_args__ = (UniqueConstraint("subject_id", "target_model", name="uq_optimization_subject_model"),)

    @staticmethod
    def values_for(subject_id: str, model_id: str, result: OptimizationResult) -> dict[str, Any]:
        """Column values for one row, keyed by column name."""
        data = result.to_dict(include_original=False)
        return {
            "subject_id": subject_id,
            "target_model": model_id,
            "optimized_content": data["optimized_content"],
            "original_tokens": json.dumps(data["original_tokens"]),
            "optimized_tokens": json.dumps(data["optimized_tokens"]),
            "token_savings": data["token_savings"],
            "cost_savings": data["cost_savings"],
            "quality_score": data["quality_score"],
            "strategies_applied": json.dumps(data["strategies_applied"]),
            "metadata_json": json.dumps(data["metadata"], default=str),
            "updated_at": datetime.now(UTC),
        }

    def to_result(self) -> OptimizationResult:
        data: dict[str, Any] = {
            "optimized_content": self.optimized_content,
            "original_tokens": json.loads(self.original_tokens),
            "optimized_tokens": json.loads(self.optimized_tokens),
            "token_savings": self.token_savings,
            "cost_savings": self.cost_savings,
            "quality_score": self.quality_score,
            "strategies_applied": json.loads(self.strategies_applied),
            "target_model": self.target_model,
            "metadata": json.loads(self.metadata_json) if self.metadata_json else {},
        }
        return OptimizationResult.from_dict(data)
