"""
SQLite Optimization Store

Async SQLite persistence (SQLAlchemy + aiosqlite) for optimization results.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import Select, delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..errors import StorageError
from ..token_optimization.models import OptimizationResult
from .base import OptimizationStore
from .db_models import Base, OptimizationRecord

logger = logging.getLogger(__name__)


class SQLiteOptimizationStore(OptimizationStore):
    """
    Optimization store backed by a SQLite file.

    Provides:
    - Automatic schema creation
    - Async session management
    - Upsert on (subject_id, target_model)
    """

    def __init__(self, db_path: str = "./data/optimizations.db"):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        if db_path == ":memory:":
            self.db_path: Path | None = None
            self.db_url = "sqlite+aiosqlite:///:memory:"
        else:
            self.db_path = Path(db_path).resolve()
            self.db_url = f"sqlite+aiosqlite:///{self.db_path}"

        self.engine: AsyncEngine = create_async_engine(
            self.db_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        self._initialized = False
        self._initialization_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Create tables if they don't exist. Safe to call multiple times."""
        async with self._initialization_lock:
            if self._initialized:
                return

            if self.db_path is not None:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self._initialized = True
            logger.info("Optimization database initialized", extra={"db_url": self.db_url})

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        if not self._initialized:
            await self.initialize()

        async with self.session_factory() as session:
            yield session

    @staticmethod
    def _lookup(subject_id: str, model_id: str) -> Select[tuple[OptimizationRecord]]:
        return select(OptimizationRecord).where(
            OptimizationRecord.subject_id == subject_id,
            OptimizationRecord.target_model == model_id,
        )

    async def upsert(self, subject_id: str, model_id: str, result: OptimizationResult) -> None:
        values = OptimizationRecord.values_for(subject_id, model_id, result)
        statement = sqlite_insert(OptimizationRecord).values(**values)
        statement = statement.on_conflict_do_update(
            index_elements=["subject_id", "target_model"],
            set_={key: statement.excluded[key] for key in values if key not in ("subject_id", "target_model")},
        )
        try:
            async with self.get_session() as session:
                await session.execute(statement)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(
                f"Failed to store optimization: {e}",
                extra={"subject_id": subject_id, "model": model_id, "error": str(e)},
            )
            raise StorageError(
                f"Failed to store optimization: {e}",
                details={"subject_id": subject_id, "model": model_id},
            ) from e

    async def get(self, subject_id: str, model_id: str) -> OptimizationResult | None:
        try:
            async with self.get_session() as session:
                record = (await session.execute(self._lookup(subject_id, model_id))).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to read optimization: {e}",
                details={"subject_id": subject_id, "model": model_id},
            ) from e
        return record.to_result() if record is not None else None

    async def delete(self, subject_id: str, model_id: str) -> bool:
        try:
            async with self.get_session() as session:
                outcome = await session.execute(
                    delete(OptimizationRecord).where(
                        OptimizationRecord.subject_id == subject_id,
                        OptimizationRecord.target_model == model_id,
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to delete optimization: {e}",
                details={"subject_id": subject_id, "model": model_id},
            ) from e
        return bool(outcome.rowcount)

    async def list_for_subject(self, subject_id: str) -> list[OptimizationResult]:
        try:
            async with self.get_session() as session:
                rows = await session.execute(
                    select(OptimizationRecord)
                    .where(OptimizationRecord.subject_id == subject_id)
                    .order_by(OptimizationRecord.target_model)
                )
                records = rows.scalars().all()
        except SQLAlchemyError as e:
            raise StorageError(
                f"Failed to list optimizations: {e}",
                details={"subject_id": subject_id},
            ) from e
        return [record.to_result() for record in records]

    async def close(self) -> None:
        """Close database connections gracefully."""
        await self.engine.dispose()
        self._initialized = False
