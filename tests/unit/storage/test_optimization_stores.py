"""
Unit Tests for Optimization Stores

The same behavior is checked against the in-memory and SQLite backends;
the Redis backend runs against a live server when one is available.
"""

import asyncio
import socket
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from contextforge.config import StorageBackend, StorageConfig
from contextforge.errors import ConfigurationError, StorageError
from contextforge.storage import MemoryOptimizationStore, create_store
from contextforge.storage.redis_store import RedisOptimizationStore
from contextforge.storage.sqlite import SQLiteOptimizationStore
from contextforge.token_optimization import OptimizationResult, StrategyOutcome, TokenCount


def _redis_reachable() -> bool:
    try:
        with socket.create_connection(("localhost", 6379), timeout=1):
            return True
    except OSError:
        return False


redis_available = pytest.mark.skipif(not _redis_reachable(), reason="Redis server not available")


def make_result(model: str = "gemini-pro", optimized: str = "short text", savings: int = 12) -> OptimizationResult:
    return OptimizationResult(
        original_content="a much longer original text " * 4,
        optimized_content=optimized,
        original_tokens=TokenCount(total=30, content=30),
        optimized_tokens=TokenCount(total=30 - savings, content=30 - savings),
        token_savings=savings,
        cost_savings=savings * 0.0005 / 1000,
        quality_score=0.95,
        strategies_applied=[StrategyOutcome("whitespace-removal", "Normalized whitespace", savings, 1.0, 1.0)],
        target_model=model,
        metadata={"processing_time_ms": 1.5},
    )


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request, tmp_path):
    if request.param == "memory":
        backend = MemoryOptimizationStore()
    else:
        backend = SQLiteOptimizationStore(db_path=str(tmp_path / "optimizations.db"))
    yield backend
    await backend.close()


class TestOptimizationStore:
    """Behavior shared by every backend."""

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("doc-1", "gemini-pro") is None

    @pytest.mark.asyncio
    async def test_upsert_and_get(self, store):
        await store.upsert("doc-1", "gemini-pro", make_result())

        stored = await store.get("doc-1", "gemini-pro")

        assert stored is not None
        assert stored.optimized_content == "short text"
        assert stored.token_savings == 12
        assert stored.optimized_tokens.total == 18
        assert stored.strategies_applied[0].name == "whitespace-removal"
        assert stored.target_model == "gemini-pro"

    @pytest.mark.asyncio
    async def test_upsert_overwrites_same_key(self, store):
        await store.upsert("doc-1", "gemini-pro", make_result(optimized="first"))
        await store.upsert("doc-1", "gemini-pro", make_result(optimized="second", savings=20))

        stored = await store.get("doc-1", "gemini-pro")

        assert stored.optimized_content == "second"
        assert stored.token_savings == 20
        assert len(await store.list_for_subject("doc-1")) == 1

    @pytest.mark.asyncio
    async def test_concurrent_upserts_same_key(self, store):
        results = [make_result(optimized=f"version-{i}") for i in range(8)]

        await asyncio.gather(*(store.upsert("doc-1", "gemini-pro", r) for r in results))

        listed = await store.list_for_subject("doc-1")
        assert len(listed) == 1
        assert listed[0].optimized_content in {r.optimized_content for r in results}

    @pytest.mark.asyncio
    async def test_keys_are_per_subject_and_model(self, store):
        await store.upsert("doc-1", "gemini-pro", make_result("gemini-pro"))
        await store.upsert("doc-1", "anthropic-claude3-haiku", make_result("anthropic-claude3-haiku"))
        await store.upsert("doc-2", "gemini-pro", make_result("gemini-pro", optimized="other"))

        listed = await store.list_for_subject("doc-1")

        assert [r.target_model for r in listed] == ["anthropic-claude3-haiku", "gemini-pro"]
        assert (await store.get("doc-2", "gemini-pro")).optimized_content == "other"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.upsert("doc-1", "gemini-pro", make_result())

        assert await store.delete("doc-1", "gemini-pro") is True
        assert await store.delete("doc-1", "gemini-pro") is False
        assert await store.get("doc-1", "gemini-pro") is None


class TestSQLiteStore:
    """SQLite-specific behavior."""

    @pytest.mark.asyncio
    async def test_original_content_not_persisted(self, tmp_path):
        store = SQLiteOptimizationStore(db_path=str(tmp_path / "opt.db"))
        await store.upsert("doc-1", "gemini-pro", make_result())

        stored = await store.get("doc-1", "gemini-pro")

        assert stored.original_content == ""
        assert stored.metadata == {"processing_time_ms": 1.5}
        await store.close()

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "data" / "opt.db")
        first = SQLiteOptimizationStore(db_path=path)
        await first.upsert("doc-1", "gemini-pro", make_result())
        await first.close()

        second = SQLiteOptimizationStore(db_path=path)
        assert (await second.get("doc-1", "gemini-pro")).optimized_content == "short text"
        await second.close()


class TestRedisStoreErrors:
    """Redis failures surface as StorageError."""

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        client = AsyncMock()
        client.hget.side_effect = RedisConnectionError("refused")
        store = RedisOptimizationStore(client=client, namespace="test")

        with pytest.raises(StorageError) as exc_info:
            await store.get("doc-1", "gemini-pro")
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_key_layout(self):
        client = AsyncMock()
        store = RedisOptimizationStore(client=client, namespace="test")

        await store.upsert("doc-1", "gemini-pro", make_result())

        key, field, payload = client.hset.await_args.args
        assert key == "test:optimizations:doc-1"
        assert field == "gemini-pro"
        assert "original_content" not in payload

    def test_requires_url_or_client(self):
        with pytest.raises(ValueError):
            RedisOptimizationStore()


@redis_available
class TestRedisStoreLive:
    """Round trips against a running Redis server."""

    @pytest.mark.asyncio
    async def test_upsert_get_delete(self, test_redis_url):
        store = RedisOptimizationStore(redis_url=test_redis_url, namespace="contextforge-test")
        await store.clear_subject("doc-1")

        await store.upsert("doc-1", "gemini-pro", make_result())
        await store.upsert("doc-1", "gemini-pro", make_result(optimized="again"))

        assert (await store.get("doc-1", "gemini-pro")).optimized_content == "again"
        assert len(await store.list_for_subject("doc-1")) == 1
        assert await store.delete("doc-1", "gemini-pro") is True

        await store.close()


class TestCreateStore:
    """Tests for the store factory."""

    def test_memory(self):
        assert isinstance(create_store(StorageConfig(backend=StorageBackend.MEMORY)), MemoryOptimizationStore)

    @pytest.mark.asyncio
    async def test_sqlite(self, tmp_path):
        store = create_store(StorageConfig(backend=StorageBackend.SQLITE, db_path=str(tmp_path / "x.db")))
        assert isinstance(store, SQLiteOptimizationStore)
        await store.close()

    def test_redis(self):
        store = create_store(StorageConfig(backend=StorageBackend.REDIS, redis_url="redis://localhost:6379/15"))
        assert isinstance(store, RedisOptimizationStore)
        assert store.namespace == "contextforge"

    def test_redis_without_url(self):
        config = StorageConfig.model_construct(backend=StorageBackend.REDIS, redis_url=None)
        with pytest.raises(ConfigurationError):
            create_store(config)

    def test_uses_global_config(self, monkeypatch):
        from contextforge.config import reload_config

        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        monkeypatch.delenv("REDIS_URL", raising=False)
        reload_config()

        assert isinstance(create_store(), MemoryOptimizationStore)
