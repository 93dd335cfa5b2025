"""
Redis Optimization Store

Keeps one Redis hash per subject: field = target model, value = JSON result.

Example:
    store = RedisOptimizationStore(redis_url="redis://localhost:6379", namespace="contextforge")
    await store.upsert("doc-1", "openai-gpt4o", result)
"""

import json
import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..errors import StorageError
from ..token_optimization.models import OptimizationResult
from .base import OptimizationStore

logger = logging.getLogger(__name__)


class RedisOptimizationStore(OptimizationStore):
    """
    Redis-backed optimization store.

    Notes:
    - Keys are prefixed with the configured namespace to avoid collisions.
    - Values are stored as UTF-8 JSON strings without the original content.
    """

    def __init__(
        self,
        redis_url: str | None = None,
        namespace: str = "contextforge",
        socket_timeout: int = 5,
        client: Any | None = None,
    ) -> None:
        """
        Initialize Redis store.

        Args:
            redis_url: Connection URL, e.g., redis://localhost:6379/0
            namespace: Prefix for all keys
            socket_timeout: Socket timeout in seconds
            client: Pre-built async client
        """
        if client is None and not redis_url:
            raise ValueError("redis_url is required")

        self.namespace = namespace.strip() or "contextforge"
        self._client = client or Redis.from_url(
            url=redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
        )

    def _make_key(self, subject_id: str) -> str:
        return f"{self.namespace}:optimizations:{subject_id}"

    @staticmethod
    def _to_json(result: OptimizationResult) -> str:
        data = result.to_dict(include_original=False)
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"), default=str)

    @staticmethod
    def _from_json(data: str | bytes) -> OptimizationResult:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return OptimizationResult.from_dict(json.loads(data))

    async def ping(self) -> bool:
        """Check connectivity."""
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def upsert(self, subject_id: str, model_id: str, result: OptimizationResult) -> None:
        try:
            await self._client.hset(self._make_key(subject_id), model_id, self._to_json(result))
        except RedisError as e:
            logger.error(
                f"Redis upsert failed: {e}",
                extra={"subject_id": subject_id, "model": model_id, "error": str(e)},
            )
            raise StorageError(f"Failed to store optimization: {e}", details={"subject_id": subject_id}) from e

    async def get(self, subject_id: str, model_id: str) -> OptimizationResult | None:
        try:
            data = await self._client.hget(self._make_key(subject_id), model_id)
        except RedisError as e:
            raise StorageError(f"Failed to read optimization: {e}", details={"subject_id": subject_id}) from e
        return self._from_json(data) if data is not None else None

    async def delete(self, subject_id: str, model_id: str) -> bool:
        try:
            removed = await self._client.hdel(self._make_key(subject_id), model_id)
        except RedisError as e:
            raise StorageError(f"Failed to delete optimization: {e}", details={"subject_id": subject_id}) from e
        return bool(removed)

    async def list_for_subject(self, subject_id: str) -> list[OptimizationResult]:
        try:
            entries = await self._client.hgetall(self._make_key(subject_id))
        except RedisError as e:
            raise StorageError(f"Failed to list optimizations: {e}", details={"subject_id": subject_id}) from e
        return [self._from_json(entries[model]) for model in sorted(entries)]

    async def clear_subject(self, subject_id: str) -> None:
        """Drop every result stored for a subject."""
        await self._client.delete(self._make_key(subject_id))

    async def close(self) -> None:
        try:
            await self._client.aclose()
        except RedisError as e:
            logger.warning(f"Error closing Redis client: {e}", extra={"error": str(e)})
