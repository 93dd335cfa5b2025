"""
Optimization Store Factory

Select the backend with STORAGE_BACKEND=memory|sqlite|redis.

Examples:
    from contextforge.storage import create_store

    store = create_store()  # uses the configured backend

    cfg = StorageConfig(backend=StorageBackend.SQLITE, db_path="/tmp/opt.db")
    sqlite_store = create_store(cfg)
"""

import logging

from ..config import StorageBackend, StorageConfig, get_config
from ..errors import ConfigurationError
from .base import OptimizationStore
from .memory import MemoryOptimizationStore

logger = logging.getLogger(__name__)


def create_store(config: StorageConfig | None = None) -> OptimizationStore:
    """
    Create an optimization store from configuration.

    Args:
        config: Storage configuration (uses global config if not provided)

    Returns:
        Configured store instance

    Raises:
        ConfigurationError: If the backend is misconfigured
    """
    if config is None:
        config = get_config().storage

    if config.backend == StorageBackend.MEMORY:
        store: OptimizationStore = MemoryOptimizationStore()
    elif config.backend == StorageBackend.SQLITE:
        from .sqlite import SQLiteOptimizationStore

        store = SQLiteOptimizationStore(db_path=config.db_path)
    elif config.backend == StorageBackend.REDIS:
        if not config.redis_url:
            raise ConfigurationError(
                "REDIS_URL must be set when STORAGE_BACKEND=redis",
                details={"env": "REDIS_URL", "backend": "redis"},
            )
        from .redis_store import RedisOptimizationStore

        store = RedisOptimizationStore(redis_url=config.redis_url, namespace=config.namespace)
    else:
        raise ConfigurationError(
            f"Unsupported storage backend: {config.backend}",
            details={"backend": str(config.backend)},
        )

    logger.info("Optimization store created", extra={"backend": config.backend.value})
    return store
