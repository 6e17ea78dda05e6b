"""Factory for creating key-value stores based on configuration."""

from typing import Optional

from infrastructure.configuration import StoreSettings
from infrastructure.kvstore.base import KeyValueStore
from infrastructure.kvstore.memory import InMemoryKeyValueStore
from infrastructure.kvstore.redis_store import RedisKeyValueStore
from infrastructure.logging import get_module_logger

logger = get_module_logger()


def create_store(settings: StoreSettings, backend: Optional[str] = None) -> KeyValueStore:
    """Create the key-value store selected by configuration.

    Args:
        settings: Store settings (backend, redis url, pool sizing)
        backend: Optional backend override ('memory' or 'redis')

    Returns:
        KeyValueStore implementation

    Raises:
        ValueError: If an unknown backend is specified

    Examples:
        >>> store = create_store(settings.store)
        >>> store = create_store(settings.store, backend="memory")
    """
    backend = backend or settings.backend

    if backend == "memory":
        logger.info("creating_in_memory_store")
        return InMemoryKeyValueStore()

    elif backend == "redis":
        logger.info("creating_redis_store")
        return RedisKeyValueStore.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            socket_timeout=settings.redis_socket_timeout,
        )

    else:
        raise ValueError(f"Unknown store backend: {backend}. Supported: memory, redis")
