"""Shared key-value store settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class StoreSettings(InfrastructureSettings):
    """Key-value store configuration.

    All cross-instance state (batch buffers, quiet-hours hold queues,
    rate-limit windows, dedup records, cached preferences, queued jobs) lives
    in this store.

    Environment Variables:
        STORE_BACKEND: 'memory' (single process, tests) or 'redis'
        REDIS_URL: Connection URL for the redis backend
        REDIS_MAX_CONNECTIONS: Connection pool size (default: 10)
        REDIS_SOCKET_TIMEOUT: Socket timeout in seconds (default: 5)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        if settings.store.backend == "redis":
            url = settings.store.redis_url
        ```
    """

    backend: str = Field(
        default="memory",
        alias="STORE_BACKEND",
        description="Store backend: 'memory' or 'redis'",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        alias="REDIS_URL",
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(
        default=10,
        alias="REDIS_MAX_CONNECTIONS",
        description="Maximum connections in the redis pool",
    )
    redis_socket_timeout: float = Field(
        default=5.0,
        alias="REDIS_SOCKET_TIMEOUT",
        description="Socket and connect timeout for redis calls (seconds)",
    )
