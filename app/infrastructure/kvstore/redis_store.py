"""Redis-backed key-value store.

Async Redis client (``redis.asyncio``) with connection pooling. Every Redis
failure is logged and re-raised as KeyValueStoreError so callers only handle
one exception type regardless of backend.

Usage:
    from infrastructure.kvstore.redis_store import RedisKeyValueStore

    store = RedisKeyValueStore.from_url("redis://localhost:6379/0")
    await store.set("dedup:abc", "1", ttl_seconds=60)
"""

from typing import Any, Awaitable, Dict, List, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from infrastructure.kvstore.base import KeyValueStore, KeyValueStoreError
from infrastructure.logging import get_module_logger

logger = get_module_logger()


class RedisKeyValueStore(KeyValueStore):
    """KeyValueStore implementation over a shared Redis deployment.

    Attributes:
        client: ``redis.asyncio.Redis`` client with ``decode_responses=True``
    """

    def __init__(self, client: Redis) -> None:
        self.client = client

    @classmethod
    def from_url(
        cls,
        url: str,
        max_connections: int = 10,
        socket_timeout: float = 5.0,
    ) -> "RedisKeyValueStore":
        """Create a store with its own connection pool.

        Args:
            url: Redis connection URL
            max_connections: Pool size
            socket_timeout: Socket and connect timeout (seconds)

        Returns:
            RedisKeyValueStore bound to a pooled client
        """
        pool = ConnectionPool.from_url(
            url,
            decode_responses=True,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        logger.info(
            "redis_connection_pool_created",
            max_connections=max_connections,
        )
        return cls(Redis(connection_pool=pool))

    @property
    def backend_name(self) -> str:
        return "redis"

    async def _run(self, operation: str, key: str, call: Awaitable[Any]) -> Any:
        try:
            return await call
        except (ConnectionError, TimeoutError) as e:
            logger.error(
                "redis_connection_error",
                operation=operation,
                key=key,
                error=str(e),
            )
            raise KeyValueStoreError(
                f"Connection error during {operation}: {e}",
                operation=operation,
                key=key,
            ) from e
        except RedisError as e:
            logger.error(
                "redis_operation_error",
                operation=operation,
                key=key,
                error=str(e),
            )
            raise KeyValueStoreError(
                f"Redis error during {operation}: {e}",
                operation=operation,
                key=key,
            ) from e

    # Strings and keys

    async def get(self, key: str) -> Optional[str]:
        return await self._run("get", key, self.client.get(key))

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        if ttl_seconds:
            await self._run("set", key, self.client.set(key, value, ex=ttl_seconds))
        else:
            await self._run("set", key, self.client.set(key, value))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self._run("delete", keys[0], self.client.delete(*keys)))

    async def exists(self, key: str) -> bool:
        return bool(await self._run("exists", key, self.client.exists(key)))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        return bool(await self._run("expire", key, self.client.expire(key, ttl_seconds)))

    async def ttl(self, key: str) -> int:
        return int(await self._run("ttl", key, self.client.ttl(key)))

    async def scan(self, pattern: str) -> List[str]:
        async def _collect() -> List[str]:
            return [k async for k in self.client.scan_iter(match=pattern, count=200)]

        keys = await self._run("scan", pattern, _collect())
        return sorted(set(keys))

    # Lists

    async def rpush(self, key: str, *values: str) -> int:
        return int(await self._run("rpush", key, self.client.rpush(key, *values)))

    async def lrange(self, key: str, start: int = 0, end: int = -1) -> List[str]:
        return await self._run("lrange", key, self.client.lrange(key, start, end))

    async def llen(self, key: str) -> int:
        return int(await self._run("llen", key, self.client.llen(key)))

    async def drain_list(self, key: str) -> List[str]:
        async def _drain() -> List[str]:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.lrange(key, 0, -1)
                pipe.delete(key)
                items, _ = await pipe.execute()
            return items or []

        return await self._run("drain_list", key, _drain())

    # Sorted sets

    async def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        return int(await self._run("zadd", key, self.client.zadd(key, mapping)))

    async def zrem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return int(await self._run("zrem", key, self.client.zrem(key, *members)))

    async def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        return int(
            await self._run(
                "zremrangebyscore",
                key,
                self.client.zremrangebyscore(key, min_score, max_score),
            )
        )

    async def zcount(self, key: str, min_score: float, max_score: float) -> int:
        return int(
            await self._run("zcount", key, self.client.zcount(key, min_score, max_score))
        )

    async def zcard(self, key: str) -> int:
        return int(await self._run("zcard", key, self.client.zcard(key)))

    async def zrangebyscore(
        self,
        key: str,
        min_score: float,
        max_score: float,
        limit: Optional[int] = None,
    ) -> List[str]:
        if limit is not None:
            call = self.client.zrangebyscore(key, min_score, max_score, start=0, num=limit)
        else:
            call = self.client.zrangebyscore(key, min_score, max_score)
        return await self._run("zrangebyscore", key, call)

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning("redis_ping_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self.client.aclose()
