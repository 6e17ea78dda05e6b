"""Key-value store abstract base class.

The notification engine keeps every piece of cross-instance state in one
store with TTL semantics: strings (cached preferences, dedup sentinels,
quiet-hours entries, queued jobs), lists (batch buffers, dead letters) and
sorted sets (rate-limit windows, job schedules).

All backends (in-memory, Redis) implement this interface.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class KeyValueStoreError(Exception):
    """Raised when the backing store cannot complete an operation.

    Callers decide the failure direction: preference lookups fail open,
    buffer reads fail to empty.
    """

    def __init__(self, message: str, operation: str = "", key: str = ""):
        super().__init__(message)
        self.operation = operation
        self.key = key


class KeyValueStore(ABC):
    """Async key-value store with TTL, list and sorted-set primitives.

    Key expiry follows Redis semantics: a TTL applies to the whole key,
    ``set`` without a TTL clears any previous one, and list/sorted-set writes
    leave an existing TTL untouched.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Backend identifier (memory, redis) for logging."""

    # Strings and keys

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the string value at ``key`` or None when missing/expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        """Store ``value`` at ``key``, optionally expiring after ``ttl_seconds``."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys of any type. Returns how many existed."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True when ``key`` exists and has not expired."""

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set a TTL on an existing key. Returns False when the key is missing."""

    @abstractmethod
    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -1 without expiry, -2 when missing."""

    @abstractmethod
    async def scan(self, pattern: str) -> List[str]:
        """Return all live keys matching a glob ``pattern`` (e.g. ``batch:*``)."""

    # Lists

    @abstractmethod
    async def rpush(self, key: str, *values: str) -> int:
        """Append values to the list at ``key``. Returns the new length."""

    @abstractmethod
    async def lrange(self, key: str, start: int = 0, end: int = -1) -> List[str]:
        """Return list elements between ``start`` and ``end`` inclusive."""

    @abstractmethod
    async def llen(self, key: str) -> int:
        """Return the list length (0 when missing)."""

    @abstractmethod
    async def drain_list(self, key: str) -> List[str]:
        """Atomically read the whole list and delete it."""

    # Sorted sets

    @abstractmethod
    async def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        """Add or update members with scores. Returns the number of new members."""

    @abstractmethod
    async def zrem(self, key: str, *members: str) -> int:
        """Remove members. Returns how many were removed."""

    @abstractmethod
    async def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        """Remove members with ``min_score <= score <= max_score``."""

    @abstractmethod
    async def zcount(self, key: str, min_score: float, max_score: float) -> int:
        """Count members with ``min_score <= score <= max_score``."""

    @abstractmethod
    async def zcard(self, key: str) -> int:
        """Return the number of members (0 when missing)."""

    @abstractmethod
    async def zrangebyscore(
        self,
        key: str,
        min_score: float,
        max_score: float,
        limit: Optional[int] = None,
    ) -> List[str]:
        """Return members ordered by score within the range."""

    # Lifecycle

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the backend is reachable."""

    async def close(self) -> None:
        """Release backend resources. No-op by default."""
        return None
