"""In-memory key-value store.

Single-process implementation of KeyValueStore with Redis-compatible TTL
behaviour. Used for development and tests; the clock is injectable so
expiry can be exercised without sleeping.
"""

import fnmatch
import math
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from infrastructure.kvstore.base import KeyValueStore, KeyValueStoreError


def _fnmatch_pattern(pattern: str) -> str:
    """Translate Redis backslash escapes into the bracket form fnmatch understands."""
    out = []
    chars = iter(pattern)
    for char in chars:
        if char == "\\":
            escaped = next(chars, "\\")
            out.append(f"[{escaped}]" if escaped in "*?[" else escaped)
        else:
            out.append(char)
    return "".join(out)


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store.

    Expired keys are purged lazily on access, the same way Redis treats a
    key whose TTL elapsed. Empty lists and sorted sets are removed, so
    ``exists`` and ``scan`` agree with the Redis backend.

    Attributes:
        time_fn: Clock returning epoch seconds (defaults to ``time.time``)
    """

    def __init__(self, time_fn: Optional[Callable[[], float]] = None) -> None:
        self._data: Dict[str, Any] = {}
        self._expires_at: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.time_fn = time_fn or time.time

    @property
    def backend_name(self) -> str:
        return "memory"

    def _purge(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and deadline <= self.time_fn():
            self._data.pop(key, None)
            self._expires_at.pop(key, None)

    def _typed(self, key: str, kind: type, operation: str) -> Any:
        self._purge(key)
        value = self._data.get(key)
        if value is not None and not isinstance(value, kind):
            raise KeyValueStoreError(
                f"WRONGTYPE operation against key holding {type(value).__name__}",
                operation=operation,
                key=key,
            )
        return value

    def _remove(self, key: str) -> None:
        self._data.pop(key, None)
        self._expires_at.pop(key, None)

    def _drop_if_empty(self, key: str) -> None:
        if not self._data.get(key):
            self._remove(key)

    # Strings and keys

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._typed(key, str, "get")

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        with self._lock:
            self._data[key] = value
            if ttl_seconds:
                self._expires_at[key] = self.time_fn() + ttl_seconds
            else:
                self._expires_at.pop(key, None)

    async def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                self._purge(key)
                if key in self._data:
                    self._remove(key)
                    removed += 1
        return removed

    async def exists(self, key: str) -> bool:
        with self._lock:
            self._purge(key)
            return key in self._data

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._lock:
            self._purge(key)
            if key not in self._data:
                return False
            if ttl_seconds <= 0:
                self._remove(key)
            else:
                self._expires_at[key] = self.time_fn() + ttl_seconds
            return True

    async def ttl(self, key: str) -> int:
        with self._lock:
            self._purge(key)
            if key not in self._data:
                return -2
            deadline = self._expires_at.get(key)
            if deadline is None:
                return -1
            return int(math.ceil(deadline - self.time_fn()))

    async def scan(self, pattern: str) -> List[str]:
        with self._lock:
            for key in list(self._data):
                self._purge(key)
            matcher = _fnmatch_pattern(pattern)
            return sorted(k for k in self._data if fnmatch.fnmatchcase(k, matcher))

    # Lists

    async def rpush(self, key: str, *values: str) -> int:
        with self._lock:
            items = self._typed(key, list, "rpush")
            if items is None:
                items = []
                self._data[key] = items
            items.extend(values)
            return len(items)

    async def lrange(self, key: str, start: int = 0, end: int = -1) -> List[str]:
        with self._lock:
            items = self._typed(key, list, "lrange") or []
            size = len(items)
            if start < 0:
                start = max(size + start, 0)
            if end < 0:
                end = size + end
            return list(items[start : end + 1])

    async def llen(self, key: str) -> int:
        with self._lock:
            return len(self._typed(key, list, "llen") or [])

    async def drain_list(self, key: str) -> List[str]:
        with self._lock:
            items = self._typed(key, list, "drain_list")
            if items is None:
                return []
            self._remove(key)
            return list(items)

    # Sorted sets

    async def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        with self._lock:
            members = self._typed(key, dict, "zadd")
            if members is None:
                members = {}
                self._data[key] = members
            added = sum(1 for m in mapping if m not in members)
            members.update({m: float(s) for m, s in mapping.items()})
            return added

    async def zrem(self, key: str, *members: str) -> int:
        with self._lock:
            current = self._typed(key, dict, "zrem")
            if current is None:
                return 0
            removed = 0
            for member in members:
                if current.pop(member, None) is not None:
                    removed += 1
            self._drop_if_empty(key)
            return removed

    async def zremrangebyscore(self, key: str, min_score: float, max_score: float) -> int:
        with self._lock:
            current = self._typed(key, dict, "zremrangebyscore")
            if current is None:
                return 0
            doomed = [m for m, s in current.items() if min_score <= s <= max_score]
            for member in doomed:
                del current[member]
            self._drop_if_empty(key)
            return len(doomed)

    async def zcount(self, key: str, min_score: float, max_score: float) -> int:
        with self._lock:
            current = self._typed(key, dict, "zcount") or {}
            return sum(1 for s in current.values() if min_score <= s <= max_score)

    async def zcard(self, key: str) -> int:
        with self._lock:
            return len(self._typed(key, dict, "zcard") or {})

    async def zrangebyscore(
        self,
        key: str,
        min_score: float,
        max_score: float,
        limit: Optional[int] = None,
    ) -> List[str]:
        with self._lock:
            current = self._typed(key, dict, "zrangebyscore") or {}
            ordered = sorted(
                (item for item in current.items() if min_score <= item[1] <= max_score),
                key=lambda item: (item[1], item[0]),
            )
            members = [member for member, _ in ordered]
            return members[:limit] if limit is not None else members

    async def ping(self) -> bool:
        return True
