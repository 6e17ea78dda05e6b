"""Sliding-window rate limiter for chat targets.

Each target (webhook id, workspace team id) owns a sorted set
``rate-limit:<target>`` whose members are send timestamps in epoch
milliseconds. A check prunes members older than the window and compares the
remaining count to the target's cap; a successful send adds a member.

The check and the record are two separate round trips, so concurrent
senders for one target can overshoot the cap by the number of in-flight
sends.
"""

import time
import uuid
from typing import Callable, Optional

from infrastructure.kvstore import KeyBuilder, KeyValueStore, KeyValueStoreError
from infrastructure.logging import get_module_logger

logger = get_module_logger()

RATE_LIMIT_WINDOW_SECONDS = 60
RATE_LIMIT_RETENTION_SECONDS = 120
DEFAULT_LIMIT_PER_MINUTE = 30

_rate_keys = KeyBuilder("rate-limit")


class RateLimiter:
    """Per-target sliding window limiter.

    Attributes:
        store: Shared key-value store
        window_seconds: Length of the sliding window
        retention_seconds: Lifetime of an idle window key
    """

    def __init__(
        self,
        store: KeyValueStore,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
        retention_seconds: int = RATE_LIMIT_RETENTION_SECONDS,
        time_fn: Optional[Callable[[], float]] = None,
    ) -> None:
        self.store = store
        self.window_seconds = window_seconds
        self.retention_seconds = retention_seconds
        self.time_fn = time_fn or time.time

    def _now_ms(self) -> int:
        return int(self.time_fn() * 1000)

    async def is_rate_limited(
        self, target_id: str, limit_per_minute: int = DEFAULT_LIMIT_PER_MINUTE
    ) -> bool:
        """Return True when ``target_id`` already used its budget in the window.

        Store failures are logged and treated as "not limited".
        """
        key = _rate_keys.key(target_id)
        now_ms = self._now_ms()
        try:
            await self.store.zremrangebyscore(
                key, float("-inf"), now_ms - self.window_seconds * 1000
            )
            count = await self.store.zcard(key)
            if count:
                await self.store.expire(key, self.retention_seconds)
        except KeyValueStoreError as e:
            logger.warning("rate_limit_check_failed", target_id=target_id, error=str(e))
            return False

        if count >= limit_per_minute:
            logger.warning(
                "rate_limit_exceeded",
                target_id=target_id,
                count=count,
                limit_per_minute=limit_per_minute,
            )
            return True
        return False

    async def record_send(self, target_id: str) -> None:
        key = _rate_keys.key(target_id)
        now_ms = self._now_ms()
        member = f"{now_ms}-{uuid.uuid4().hex[:8]}"
        try:
            await self.store.zadd(key, {member: now_ms})
            await self.store.expire(key, self.retention_seconds)
        except KeyValueStoreError as e:
            logger.warning("rate_limit_record_failed", target_id=target_id, error=str(e))

    async def get_current_count(self, target_id: str) -> int:
        """Sends recorded for ``target_id`` inside the current window."""
        now_ms = self._now_ms()
        return await self.store.zcount(
            _rate_keys.key(target_id), now_ms - self.window_seconds * 1000 + 1, float("inf")
        )
