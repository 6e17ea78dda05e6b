"""Per-recipient batch buffer.

Batchable notifications are appended to ``batch:<user>``; every append
refreshes the buffer's 30 minute retention. The periodic flush sweep drains
each buffer, consolidates same-type runs and forwards the result to push.
"""

import time
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from infrastructure.kvstore import KeyBuilder, KeyValueStore, KeyValueStoreError
from infrastructure.logging import get_module_logger
from modules.notifications.domain.models import (
    BatchedNotification,
    ConsolidatedNotification,
    NotificationEvent,
)
from modules.notifications.domain.types import (
    CONSOLIDATION_SAMPLE_FIELDS,
    batch_type_for,
    is_consolidatable_type,
)

logger = get_module_logger()

BATCH_TTL_SECONDS = 30 * 60
MAX_SAMPLE_SIZE = 5

_batch_keys = KeyBuilder("batch")


def _sample_key(field: str) -> str:
    # storyTitle -> storyTitles
    return f"{field}s"


def consolidate_batch(items: List[BatchedNotification]) -> List[ConsolidatedNotification]:
    """Group buffered notifications by type and fold consolidatable groups.

    A consolidatable group of more than one item becomes a single
    ``<type>_batch`` item carrying ``count`` and up to five distinct sample
    values (titles, agent names). Every other group passes through one item
    at a time with its type and payload unchanged. Groups keep the order in
    which their type was first seen.

    Args:
        items: Buffered notifications, usually from one workspace

    Returns:
        Consolidated notifications
    """
    groups: Dict[str, List[BatchedNotification]] = {}
    for item in items:
        groups.setdefault(item.type, []).append(item)

    result: List[ConsolidatedNotification] = []
    for notification_type, group in groups.items():
        if len(group) > 1 and is_consolidatable_type(notification_type):
            payload = {"count": len(group)}
            field = CONSOLIDATION_SAMPLE_FIELDS.get(notification_type)
            if field:
                samples: List[str] = []
                for item in group:
                    value = item.payload.get(field)
                    if value and value not in samples:
                        samples.append(value)
                payload[_sample_key(field)] = samples[:MAX_SAMPLE_SIZE]

            result.append(
                ConsolidatedNotification(
                    type=batch_type_for(notification_type),
                    payload=payload,
                    workspace_id=group[0].workspace_id,
                    count=len(group),
                )
            )
            continue

        for item in group:
            result.append(
                ConsolidatedNotification(
                    type=item.type,
                    payload=item.payload,
                    workspace_id=item.workspace_id,
                )
            )

    return result


class BatchQueue:
    """Append, drain and consolidate per-user notification buffers.

    Attributes:
        store: Shared key-value store
        ttl_seconds: Buffer retention, refreshed on every append
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = BATCH_TTL_SECONDS,
        time_fn: Optional[Callable[[], float]] = None,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.time_fn = time_fn or time.time

    async def queue_notification(self, event: NotificationEvent) -> int:
        """Append one buffered item per recipient.

        A store failure for one recipient is logged and does not stop the
        others.

        Returns:
            Number of recipients whose buffer received the item
        """
        timestamp = int(self.time_fn() * 1000)
        queued = 0

        for recipient in event.recipients:
            item = BatchedNotification(
                type=event.type,
                payload=event.payload,
                timestamp=timestamp,
                workspace_id=recipient.workspace_id,
            )
            key = _batch_keys.key(recipient.user_id)
            try:
                await self.store.rpush(key, item.model_dump_json())
                await self.store.expire(key, self.ttl_seconds)
            except KeyValueStoreError as e:
                logger.error(
                    "batch_queue_append_failed",
                    user_id=recipient.user_id,
                    notification_type=event.type,
                    error=str(e),
                )
                continue
            queued += 1

        logger.debug("notification_batched", notification_type=event.type, recipients=queued)
        return queued

    async def flush_batch(self, user_id: str) -> List[BatchedNotification]:
        """Read and clear a user's buffer in one step.

        Returns an empty list when the buffer is missing or unreadable.
        Entries that fail to parse are dropped.
        """
        try:
            raw_items = await self.store.drain_list(_batch_keys.key(user_id))
        except KeyValueStoreError as e:
            logger.error("batch_flush_failed", user_id=user_id, error=str(e))
            return []

        items: List[BatchedNotification] = []
        for raw in raw_items:
            try:
                items.append(BatchedNotification.model_validate_json(raw))
            except ValidationError:
                logger.warning("batch_entry_corrupted", user_id=user_id)
        return items

    async def get_batch_size(self, user_id: str) -> int:
        try:
            return await self.store.llen(_batch_keys.key(user_id))
        except KeyValueStoreError as e:
            logger.warning("batch_size_read_failed", user_id=user_id, error=str(e))
            return 0

    async def users_with_pending_batches(self) -> List[str]:
        keys = await self.store.scan(_batch_keys.pattern)
        return [_batch_keys.strip(key) for key in keys]

    def consolidate_batch(self, items: List[BatchedNotification]) -> List[ConsolidatedNotification]:
        return consolidate_batch(items)
