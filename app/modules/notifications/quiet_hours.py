"""Quiet hours engine.

Timezone-aware "is now inside the suppression window" checks, a hold queue
for suppressed notifications, and the digest built when the queue is
flushed.

Window arithmetic is done in minutes since midnight in the configured IANA
timezone. A window whose start is later than its end crosses midnight
(22:00-08:00 contains 23:00 and 03:00 but not 12:00). Membership is
inclusive at start and exclusive at end.

Held notifications are stored one key per item,
``quiet-hours:<user>:<timestamp>``, each with its own 12 hour retention so
a user who never comes back cannot accumulate an unbounded queue.
"""

import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytz
from pydantic import ValidationError

from infrastructure.kvstore import KeyBuilder, KeyValueStore, KeyValueStoreError
from infrastructure.logging import get_module_logger
from modules.notifications.domain.models import (
    DigestSummary,
    NotificationEvent,
    Preferences,
    QueuedNotification,
    QuietHoursConfig,
    QuietHoursStatus,
    Recipient,
)
from modules.notifications.domain.types import TypeLike, is_critical_type

logger = get_module_logger()

QUIET_HOURS_TTL_SECONDS = 12 * 60 * 60

_hold_keys = KeyBuilder("quiet-hours")


def _to_minutes(hh_mm: str) -> int:
    hours, minutes = hh_mm.split(":")
    return int(hours) * 60 + int(minutes)


def is_time_between(current: str, start: str, end: str) -> bool:
    """Return True when ``current`` lies in ``[start, end)``.

    All arguments are "HH:MM" strings. ``start > end`` means the window
    crosses midnight.

    Example:
        is_time_between("23:00", "22:00", "08:00")  # True
        is_time_between("12:00", "22:00", "08:00")  # False
        is_time_between("08:00", "22:00", "08:00")  # False, end is exclusive
    """
    now = _to_minutes(current)
    start_minutes = _to_minutes(start)
    end_minutes = _to_minutes(end)

    if start_minutes > end_minutes:
        return now >= start_minutes or now < end_minutes

    return start_minutes <= now < end_minutes


def resolve_timezone(name: str):
    """Return the pytz zone for ``name``, falling back to UTC when unknown."""
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning("quiet_hours_invalid_timezone", timezone=name, fallback="UTC")
        return pytz.UTC


def should_bypass_quiet_hours(notification_type: TypeLike, except_critical: bool) -> bool:
    """Whether ``except_critical`` lets this type through the window.

    The flag only ever affects critical types; non-critical types are never
    bypassed.
    """
    return except_critical and is_critical_type(notification_type)


class QuietHoursEngine:
    """Quiet-hours window checks, hold queue and digest builder.

    Attributes:
        store: Shared key-value store holding the hold queue
        ttl_seconds: Retention of each held notification
        clock: Returns the current time as an aware datetime
    """

    def __init__(
        self,
        store: KeyValueStore,
        ttl_seconds: int = QUIET_HOURS_TTL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _local_now(self, config: QuietHoursConfig) -> datetime:
        return self.clock().astimezone(resolve_timezone(config.timezone))

    def is_window_active(self, config: QuietHoursConfig) -> bool:
        """Return True when ``config`` is enabled and now falls in its window."""
        if not config.enabled:
            return False

        current = self._local_now(config).strftime("%H:%M")
        return is_time_between(current, config.start_time, config.end_time)

    def is_in_quiet_hours(self, user_id: str, prefs: Preferences) -> bool:
        active = self.is_window_active(prefs.quiet_hours)
        if active:
            logger.debug(
                "quiet_hours_active",
                user_id=user_id,
                workspace_id=prefs.workspace_id,
                timezone=prefs.quiet_hours.timezone,
            )
        return active

    def get_status(self, user_id: str, prefs: Preferences) -> QuietHoursStatus:
        """Current window state with the local time the window ends."""
        config = prefs.quiet_hours
        if not self.is_in_quiet_hours(user_id, prefs):
            return QuietHoursStatus(in_quiet_hours=False)

        return QuietHoursStatus(
            in_quiet_hours=True,
            ends_at=self.calculate_end_time(config).isoformat(),
            timezone=config.timezone,
        )

    def calculate_end_time(self, config: QuietHoursConfig) -> datetime:
        """Next local datetime at which the window ends.

        The configured end time is rolled to the next day when the window
        crosses midnight and now is past today's start, or when the window
        does not cross midnight and today's end has already passed.
        """
        zone = resolve_timezone(config.timezone)
        local_now = self.clock().astimezone(zone)
        current = local_now.hour * 60 + local_now.minute
        start = _to_minutes(config.start_time)
        end = _to_minutes(config.end_time)
        end_hour, end_minute = divmod(end, 60)

        end_date = local_now.date()
        crosses_midnight = start > end
        if crosses_midnight and current >= start:
            end_date += timedelta(days=1)
        elif not crosses_midnight and current >= end:
            end_date += timedelta(days=1)

        naive_end = datetime(end_date.year, end_date.month, end_date.day, end_hour, end_minute)
        return zone.localize(naive_end)

    def should_bypass_quiet_hours(self, notification_type: TypeLike, except_critical: bool) -> bool:
        return should_bypass_quiet_hours(notification_type, except_critical)

    async def queue_for_later(self, recipient: Recipient, event: NotificationEvent) -> str:
        """Hold ``event`` for ``recipient`` until the window ends.

        Returns:
            The store key of the held notification
        """
        timestamp = int(self.clock().timestamp() * 1000)
        item = QueuedNotification(
            type=event.type,
            payload=event.payload,
            timestamp=timestamp,
            workspace_id=recipient.workspace_id,
        )
        key = _hold_keys.key(recipient.user_id, f"{timestamp}-{uuid.uuid4().hex[:8]}")
        await self.store.set(key, item.model_dump_json(), ttl_seconds=self.ttl_seconds)

        logger.info(
            "notification_held_for_quiet_hours",
            user_id=recipient.user_id,
            workspace_id=recipient.workspace_id,
            notification_type=event.type,
        )
        return key

    async def get_queued_notifications(
        self, user_id: str, workspace_id: Optional[str] = None
    ) -> List[QueuedNotification]:
        """Read held notifications without removing them, sorted by timestamp."""
        items, _ = await self._read_queue(user_id, workspace_id)
        return items

    async def count_queued_notifications(self, user_id: str) -> int:
        try:
            return len(await self._hold_keys_for(user_id))
        except KeyValueStoreError as e:
            logger.warning("quiet_hours_count_failed", user_id=user_id, error=str(e))
            return 0

    async def flush_queued_notifications(
        self, user_id: str, workspace_id: Optional[str] = None
    ) -> List[QueuedNotification]:
        """Read and delete held notifications, sorted by timestamp.

        Malformed entries are dropped. Store failures return an empty list.

        Args:
            user_id: User whose queue to flush
            workspace_id: Only flush items for this workspace when given
        """
        try:
            items, keys = await self._read_queue(user_id, workspace_id)
            if keys:
                await self.store.delete(*keys)
        except KeyValueStoreError as e:
            logger.error("quiet_hours_flush_failed", user_id=user_id, error=str(e))
            return []

        if items:
            logger.info(
                "quiet_hours_queue_flushed",
                user_id=user_id,
                workspace_id=workspace_id,
                count=len(items),
            )
        return items

    async def users_with_queued_notifications(self) -> List[str]:
        """User ids that currently have at least one held notification."""
        keys = await self.store.scan(_hold_keys.pattern)
        users: Dict[str, None] = {}
        for key in keys:
            user_id, _, _ = _hold_keys.strip(key).rpartition(":")
            if user_id:
                users.setdefault(user_id, None)
        return list(users)

    def build_digest_summary(self, items: List[QueuedNotification]) -> DigestSummary:
        """Fold held notifications into one summary message.

        Example:
            3 items (2 story_completed, 1 agent_message) produce
            title "3 notifications during quiet hours" and body
            "You missed: 2 story completed, 1 agent message".
        """
        count = len(items)
        by_type = dict(Counter(item.type for item in items))

        title = f"{count} notification{'' if count == 1 else 's'} during quiet hours"
        parts = [f"{n} {t.replace('_', ' ')}" for t, n in by_type.items()]
        body = "You missed: " + ", ".join(parts)

        return DigestSummary(title=title, body=body, count=count, by_type=by_type)

    async def _hold_keys_for(self, user_id: str) -> List[str]:
        # The prefix also matches ids that extend user_id with ":"; keep exact owners only.
        keys = await self.store.scan(_hold_keys.prefix_pattern(user_id))
        return [k for k in keys if _hold_keys.strip(k).rpartition(":")[0] == user_id]

    async def _read_queue(self, user_id: str, workspace_id: Optional[str]):
        keys = await self._hold_keys_for(user_id)
        items: List[QueuedNotification] = []
        matched: List[str] = []

        for key in keys:
            raw = await self.store.get(key)
            if raw is None:
                continue
            try:
                item = QueuedNotification.model_validate_json(raw)
            except ValidationError:
                logger.warning("quiet_hours_entry_corrupted", key=key)
                matched.append(key)
                continue
            if workspace_id is not None and item.workspace_id != workspace_id:
                continue
            items.append(item)
            matched.append(key)

        items.sort(key=lambda item: item.timestamp)
        return items, matched
