"""Periodic sweeps over the batch buffers and quiet-hours hold queues.

Both sweeps walk every user with pending state and process each one
independently: a failure for one user is logged and the sweep continues.
Each returns a stats dictionary.
"""

from typing import Dict, List, Optional

from infrastructure.logging import get_module_logger
from modules.notifications.batching import BatchQueue
from modules.notifications.channels.base import PushChannel
from modules.notifications.domain.models import (
    BatchedNotification,
    NotificationEvent,
    Recipient,
)
from modules.notifications.domain.types import NotificationUrgency
from modules.notifications.preferences import PreferenceStore
from modules.notifications.quiet_hours import QuietHoursEngine

logger = get_module_logger()

DIGEST_NOTIFICATION_TYPE = "quiet_hours_digest"


def _group_by_workspace(items: List[BatchedNotification]) -> Dict[str, List[BatchedNotification]]:
    groups: Dict[str, List[BatchedNotification]] = {}
    for item in items:
        groups.setdefault(item.workspace_id, []).append(item)
    return groups


class BatchFlushSweep:
    """Drain every batch buffer and push consolidated notifications.

    When a preference store and quiet-hours engine are supplied, a user
    currently inside quiet hours gets the consolidated items held instead.
    """

    def __init__(
        self,
        batch_queue: BatchQueue,
        push: Optional[PushChannel],
        quiet_hours: Optional[QuietHoursEngine] = None,
        preferences: Optional[PreferenceStore] = None,
    ) -> None:
        self.batch_queue = batch_queue
        self.push = push
        self.quiet_hours = quiet_hours
        self.preferences = preferences

    async def run(self) -> Dict[str, int]:
        """Flush all pending buffers.

        Returns:
            Dictionary with processing statistics:
                - users: Users whose buffer was processed
                - pushed: Consolidated notifications sent
                - held: Consolidated notifications moved to quiet hours
                - failed: Users whose processing raised
        """
        stats = {"users": 0, "pushed": 0, "held": 0, "failed": 0}
        if self.push is None or not self.push.is_available:
            logger.info("batch_flush_skipped_push_unavailable")
            return stats

        for user_id in await self.batch_queue.users_with_pending_batches():
            try:
                await self._flush_user(user_id, stats)
                stats["users"] += 1
            except Exception as e:
                stats["failed"] += 1
                logger.error("batch_flush_user_failed", user_id=user_id, error=str(e), exc_info=True)

        logger.info("batch_flush_complete", **stats)
        return stats

    async def _flush_user(self, user_id: str, stats: Dict[str, int]) -> None:
        items = await self.batch_queue.flush_batch(user_id)

        for workspace_id, group in _group_by_workspace(items).items():
            recipient = Recipient(user_id=user_id, workspace_id=workspace_id)
            hold = await self._in_quiet_hours(recipient)

            for item in self.batch_queue.consolidate_batch(group):
                event = NotificationEvent(
                    type=item.type,
                    payload=item.payload,
                    recipients=(recipient,),
                    urgency=NotificationUrgency.LOW,
                    batchable=False,
                )
                if hold:
                    await self.quiet_hours.queue_for_later(recipient, event)
                    stats["held"] += 1
                    continue

                result = await self.push.send(recipient, event)
                if result.sent:
                    stats["pushed"] += 1
                else:
                    logger.warning(
                        "batch_push_not_sent",
                        user_id=user_id,
                        workspace_id=workspace_id,
                        notification_type=item.type,
                        error=result.error,
                    )

    async def _in_quiet_hours(self, recipient: Recipient) -> bool:
        if self.quiet_hours is None or self.preferences is None:
            return False
        try:
            prefs = await self.preferences.get_preferences(
                recipient.user_id, recipient.workspace_id
            )
        except Exception as e:
            logger.warning("batch_flush_preference_read_failed", user_id=recipient.user_id, error=str(e))
            return False
        return self.quiet_hours.is_in_quiet_hours(recipient.user_id, prefs)


class QuietHoursFlushSweep:
    """Release held notifications once a user's quiet hours have ended.

    For each (user, workspace) with held items whose window is over, the
    hold queue is flushed and a single digest is pushed.
    """

    def __init__(
        self,
        quiet_hours: QuietHoursEngine,
        preferences: PreferenceStore,
        push: Optional[PushChannel],
    ) -> None:
        self.quiet_hours = quiet_hours
        self.preferences = preferences
        self.push = push

    async def run(self) -> Dict[str, int]:
        """Flush hold queues whose window has ended.

        Returns:
            Dictionary with processing statistics:
                - digests: Digests pushed
                - still_quiet: Workspaces skipped because the window is still active
                - failed: Users whose processing raised
        """
        stats = {"digests": 0, "still_quiet": 0, "failed": 0}
        if self.push is None or not self.push.is_available:
            logger.info("quiet_hours_flush_skipped_push_unavailable")
            return stats

        for user_id in await self.quiet_hours.users_with_queued_notifications():
            try:
                await self._flush_user(user_id, stats)
            except Exception as e:
                stats["failed"] += 1
                logger.error(
                    "quiet_hours_flush_user_failed", user_id=user_id, error=str(e), exc_info=True
                )

        logger.info("quiet_hours_flush_complete", **stats)
        return stats

    async def _flush_user(self, user_id: str, stats: Dict[str, int]) -> None:
        held = await self.quiet_hours.get_queued_notifications(user_id)
        workspaces = list(dict.fromkeys(item.workspace_id for item in held))

        for workspace_id in workspaces:
            try:
                prefs = await self.preferences.get_preferences(user_id, workspace_id)
                still_quiet = self.quiet_hours.is_in_quiet_hours(user_id, prefs)
            except Exception as e:
                logger.warning(
                    "quiet_hours_flush_preference_read_failed",
                    user_id=user_id,
                    workspace_id=workspace_id,
                    error=str(e),
                )
                still_quiet = False

            if still_quiet:
                stats["still_quiet"] += 1
                continue

            items = await self.quiet_hours.flush_queued_notifications(user_id, workspace_id)
            if not items:
                continue

            digest = self.quiet_hours.build_digest_summary(items)
            recipient = Recipient(user_id=user_id, workspace_id=workspace_id)
            event = NotificationEvent(
                type=DIGEST_NOTIFICATION_TYPE,
                payload={
                    "title": digest.title,
                    "body": digest.body,
                    "count": digest.count,
                    "byType": digest.by_type,
                },
                recipients=(recipient,),
                urgency=NotificationUrgency.LOW,
                batchable=False,
            )
            result = await self.push.send(recipient, event)
            if result.sent:
                stats["digests"] += 1
            else:
                logger.warning(
                    "quiet_hours_digest_not_sent",
                    user_id=user_id,
                    workspace_id=workspace_id,
                    error=result.error,
                )
