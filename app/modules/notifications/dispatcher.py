"""Notification dispatcher.

Entry point for every domain event. For one NotificationEvent the
dispatcher:

1. drops recipients whose preferences disable the type (critical types are
   never dropped; a failing preference lookup keeps the recipient)
2. writes the in-app record for every kept recipient
3. sends immediate events to push, holding them in the quiet-hours queue
   when the recipient is inside their window (critical types are never
   held); hands batchable events to the batch queue instead
4. invokes every chat channel once per distinct workspace, enqueueing a
   durable retry for retryable failures

Every recipient and every channel is isolated: one failure is logged and
the loop moves on. ``dispatch`` itself never raises.

Usage Example:
    dispatcher = NotificationDispatcher(
        preferences=preference_store,
        quiet_hours=quiet_hours_engine,
        batch_queue=batch_queue,
        in_app=in_app_channel,
        push=push_channel,
        chat_channels={"slack": slack, "discord": discord},
        chat_channel_order=["slack", "discord"],
        retry_processor=retry_processor,
    )

    await dispatcher.dispatch(event)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from infrastructure.logging import bind_request_context, get_module_logger
from modules.notifications.batching import BatchQueue
from modules.notifications.channels.base import ChatChannel, InAppChannel, PushChannel
from modules.notifications.domain.models import (
    ChannelSendResult,
    NotificationEvent,
    Recipient,
)
from modules.notifications.preferences import PreferenceStore
from modules.notifications.quiet_hours import QuietHoursEngine
from modules.notifications.retry import RetryQueueProcessor

logger = get_module_logger()


@dataclass
class DispatchSummary:
    """What one dispatch did, logged once at the end."""

    notification_type: str
    recipients_total: int = 0
    recipients_kept: int = 0
    in_app_created: int = 0
    pushed: int = 0
    push_failed: int = 0
    held: int = 0
    batched: int = 0
    retries_enqueued: int = 0
    chat_results: List[ChannelSendResult] = field(default_factory=list)

    def as_log_fields(self) -> Dict[str, int]:
        return {
            "recipients_total": self.recipients_total,
            "recipients_kept": self.recipients_kept,
            "in_app_created": self.in_app_created,
            "pushed": self.pushed,
            "push_failed": self.push_failed,
            "held": self.held,
            "batched": self.batched,
            "chat_sent": sum(1 for r in self.chat_results if r.sent),
            "chat_failed": sum(1 for r in self.chat_results if not r.sent),
            "retries_enqueued": self.retries_enqueued,
        }


class NotificationDispatcher:
    """Fan a NotificationEvent out to in-app, push, batch and chat delivery.

    Attributes:
        preferences: Preference store
        quiet_hours: Quiet hours engine and hold queue
        batch_queue: Per-recipient batch buffer
        in_app: In-app record writer
        push: Push channel, None when push is not deployed
        chat_channels: Chat channels in invocation order
        retry_processor: Durable retry for chat failures, None disables retries
    """

    def __init__(
        self,
        preferences: PreferenceStore,
        quiet_hours: QuietHoursEngine,
        batch_queue: BatchQueue,
        in_app: InAppChannel,
        push: Optional[PushChannel] = None,
        chat_channels: Optional[Dict[str, ChatChannel]] = None,
        chat_channel_order: Optional[List[str]] = None,
        retry_processor: Optional[RetryQueueProcessor] = None,
    ) -> None:
        self.preferences = preferences
        self.quiet_hours = quiet_hours
        self.batch_queue = batch_queue
        self.in_app = in_app
        self.push = push
        self.chat_channels = self._order_channels(chat_channels or {}, chat_channel_order or [])
        self.retry_processor = retry_processor

        logger.info(
            "initialized_notification_dispatcher",
            chat_channels=list(self.chat_channels),
            push_enabled=push is not None,
            retries_enabled=retry_processor is not None,
        )

    @staticmethod
    def _order_channels(
        channels: Dict[str, ChatChannel], order: List[str]
    ) -> Dict[str, ChatChannel]:
        ordered = {name: channels[name] for name in order if name in channels}
        for name, channel in channels.items():
            ordered.setdefault(name, channel)
        return ordered

    async def dispatch(self, event: NotificationEvent) -> None:
        """Deliver ``event``. Never raises; failures are logged."""
        try:
            await self.dispatch_with_summary(event)
        except Exception as e:
            logger.error(
                "notification_dispatch_failed",
                notification_type=event.type,
                error=str(e),
                exc_info=True,
            )

    async def dispatch_with_summary(self, event: NotificationEvent) -> DispatchSummary:
        summary = DispatchSummary(
            notification_type=event.type,
            recipients_total=len(event.recipients),
        )

        with bind_request_context(notification_type=event.type):
            kept, push_allowed = await self._filter_recipients(event)
            summary.recipients_kept = len(kept)

            if not kept:
                logger.info("notification_no_recipients", **summary.as_log_fields())
                return summary

            filtered = event.with_recipients(kept)

            for recipient in kept:
                await self._create_in_app(recipient, filtered, summary)

            push_recipients = [r for r in kept if push_allowed[r]]
            if filtered.is_immediate:
                for recipient in push_recipients:
                    await self._deliver_immediate(recipient, filtered, summary)
            elif push_recipients:
                summary.batched = await self._queue_batch(
                    filtered.with_recipients(push_recipients)
                )

            for workspace_id in filtered.workspace_ids:
                for channel in self.chat_channels.values():
                    await self._send_chat(channel, workspace_id, filtered, summary)

            logger.info("notification_dispatched", **summary.as_log_fields())

        return summary

    async def _filter_recipients(self, event: NotificationEvent):
        kept: List[Recipient] = []
        push_allowed: Dict[Recipient, bool] = {}

        for recipient in event.recipients:
            if event.is_critical:
                kept.append(recipient)
                push_allowed[recipient] = True
                continue

            try:
                enabled = await self.preferences.is_type_enabled(
                    recipient.user_id, recipient.workspace_id, event.type
                )
                if not enabled:
                    logger.debug(
                        "notification_recipient_filtered",
                        user_id=recipient.user_id,
                        workspace_id=recipient.workspace_id,
                    )
                    continue
                channels = await self.preferences.get_channel_preferences(
                    recipient.user_id, recipient.workspace_id, event.type
                )
                allow_push = channels.push
            except Exception as e:
                logger.warning(
                    "notification_preference_check_failed",
                    user_id=recipient.user_id,
                    workspace_id=recipient.workspace_id,
                    error=str(e),
                )
                allow_push = True

            kept.append(recipient)
            push_allowed[recipient] = allow_push

        return kept, push_allowed

    async def _create_in_app(
        self, recipient: Recipient, event: NotificationEvent, summary: DispatchSummary
    ) -> None:
        try:
            await self.in_app.create(recipient, event)
            summary.in_app_created += 1
        except Exception as e:
            logger.error(
                "in_app_notification_failed",
                user_id=recipient.user_id,
                workspace_id=recipient.workspace_id,
                error=str(e),
                exc_info=True,
            )

    async def _deliver_immediate(
        self, recipient: Recipient, event: NotificationEvent, summary: DispatchSummary
    ) -> None:
        if self.push is None or not self.push.is_available:
            return

        try:
            if not event.is_critical and await self._should_hold(recipient, event):
                await self.quiet_hours.queue_for_later(recipient, event)
                summary.held += 1
                return

            result = await self.push.send(recipient, event.with_recipients([recipient]))
        except Exception as e:
            logger.error(
                "push_notification_failed",
                user_id=recipient.user_id,
                workspace_id=recipient.workspace_id,
                error=str(e),
                exc_info=True,
            )
            summary.push_failed += 1
            return

        if result.sent:
            summary.pushed += 1
        else:
            summary.push_failed += 1
            logger.warning(
                "push_notification_not_sent",
                user_id=recipient.user_id,
                workspace_id=recipient.workspace_id,
                error=result.error,
            )

    async def _should_hold(self, recipient: Recipient, event: NotificationEvent) -> bool:
        try:
            prefs = await self.preferences.get_preferences(
                recipient.user_id, recipient.workspace_id
            )
        except Exception as e:
            logger.warning(
                "quiet_hours_preference_read_failed",
                user_id=recipient.user_id,
                workspace_id=recipient.workspace_id,
                error=str(e),
            )
            return False

        if not self.quiet_hours.is_in_quiet_hours(recipient.user_id, prefs):
            return False
        return not self.quiet_hours.should_bypass_quiet_hours(
            event.type, prefs.quiet_hours.except_critical
        )

    async def _queue_batch(self, event: NotificationEvent) -> int:
        try:
            return await self.batch_queue.queue_notification(event)
        except Exception as e:
            logger.error("batch_queue_failed", error=str(e), exc_info=True)
            return 0

    async def _send_chat(
        self,
        channel: ChatChannel,
        workspace_id: str,
        event: NotificationEvent,
        summary: DispatchSummary,
    ) -> None:
        try:
            result = await channel.send(workspace_id, event)
        except Exception as e:
            logger.error(
                "chat_channel_send_raised",
                channel=channel.channel_name,
                workspace_id=workspace_id,
                error=str(e),
                exc_info=True,
            )
            result = ChannelSendResult.failed(channel.channel_name, str(e), retryable=True)

        summary.chat_results.append(result)
        if result.sent or not result.retryable or self.retry_processor is None:
            return

        try:
            job_id = await self.retry_processor.enqueue_delivery(
                workspace_id, event, channel.channel_name, attempts_made=1
            )
            if job_id is not None:
                summary.retries_enqueued += 1
        except Exception as e:
            logger.error(
                "notification_retry_enqueue_failed",
                channel=channel.channel_name,
                workspace_id=workspace_id,
                error=str(e),
                exc_info=True,
            )

    def get_channel_health(self) -> Dict[str, bool]:
        """Availability of every configured delivery channel."""
        health = {self.in_app.channel_name: True}
        if self.push is not None:
            health[self.push.channel_name] = self.push.is_available
        for name, channel in self.chat_channels.items():
            health[name] = channel.is_available
        return health
