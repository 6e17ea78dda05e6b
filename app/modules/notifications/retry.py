"""Durable retry of failed chat deliveries.

A retryable chat failure is enqueued as a ``send-notification`` job with
``{workspace_id, notification, channel}``. The handler re-sends through the
named channel. The dispatcher's inline send is attempt 1, so the job
starts at attempt 2 five seconds later and the channel sees at most three
sends. While attempts remain the handler raises RetryableDeliveryError so
the queue reschedules with exponential backoff (5 s, 10 s, ...). A failure on
the last attempt is logged as terminal and the job completes.

The periodic batch sweep rides on the same queue as a payload-less
``batch-flush`` job.
"""

from dataclasses import replace
from typing import Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from infrastructure.logging import get_module_logger
from infrastructure.queue import Job, JobOptions, JobQueue
from modules.notifications.channels.base import ChatChannel
from modules.notifications.domain.errors import RetryableDeliveryError
from modules.notifications.domain.models import (
    ChannelSendResult,
    NotificationEvent,
    RetryJob,
)

logger = get_module_logger()

SEND_NOTIFICATION_JOB = "send-notification"
BATCH_FLUSH_JOB = "batch-flush"

# Total sends of one chat delivery, inline send included. Independent of
# QUEUE_MAX_ATTEMPTS, which only sets the default for other job types.
DELIVERY_MAX_ATTEMPTS = 3


class RetryQueueProcessor:
    """Enqueue and process chat delivery retries.

    Attributes:
        queue: Durable job queue
        channels: Chat channels by name
        options: Backoff options for delivery jobs; attempts are pinned to
            DELIVERY_MAX_ATTEMPTS
    """

    def __init__(
        self,
        queue: JobQueue,
        channels: Dict[str, ChatChannel],
        options: Optional[JobOptions] = None,
    ) -> None:
        self.queue = queue
        self.channels = channels
        self.options = replace(
            options or queue.config.default_options, attempts=DELIVERY_MAX_ATTEMPTS
        )

    def register(self, batch_sweep: Optional[Callable[[], Awaitable[object]]] = None) -> None:
        """Register job handlers on the queue.

        Args:
            batch_sweep: Coroutine function run for each ``batch-flush`` job
        """
        self.queue.process(SEND_NOTIFICATION_JOB, self.handle_send_notification)
        if batch_sweep is not None:

            async def handle_batch_flush(job: Job) -> None:
                await batch_sweep()

            self.queue.process(BATCH_FLUSH_JOB, handle_batch_flush)

    async def enqueue_delivery(
        self,
        workspace_id: str,
        event: NotificationEvent,
        channel: str,
        attempts_made: int = 0,
    ) -> Optional[str]:
        """Queue the remaining sends of a chat delivery.

        Args:
            attempts_made: Sends already made outside the queue. The job
                resumes at the next attempt after the matching backoff delay.

        Returns:
            The job id, or None when no attempts remain
        """
        if attempts_made >= self.options.attempts:
            logger.error(
                "notification_delivery_abandoned",
                workspace_id=workspace_id,
                channel=channel,
                attempt=attempts_made,
            )
            return None

        payload = {
            "workspace_id": workspace_id,
            "notification": event.model_dump(mode="json"),
            "channel": channel,
        }
        job_id = await self.queue.enqueue(
            SEND_NOTIFICATION_JOB,
            payload,
            self.options,
            delay_seconds=self.options.delay_for(attempts_made) if attempts_made else 0,
            first_attempt=attempts_made + 1,
        )
        logger.info(
            "notification_retry_enqueued",
            job_id=job_id,
            workspace_id=workspace_id,
            channel=channel,
            notification_type=event.type,
            attempt=attempts_made + 1,
        )
        return job_id

    async def enqueue_batch_flush(self) -> str:
        return await self.queue.enqueue(BATCH_FLUSH_JOB, {}, JobOptions(attempts=1))

    async def handle_send_notification(self, job: Job) -> None:
        """Re-send one chat delivery.

        Raises:
            RetryableDeliveryError: When the send failed and attempts remain
        """
        try:
            retry_job = RetryJob.model_validate({**job.payload, "attempt": job.attempt})
        except ValidationError as e:
            logger.error("notification_retry_payload_invalid", job_id=job.id, error=str(e))
            return

        log = logger.bind(
            job_id=job.id,
            workspace_id=retry_job.workspace_id,
            channel=retry_job.channel,
            attempt=retry_job.attempt,
        )

        channel = self.channels.get(retry_job.channel)
        if channel is None:
            log.error("notification_retry_channel_unknown")
            return

        try:
            result = await channel.send(retry_job.workspace_id, retry_job.notification)
        except Exception as e:
            log.error("notification_retry_send_raised", error=str(e), exc_info=True)
            result = ChannelSendResult.failed(retry_job.channel, str(e), retryable=True)

        if result.sent:
            log.info("notification_retry_delivered")
            return

        if retry_job.attempt < job.max_attempts:
            log.warning("notification_retry_failed", error=result.error)
            raise RetryableDeliveryError(retry_job.channel, retry_job.attempt, result.error)

        log.error("notification_delivery_abandoned", error=result.error)
