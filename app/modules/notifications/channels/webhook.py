"""Shared send flow for integration-backed chat channels.

Every chat provider goes through the same gates before a request leaves
the process:

1. the channel is configured for this deployment
2. the workspace has an integration for the provider
3. the integration is not ``invalid_webhook``
4. the integration's own quiet hours, if any, are not active (critical
   types bypass)
5. the integration's target is under its per-minute cap

The provider request itself is implemented by subclasses in ``_deliver``
and reported as an OperationResult; this class maps it to a
ChannelSendResult and records the outcome against the integration health.
"""

from abc import abstractmethod
from typing import Optional

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult
from modules.notifications.channels.base import ChatChannel, notification_text
from modules.notifications.domain.models import (
    ChannelSendResult,
    ChatIntegration,
    IntegrationStatus,
    NotificationEvent,
)
from modules.notifications.health import IntegrationHealthTracker, IntegrationRepository
from modules.notifications.quiet_hours import QuietHoursEngine
from modules.notifications.rate_limit import DEFAULT_LIMIT_PER_MINUTE, RateLimiter

logger = get_module_logger()


class IntegrationChatChannel(ChatChannel):
    """Base class for chat channels backed by a stored integration.

    Attributes:
        integrations: Integration persistence
        health: Health tracker updated after every provider call
        rate_limiter: Per-target sliding window limiter
        quiet_hours: Engine used for integration-level quiet hours
        default_limit_per_minute: Cap when the integration sets none
    """

    def __init__(
        self,
        integrations: IntegrationRepository,
        health: IntegrationHealthTracker,
        rate_limiter: RateLimiter,
        quiet_hours: QuietHoursEngine,
        default_limit_per_minute: int = DEFAULT_LIMIT_PER_MINUTE,
    ) -> None:
        self.integrations = integrations
        self.health = health
        self.rate_limiter = rate_limiter
        self.quiet_hours = quiet_hours
        self.default_limit_per_minute = default_limit_per_minute

    @abstractmethod
    async def _deliver(
        self, integration: ChatIntegration, event: NotificationEvent, text: str
    ) -> OperationResult:
        """Make the provider request."""
        pass

    def format_text(self, integration: ChatIntegration, event: NotificationEvent) -> str:
        """Message text with the configured mention prefix."""
        mention_key = "critical" if event.is_critical else "normal"
        mention = integration.mention_config.get(mention_key)
        text = notification_text(event)
        return f"{mention} {text}" if mention else text

    async def send(self, workspace_id: str, event: NotificationEvent) -> ChannelSendResult:
        log = logger.bind(channel=self.channel_name, workspace_id=workspace_id)

        if not self.is_available:
            return ChannelSendResult.failed(self.channel_name, "not_configured")

        integration = await self.integrations.get(workspace_id, self.channel_name)
        if integration is None:
            log.debug("chat_integration_missing")
            return ChannelSendResult.failed(self.channel_name, "not_connected")

        if integration.status == IntegrationStatus.INVALID_WEBHOOK:
            log.info("chat_integration_invalid", integration_id=integration.id)
            return ChannelSendResult.failed(self.channel_name, "integration_invalid")

        if (
            integration.quiet_hours is not None
            and not event.is_critical
            and self.quiet_hours.is_window_active(integration.quiet_hours)
        ):
            log.info("chat_send_suppressed_quiet_hours", integration_id=integration.id)
            return ChannelSendResult.failed(self.channel_name, "quiet_hours")

        limit = integration.rate_limit_per_minute or self.default_limit_per_minute
        if await self.rate_limiter.is_rate_limited(integration.target_id, limit):
            return ChannelSendResult.failed(
                self.channel_name,
                "rate_limited",
                retry_after=self.rate_limiter.window_seconds,
                retryable=True,
            )

        result = await self._deliver(integration, event, self.format_text(integration, event))
        return await self._record(integration, result)

    async def _record(
        self, integration: ChatIntegration, result: OperationResult
    ) -> ChannelSendResult:
        if result.is_success:
            await self.rate_limiter.record_send(integration.target_id)
            await self.health.record_success(integration)
            logger.info(
                "chat_message_sent",
                channel=self.channel_name,
                integration_id=integration.id,
                workspace_id=integration.workspace_id,
            )
            return ChannelSendResult.delivered(self.channel_name)

        if result.invalidates_target:
            await self.health.mark_invalid(integration, result.message)
            return ChannelSendResult.failed(self.channel_name, "integration_invalid")

        await self.health.record_failure(integration, result.message)
        logger.warning(
            "chat_message_failed",
            channel=self.channel_name,
            integration_id=integration.id,
            workspace_id=integration.workspace_id,
            error=result.message,
            retry_after=result.retry_after,
        )
        return ChannelSendResult.failed(
            self.channel_name,
            result.error_label,
            retry_after=result.retry_after,
            retryable=result.is_retryable,
        )

    def _target_override(self, integration: ChatIntegration, event: NotificationEvent) -> Optional[str]:
        return integration.event_channels.get(event.type)
