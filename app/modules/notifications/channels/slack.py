"""Slack chat channel using the Slack Web API."""

import asyncio
from typing import Callable, Optional

import aiohttp
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from infrastructure.configuration.integrations import SlackSettings
from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    OperationStatus,
    parse_retry_after,
)
from modules.notifications.channels.webhook import IntegrationChatChannel
from modules.notifications.domain.models import ChatIntegration, NotificationEvent

logger = get_module_logger()

HTTP_TIMEOUT_SECONDS = 10

# Slack error codes meaning the stored token can no longer be used.
INVALID_TOKEN_ERRORS = frozenset(
    {"invalid_auth", "token_revoked", "account_inactive", "not_authed"}
)

ClientFactory = Callable[[str], AsyncWebClient]


class SlackChannel(IntegrationChatChannel):
    """Posts with ``chat.postMessage`` using the integration's bot token.

    The rate-limit target is the Slack team (``integration.target_id``).
    The destination channel is the event-specific override, falling back to
    the integration's default channel.
    """

    def __init__(
        self,
        settings: SlackSettings,
        *args,
        client_factory: Optional[ClientFactory] = None,
        timeout_seconds: int = HTTP_TIMEOUT_SECONDS,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.settings = settings
        self.timeout_seconds = timeout_seconds
        self._client_factory = client_factory or self._default_client
        if not self.is_available:
            logger.warning("slack_channel_not_configured")
        else:
            logger.info("initialized_chat_channel", channel=self.channel_name)

    @property
    def channel_name(self) -> str:
        return "slack"

    @property
    def is_available(self) -> bool:
        return self.settings.is_configured

    def _default_client(self, token: str) -> AsyncWebClient:
        return AsyncWebClient(
            token=token,
            base_url=self.settings.SLACK_API_BASE_URL,
            timeout=self.timeout_seconds,
        )

    async def _deliver(
        self, integration: ChatIntegration, event: NotificationEvent, text: str
    ) -> OperationResult:
        channel_id = integration.channel_for(event.type)
        if not channel_id:
            return OperationResult.permanent_error(
                "slack integration has no channel for this event", error_code="NO_CHANNEL"
            )
        if not integration.bot_token:
            return OperationResult.target_rejected(
                OperationStatus.UNAUTHORIZED,
                "slack integration has no bot token",
                error_code="MISSING_TOKEN",
            )

        client = self._client_factory(integration.bot_token)
        try:
            response = await client.chat_postMessage(channel=channel_id, text=text)
        except SlackApiError as e:
            return self._classify_api_error(e)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return OperationResult.transient_error(
                f"slack connection error: {type(e).__name__}: {e}",
                error_code="CONNECTION_ERROR",
            )

        return OperationResult.success(
            message="slack message posted",
            data={"ts": response.get("ts"), "channel": channel_id},
        )

    def _classify_api_error(self, e: SlackApiError) -> OperationResult:
        error = e.response.get("error") or "unknown_error"
        status_code = getattr(e.response, "status_code", None)

        if error == "ratelimited" or status_code == 429:
            return OperationResult.rate_limited(
                "slack rate limited",
                retry_after=parse_retry_after(getattr(e.response, "headers", None)),
            )

        if error in INVALID_TOKEN_ERRORS:
            return OperationResult.target_rejected(
                OperationStatus.UNAUTHORIZED,
                f"slack rejected token: {error}",
                error_code=error,
            )

        if status_code is not None and status_code >= 500:
            return OperationResult.transient_error(f"slack server error: {error}", error_code=error)

        return OperationResult.permanent_error(f"slack api error: {error}", error_code=error)
