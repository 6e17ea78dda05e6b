"""Discord incoming-webhook chat channel."""

from typing import Any, Dict, Optional

import httpx

from infrastructure.configuration.integrations import DiscordSettings
from infrastructure.logging import get_module_logger
from infrastructure.operations import (
    OperationResult,
    classify_http_status,
    classify_transport_error,
)
from modules.notifications.channels.webhook import IntegrationChatChannel
from modules.notifications.domain.models import ChatIntegration, NotificationEvent

logger = get_module_logger()

HTTP_TIMEOUT_SECONDS = 10.0


class DiscordChannel(IntegrationChatChannel):
    """Posts to a Discord webhook URL stored on the integration.

    The rate-limit target is the webhook id (``integration.target_id``).
    An event type listed in ``event_channels`` posts to that webhook URL
    instead of the default one.
    """

    def __init__(
        self,
        settings: DiscordSettings,
        *args,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = HTTP_TIMEOUT_SECONDS,
        **kwargs,
    ) -> None:
        kwargs.setdefault("default_limit_per_minute", settings.DISCORD_RATE_LIMIT_PER_MINUTE)
        super().__init__(*args, **kwargs)
        self.settings = settings
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        logger.info("initialized_chat_channel", channel=self.channel_name, enabled=self.is_available)

    @property
    def channel_name(self) -> str:
        return "discord"

    @property
    def is_available(self) -> bool:
        return self.settings.DISCORD_ENABLED

    def build_body(self, text: str, event: NotificationEvent) -> Dict[str, Any]:
        body: Dict[str, Any] = {"content": text}
        url = event.payload.get("url")
        if url:
            body["content"] = f"{text}\n{url}"
        return body

    async def _deliver(
        self, integration: ChatIntegration, event: NotificationEvent, text: str
    ) -> OperationResult:
        url = self._target_override(integration, event) or integration.webhook_url
        if not url:
            return OperationResult.permanent_error(
                "discord integration has no webhook url", error_code="MISSING_WEBHOOK_URL"
            )

        try:
            response = await self._client.post(url, json=self.build_body(text, event))
        except httpx.HTTPError as e:
            return classify_transport_error(e, provider="discord")

        return classify_http_status(response.status_code, response.headers, provider="discord")

    async def aclose(self) -> None:
        await self._client.aclose()
