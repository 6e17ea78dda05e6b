"""Delivery channel abstract base classes.

Three kinds of channel receive notifications:

- InAppChannel: the notification record shown inside the product. Always
  written for every kept recipient.
- PushChannel: device push for one recipient. Gated by the recipient's push
  preference and by quiet hours.
- ChatChannel: workspace-level chat integration (Slack, Discord). Invoked
  once per workspace, not per recipient.

Adapters never raise for provider failures; they report them through
ChannelSendResult so the dispatcher can decide whether to retry.
"""

from abc import ABC, abstractmethod
from typing import List, Tuple

from modules.notifications.domain.models import (
    ChannelSendResult,
    NotificationEvent,
    Recipient,
)


def notification_text(event: NotificationEvent) -> str:
    """Plain one-line text for an event.

    Uses ``payload["title"]`` or ``payload["message"]`` when present,
    otherwise the humanized type.
    """
    title = event.payload.get("title") or event.payload.get("message")
    if title:
        return str(title)
    return event.type.replace("_", " ").capitalize()


class InAppChannel(ABC):
    @property
    def channel_name(self) -> str:
        return "in_app"

    @abstractmethod
    async def create(self, recipient: Recipient, event: NotificationEvent) -> None:
        """Persist the in-app notification record for ``recipient``."""
        pass


class InMemoryInAppChannel(InAppChannel):
    """Keeps in-app records in a list. Used for local runs and tests."""

    def __init__(self) -> None:
        self.records: List[Tuple[Recipient, NotificationEvent]] = []

    async def create(self, recipient: Recipient, event: NotificationEvent) -> None:
        self.records.append((recipient, event.with_recipients([recipient])))


class PushChannel(ABC):
    @property
    def channel_name(self) -> str:
        return "push"

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def send(self, recipient: Recipient, event: NotificationEvent) -> ChannelSendResult:
        """Push ``event`` to every device registered for ``recipient``."""
        pass


class ChatChannel(ABC):
    """Workspace-level chat delivery.

    Example Implementation:
        class TeamsChannel(ChatChannel):

            @property
            def channel_name(self) -> str:
                return "teams"

            @property
            def is_available(self) -> bool:
                return bool(self.settings.TEAMS_APP_ID)

            async def send(self, workspace_id, event) -> ChannelSendResult:
                ...
    """

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Channel identifier used for routing, retry jobs and logs."""
        pass

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """False when the channel is not configured for this deployment."""
        pass

    @abstractmethod
    async def send(self, workspace_id: str, event: NotificationEvent) -> ChannelSendResult:
        """Deliver ``event`` to the workspace's integration for this channel."""
        pass
