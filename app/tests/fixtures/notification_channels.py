from typing import List, Optional, Tuple

from modules.notifications.channels.base import ChatChannel, InAppChannel, PushChannel
from modules.notifications.domain.models import (
    ChannelSendResult,
    NotificationEvent,
    Recipient,
)


class FakePushChannel(PushChannel):
    """Records every push; ``results`` are returned in order, then success."""

    def __init__(
        self,
        available: bool = True,
        results: Optional[List[ChannelSendResult]] = None,
        raise_for: Optional[set] = None,
    ):
        self.available = available
        self.results = list(results or [])
        self.raise_for = raise_for or set()
        self.sent: List[Tuple[Recipient, NotificationEvent]] = []

    @property
    def is_available(self) -> bool:
        return self.available

    async def send(self, recipient: Recipient, event: NotificationEvent) -> ChannelSendResult:
        if recipient.user_id in self.raise_for:
            raise RuntimeError(f"push exploded for {recipient.user_id}")
        self.sent.append((recipient, event))
        if self.results:
            return self.results.pop(0)
        return ChannelSendResult.delivered(self.channel_name)

    @property
    def sent_types(self) -> List[str]:
        return [event.type for _, event in self.sent]


class FakeInAppChannel(InAppChannel):
    def __init__(self, raise_for: Optional[set] = None):
        self.raise_for = raise_for or set()
        self.records: List[Tuple[Recipient, NotificationEvent]] = []

    async def create(self, recipient: Recipient, event: NotificationEvent) -> None:
        if recipient.user_id in self.raise_for:
            raise RuntimeError(f"in-app write failed for {recipient.user_id}")
        self.records.append((recipient, event))

    @property
    def user_ids(self) -> List[str]:
        return [recipient.user_id for recipient, _ in self.records]


class FakeChatChannel(ChatChannel):
    """Chat channel double sharing a call log across instances.

    Pass the same ``calls`` list to several channels to assert on the
    order they were invoked in.
    """

    def __init__(
        self,
        name: str,
        calls: Optional[list] = None,
        results: Optional[List[ChannelSendResult]] = None,
        error: Optional[Exception] = None,
        available: bool = True,
    ):
        self.name = name
        self.calls = calls if calls is not None else []
        self.results = list(results or [])
        self.error = error
        self.available = available

    @property
    def channel_name(self) -> str:
        return self.name

    @property
    def is_available(self) -> bool:
        return self.available

    async def send(self, workspace_id: str, event: NotificationEvent) -> ChannelSendResult:
        self.calls.append((self.name, workspace_id, event.type))
        if self.error is not None:
            raise self.error
        if self.results:
            return self.results.pop(0)
        return ChannelSendResult.delivered(self.name)
