"""Delivery channels: in-app, push, and workspace chat integrations."""

from modules.notifications.channels.base import (
    ChatChannel,
    InAppChannel,
    InMemoryInAppChannel,
    PushChannel,
    notification_text,
)
from modules.notifications.channels.discord import DiscordChannel
from modules.notifications.channels.slack import SlackChannel
from modules.notifications.channels.webhook import IntegrationChatChannel

__all__ = [
    "ChatChannel",
    "DiscordChannel",
    "InAppChannel",
    "InMemoryInAppChannel",
    "IntegrationChatChannel",
    "PushChannel",
    "SlackChannel",
    "notification_text",
]
