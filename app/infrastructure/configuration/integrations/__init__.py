"""Integration settings __init__ - exports all chat provider settings."""

from infrastructure.configuration.integrations.discord import DiscordSettings
from infrastructure.configuration.integrations.slack import SlackSettings

__all__ = [
    "DiscordSettings",
    "SlackSettings",
]
