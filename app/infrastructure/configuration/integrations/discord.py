"""Discord integration settings."""

from infrastructure.configuration.base import IntegrationSettings


class DiscordSettings(IntegrationSettings):
    """Discord incoming-webhook configuration.

    Environment Variables:
        DISCORD_ENABLED: Enable the Discord chat channel (default: True)
        DISCORD_RATE_LIMIT_PER_MINUTE: Sends per webhook per minute (default: 30)
    """

    DISCORD_ENABLED: bool = True
    DISCORD_RATE_LIMIT_PER_MINUTE: int = 30
