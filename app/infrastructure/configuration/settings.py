"""Notification engine configuration settings - main aggregator."""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    DiscordSettings,
    SlackSettings,
)

# Feature settings
from infrastructure.configuration.features import NotificationSettings

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    QueueSettings,
    StoreSettings,
)

CHAT_PROVIDERS = ("slack", "discord")


class Settings(BaseSettings):
    """Notification engine configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: Chat provider configuration (Slack, Discord)
    - **Features**: Notification engine behaviour (TTLs, limits, schedules)
    - **Infrastructure**: Key-value store and durable job queue

    Environment Variables:
        PREFIX: Environment prefix for multi-tenant deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        batch_ttl = settings.notifications.batch_ttl_seconds
        if settings.store.backend == "redis":
            ...

        if settings.is_production:
            ...
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    slack: SlackSettings
    discord: DiscordSettings

    # Feature settings
    notifications: NotificationSettings

    # Infrastructure settings
    store: StoreSettings
    queue: QueueSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    @model_validator(mode="after")
    def _check_chat_channel_order(self) -> "Settings":
        unknown = [
            name for name in self.notifications.chat_channel_order if name not in CHAT_PROVIDERS
        ]
        if unknown:
            raise ValueError(f"unknown chat providers in NOTIFICATION_CHAT_CHANNEL_ORDER: {unknown}")
        return self

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "slack": SlackSettings,
            "discord": DiscordSettings,
            # Features
            "notifications": NotificationSettings,
            # Infrastructure
            "store": StoreSettings,
            "queue": QueueSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
