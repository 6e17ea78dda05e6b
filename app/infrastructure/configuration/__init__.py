"""Infrastructure configuration module - public API.

Centralized configuration for the notification engine using Pydantic
BaseSettings with domain-based organization.

Exports:
    Settings: Main settings class (for testing/overrides)
    NotificationSettings, QueueSettings, StoreSettings: Section classes

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()
    limit = settings.notifications.default_rate_limit_per_minute
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.features import NotificationSettings
from infrastructure.configuration.infrastructure import QueueSettings, StoreSettings
from infrastructure.configuration.integrations import DiscordSettings, SlackSettings

__all__ = [
    "Settings",
    "NotificationSettings",
    "QueueSettings",
    "StoreSettings",
    "DiscordSettings",
    "SlackSettings",
]
