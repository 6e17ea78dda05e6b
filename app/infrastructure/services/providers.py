"""
Factory functions for application-scoped singletons.

Only configuration lives here so that low-level packages (logging, the
key-value store) can depend on it without import cycles. The notification
engine itself is assembled in ``modules.notifications.container``.
"""

from functools import lru_cache

from infrastructure.configuration import Settings


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    The @lru_cache decorator ensures only ONE instance is created per process.
    Tests that need different values construct ``Settings(...)`` directly and
    pass it to the component under test.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()
