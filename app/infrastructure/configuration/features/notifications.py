"""Notification engine feature settings."""

from typing import List

from pydantic import Field

from infrastructure.configuration.base import FeatureSettings


class NotificationSettings(FeatureSettings):
    """Notification dispatch, batching, quiet-hours and rate-limit settings.

    The retention values mirror the key-value namespaces the engine owns:
    ``batch:<user>``, ``quiet-hours:<user>:<ts>``, ``rate-limit:<target>``,
    ``dedup:<interaction>`` and ``notification-prefs:<user>:<workspace>``.

    Environment Variables:
        NOTIFICATION_BATCH_TTL_SECONDS: Batch buffer TTL, refreshed on append (default: 1800)
        NOTIFICATION_QUIET_HOURS_TTL_SECONDS: Hold-queue entry TTL (default: 43200)
        NOTIFICATION_PREFERENCES_CACHE_TTL_SECONDS: Preference cache TTL (default: 300)
        NOTIFICATION_DEDUP_TTL_SECONDS: Interaction dedup window (default: 60)
        NOTIFICATION_RATE_LIMIT_WINDOW_SECONDS: Sliding window length (default: 60)
        NOTIFICATION_RATE_LIMIT_RETENTION_SECONDS: Window key retention (default: 120)
        NOTIFICATION_DEFAULT_RATE_LIMIT_PER_MINUTE: Per-target cap (default: 30)
        NOTIFICATION_HTTP_TIMEOUT_SECONDS: Outbound provider timeout (default: 10)
        NOTIFICATION_BATCH_FLUSH_INTERVAL_MINUTES: Batch sweep cadence (default: 5)
        NOTIFICATION_QUIET_HOURS_FLUSH_INTERVAL_MINUTES: Hold-queue sweep cadence (default: 15)
        NOTIFICATION_CHAT_CHANNEL_ORDER: Comma separated chat adapter order (default: slack,discord)

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        ttl = settings.notifications.batch_ttl_seconds
        ```
    """

    batch_ttl_seconds: int = Field(default=1800, alias="NOTIFICATION_BATCH_TTL_SECONDS")
    quiet_hours_ttl_seconds: int = Field(
        default=43200, alias="NOTIFICATION_QUIET_HOURS_TTL_SECONDS"
    )
    preferences_cache_ttl_seconds: int = Field(
        default=300, alias="NOTIFICATION_PREFERENCES_CACHE_TTL_SECONDS"
    )
    dedup_ttl_seconds: int = Field(default=60, alias="NOTIFICATION_DEDUP_TTL_SECONDS")
    rate_limit_window_seconds: int = Field(
        default=60, alias="NOTIFICATION_RATE_LIMIT_WINDOW_SECONDS"
    )
    rate_limit_retention_seconds: int = Field(
        default=120, alias="NOTIFICATION_RATE_LIMIT_RETENTION_SECONDS"
    )
    default_rate_limit_per_minute: int = Field(
        default=30, alias="NOTIFICATION_DEFAULT_RATE_LIMIT_PER_MINUTE"
    )
    http_timeout_seconds: float = Field(
        default=10.0, alias="NOTIFICATION_HTTP_TIMEOUT_SECONDS"
    )
    batch_flush_interval_minutes: int = Field(
        default=5, alias="NOTIFICATION_BATCH_FLUSH_INTERVAL_MINUTES"
    )
    quiet_hours_flush_interval_minutes: int = Field(
        default=15, alias="NOTIFICATION_QUIET_HOURS_FLUSH_INTERVAL_MINUTES"
    )
    chat_channel_order_csv: str = Field(
        default="slack,discord",
        alias="NOTIFICATION_CHAT_CHANNEL_ORDER",
        description="Comma separated chat adapter invocation order",
    )

    @property
    def chat_channel_order(self) -> List[str]:
        """Chat adapter names in invocation order."""
        return [
            part.strip() for part in self.chat_channel_order_csv.split(",") if part.strip()
        ]
