"""Notification domain: event taxonomy, value models and errors."""

from modules.notifications.domain.errors import (
    CriticalNotificationError,
    NotificationError,
    RetryableDeliveryError,
)
from modules.notifications.domain.models import (
    BatchedNotification,
    ChannelPreferences,
    ChannelPreferencesOverride,
    ChannelSendResult,
    ChatIntegration,
    ConsolidatedNotification,
    DigestSummary,
    EventSettings,
    IntegrationStatus,
    Interaction,
    NotificationEvent,
    Preferences,
    PreferencesUpdate,
    QueuedNotification,
    QuietHoursConfig,
    QuietHoursStatus,
    Recipient,
    RetryJob,
)
from modules.notifications.domain.types import (
    CONSOLIDATABLE_TYPES,
    CRITICAL_TYPES,
    IMMEDIATE_TYPES,
    NotificationType,
    NotificationUrgency,
    batch_type_for,
    is_consolidatable_type,
    is_critical_type,
    is_immediate_type,
)

__all__ = [
    "BatchedNotification",
    "ChannelPreferences",
    "ChannelPreferencesOverride",
    "ChannelSendResult",
    "ChatIntegration",
    "ConsolidatedNotification",
    "CONSOLIDATABLE_TYPES",
    "CRITICAL_TYPES",
    "CriticalNotificationError",
    "DigestSummary",
    "EventSettings",
    "IMMEDIATE_TYPES",
    "IntegrationStatus",
    "Interaction",
    "NotificationError",
    "NotificationEvent",
    "NotificationType",
    "NotificationUrgency",
    "Preferences",
    "PreferencesUpdate",
    "QueuedNotification",
    "QuietHoursConfig",
    "QuietHoursStatus",
    "Recipient",
    "RetryJob",
    "RetryableDeliveryError",
    "batch_type_for",
    "is_consolidatable_type",
    "is_critical_type",
    "is_immediate_type",
]
