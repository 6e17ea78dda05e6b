"""Notification event taxonomy.

The type sets below are fixed and not configurable: critical types can
never be disabled and always bypass quiet hours.
"""

from enum import Enum
from typing import Dict, FrozenSet, Union


class NotificationType(str, Enum):
    """Every event type trigger producers may emit."""

    EPIC_COMPLETED = "epic_completed"
    STORY_COMPLETED = "story_completed"
    DEPLOYMENT_SUCCESS = "deployment_success"
    DEPLOYMENT_FAILED = "deployment_failed"
    AGENT_ERROR = "agent_error"
    AGENT_MESSAGE = "agent_message"
    CONTEXT_DEGRADED = "context_degraded"
    CONTEXT_CRITICAL = "context_critical"
    COST_ALERT_WARNING = "cost_alert_warning"
    COST_ALERT_EXCEEDED = "cost_alert_exceeded"
    SPRINT_REVIEW_READY = "sprint_review_ready"
    DEPLOYMENT_PENDING_APPROVAL = "deployment_pending_approval"


class NotificationUrgency(str, Enum):
    VERY_LOW = "very-low"
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


TypeLike = Union[str, NotificationType]

CRITICAL_TYPES: FrozenSet[str] = frozenset(
    {
        NotificationType.DEPLOYMENT_FAILED.value,
        NotificationType.AGENT_ERROR.value,
    }
)

# Delivered straight to push, never buffered.
IMMEDIATE_TYPES: FrozenSet[str] = CRITICAL_TYPES | frozenset(
    {
        NotificationType.DEPLOYMENT_PENDING_APPROVAL.value,
        NotificationType.CONTEXT_CRITICAL.value,
    }
)

# Folded into one "<type>_batch" summary when several are buffered.
CONSOLIDATABLE_TYPES: FrozenSet[str] = frozenset(
    {
        NotificationType.STORY_COMPLETED.value,
        NotificationType.EPIC_COMPLETED.value,
        NotificationType.AGENT_MESSAGE.value,
    }
)

# Payload field sampled into a consolidated summary, per type.
CONSOLIDATION_SAMPLE_FIELDS: Dict[str, str] = {
    NotificationType.STORY_COMPLETED.value: "storyTitle",
    NotificationType.EPIC_COMPLETED.value: "epicTitle",
    NotificationType.AGENT_MESSAGE.value: "agentName",
}

# Event types users can toggle, mapped to their preference flag. Types not
# listed here (context health, cost alerts, ...) are always enabled.
TYPE_TO_EVENT_SETTING: Dict[str, str] = {
    NotificationType.EPIC_COMPLETED.value: "epic_completions",
    NotificationType.STORY_COMPLETED.value: "story_completions",
    NotificationType.DEPLOYMENT_SUCCESS.value: "deployment_success",
    NotificationType.DEPLOYMENT_FAILED.value: "deployment_failure",
    NotificationType.AGENT_ERROR.value: "agent_errors",
    NotificationType.AGENT_MESSAGE.value: "agent_messages",
}

# Event settings that can never be switched off.
CRITICAL_EVENT_SETTINGS: FrozenSet[str] = frozenset(
    {"deployment_failure", "agent_errors"}
)


def type_value(notification_type: TypeLike) -> str:
    """Return the plain string value of a type given as enum or string."""
    if isinstance(notification_type, NotificationType):
        return notification_type.value
    return str(notification_type)


def is_critical_type(notification_type: TypeLike) -> bool:
    return type_value(notification_type) in CRITICAL_TYPES


def is_immediate_type(notification_type: TypeLike) -> bool:
    return type_value(notification_type) in IMMEDIATE_TYPES


def is_consolidatable_type(notification_type: TypeLike) -> bool:
    return type_value(notification_type) in CONSOLIDATABLE_TYPES


def batch_type_for(notification_type: TypeLike) -> str:
    """Consolidated type name, e.g. ``story_completed`` -> ``story_completed_batch``."""
    return f"{type_value(notification_type)}_batch"
