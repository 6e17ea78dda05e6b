"""Notification engine value models.

Events, preferences and buffered notifications are immutable pydantic
models: components derive new values with ``model_copy`` instead of
mutating what they were given. Integration records are the exception; they
are persisted state owned by the IntegrationRepository.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from modules.notifications.domain.types import (
    NotificationUrgency,
    is_critical_type,
    is_immediate_type,
    type_value,
)

_HH_MM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def _normalize_type(v: Any) -> Any:
    if isinstance(v, Enum):
        return type_value(v)
    return v


class Recipient(BaseModel):
    """A (user, workspace) pair an event is addressed to."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    workspace_id: str = Field(..., min_length=1)


class NotificationEvent(BaseModel):
    """Normalized domain event handed to the dispatcher.

    Attributes:
        type: Event type (see NotificationType)
        payload: Event data used for formatting (titles, ids, names)
        recipients: Users the event is addressed to
        urgency: Delivery urgency hint for push providers
        batchable: False forces immediate delivery for any type

    Example:
        event = NotificationEvent(
            type=NotificationType.STORY_COMPLETED,
            payload={"storyTitle": "Login page"},
            recipients=[Recipient(user_id="u1", workspace_id="w1")],
        )
    """

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., min_length=1)
    payload: Dict[str, Any] = Field(default_factory=dict)
    recipients: Tuple[Recipient, ...] = ()
    urgency: NotificationUrgency = NotificationUrgency.NORMAL
    batchable: bool = True

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return _normalize_type(v)

    @property
    def is_critical(self) -> bool:
        return is_critical_type(self.type)

    @property
    def is_immediate(self) -> bool:
        """Critical/immediate types always, any type when not batchable."""
        return is_immediate_type(self.type) or not self.batchable

    @property
    def workspace_ids(self) -> List[str]:
        """Distinct workspace ids of the recipients, in first-seen order."""
        seen: Dict[str, None] = {}
        for recipient in self.recipients:
            seen.setdefault(recipient.workspace_id, None)
        return list(seen)

    def with_recipients(self, recipients: List[Recipient]) -> "NotificationEvent":
        return self.model_copy(update={"recipients": tuple(recipients)})


class EventSettings(BaseModel):
    """Per-event-type toggles. Critical flags are re-asserted on every update."""

    model_config = ConfigDict(frozen=True)

    epic_completions: bool = True
    story_completions: bool = True
    deployment_success: bool = True
    deployment_failure: bool = True
    agent_errors: bool = True
    agent_messages: bool = True


class ChannelPreferences(BaseModel):
    """Per-channel toggles. In-app delivery cannot be disabled."""

    model_config = ConfigDict(frozen=True)

    push: bool = True
    in_app: bool = True
    email: bool = False


class ChannelPreferencesOverride(BaseModel):
    """Partial channel toggles applied to one event type."""

    model_config = ConfigDict(frozen=True)

    push: Optional[bool] = None
    email: Optional[bool] = None


class QuietHoursConfig(BaseModel):
    """Timezone-aware suppression window.

    ``start_time`` > ``end_time`` describes a window crossing midnight
    (22:00-08:00). Membership is inclusive at start, exclusive at end.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    start_time: str = "22:00"
    end_time: str = "08:00"
    timezone: str = "UTC"
    except_critical: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_hh_mm(cls, v: str) -> str:
        if not _HH_MM.match(v):
            raise ValueError(f"Time must be in HH:MM format: {v}")
        return v


class Preferences(BaseModel):
    """Notification preferences for one user in one workspace."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    workspace_id: str
    enabled: bool = True
    event_settings: EventSettings = Field(default_factory=EventSettings)
    channel_preferences: ChannelPreferences = Field(default_factory=ChannelPreferences)
    per_type_channel_overrides: Dict[str, ChannelPreferencesOverride] = Field(
        default_factory=dict
    )
    quiet_hours: QuietHoursConfig = Field(default_factory=QuietHoursConfig)
    updated_at: Optional[datetime] = None


def _canonical_toggles(
    values: Optional[Dict[str, bool]], model: type, label: str
) -> Optional[Dict[str, bool]]:
    if values is None:
        return None
    names = {}
    for name in model.model_fields:
        names[name] = name
        names[to_camel(name)] = name
    unknown = sorted(key for key in values if key not in names)
    if unknown:
        raise ValueError(f"unknown {label}: {', '.join(unknown)}")
    return {names[key]: value for key, value in values.items()}


class PreferencesUpdate(BaseModel):
    """Partial preferences update. Unset fields keep their current value.

    Toggle keys may be given as field names (``story_completions``) or in
    camelCase (``storyCompletions``); both are stored under the field name.
    Unknown keys are rejected.
    """

    enabled: Optional[bool] = None
    event_settings: Optional[Dict[str, bool]] = None
    channel_preferences: Optional[Dict[str, bool]] = None
    per_type_channel_overrides: Optional[Dict[str, ChannelPreferencesOverride]] = None
    quiet_hours: Optional[Dict[str, Any]] = None

    @field_validator("event_settings")
    @classmethod
    def known_event_settings(cls, v: Optional[Dict[str, bool]]) -> Optional[Dict[str, bool]]:
        return _canonical_toggles(v, EventSettings, "event setting")

    @field_validator("channel_preferences")
    @classmethod
    def known_channels(cls, v: Optional[Dict[str, bool]]) -> Optional[Dict[str, bool]]:
        return _canonical_toggles(v, ChannelPreferences, "channel")


class BatchedNotification(BaseModel):
    """One buffered notification for one recipient.

    Attributes:
        type: Event type
        payload: Event payload
        timestamp: Buffering time, epoch milliseconds
        workspace_id: Workspace the event belongs to
    """

    model_config = ConfigDict(frozen=True)

    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: int
    workspace_id: str

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        return _normalize_type(v)


class QueuedNotification(BatchedNotification):
    """A notification held back by quiet hours."""


class ConsolidatedNotification(BaseModel):
    """Summary produced from one group of buffered notifications.

    A consolidated group carries ``type == "<type>_batch"`` and
    ``payload["count"]``; a pass-through item keeps its original type and
    payload with ``count == 1``.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    workspace_id: str
    count: int = 1


class QuietHoursStatus(BaseModel):
    in_quiet_hours: bool
    ends_at: Optional[str] = None
    timezone: Optional[str] = None


class DigestSummary(BaseModel):
    """One summary message built from a flushed quiet-hours queue."""

    title: str
    body: str
    count: int
    by_type: Dict[str, int] = Field(default_factory=dict)


class ChannelSendResult(BaseModel):
    """Outcome of one channel adapter send.

    Attributes:
        sent: True when the provider accepted the message
        channel_name: Adapter name (slack, discord, push, in_app)
        error: Machine-readable reason when not sent
        retry_after: Seconds the provider asked us to wait
        retryable: True when re-sending later may succeed
    """

    sent: bool
    channel_name: Optional[str] = None
    error: Optional[str] = None
    retry_after: Optional[int] = None
    retryable: bool = False

    @classmethod
    def delivered(cls, channel_name: str) -> "ChannelSendResult":
        return cls(sent=True, channel_name=channel_name)

    @classmethod
    def failed(
        cls,
        channel_name: str,
        error: str,
        retry_after: Optional[int] = None,
        retryable: bool = False,
    ) -> "ChannelSendResult":
        return cls(
            sent=False,
            channel_name=channel_name,
            error=error,
            retry_after=retry_after,
            retryable=retryable,
        )


class IntegrationStatus(str, Enum):
    """Health of a chat integration.

    ``error`` and ``invalid_webhook`` need out-of-band reconnection, except
    that a successful send moves ``error`` back to ``active``.
    """

    ACTIVE = "active"
    ERROR = "error"
    INVALID_WEBHOOK = "invalid_webhook"


class ChatIntegration(BaseModel):
    """Persisted chat integration for one workspace and provider.

    Attributes:
        id: Integration id
        workspace_id: Owning workspace
        provider: Channel name (slack, discord)
        status: Health status
        target_id: Rate-limit target (webhook id, team id)
        webhook_url: Incoming webhook URL (Discord)
        bot_token: Bot token (Slack)
        default_channel_id: Fallback channel (Slack)
        event_channels: Per-event-type channel overrides
        mention_config: Mention prefix by "critical"/"normal"
        quiet_hours: Optional integration-level quiet hours
        rate_limit_per_minute: Per-target cap override
        error_count: Consecutive failed sends
        message_count: Successful sends
    """

    id: str
    workspace_id: str
    provider: str
    status: IntegrationStatus = IntegrationStatus.ACTIVE
    target_id: str
    webhook_url: Optional[str] = None
    bot_token: Optional[str] = None
    default_channel_id: Optional[str] = None
    event_channels: Dict[str, str] = Field(default_factory=dict)
    mention_config: Dict[str, str] = Field(default_factory=dict)
    quiet_hours: Optional[QuietHoursConfig] = None
    rate_limit_per_minute: Optional[int] = None
    error_count: int = 0
    message_count: int = 0
    last_message_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def channel_for(self, notification_type: str) -> Optional[str]:
        """Event-specific channel, falling back to the default channel."""
        return self.event_channels.get(notification_type) or self.default_channel_id


class RetryJob(BaseModel):
    """A channel delivery handed to the durable queue.

    ``attempt`` is not part of the enqueued payload; it is read from the
    queue's job record, which increments it on every reschedule.
    """

    workspace_id: str
    notification: NotificationEvent
    channel: str
    attempt: int = 1


class Interaction(BaseModel):
    """Inbound interactive callback (button click, slash command).

    Attributes:
        workspace_id: Provider workspace/team id
        user_id: Acting user
        action: Action identifier (action_id, command name)
        trigger_id: Provider trigger id, when supplied
        callback_id: Provider callback id, when supplied
        timestamp: Epoch seconds the interaction was received
    """

    model_config = ConfigDict(frozen=True)

    workspace_id: str
    user_id: str
    action: str
    trigger_id: Optional[str] = None
    callback_id: Optional[str] = None
    timestamp: float
