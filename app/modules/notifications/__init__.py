"""Notification dispatch engine.

Receives normalized domain events and decides, per recipient, whether to
deliver now, batch for a periodic digest, or hold until quiet hours end.
Chat integrations are rate limited per target and failed deliveries are
retried through the durable job queue.

Components:
- PreferenceStore: per (user, workspace) preferences with cache
- QuietHoursEngine: timezone-aware windows, hold queue, digests
- BatchQueue: per-recipient buffers and consolidation
- RateLimiter: sliding window per chat target
- NotificationDispatcher: the orchestrator
- RetryQueueProcessor: durable chat delivery retries
- InteractionDeduplicator: drops redelivered interactive callbacks
"""

from modules.notifications.batching import BatchQueue, consolidate_batch
from modules.notifications.container import NotificationEngine, build_notification_engine
from modules.notifications.dedup import InteractionDeduplicator
from modules.notifications.dispatcher import DispatchSummary, NotificationDispatcher
from modules.notifications.health import IntegrationHealthTracker
from modules.notifications.preferences import PreferenceStore, check_type_preference
from modules.notifications.quiet_hours import QuietHoursEngine, is_time_between
from modules.notifications.rate_limit import RateLimiter
from modules.notifications.recipients import RecipientResolver, RecipientScope
from modules.notifications.retry import (
    BATCH_FLUSH_JOB,
    SEND_NOTIFICATION_JOB,
    RetryQueueProcessor,
)
from modules.notifications.sweeps import BatchFlushSweep, QuietHoursFlushSweep

__all__ = [
    "BATCH_FLUSH_JOB",
    "BatchFlushSweep",
    "BatchQueue",
    "DispatchSummary",
    "IntegrationHealthTracker",
    "InteractionDeduplicator",
    "NotificationDispatcher",
    "NotificationEngine",
    "PreferenceStore",
    "QuietHoursEngine",
    "QuietHoursFlushSweep",
    "RateLimiter",
    "RecipientResolver",
    "RecipientScope",
    "RetryQueueProcessor",
    "SEND_NOTIFICATION_JOB",
    "build_notification_engine",
    "check_type_preference",
    "consolidate_batch",
    "is_time_between",
]
