"""Durable job queue infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class QueueSettings(InfrastructureSettings):
    """Durable job queue configuration for notification delivery retries.

    Jobs live in the shared key-value store, so any engine instance can pick
    up work enqueued by another one.

    Environment Variables:
        QUEUE_MAX_ATTEMPTS: Attempts per job before it is dead-lettered (default: 3)
        QUEUE_BASE_DELAY_SECONDS: Base exponential backoff delay (default: 5s)
        QUEUE_MAX_DELAY_SECONDS: Maximum backoff delay (default: 300s)
        QUEUE_BATCH_SIZE: Jobs claimed per run (default: 25)
        QUEUE_CLAIM_LEASE_SECONDS: How long a claimed job stays invisible (default: 120s)
        QUEUE_POLL_INTERVAL_SECONDS: How often the scheduler drains the queue (default: 5s)

    Exponential Backoff:
        Delay before attempt N+1: min(base_delay * 2 ^ (N - 1), max_delay)

        Example with defaults (base=5s, max=300s):
            Attempt 2: 5s
            Attempt 3: 10s

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()
        attempts = settings.queue.max_attempts
        ```
    """

    max_attempts: int = Field(
        default=3,
        alias="QUEUE_MAX_ATTEMPTS",
        description="Maximum attempts per job before moving to the dead letter list",
    )
    base_delay_seconds: int = Field(
        default=5,
        alias="QUEUE_BASE_DELAY_SECONDS",
        description="Base delay for exponential backoff (seconds)",
    )
    max_delay_seconds: int = Field(
        default=300,
        alias="QUEUE_MAX_DELAY_SECONDS",
        description="Maximum delay for exponential backoff (seconds)",
    )
    batch_size: int = Field(
        default=25,
        alias="QUEUE_BATCH_SIZE",
        description="Number of jobs claimed per run",
    )
    claim_lease_seconds: int = Field(
        default=120,
        alias="QUEUE_CLAIM_LEASE_SECONDS",
        description="Duration a claimed job stays invisible to other workers",
    )
    poll_interval_seconds: int = Field(
        default=5,
        alias="QUEUE_POLL_INTERVAL_SECONDS",
        description="Interval between queue drains (seconds)",
    )
