"""Job queue configuration.

Per-job retry options and worker-level settings for the durable queue.
"""

from dataclasses import dataclass, field

from infrastructure.configuration import QueueSettings


@dataclass
class JobOptions:
    """Retry behaviour attached to a job when it is enqueued.

    Attributes:
        attempts: Total attempts (first run included) before dead-lettering
        backoff_seconds: Delay before the second attempt; doubles afterwards
        max_backoff_seconds: Cap for the exponential delay

    Example:
        options = JobOptions(attempts=3, backoff_seconds=5)
        options.delay_for(1)  # 5
        options.delay_for(2)  # 10
    """

    attempts: int = 3
    backoff_seconds: int = 5
    max_backoff_seconds: int = 300

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0")
        if self.max_backoff_seconds < self.backoff_seconds:
            raise ValueError("max_backoff_seconds must be >= backoff_seconds")

    def delay_for(self, failed_attempt: int) -> int:
        """Seconds to wait after ``failed_attempt`` (1-based) before the next run."""
        exponent = max(failed_attempt - 1, 0)
        return min(self.backoff_seconds * (2**exponent), self.max_backoff_seconds)


@dataclass
class QueueConfig:
    """Worker-level queue configuration.

    Attributes:
        default_options: JobOptions used when enqueue() gets none
        batch_size: Maximum jobs claimed per job type per run
        claim_lease_seconds: How long a claimed job stays invisible; a job
            whose worker died becomes due again once its lease expires
        dead_letter_ttl_seconds: Retention of dead-lettered job records
    """

    default_options: JobOptions = field(default_factory=JobOptions)
    batch_size: int = 25
    claim_lease_seconds: int = 120
    dead_letter_ttl_seconds: int = 7 * 24 * 3600

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.claim_lease_seconds < 1:
            raise ValueError("claim_lease_seconds must be at least 1")

    @classmethod
    def from_settings(cls, settings: QueueSettings) -> "QueueConfig":
        return cls(
            default_options=JobOptions(
                attempts=settings.max_attempts,
                backoff_seconds=settings.base_delay_seconds,
                max_backoff_seconds=settings.max_delay_seconds,
            ),
            batch_size=settings.batch_size,
            claim_lease_seconds=settings.claim_lease_seconds,
        )
