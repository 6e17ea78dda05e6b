"""Job queue models."""

import json
import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from infrastructure.queue.config import JobOptions


class JobOutcome(Enum):
    """Outcome of running one job.

    Values:
        COMPLETED: Handler returned normally, job removed
        RETRY_SCHEDULED: Handler raised, job re-queued with backoff
        DEAD_LETTERED: Handler raised on the last allowed attempt
    """

    COMPLETED = "completed"
    RETRY_SCHEDULED = "retry_scheduled"
    DEAD_LETTERED = "dead_lettered"


@dataclass
class Job:
    """A unit of queued work.

    ``attempt`` is 1-based: a handler sees ``attempt == 1`` on the first run
    and the queue increments it each time it reschedules the job.

    Fields:
        job_type: Handler name (e.g. "send-notification")
        payload: JSON-serializable job data
        id: Unique identifier
        attempt: Current attempt number
        max_attempts: Attempts allowed before dead-lettering
        backoff_seconds: Base backoff delay
        max_backoff_seconds: Backoff cap
        last_error: Error raised by the previous attempt
        created_at: Enqueue time (epoch seconds)
        run_at: Earliest time the job may run (epoch seconds)
    """

    job_type: str
    payload: Dict[str, Any]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    attempt: int = 1
    max_attempts: int = 3
    backoff_seconds: int = 5
    max_backoff_seconds: int = 300
    last_error: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    run_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.job_type:
            raise ValueError("job_type is required")
        if not isinstance(self.payload, dict):
            raise ValueError("payload must be a dictionary")

    @property
    def options(self) -> JobOptions:
        return JobOptions(
            attempts=self.max_attempts,
            backoff_seconds=self.backoff_seconds,
            max_backoff_seconds=self.max_backoff_seconds,
        )

    @property
    def is_last_attempt(self) -> bool:
        return self.attempt >= self.max_attempts

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "Job":
        return cls(**json.loads(raw))
