"""Durable job queue.

Generic enqueue/process abstraction backed by the shared key-value store,
with exponential backoff, claim leases and a dead letter list.

Exports:
    JobQueue: enqueue(), process(), run_pending()
    Job, JobOutcome: Job record and execution outcome
    JobOptions, QueueConfig: Retry options and worker configuration
    JobStore: Persistence layer (exposed for inspection in tests and ops)
"""

from infrastructure.queue.config import JobOptions, QueueConfig
from infrastructure.queue.models import Job, JobOutcome
from infrastructure.queue.store import JobStore
from infrastructure.queue.worker import JobHandler, JobQueue

__all__ = [
    "Job",
    "JobHandler",
    "JobOptions",
    "JobOutcome",
    "JobQueue",
    "JobStore",
    "QueueConfig",
]
