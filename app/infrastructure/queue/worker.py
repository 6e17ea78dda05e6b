"""Durable job queue with exponential backoff.

``enqueue(job_type, payload, options)`` persists work; ``process(job_type,
handler)`` registers the coroutine that runs it; ``run_pending()`` claims due
jobs and executes them. A handler signals "try again later" by raising: the
queue reschedules the job with exponential backoff until its attempts are
used up, then dead-letters it.
"""

import time
from typing import Any, Awaitable, Callable, Dict, Optional

from infrastructure.kvstore import KeyValueStore
from infrastructure.logging import get_module_logger
from infrastructure.queue.config import JobOptions, QueueConfig
from infrastructure.queue.models import Job, JobOutcome
from infrastructure.queue.store import JobStore

logger = get_module_logger()

JobHandler = Callable[[Job], Awaitable[Any]]


def _empty_stats() -> Dict[str, int]:
    return {
        "processed": 0,
        "completed": 0,
        "retried": 0,
        "dead_lettered": 0,
        "skipped": 0,
        "released": 0,
    }


class JobQueue:
    """Queue front-end and worker in one object.

    Any engine instance may enqueue; any instance may drain. Handlers are
    registered per job type and must be idempotent enough to tolerate a rerun
    after a lease expiry.

    Attributes:
        jobs: JobStore persisting job records
        config: QueueConfig controlling batch size and claim lease
        worker_id: Identifier for this worker instance
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[QueueConfig] = None,
        worker_id: str = "notification-worker-1",
        time_fn: Optional[Callable[[], float]] = None,
    ) -> None:
        self.jobs = JobStore(store)
        self.config = config or QueueConfig()
        self.worker_id = worker_id
        self.time_fn = time_fn or time.time
        self._handlers: Dict[str, JobHandler] = {}
        self.log = logger.bind(worker_id=worker_id)

    @property
    def job_types(self) -> list:
        return list(self._handlers)

    def process(self, job_type: str, handler: JobHandler) -> None:
        """Register the handler for ``job_type``. Re-registering replaces it."""
        self._handlers[job_type] = handler
        self.log.info("job_handler_registered", job_type=job_type)

    async def enqueue(
        self,
        job_type: str,
        payload: Dict[str, Any],
        options: Optional[JobOptions] = None,
        delay_seconds: int = 0,
        first_attempt: int = 1,
    ) -> str:
        """Persist a job.

        Args:
            job_type: Name the handler was registered under
            payload: JSON-serializable job data
            options: Retry options (defaults to the queue config)
            delay_seconds: Postpone the first run
            first_attempt: Attempt number of the first queued run, for work
                whose earlier attempts already happened outside the queue

        Returns:
            The job id
        """
        options = options or self.config.default_options
        if not 1 <= first_attempt <= options.attempts:
            raise ValueError(
                f"first_attempt must be between 1 and {options.attempts}, got {first_attempt}"
            )
        now = self.time_fn()
        job = Job(
            job_type=job_type,
            payload=payload,
            attempt=first_attempt,
            max_attempts=options.attempts,
            backoff_seconds=options.backoff_seconds,
            max_backoff_seconds=options.max_backoff_seconds,
            created_at=now,
            run_at=now + delay_seconds,
        )
        await self.jobs.save(job)
        self.log.info(
            "job_enqueued",
            job_id=job.id,
            job_type=job_type,
            max_attempts=job.max_attempts,
        )
        return job.id

    async def run_pending(self, job_type: Optional[str] = None) -> Dict[str, int]:
        """Claim and run due jobs for one or all registered job types.

        Returns:
            Dictionary with processing statistics:
                - processed: Jobs executed
                - completed: Jobs whose handler returned normally
                - retried: Jobs rescheduled with backoff
                - dead_lettered: Jobs that used their last attempt
                - skipped: Jobs claimed by another worker or whose record vanished
                - released: Expired leases returned to the due set
        """
        stats = _empty_stats()
        types = [job_type] if job_type else self.job_types

        for current_type in types:
            handler = self._handlers.get(current_type)
            if handler is None:
                self.log.warning("job_handler_missing", job_type=current_type)
                continue

            now = self.time_fn()
            stats["released"] += await self.jobs.release_expired_leases(current_type, now)
            job_ids = await self.jobs.fetch_due(current_type, now, self.config.batch_size)

            for job_id in job_ids:
                claimed = await self.jobs.claim(
                    current_type, job_id, now, self.config.claim_lease_seconds
                )
                if not claimed:
                    self.log.debug("job_skipped_claim_failed", job_id=job_id)
                    stats["skipped"] += 1
                    continue

                job = await self.jobs.load(job_id)
                if job is None:
                    await self.jobs.forget(current_type, job_id)
                    stats["skipped"] += 1
                    continue

                outcome = await self._execute(job, handler)
                stats["processed"] += 1
                if outcome == JobOutcome.COMPLETED:
                    stats["completed"] += 1
                elif outcome == JobOutcome.RETRY_SCHEDULED:
                    stats["retried"] += 1
                else:
                    stats["dead_lettered"] += 1

        if stats["processed"]:
            self.log.info("job_batch_complete", **stats)
        return stats

    async def _execute(self, job: Job, handler: JobHandler) -> JobOutcome:
        self.log.info(
            "job_processing",
            job_id=job.id,
            job_type=job.job_type,
            attempt=job.attempt,
        )
        try:
            await handler(job)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            if job.is_last_attempt:
                await self.jobs.dead_letter(
                    job, reason=error, ttl_seconds=self.config.dead_letter_ttl_seconds
                )
                self.log.error(
                    "job_dead_lettered",
                    job_id=job.id,
                    job_type=job.job_type,
                    attempt=job.attempt,
                    error=error,
                )
                return JobOutcome.DEAD_LETTERED

            delay = job.options.delay_for(job.attempt)
            await self.jobs.reschedule(job, run_at=self.time_fn() + delay, error=error)
            self.log.warning(
                "job_retry_scheduled",
                job_id=job.id,
                job_type=job.job_type,
                next_attempt=job.attempt,
                delay_seconds=delay,
                error=error,
            )
            return JobOutcome.RETRY_SCHEDULED

        await self.jobs.complete(job)
        self.log.info("job_completed", job_id=job.id, job_type=job.job_type)
        return JobOutcome.COMPLETED
