"""Job persistence on top of the shared key-value store.

Layout:
    job:<id>                JSON job record
    jobs:due:<type>         sorted set, score = run_at (epoch seconds)
    jobs:active:<type>      sorted set, score = claim lease deadline
    jobs:dead:<type>        list of dead-lettered job ids

Claiming a job is a single ``zrem`` of its id from the due set: whichever
worker removes it owns the job, so several engine instances can drain the
same queue without a separate lock.
"""

import json
from typing import List, Optional

from infrastructure.kvstore import KeyBuilder, KeyValueStore
from infrastructure.logging import get_module_logger
from infrastructure.queue.models import Job

logger = get_module_logger()

_job_keys = KeyBuilder("job")
_due_keys = KeyBuilder("jobs:due")
_active_keys = KeyBuilder("jobs:active")
_dead_keys = KeyBuilder("jobs:dead")


class JobStore:
    """Persist, schedule and claim jobs.

    Attributes:
        store: Shared key-value store
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def save(self, job: Job) -> str:
        """Persist a job and schedule it at ``job.run_at``."""
        await self.store.set(_job_keys.key(job.id), job.to_json())
        await self.store.zadd(_due_keys.key(job.job_type), {job.id: job.run_at})
        return job.id

    async def load(self, job_id: str) -> Optional[Job]:
        """Load a job record; corrupted records are removed and reported as missing."""
        raw = await self.store.get(_job_keys.key(job_id))
        if raw is None:
            return None
        try:
            return Job.from_json(raw)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning("job_record_corrupted", job_id=job_id, error=str(e))
            await self.store.delete(_job_keys.key(job_id))
            return None

    async def fetch_due(self, job_type: str, now: float, limit: int) -> List[str]:
        """Return ids of jobs whose ``run_at`` has passed, oldest first."""
        return await self.store.zrangebyscore(
            _due_keys.key(job_type), float("-inf"), now, limit=limit
        )

    async def claim(self, job_type: str, job_id: str, now: float, lease_seconds: int) -> bool:
        """Take ownership of a due job. Returns False when another worker won."""
        removed = await self.store.zrem(_due_keys.key(job_type), job_id)
        if not removed:
            return False
        await self.store.zadd(_active_keys.key(job_type), {job_id: now + lease_seconds})
        return True

    async def complete(self, job: Job) -> None:
        await self.store.zrem(_active_keys.key(job.job_type), job.id)
        await self.store.delete(_job_keys.key(job.id))

    async def forget(self, job_type: str, job_id: str) -> None:
        """Drop a claimed job whose record is gone."""
        await self.store.zrem(_active_keys.key(job_type), job_id)
        await self.store.delete(_job_keys.key(job_id))

    async def reschedule(self, job: Job, run_at: float, error: str) -> Job:
        """Bump the attempt counter and put the job back on the due set."""
        job.attempt += 1
        job.last_error = error
        job.run_at = run_at
        await self.store.set(_job_keys.key(job.id), job.to_json())
        await self.store.zrem(_active_keys.key(job.job_type), job.id)
        await self.store.zadd(_due_keys.key(job.job_type), {job.id: run_at})
        return job

    async def dead_letter(self, job: Job, reason: str, ttl_seconds: int) -> None:
        """Move a job to the dead letter list, keeping its record for inspection."""
        job.last_error = reason
        await self.store.set(_job_keys.key(job.id), job.to_json(), ttl_seconds=ttl_seconds)
        await self.store.zrem(_active_keys.key(job.job_type), job.id)
        await self.store.rpush(_dead_keys.key(job.job_type), job.id)

    async def release_expired_leases(self, job_type: str, now: float) -> int:
        """Make jobs whose worker never finished due again."""
        expired = await self.store.zrangebyscore(
            _active_keys.key(job_type), float("-inf"), now
        )
        released = 0
        for job_id in expired:
            if await self.store.zrem(_active_keys.key(job_type), job_id):
                await self.store.zadd(_due_keys.key(job_type), {job_id: now})
                released += 1
        if released:
            logger.warning("job_leases_expired", job_type=job_type, count=released)
        return released

    async def pending_count(self, job_type: str) -> int:
        return await self.store.zcard(_due_keys.key(job_type))

    async def dead_letters(self, job_type: str) -> List[Job]:
        ids = await self.store.lrange(_dead_keys.key(job_type))
        jobs = []
        for job_id in ids:
            job = await self.load(job_id)
            if job is not None:
                jobs.append(job)
        return jobs
