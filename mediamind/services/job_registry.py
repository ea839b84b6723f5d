"""
In-memory registry of running research jobs.

Holds one :class:`Job` per accepted request from creation until its
background pipeline ends. All mutation goes through an ``asyncio.Lock`` so
concurrent pipelines of the same job never lose counter updates, and status
transitions are one-way out of ``processing``.

Jobs live in this process only; a multi-instance deployment would need a
shared store behind the same interface.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

import structlog

from mediamind.models.base import MediaType
from mediamind.models.job import Job, JobOutcome, JobStatus

logger = structlog.get_logger(__name__)


class JobRegistry:
    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._lock = asyncio.Lock()

    async def create_job(self, topic: str, job_id: Optional[str] = None) -> Job:
        job = Job(id=job_id or str(uuid.uuid4()), topic=topic)
        async with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"job {job.id} already registered")
            self._jobs[job.id] = job
            snapshot = job.snapshot()
        logger.info("Job created", job_id=job.id, topic=topic)
        return snapshot

    async def get(self, job_id: str) -> Optional[Job]:
        async with self._lock:
            job = self._jobs.get(job_id)
            return job.snapshot() if job else None

    async def request_cancel(self, job_id: str) -> bool:
        """Flag a processing job for cancellation.

        Idempotent. Returns True only when the flag was newly set; unknown
        and terminal jobs are left untouched. The status itself changes when
        the pipeline reaches its checkpoint.
        """
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal or job.cancel_requested:
                return False
            job.cancel_requested = True
        logger.info("Job cancellation requested", job_id=job_id)
        return True

    async def check_cancelled(self, job_id: str) -> bool:
        async with self._lock:
            job = self._jobs.get(job_id)
            return bool(job and job.cancel_requested)

    async def increment_count(self, job_id: str, media_type: MediaType, n: int = 1) -> int:
        """Atomically add to a per-type counter; terminal jobs are frozen."""
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return 0
            if job.is_terminal:
                return job.counts.get(media_type, 0)
            job.counts[media_type] = job.counts.get(media_type, 0) + n
            return job.counts[media_type]

    async def finalize(self, job_id: str, outcome: JobOutcome) -> Optional[Job]:
        """Move a processing job to a terminal status.

        Returns the finalized snapshot, or None when the job is unknown or
        already terminal (in which case nothing changes).
        """
        if outcome.status == JobStatus.PROCESSING:
            raise ValueError("finalize requires a terminal status")
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            if job.is_terminal:
                logger.debug(
                    "Ignoring finalize on terminal job",
                    job_id=job_id,
                    status=job.status.value,
                    attempted=outcome.status.value,
                )
                return None
            job.status = outcome.status
            job.error_message = outcome.error_message
            job.completed_at = datetime.now(timezone.utc)
            snapshot = job.snapshot()
        logger.info(
            "Job finalized",
            job_id=job_id,
            status=snapshot.status.value,
            counts={mt.value: n for mt, n in snapshot.counts.items()},
            error_message=snapshot.error_message,
        )
        return snapshot

    async def evict(self, job_id: str) -> None:
        async with self._lock:
            self._jobs.pop(job_id, None)

    async def active_count(self) -> int:
        async with self._lock:
            return sum(1 for j in self._jobs.values() if not j.is_terminal)
