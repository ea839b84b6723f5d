"""
Storage sink for jobs and their media records.

``MediaStore`` is the contract the orchestrator writes through. Record
inserts may fail individually (the orchestrator logs and continues);
``create_job`` failing is fatal for the job.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Mapping, Optional

import structlog

from mediamind.core.exceptions import StorageError
from mediamind.models.base import MediaType
from mediamind.models.job import Job, JobStatus
from mediamind.models.media import CanonicalRecord

logger = structlog.get_logger(__name__)


class MediaStore(ABC):
    @abstractmethod
    async def create_job(self, job: Job) -> None:
        ...

    @abstractmethod
    async def insert_media_record(self, job_id: str, record: CanonicalRecord) -> None:
        ...

    @abstractmethod
    async def update_job_status(
        self,
        job_id: str,
        status: JobStatus,
        counts: Mapping[MediaType, int],
        error_message: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> None:
        ...

    @abstractmethod
    async def get_job(self, job_id: str) -> Optional[Job]:
        ...

    @abstractmethod
    async def list_media(self, job_id: str) -> List[CanonicalRecord]:
        ...

    async def close(self) -> None:
        return None


class InMemoryMediaStore(MediaStore):
    """Process-local store; the default when no database is configured."""

    def __init__(self) -> None:
        self._jobs: Dict[str, Job] = {}
        self._media: Dict[str, Dict[str, CanonicalRecord]] = {}
        self._lock = asyncio.Lock()

    async def create_job(self, job: Job) -> None:
        async with self._lock:
            if job.id in self._jobs:
                raise StorageError(f"job {job.id} already exists")
            self._jobs[job.id] = job.snapshot()
            self._media[job.id] = {}

    async def insert_media_record(self, job_id: str, record: CanonicalRecord) -> None:
        async with self._lock:
            media = self._media.get(job_id)
            if media is None:
                raise StorageError(f"unknown job {job_id}")
            if record.canonical_url in media:
                raise StorageError(f"duplicate media url for job {job_id}: {record.canonical_url}")
            media[record.canonical_url] = record

    async def update_job_status(
        self,
        job_id: str,
        status: JobStatus,
        counts: Mapping[MediaType, int],
        error_message: Optional[str] = None,
        completed_at: Optional[datetime] = None,
    ) -> None:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise StorageError(f"unknown job {job_id}")
            job.status = status
            job.counts = dict(counts)
            job.error_message = error_message
            job.completed_at = completed_at

    async def get_job(self, job_id: str) -> Optional[Job]:
        async with self._lock:
            job = self._jobs.get(job_id)
            return job.snapshot() if job else None

    async def list_media(self, job_id: str) -> List[CanonicalRecord]:
        async with self._lock:
            return list((self._media.get(job_id) or {}).values())
