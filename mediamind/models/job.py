"""
Research job record and its status state machine.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .base import MediaType


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}
)

CANCELLED_MESSAGE = "Cancelled by user"


def make_slug(topic: str, job_id: str) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", (topic or "").lower())[:50]
    return f"{base}-{job_id[:8]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_counts() -> Dict[MediaType, int]:
    return {mt: 0 for mt in MediaType}


@dataclass(slots=True)
class JobOutcome:
    status: JobStatus
    error_message: Optional[str] = None

    @classmethod
    def completed(cls) -> "JobOutcome":
        return cls(JobStatus.COMPLETED)

    @classmethod
    def cancelled(cls) -> "JobOutcome":
        return cls(JobStatus.CANCELLED, CANCELLED_MESSAGE)

    @classmethod
    def failed(cls, message: str) -> "JobOutcome":
        return cls(JobStatus.FAILED, message or "Unknown error")


@dataclass(slots=True)
class Job:
    id: str
    topic: str
    slug: str = ""
    status: JobStatus = JobStatus.PROCESSING
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None
    counts: Dict[MediaType, int] = field(default_factory=empty_counts)
    error_message: Optional[str] = None
    cancel_requested: bool = False

    def __post_init__(self) -> None:
        if not self.slug:
            self.slug = make_slug(self.topic, self.id)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def snapshot(self) -> "Job":
        """Detached copy safe to hand out of a lock."""
        return Job(
            id=self.id,
            topic=self.topic,
            slug=self.slug,
            status=self.status,
            created_at=self.created_at,
            completed_at=self.completed_at,
            counts=dict(self.counts),
            error_message=self.error_message,
            cancel_requested=self.cancel_requested,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "topic": self.topic,
            "slug": self.slug,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "counts": {mt.value: n for mt, n in self.counts.items()},
            "error_message": self.error_message,
        }
