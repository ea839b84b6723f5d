"""
Exception hierarchy for the MediaMind backend.

Source-level errors are isolated by the fan-out executor; planner and
scoring errors are absorbed by their fallbacks; only JobCreationError and
errors escaping the orchestrator's top-level sequence fail a job.
"""

from typing import Optional


class MediaMindError(Exception):
    """Base class for all MediaMind errors."""


class SourceError(MediaMindError):
    """A source adapter could not complete a search."""

    def __init__(self, source: str, message: str, *, status: Optional[int] = None):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.status = status


class CapabilityDegradedError(SourceError):
    """A resource the adapter depends on is temporarily unavailable."""


class PlannerError(MediaMindError):
    """The text-generation capability returned nothing usable."""


class ScoringError(MediaMindError):
    """The relevance-scoring capability failed for a batch."""


class JobCreationError(MediaMindError):
    """The job row could not be persisted; the job cannot start."""

    def __init__(self, job_id: str, cause: Exception):
        super().__init__(f"Failed to create job {job_id}: {cause}")
        self.job_id = job_id
        self.cause = cause


class StorageError(MediaMindError):
    """A storage sink operation failed."""
