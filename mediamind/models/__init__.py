from .base import MediaType, License, SourceTier
from .media import RawHit, CanonicalRecord
from .job import Job, JobStatus, JobOutcome, TERMINAL_STATUSES

__all__ = [
    "MediaType",
    "License",
    "SourceTier",
    "RawHit",
    "CanonicalRecord",
    "Job",
    "JobStatus",
    "JobOutcome",
    "TERMINAL_STATUSES",
]
