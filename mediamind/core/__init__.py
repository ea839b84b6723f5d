"""Core configuration, exceptions and application factory."""

from .exceptions import (
    MediaMindError,
    SourceError,
    CapabilityDegradedError,
    PlannerError,
    ScoringError,
    JobCreationError,
    StorageError,
)

__all__ = [
    "MediaMindError",
    "SourceError",
    "CapabilityDegradedError",
    "PlannerError",
    "ScoringError",
    "JobCreationError",
    "StorageError",
]
