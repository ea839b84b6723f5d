"""
Value types for source hits and canonical media records.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, Dict, Optional

from .base import MediaType, License, SourceTier


@dataclass(frozen=True, slots=True)
class RawHit:
    """A candidate exactly as a source reported it."""

    url: str
    title: str = ""
    source_name: str = ""
    media_type: MediaType = MediaType.VIDEO
    snippet: Optional[str] = None
    thumbnail_url: Optional[str] = None
    published_date: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True, slots=True)
class CanonicalRecord:
    """Normalized hit keyed by ``canonical_url``.

    ``relevance_score`` stays None until the scoring stage has run.
    """

    url: str
    canonical_url: str
    title: str
    source_name: str
    media_type: MediaType
    tier: SourceTier
    license: License
    snippet: Optional[str] = None
    thumbnail_url: Optional[str] = None
    published_date: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    width: Optional[int] = None
    height: Optional[int] = None
    relevance_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["media_type"] = self.media_type.value
        data["tier"] = int(self.tier)
        data["license"] = self.license.value
        if self.published_date is not None:
            data["published_date"] = self.published_date.isoformat()
        return data
