"""
Source adapter contract and the typed source description it is built from.

An adapter answers ``search(query, limit)`` with zero or more :class:`RawHit`
objects. "No results" and upstream 4xx/5xx responses are an empty list, not
an error. Transport failures raise :class:`SourceError`; an unavailable
dependent resource raises :class:`CapabilityDegradedError`. Adapters hold no
per-call state and may be called concurrently.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from mediamind.models.base import License, MediaType, SourceTier
from mediamind.models.media import RawHit
from mediamind.utils.text_sanitize import sanitize_text


class SourceKind(str, Enum):
    SEARXNG = "searxng"
    SITE = "site"
    ARCHIVE_ORG = "archive_org"
    CHRONICLING_AMERICA = "chronicling_america"
    EUROPEANA = "europeana"


@dataclass(frozen=True, slots=True)
class SourceSpec:
    name: str
    media_type: MediaType
    kind: SourceKind
    tier: SourceTier
    license: License
    label: str = ""
    site: Optional[str] = None
    category: str = "general"
    query_template: str = "{query}"
    # None = every planned query
    max_queries: Optional[int] = None
    # None = executor default
    timeout_sec: Optional[float] = None

    def render_query(self, query: str) -> str:
        return self.query_template.format(query=query).strip()


class SourceAdapter(ABC):
    def __init__(self, spec: SourceSpec) -> None:
        self.spec = spec

    @property
    def name(self) -> str:
        return self.spec.name

    @abstractmethod
    async def search(self, query: str, limit: int) -> List[RawHit]:
        """Return up to ``limit`` hits for ``query``."""
        raise NotImplementedError

    def make_hit(self, url: str, title: Any = "", **fields: Any) -> RawHit:
        """Stamp a hit with this adapter's name and media type."""
        snippet = fields.pop("snippet", None)
        return RawHit(
            url=url,
            title=sanitize_text(str(title or ""), max_len=300),
            source_name=self.spec.name,
            media_type=self.spec.media_type,
            snippet=sanitize_text(snippet, max_len=500) if snippet else None,
            **fields,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.spec.name!r})"


def parse_date(value: Any) -> Optional[datetime]:
    """Parse ISO timestamps, ``YYYY-MM-DD``, ``YYYYMMDD`` and bare years."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt, width in (("%Y%m%d", 8), ("%Y-%m", 7), ("%Y", 4)):
        try:
            return datetime.strptime(text[:width], fmt)
        except ValueError:
            continue
    return None


def parse_duration(value: Any) -> Optional[float]:
    """Seconds from ``"H:MM:SS"``, ``"MM:SS"`` or a plain number."""
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    try:
        if ":" in text:
            total = 0.0
            for part in text.split(":"):
                total = total * 60 + float(part)
            return total
        return float(text)
    except ValueError:
        return None
