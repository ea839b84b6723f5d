"""
Internet Archive adapter.

Search goes through ``advancedsearch.php``; for video and image sources every
matching identifier is then resolved through the metadata API to a concrete
downloadable file. That inner fan-out is bounded by a per-search semaphore
and paced with a small delay between requests.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import structlog

from mediamind.core import config
from mediamind.core.exceptions import SourceError
from mediamind.models.base import MediaType
from mediamind.models.media import RawHit
from mediamind.services.http_client import HttpClient

from .base import SourceAdapter, SourceSpec, parse_date, parse_duration

logger = structlog.get_logger(__name__)

ADVANCED_SEARCH_URL = "https://archive.org/advancedsearch.php"
METADATA_URL = "https://archive.org/metadata/{identifier}"
DOWNLOAD_URL = "https://archive.org/download/{identifier}/{filename}"
DETAILS_URL = "https://archive.org/details/{identifier}"
THUMBNAIL_URL = "https://archive.org/services/img/{identifier}"

_MEDIATYPE_QUERY = {
    MediaType.VIDEO: "mediatype:movies",
    MediaType.IMAGE: "mediatype:image",
    MediaType.NEWSPAPER: "mediatype:texts AND collection:newspapers",
    MediaType.NEWS: "mediatype:texts",
}

# Preference order for resolved files
_VIDEO_EXTENSIONS = (".mp4", ".webm", ".ogv")
_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif")


def pick_file(files: List[Dict[str, Any]], media_type: MediaType) -> Optional[Dict[str, Any]]:
    """Choose the best downloadable file of an item, or None."""
    names = [(f, str(f.get("name") or "")) for f in files if isinstance(f, dict)]
    if media_type == MediaType.VIDEO:
        for ext in _VIDEO_EXTENSIONS:
            for f, name in names:
                if name.lower().endswith(ext):
                    return f
        return None
    for f, name in names:
        lower = name.lower()
        if lower.endswith(_IMAGE_EXTENSIONS) and "thumb" not in lower:
            return f
    return None


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None


class ArchiveOrgAdapter(SourceAdapter):
    def __init__(
        self,
        spec: SourceSpec,
        http: HttpClient,
        *,
        metadata_concurrency: Optional[int] = None,
        metadata_delay_sec: Optional[float] = None,
    ) -> None:
        super().__init__(spec)
        self.http = http
        self.metadata_concurrency = max(
            1, metadata_concurrency or config.ARCHIVE_ORG_METADATA_CONCURRENCY
        )
        self.metadata_delay_sec = (
            config.ARCHIVE_ORG_METADATA_DELAY_SEC
            if metadata_delay_sec is None
            else metadata_delay_sec
        )

    @property
    def needs_metadata(self) -> bool:
        return self.spec.media_type in (MediaType.VIDEO, MediaType.IMAGE)

    async def search(self, query: str, limit: int) -> List[RawHit]:
        q = self.spec.render_query(query)
        params = {
            "q": f"({q}) AND {_MEDIATYPE_QUERY[self.spec.media_type]}",
            "fl[]": ["identifier", "title", "description", "date"],
            "rows": str(limit),
            "output": "json",
        }
        data = await self.http.get_json(ADVANCED_SEARCH_URL, params=params, source=self.name)
        response = data.get("response") if isinstance(data, dict) else None
        docs = response.get("docs") if isinstance(response, dict) else None
        if not isinstance(docs, list):
            return []
        docs = [d for d in docs if isinstance(d, dict) and d.get("identifier")][:limit]
        if not docs:
            return []

        if not self.needs_metadata:
            return [self._details_hit(doc) for doc in docs]

        sem = asyncio.Semaphore(self.metadata_concurrency)

        async def _resolve(doc: Dict[str, Any]) -> Optional[RawHit]:
            async with sem:
                if self.metadata_delay_sec > 0:
                    await asyncio.sleep(self.metadata_delay_sec)
                return await self._resolve_file(doc)

        resolved = await asyncio.gather(*(_resolve(d) for d in docs))
        hits = [h for h in resolved if h is not None]
        logger.debug(
            "Archive.org search resolved",
            source=self.name,
            identifiers=len(docs),
            resolved=len(hits),
        )
        return hits

    def _details_hit(self, doc: Dict[str, Any]) -> RawHit:
        identifier = doc["identifier"]
        return self.make_hit(
            DETAILS_URL.format(identifier=identifier),
            _first(doc.get("title")) or identifier,
            snippet=_first(doc.get("description")),
            thumbnail_url=THUMBNAIL_URL.format(identifier=identifier),
            published_date=parse_date(doc.get("date")),
        )

    async def _resolve_file(self, doc: Dict[str, Any]) -> Optional[RawHit]:
        identifier = doc["identifier"]
        try:
            meta = await self.http.get_json(
                METADATA_URL.format(identifier=identifier), source=self.name
            )
        except SourceError as exc:
            # One unresolvable item does not fail the search
            logger.debug("Archive.org metadata fetch failed", identifier=identifier, error=str(exc))
            return None
        files = meta.get("files") if isinstance(meta, dict) else None
        if not isinstance(files, list):
            return None
        chosen = pick_file(files, self.spec.media_type)
        if chosen is None:
            return None
        return self.make_hit(
            DOWNLOAD_URL.format(identifier=identifier, filename=chosen["name"]),
            _first(doc.get("title")) or identifier,
            snippet=_first(doc.get("description")),
            thumbnail_url=THUMBNAIL_URL.format(identifier=identifier),
            published_date=parse_date(doc.get("date")),
            duration_seconds=parse_duration(chosen.get("length")),
            width=_as_int(chosen.get("width")),
            height=_as_int(chosen.get("height")),
        )


def _first(value: Any) -> Optional[str]:
    if isinstance(value, list):
        return str(value[0]) if value else None
    return str(value) if value else None
