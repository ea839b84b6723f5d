"""
Historical newspaper adapters: Chronicling America and Europeana.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from mediamind.core.exceptions import CapabilityDegradedError
from mediamind.models.media import RawHit
from mediamind.services.http_client import HttpClient

from .base import SourceAdapter, SourceSpec, parse_date

logger = structlog.get_logger(__name__)

CHRONICLING_AMERICA_URL = "https://chroniclingamerica.loc.gov/search/pages/results/"
EUROPEANA_SEARCH_URL = "https://api.europeana.eu/record/v2/search.json"


class ChroniclingAmericaAdapter(SourceAdapter):
    """Library of Congress digitized newspaper pages (public domain)."""

    def __init__(self, spec: SourceSpec, http: HttpClient) -> None:
        super().__init__(spec)
        self.http = http

    async def search(self, query: str, limit: int) -> List[RawHit]:
        params = {
            "andtext": self.spec.render_query(query),
            "format": "json",
            "rows": str(limit),
        }
        data = await self.http.get_json(CHRONICLING_AMERICA_URL, params=params, source=self.name)
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []
        hits: List[RawHit] = []
        for item in items[:limit]:
            hit = self._to_hit(item)
            if hit is not None:
                hits.append(hit)
        return hits

    def _to_hit(self, item: Dict[str, Any]) -> Optional[RawHit]:
        api_url = item.get("url") if isinstance(item, dict) else None
        if not api_url or not isinstance(api_url, str):
            return None
        page_url = api_url[:-5] + "/" if api_url.endswith(".json") else api_url
        thumbnail = api_url.replace(".json", "/thumbnail.jpg")
        title = _text(item.get("title")) or "Newspaper page"
        date = _text(item.get("date"))
        if date:
            title = f"{title} ({date[:4]}-{date[4:6]}-{date[6:8]})" if len(date) == 8 else f"{title} ({date})"
        ocr = _text(item.get("ocr_eng")) or ""
        return self.make_hit(
            page_url,
            title,
            snippet=ocr[:500] or None,
            thumbnail_url=thumbnail,
            published_date=parse_date(date),
        )


class EuropeanaAdapter(SourceAdapter):
    """Europeana records of type TEXT (newspaper scans). Needs an API key."""

    def __init__(self, spec: SourceSpec, http: HttpClient, api_key: str) -> None:
        super().__init__(spec)
        self.http = http
        self.api_key = api_key

    async def search(self, query: str, limit: int) -> List[RawHit]:
        if not self.api_key:
            raise CapabilityDegradedError(self.name, "EUROPEANA_API_KEY is not configured")
        params = {
            "wskey": self.api_key,
            "query": self.spec.render_query(query),
            "qf": "TYPE:TEXT",
            "rows": str(limit),
            "profile": "standard",
        }
        data = await self.http.get_json(EUROPEANA_SEARCH_URL, params=params, source=self.name)
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return []
        hits: List[RawHit] = []
        for item in items[:limit]:
            if not isinstance(item, dict):
                continue
            url = _text(item.get("guid")) or _text(item.get("link"))
            if not url:
                continue
            title = _text(item.get("title")) or "Europeana record"
            preview = _text(item.get("edmPreview"))
            year = _text(item.get("year"))
            hits.append(
                self.make_hit(
                    url,
                    title,
                    snippet=_text(item.get("dcDescription")),
                    thumbnail_url=preview,
                    published_date=parse_date(year),
                )
            )
        return hits


def _text(value: Any) -> Optional[str]:
    """First element of Europeana's list-valued fields, or the value itself."""
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value) or None
