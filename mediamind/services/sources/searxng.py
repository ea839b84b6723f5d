"""
SearXNG-backed adapters.

One metasearch instance serves several source families: plain category
searches (videos, images, news, general) and ``site:``-scoped searches that
stand in for archives and stock libraries without a public API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from mediamind.core import config
from mediamind.models.base import MediaType
from mediamind.models.media import RawHit
from mediamind.services.http_client import HttpClient
from mediamind.utils.url_utils import (
    domain_matches,
    is_blocked_video_domain,
    is_valid_url,
    is_video_url,
)

from .base import SourceAdapter, SourceSpec, parse_date, parse_duration

logger = structlog.get_logger(__name__)


class SearXNGClient:
    """Thin JSON client for a SearXNG instance."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        http: Optional[HttpClient] = None,
    ) -> None:
        self.base_url = (base_url or config.SEARXNG_URL).rstrip("/")
        self.http = http or HttpClient(
            "searxng",
            timeout_sec=config.SEARXNG_TIMEOUT_SEC,
            calls_per_minute=config.SEARXNG_CALLS_PER_MINUTE,
            burst=20,
        )

    async def close(self) -> None:
        await self.http.close()

    async def search(
        self,
        query: str,
        *,
        category: str = "general",
        source: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        data = await self.http.get_json(
            f"{self.base_url}/search",
            params={"q": query, "format": "json", "categories": category},
            source=source or "searxng",
        )
        if not isinstance(data, dict):
            return []
        results = data.get("results") or []
        return [r for r in results if isinstance(r, dict)]


def _resolution(value: Any) -> tuple:
    """``"1024x768"`` -> (1024, 768)."""
    try:
        w, h = str(value).lower().replace(" ", "").split("x", 1)
        return int(w), int(h)
    except (ValueError, AttributeError):
        return None, None


class SearXNGCategoryAdapter(SourceAdapter):
    """Search one SearXNG category with the source's query template."""

    def __init__(self, spec: SourceSpec, client: SearXNGClient) -> None:
        super().__init__(spec)
        self.client = client

    def build_query(self, query: str) -> str:
        return self.spec.render_query(query)

    async def search(self, query: str, limit: int) -> List[RawHit]:
        q = self.build_query(query)
        results = await self.client.search(q, category=self.spec.category, source=self.name)
        hits: List[RawHit] = []
        for item in results:
            hit = self.to_hit(item)
            if hit is None or not self.accepts(hit):
                continue
            hits.append(hit)
            if len(hits) >= limit:
                break
        if not hits:
            logger.debug("Source returned no usable results", source=self.name, query=q)
        return hits

    def to_hit(self, item: Dict[str, Any]) -> Optional[RawHit]:
        if self.spec.media_type == MediaType.IMAGE:
            url = item.get("img_src") or item.get("url")
            width, height = _resolution(item.get("resolution"))
            thumb = item.get("thumbnail_src") or item.get("img_src")
            extra = {"width": width, "height": height}
        elif self.spec.media_type == MediaType.VIDEO:
            url = item.get("url")
            thumb = item.get("thumbnail") or item.get("img_src")
            extra = {"duration_seconds": parse_duration(item.get("length"))}
        else:
            url = item.get("url")
            thumb = item.get("thumbnail") or item.get("img_src")
            extra = {}
        if not url or not is_valid_url(url):
            return None
        return self.make_hit(
            url,
            item.get("title") or "",
            snippet=item.get("content"),
            thumbnail_url=thumb,
            published_date=parse_date(item.get("publishedDate")),
            **extra,
        )

    def accepts(self, hit: RawHit) -> bool:
        if self.spec.media_type == MediaType.VIDEO:
            return is_video_url(hit.url) and not is_blocked_video_domain(hit.url)
        return True


class SiteSearchAdapter(SearXNGCategoryAdapter):
    """``site:``-scoped SearXNG search for a single domain."""

    def build_query(self, query: str) -> str:
        return f"site:{self.spec.site} {self.spec.render_query(query)}"

    def accepts(self, hit: RawHit) -> bool:
        # Engines ignore site: now and then; keep only on-site results
        # (image results may be served from a CDN, so skip the check there)
        if self.spec.media_type != MediaType.IMAGE and self.spec.site:
            if not domain_matches(hit.url, [self.spec.site.split("/", 1)[0]]):
                return False
        return super().accepts(hit)
