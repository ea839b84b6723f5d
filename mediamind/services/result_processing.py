"""
Normalization, deduplication and ranking of one media type's combined hits.

* normalization attaches the catalog tier/license of the reporting source
* deduplication is first-write-wins on ``canonical_url``: the earliest record
  in the combined list survives, even if a later duplicate has a better tier
* ranking is a stable sort by tier, so equal-tier records keep input order
"""

from __future__ import annotations

import time
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from mediamind.models.base import License, SourceTier
from mediamind.models.media import CanonicalRecord, RawHit
from mediamind.services.sources.base import SourceSpec
from mediamind.utils.text_sanitize import sanitize_text
from mediamind.utils.url_utils import is_valid_url, normalize_url

logger = structlog.get_logger(__name__)


def normalize_hit(hit: RawHit, spec: Optional[SourceSpec]) -> Optional[CanonicalRecord]:
    """RawHit -> CanonicalRecord, or None when the url is unusable."""
    url = (hit.url or "").strip()
    canonical = normalize_url(url)
    if not canonical or not is_valid_url(canonical):
        return None
    tier = spec.tier if spec else SourceTier.GENERAL_WEB
    license_ = spec.license if spec else License.UNKNOWN
    return CanonicalRecord(
        url=url,
        canonical_url=canonical,
        title=sanitize_text(hit.title, max_len=300) or url,
        source_name=hit.source_name,
        media_type=hit.media_type,
        tier=SourceTier(tier),
        license=license_,
        snippet=hit.snippet,
        thumbnail_url=hit.thumbnail_url,
        published_date=hit.published_date,
        duration_seconds=hit.duration_seconds,
        width=hit.width,
        height=hit.height,
    )


def normalize_hits(
    hits: Iterable[RawHit],
    catalog: Mapping[str, SourceSpec],
) -> List[CanonicalRecord]:
    records: List[CanonicalRecord] = []
    unknown_sources = set()
    for hit in hits:
        spec = catalog.get(hit.source_name)
        if spec is None:
            unknown_sources.add(hit.source_name)
        record = normalize_hit(hit, spec)
        if record is not None:
            records.append(record)
    if unknown_sources:
        logger.debug(
            "Hits from sources missing in catalog ranked as general web",
            sources=sorted(unknown_sources),
        )
    return records


class ResultDeduplicator:
    """Removes records whose canonical url was already seen."""

    def deduplicate(self, records: Iterable[CanonicalRecord]) -> Dict[str, Any]:
        unique: List[CanonicalRecord] = []
        by_key: Dict[str, CanonicalRecord] = {}
        duplicates_removed = 0
        for record in records:
            key = record.canonical_url
            if key in by_key:
                duplicates_removed += 1
                continue
            by_key[key] = record
            unique.append(record)
        return {
            "unique_results": unique,
            "duplicates_removed": duplicates_removed,
            "by_key": by_key,
        }


def rank_records(records: Iterable[CanonicalRecord]) -> List[CanonicalRecord]:
    return sorted(records, key=lambda r: int(r.tier))


class MediaResultProcessor:
    """normalize -> deduplicate -> rank for one media type."""

    def __init__(
        self,
        catalog: Mapping[str, SourceSpec],
        deduplicator: Optional[ResultDeduplicator] = None,
    ) -> None:
        self.catalog = catalog
        self.deduplicator = deduplicator or ResultDeduplicator()

    def process(self, hits: Iterable[RawHit]) -> List[CanonicalRecord]:
        t0 = time.perf_counter()
        hits = list(hits)
        records = normalize_hits(hits, self.catalog)
        dedup = self.deduplicator.deduplicate(records)
        ranked = rank_records(dedup["unique_results"])
        tiers: Dict[int, int] = {}
        for r in ranked:
            tiers[int(r.tier)] = tiers.get(int(r.tier), 0) + 1
        logger.info(
            "Results normalized and ranked",
            raw_hits=len(hits),
            dropped_invalid=len(hits) - len(records),
            duplicates_removed=dedup["duplicates_removed"],
            unique=len(ranked),
            tiers=tiers,
            duration_ms=int((time.perf_counter() - t0) * 1000),
        )
        return ranked
