from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Set

import structlog

from mediamind.core import config
from mediamind.models.base import MediaType
from mediamind.models.media import CanonicalRecord
from mediamind.services.relevance_scoring import (
    RelevanceJudgment,
    RelevanceScorer,
    ScoringCandidate,
)

logger = structlog.get_logger(__name__)


DEFAULT_BLACKLIST: Set[str] = {
    "ufo", "alien", "fashion week", "runway", "model walk",
    "cooking recipe", "makeup tutorial", "unboxing", "asmr",
    "minecraft", "fortnite", "gaming", "crypto", "bitcoin", "nft",
    "workout", "yoga", "meditation", "mukbang", "tiktok compilation",
    "funny cats", "funny dogs", "prank", "challenge", "react to",
    "reaction video",
}


class BlacklistFilter:
    """Cheap lexical rejection of off-topic titles.

    A term only rejects a title when the topic itself does not mention it.
    """

    def __init__(self, terms: Optional[Iterable[str]] = None) -> None:
        self.terms = {t.lower() for t in (terms if terms is not None else DEFAULT_BLACKLIST)}

        custom = os.getenv("RELEVANCE_BLACKLIST_EXTRA")
        if custom:
            self.terms.update(
                token.strip().lower() for token in custom.split(",") if token.strip()
            )

    def active_terms(self, topic: str) -> Set[str]:
        topic_l = (topic or "").lower()
        return {t for t in self.terms if t not in topic_l}

    def is_allowed(self, title: str, topic: str) -> bool:
        title_l = (title or "").lower()
        return not any(t in title_l for t in self.active_terms(topic))


@dataclass(slots=True)
class FilterReport:
    kept: List[CanonicalRecord] = field(default_factory=list)
    rejected_blacklist: int = 0
    rejected_scoring: int = 0
    scoring_failures: int = 0
    scored: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "kept": len(self.kept),
            "rejected_blacklist": self.rejected_blacklist,
            "rejected_scoring": self.rejected_scoring,
            "scoring_failures": self.scoring_failures,
            "scored": self.scored,
        }


def _candidate(idx: int, record: CanonicalRecord) -> ScoringCandidate:
    text = record.title
    if record.snippet:
        text = f"{text}. {record.snippet[:200]}"
    image_url = None
    if record.media_type == MediaType.IMAGE:
        image_url = record.url
    elif record.thumbnail_url:
        image_url = record.thumbnail_url
    return ScoringCandidate(
        id=str(idx),
        media_type=record.media_type,
        url=record.url,
        text=text,
        image_url=image_url,
    )


class RelevanceFilter:
    """Stage A blacklist, then optional batched scoring (fail-closed)."""

    def __init__(
        self,
        scorer: Optional[RelevanceScorer] = None,
        *,
        blacklist: Optional[BlacklistFilter] = None,
        threshold: float = config.RELEVANCE_THRESHOLD,
        batch_size: Optional[int] = None,
        max_concurrent_batches: int = 3,
        scoring_media_types: Optional[Iterable[MediaType]] = None,
    ) -> None:
        self.scorer = scorer
        self.blacklist = blacklist or BlacklistFilter()
        self.threshold = threshold
        self.batch_size = max(1, batch_size or config.RELEVANCE_BATCH_SIZE)
        self.max_concurrent_batches = max(1, max_concurrent_batches)
        self.scoring_media_types = set(scoring_media_types or MediaType)

    def passes(self, judgment: Optional[RelevanceJudgment]) -> bool:
        return (
            judgment is not None
            and judgment.relevant
            and judgment.score >= self.threshold
        )

    async def apply(self, topic: str, records: Sequence[CanonicalRecord]) -> FilterReport:
        """Filter already deduplicated records; output keeps input order."""
        report = FilterReport()
        stage_a: List[CanonicalRecord] = []
        for record in records:
            if self.blacklist.is_allowed(record.title, topic):
                stage_a.append(record)
            else:
                report.rejected_blacklist += 1

        to_score = [r for r in stage_a if r.media_type in self.scoring_media_types]
        if self.scorer is None or not to_score:
            report.kept = stage_a
            self._log(report, len(records))
            return report

        report.scored = True
        judgments = await self._score(topic, to_score, report)
        scored_ids = {id(r): str(i) for i, r in enumerate(to_score)}

        for record in stage_a:
            key = scored_ids.get(id(record))
            if key is None:
                report.kept.append(record)
                continue
            judgment = judgments.get(key)
            if self.passes(judgment):
                report.kept.append(replace(record, relevance_score=judgment.score))
            else:
                report.rejected_scoring += 1

        self._log(report, len(records))
        return report

    async def _score(
        self,
        topic: str,
        records: List[CanonicalRecord],
        report: FilterReport,
    ) -> Dict[str, RelevanceJudgment]:
        candidates = [_candidate(i, r) for i, r in enumerate(records)]
        batches = [
            candidates[i:i + self.batch_size]
            for i in range(0, len(candidates), self.batch_size)
        ]
        sem = asyncio.Semaphore(self.max_concurrent_batches)

        async def _run(batch: List[ScoringCandidate]) -> List[RelevanceJudgment]:
            async with sem:
                try:
                    return await self.scorer.score_batch(topic, batch)  # type: ignore[union-attr]
                except Exception as exc:
                    # Whole batch counts as not relevant
                    report.scoring_failures += len(batch)
                    logger.warning(
                        "Relevance scoring batch failed",
                        scorer=getattr(self.scorer, "name", type(self.scorer).__name__),
                        batch_size=len(batch),
                        error=str(exc),
                    )
                    return []

        t0 = time.perf_counter()
        results = await asyncio.gather(*(_run(b) for b in batches))
        judgments: Dict[str, RelevanceJudgment] = {}
        valid_ids = {c.id for c in candidates}
        for batch_result in results:
            for j in batch_result:
                if j.id in valid_ids and j.id not in judgments:
                    judgments[j.id] = j
        logger.debug(
            "Relevance scoring finished",
            batches=len(batches),
            judged=len(judgments),
            candidates=len(candidates),
            duration_ms=int((time.perf_counter() - t0) * 1000),
        )
        return judgments

    def _log(self, report: FilterReport, total: int) -> None:
        logger.info("Relevance filter applied", total=total, **report.to_dict())
