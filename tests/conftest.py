"""Shared fixtures: scripted source adapters, catalogs and stores."""

from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Sequence

import pytest

from mediamind.models.base import License, MediaType, SourceTier
from mediamind.models.media import RawHit
from mediamind.services.sources.base import SourceAdapter, SourceKind, SourceSpec


def make_spec(
    name: str,
    media_type: MediaType = MediaType.VIDEO,
    tier: SourceTier = SourceTier.GENERAL_WEB,
    license: License = License.UNKNOWN,
    **kwargs,
) -> SourceSpec:
    return SourceSpec(
        name=name,
        media_type=media_type,
        kind=kwargs.pop("kind", SourceKind.SEARXNG),
        tier=tier,
        license=license,
        **kwargs,
    )


def hit(url: str, source: str, media_type: MediaType = MediaType.VIDEO, title: str = "") -> RawHit:
    return RawHit(
        url=url,
        title=title or f"Footage {url}",
        source_name=source,
        media_type=media_type,
    )


class ScriptedAdapter(SourceAdapter):
    """Adapter returning fixed hits, optionally failing, sleeping or gated."""

    def __init__(
        self,
        name: str,
        hits: Sequence[RawHit] = (),
        *,
        media_type: MediaType = MediaType.VIDEO,
        error: Optional[BaseException] = None,
        delay: float = 0.0,
        gate: Optional[asyncio.Event] = None,
        timeout_sec: Optional[float] = None,
        max_queries: Optional[int] = None,
    ) -> None:
        super().__init__(
            make_spec(name, media_type, timeout_sec=timeout_sec, max_queries=max_queries)
        )
        self.hits = list(hits)
        self.error = error
        self.delay = delay
        self.gate = gate
        self.calls: List[tuple] = []

    async def search(self, query: str, limit: int) -> List[RawHit]:
        self.calls.append((query, limit))
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.hits[:limit]


def catalog_of(specs: Iterable[SourceSpec]) -> Dict[str, SourceSpec]:
    return {s.name: s for s in specs}


@pytest.fixture
def video_catalog() -> Dict[str, SourceSpec]:
    return catalog_of(
        [
            make_spec("archive", tier=SourceTier.ARCHIVAL_PUBLIC_DOMAIN, license=License.PUBLIC_DOMAIN),
            make_spec("stock", tier=SourceTier.CURATED_OPEN, license=License.CREATIVE_COMMONS),
            make_spec("pathe", tier=SourceTier.HISTORICAL_ARCHIVE, license=License.MIXED),
        ]
    )


@pytest.fixture
def moon_adapters() -> List[ScriptedAdapter]:
    """Three video sources, listed lowest tier first."""
    return [
        ScriptedAdapter("pathe", [hit("https://pathe.example/c.mp4", "pathe")]),
        ScriptedAdapter("stock", [hit("https://stock.example/b.mp4", "stock")]),
        ScriptedAdapter("archive", [hit("https://archive.example/a.mp4", "archive")]),
    ]


@pytest.fixture
def build_orchestrator(video_catalog):
    from mediamind.services.media_store import InMemoryMediaStore
    from mediamind.services.query_planning import PlannerConfig, QueryPlanner
    from mediamind.services.research_orchestrator import ResearchOrchestrator
    from mediamind.services.result_processing import MediaResultProcessor

    def _build(adapters, store=None, **kwargs):
        return ResearchOrchestrator(
            planner=QueryPlanner(config=PlannerConfig(enable_llm=False)),
            adapters={MediaType.VIDEO: adapters},
            store=store or InMemoryMediaStore(),
            processor=MediaResultProcessor(video_catalog),
            **kwargs,
        )

    return _build
