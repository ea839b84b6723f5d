"""
Concurrent dispatch of source calls with per-call isolation.

Every ``(adapter, query, limit)`` call runs in its own task under its own
timeout. A failure or timeout is recorded in that call's outcome and never
reaches sibling calls or the caller.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import structlog

from mediamind.core import config
from mediamind.models.media import RawHit
from mediamind.services.sources.base import SourceAdapter
from mediamind.utils.otel import otel_span

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SourceCall:
    adapter: SourceAdapter
    query: str
    limit: int


@dataclass(slots=True)
class SourceOutcome:
    source: str
    query: str
    ok: bool
    count: int = 0
    error: Optional[str] = None
    duration_ms: int = 0
    timed_out: bool = False


@dataclass(slots=True)
class FanOutResult:
    hits: List[RawHit] = field(default_factory=list)
    outcomes: List[SourceOutcome] = field(default_factory=list)

    def by_source(self) -> Dict[str, Dict[str, object]]:
        """Per-adapter rollup: ok if any call succeeded."""
        summary: Dict[str, Dict[str, object]] = {}
        for o in self.outcomes:
            entry = summary.setdefault(
                o.source, {"ok": False, "count": 0, "calls": 0, "errors": []}
            )
            entry["calls"] = int(entry["calls"]) + 1
            entry["count"] = int(entry["count"]) + o.count
            if o.ok:
                entry["ok"] = True
            elif o.error:
                entry["errors"].append(o.error)  # type: ignore[union-attr]
        return summary

    @property
    def failed_sources(self) -> List[str]:
        return [name for name, s in self.by_source().items() if not s["ok"]]


class FanOutExecutor:
    def __init__(
        self,
        *,
        default_timeout_sec: Optional[float] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        self.default_timeout_sec = default_timeout_sec or config.FANOUT_CALL_TIMEOUT_SEC
        self.max_concurrency = max(1, max_concurrency or config.FANOUT_MAX_CONCURRENCY)

    def timeout_for(self, adapter: SourceAdapter) -> float:
        return adapter.spec.timeout_sec or self.default_timeout_sec

    async def run(self, calls: Sequence[SourceCall]) -> FanOutResult:
        """Run all calls; hits are concatenated in call order."""
        if not calls:
            return FanOutResult()

        sem = asyncio.Semaphore(self.max_concurrency)

        async def _guarded(call: SourceCall) -> tuple:
            async with sem:
                return await self._run_one(call)

        t0 = time.perf_counter()
        results = await asyncio.gather(*(_guarded(c) for c in calls))

        out = FanOutResult()
        for hits, outcome in results:
            out.hits.extend(hits)
            out.outcomes.append(outcome)

        failed = [o for o in out.outcomes if not o.ok]
        logger.info(
            "Fan-out completed",
            calls=len(calls),
            hits=len(out.hits),
            failed_calls=len(failed),
            timed_out=sum(1 for o in failed if o.timed_out),
            duration_ms=int((time.perf_counter() - t0) * 1000),
        )
        return out

    async def _run_one(self, call: SourceCall) -> tuple:
        name = call.adapter.name
        timeout = self.timeout_for(call.adapter)
        t0 = time.perf_counter()
        with otel_span("source.search", {"source": name, "timeout_sec": timeout}):
            try:
                hits = await asyncio.wait_for(
                    call.adapter.search(call.query, call.limit), timeout=timeout
                )
            except asyncio.TimeoutError:
                elapsed = int((time.perf_counter() - t0) * 1000)
                logger.warning(
                    "Source call timed out",
                    source=name,
                    query=call.query,
                    timeout_sec=timeout,
                )
                return [], SourceOutcome(
                    name, call.query, ok=False, error=f"timeout after {timeout}s",
                    duration_ms=elapsed, timed_out=True,
                )
            except Exception as exc:
                elapsed = int((time.perf_counter() - t0) * 1000)
                logger.warning(
                    "Source call failed",
                    source=name,
                    query=call.query,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return [], SourceOutcome(
                    name, call.query, ok=False,
                    error=f"{type(exc).__name__}: {exc}", duration_ms=elapsed,
                )

        hits = list(hits or [])[: max(0, call.limit)]
        elapsed = int((time.perf_counter() - t0) * 1000)
        logger.debug("Source call completed", source=name, query=call.query, count=len(hits))
        return hits, SourceOutcome(name, call.query, ok=True, count=len(hits), duration_ms=elapsed)


def plan_calls(
    adapters: Sequence[SourceAdapter],
    queries: Sequence[str],
    limit: int,
) -> List[SourceCall]:
    """Cross adapters with queries, honouring each source's ``max_queries``."""
    calls: List[SourceCall] = []
    for adapter in adapters:
        cap = adapter.spec.max_queries
        chosen = list(queries) if cap is None else list(queries)[:cap]
        for query in chosen:
            calls.append(SourceCall(adapter, query, limit))
    return calls
