"""
Research orchestrator

Runs one research job end to end in the background:

1. plan queries per media type
2. per media type, concurrently: fan-out -> normalize/dedup/rank -> filter
   -> cap -> insert records
3. checkpoint: a cancel request seen here turns the outcome into
   ``cancelled``; otherwise ``completed``
4. anything escaping 1-3 fails the job with the error text

Cancellation is cooperative: in-flight source calls run to their own
timeouts, and the cancel flag only decides what happens after they return.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from mediamind.core import config
from mediamind.core.exceptions import JobCreationError
from mediamind.logging_config import bind_job_context, clear_job_context
from mediamind.models.base import MediaType
from mediamind.models.job import Job, JobOutcome
from mediamind.models.media import CanonicalRecord
from mediamind.models.research import ResearchOptions
from mediamind.services.fanout import FanOutExecutor, plan_calls
from mediamind.services.job_registry import JobRegistry
from mediamind.services.media_store import MediaStore
from mediamind.services.query_planning import QueryPlan, QueryPlanner
from mediamind.services.relevance_filter import RelevanceFilter
from mediamind.services.result_processing import MediaResultProcessor
from mediamind.services.sources.base import SourceAdapter
from mediamind.services.sources.registry import catalog_index
from mediamind.services.task_registry import TaskPriority, TaskRegistry

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class PipelineSummary:
    media_type: MediaType
    queries: List[str] = field(default_factory=list)
    raw_hits: int = 0
    ranked: int = 0
    kept: int = 0
    inserted: int = 0
    insert_failures: int = 0
    sources: Dict[str, Dict[str, object]] = field(default_factory=dict)
    error: Optional[str] = None


class ResearchOrchestrator:
    def __init__(
        self,
        *,
        planner: QueryPlanner,
        adapters: Mapping[MediaType, Sequence[SourceAdapter]],
        store: MediaStore,
        registry: Optional[JobRegistry] = None,
        fanout: Optional[FanOutExecutor] = None,
        processor: Optional[MediaResultProcessor] = None,
        relevance_filter: Optional[RelevanceFilter] = None,
        tasks: Optional[TaskRegistry] = None,
        per_call_limit: Optional[int] = None,
    ) -> None:
        self.planner = planner
        self.adapters = {mt: list(a) for mt, a in adapters.items()}
        self.store = store
        self.registry = registry or JobRegistry()
        self.fanout = fanout or FanOutExecutor()
        self.processor = processor or MediaResultProcessor(catalog_index())
        self.relevance_filter = relevance_filter or RelevanceFilter()
        self.tasks = tasks or TaskRegistry()
        self.per_call_limit = per_call_limit or config.SOURCE_RESULT_LIMIT

    # ──────────────────────────────────────────────────────────
    #  Public API
    # ──────────────────────────────────────────────────────────

    async def submit(self, topic: str, options: Optional[ResearchOptions] = None) -> Job:
        """Register a job, persist its row, start the pipeline, return at once."""
        options = options or ResearchOptions()
        topic = " ".join((topic or "").split())
        job = await self.registry.create_job(topic)
        try:
            await self.store.create_job(job)
        except Exception as exc:
            logger.error("Job row creation failed", job_id=job.id, error=str(exc))
            await self.registry.finalize(job.id, JobOutcome.failed(f"Failed to create job: {exc}"))
            await self.registry.evict(job.id)
            raise JobCreationError(job.id, exc) from exc

        self.tasks.spawn(self._run(job, options), name=self._task_name(job.id), priority=TaskPriority.NORMAL)
        return job

    async def request_cancel(self, job_id: str) -> bool:
        return await self.registry.request_cancel(job_id)

    async def get_status(self, job_id: str) -> Optional[Job]:
        """Live registry state while running, stored state afterwards."""
        job = await self.registry.get(job_id)
        if job is not None:
            return job
        return await self.store.get_job(job_id)

    async def join(self, job_id: str) -> None:
        """Wait for a job's background task, if it is still running."""
        task = self.tasks.get(self._task_name(job_id))
        if task is not None:
            await asyncio.wait({task})

    # ──────────────────────────────────────────────────────────
    #  Background run
    # ──────────────────────────────────────────────────────────

    @staticmethod
    def _task_name(job_id: str) -> str:
        return f"research:{job_id}"

    async def _run(self, job: Job, options: ResearchOptions) -> None:
        bind_job_context(job_id=job.id)
        t0 = time.perf_counter()
        try:
            media_types = options.requested_types()
            plan = await self._plan(job.topic, media_types)

            summaries = await asyncio.gather(
                *(
                    self._run_media_pipeline(
                        job,
                        mt,
                        plan.for_type(mt) if plan else [],
                        options.limit_for(mt),
                    )
                    for mt in media_types
                )
            )

            # Checkpoint: every media-type pipeline has returned
            if await self.registry.check_cancelled(job.id):
                outcome = JobOutcome.cancelled()
            else:
                outcome = JobOutcome.completed()
            await self._finish(job.id, outcome)
            logger.info(
                "Research job finished",
                status=outcome.status.value,
                duration_ms=int((time.perf_counter() - t0) * 1000),
                pipelines={
                    s.media_type.value: {
                        "raw_hits": s.raw_hits,
                        "ranked": s.ranked,
                        "kept": s.kept,
                        "inserted": s.inserted,
                        "error": s.error,
                    }
                    for s in summaries
                },
            )
        except asyncio.CancelledError:
            await self._fail_quietly(job.id, "Interrupted by server shutdown")
            raise
        except Exception as exc:
            logger.exception("Research job failed", error=str(exc))
            await self._fail_quietly(job.id, str(exc) or type(exc).__name__)
        finally:
            await self.registry.evict(job.id)
            clear_job_context()

    async def _plan(self, topic: str, media_types: Sequence[MediaType]) -> Optional[QueryPlan]:
        try:
            return await self.planner.plan(topic, media_types)
        except Exception as exc:
            logger.error("Query planner raised; using templates", error=str(exc))
        try:
            return self.planner.fallback_plan(topic, media_types)
        except Exception as exc:
            logger.error("Template query fallback failed", error=str(exc))
            return None

    async def _run_media_pipeline(
        self,
        job: Job,
        media_type: MediaType,
        queries: List[str],
        limit: int,
    ) -> PipelineSummary:
        summary = PipelineSummary(media_type=media_type, queries=list(queries))
        log = logger.bind(media_type=media_type.value)
        try:
            adapters = self.adapters.get(media_type) or []
            if not queries or not adapters:
                log.warning("Media pipeline skipped", queries=len(queries), adapters=len(adapters))
                return summary

            fan = await self.fanout.run(plan_calls(adapters, queries, self.per_call_limit))
            summary.raw_hits = len(fan.hits)
            summary.sources = fan.by_source()

            ranked = self.processor.process(fan.hits)
            summary.ranked = len(ranked)

            report = await self.relevance_filter.apply(job.topic, ranked)
            selected = report.kept[: max(0, limit)]
            summary.kept = len(selected)

            await self._persist_records(job.id, media_type, selected, summary)
        except Exception as exc:
            # A broken pipeline costs this media type only
            summary.error = f"{type(exc).__name__}: {exc}"
            log.error("Media pipeline failed", error=summary.error)
        log.info(
            "Media pipeline completed",
            raw_hits=summary.raw_hits,
            ranked=summary.ranked,
            kept=summary.kept,
            inserted=summary.inserted,
            insert_failures=summary.insert_failures,
            failed_sources=[n for n, s in summary.sources.items() if not s["ok"]],
        )
        return summary

    async def _persist_records(
        self,
        job_id: str,
        media_type: MediaType,
        records: Sequence[CanonicalRecord],
        summary: PipelineSummary,
    ) -> None:
        if await self.registry.check_cancelled(job_id):
            logger.info("Skipping persistence for cancelled job", media_type=media_type.value, records=len(records))
            return
        for record in records:
            try:
                await self.store.insert_media_record(job_id, record)
            except Exception as exc:
                summary.insert_failures += 1
                logger.warning(
                    "Media record insert failed",
                    media_type=media_type.value,
                    url=record.url,
                    error=str(exc),
                )
                continue
            summary.inserted += 1
            await self.registry.increment_count(job_id, media_type)

    async def _finish(self, job_id: str, outcome: JobOutcome) -> None:
        """Write the terminal row, then close the state machine."""
        current = await self.registry.get(job_id)
        if current is None or current.is_terminal:
            return
        await self.store.update_job_status(
            job_id,
            outcome.status,
            current.counts,
            error_message=outcome.error_message,
            completed_at=datetime.now(timezone.utc),
        )
        await self.registry.finalize(job_id, outcome)

    async def _fail_quietly(self, job_id: str, message: str) -> None:
        outcome = JobOutcome.failed(message)
        final = await self.registry.finalize(job_id, outcome)
        if final is None:
            return
        try:
            await self.store.update_job_status(
                job_id,
                final.status,
                final.counts,
                error_message=final.error_message,
                completed_at=final.completed_at,
            )
        except Exception as exc:
            logger.error("Failed to persist failed status", error=str(exc))
