from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence

import structlog

from mediamind.core.exceptions import PlannerError
from mediamind.models.base import MediaType

from .config import build_planner_config
from .types import PlannerConfig, QueryPlan

logger = structlog.get_logger(__name__)


PLAN_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "topic_type": {
            "type": "string",
            "enum": ["historical_event", "person", "place", "concept", "general"],
        },
        "video_queries": {"type": "array", "items": {"type": "string"}},
        "image_queries": {"type": "array", "items": {"type": "string"}},
        "news_queries": {"type": "array", "items": {"type": "string"}},
        "newspaper_queries": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["topic_type", "video_queries", "image_queries"],
}

_RESPONSE_KEYS = {
    MediaType.VIDEO: "video_queries",
    MediaType.IMAGE: "image_queries",
    MediaType.NEWS: "news_queries",
    MediaType.NEWSPAPER: "newspaper_queries",
}

PLAN_PROMPT = """Plan media searches for a documentary about: "{topic}"

Write up to {n} search queries for each of these media types: {types}.
- video_queries: footage, newsreels, documentaries, interviews about the topic
- image_queries: photographs, archival images, illustrations, maps
- news_queries: articles and reports covering the topic
- newspaper_queries: short keyword phrases for historical newspaper archives

Queries must be specific to the topic, 2-8 words each, without site: operators.
Also classify the topic as historical_event, person, place, concept or general."""


def _clean_queries(raw: Any, limit: int) -> List[str]:
    """Strings only, trimmed, case-insensitive unique, order kept, capped."""
    if not isinstance(raw, (list, tuple)):
        return []
    out: List[str] = []
    seen = set()
    for item in raw:
        if not isinstance(item, str):
            continue
        q = " ".join(item.split())
        key = q.lower()
        if not q or key in seen:
            continue
        seen.add(key)
        out.append(q)
        if len(out) >= limit:
            break
    return out


class QueryPlanner:
    """Turns a topic into ordered search queries per media type.

    The LLM path is optional; every failure (timeout, malformed output,
    missing client) falls back to fixed templates, so ``plan`` always yields
    at least one query per requested media type.
    """

    def __init__(self, llm: Optional[Any] = None, config: PlannerConfig | None = None) -> None:
        self.llm = llm
        self.config = config or build_planner_config()

    def fallback_plan(self, topic: str, media_types: Iterable[MediaType]) -> QueryPlan:
        """Pure and total: template queries for every requested type."""
        topic = " ".join((topic or "").split()) or "history"
        limit = max(1, self.config.max_queries_per_type)
        queries: Dict[MediaType, List[str]] = {}
        for mt in media_types:
            templates = self.config.templates.get(mt) or ["{topic}"]
            rendered = _clean_queries([t.format(topic=topic) for t in templates], limit)
            queries[mt] = rendered or [topic]
        return QueryPlan(topic=topic, queries=queries, topic_type="general", source="fallback")

    async def plan(self, topic: str, media_types: Sequence[MediaType]) -> QueryPlan:
        media_types = list(media_types)
        fallback = self.fallback_plan(topic, media_types)
        if not self.config.enable_llm or self.llm is None:
            return fallback
        if not getattr(self.llm, "is_available", True):
            logger.info("Query planner LLM unavailable; using templates")
            return fallback

        t0 = time.perf_counter()
        try:
            raw = await asyncio.wait_for(
                self.llm.generate_structured_output(
                    PLAN_PROMPT.format(
                        topic=fallback.topic,
                        n=self.config.max_queries_per_type,
                        types=", ".join(mt.value for mt in media_types),
                    ),
                    PLAN_SCHEMA,
                ),
                timeout=self.config.timeout_sec,
            )
            plan = self._merge(raw, fallback, media_types)
        except PlannerError as exc:
            logger.warning("Query planner output unusable; using templates", error=str(exc))
            return fallback
        except asyncio.TimeoutError:
            logger.warning(
                "Query planning timed out; using templates",
                timeout_sec=self.config.timeout_sec,
            )
            return fallback
        except Exception as exc:
            logger.warning(
                "Query planning failed; using templates",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return fallback

        logger.info(
            "Query planning stage completed",
            source=plan.source,
            topic_type=plan.topic_type,
            duration_ms=int((time.perf_counter() - t0) * 1000),
            metrics={mt.value: len(q) for mt, q in plan.queries.items()},
        )
        return plan

    def _merge(
        self,
        raw: Any,
        fallback: QueryPlan,
        media_types: Sequence[MediaType],
    ) -> QueryPlan:
        """Take LLM lists where usable, template lists elsewhere."""
        if not isinstance(raw, dict):
            raise PlannerError(f"expected a JSON object, got {type(raw).__name__}")
        limit = max(1, self.config.max_queries_per_type)
        queries: Dict[MediaType, List[str]] = {}
        used_llm = used_fallback = False
        for mt in media_types:
            planned = _clean_queries(raw.get(_RESPONSE_KEYS[mt]), limit)
            if planned:
                queries[mt] = planned
                used_llm = True
            else:
                queries[mt] = fallback.for_type(mt)
                used_fallback = True
        if not used_llm:
            raise PlannerError("no usable queries for any requested media type")
        topic_type = raw.get("topic_type")
        return QueryPlan(
            topic=fallback.topic,
            queries=queries,
            topic_type=topic_type if isinstance(topic_type, str) and topic_type else "general",
            source="mixed" if used_fallback else "llm",
        )
