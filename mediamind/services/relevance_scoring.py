"""
Relevance-scoring capability used by the second filter stage.

A scorer receives a topic and a batch of candidates and answers with one
judgment per candidate it could assess. Missing judgments are treated by
the caller as "not relevant"; a scorer signals a failed batch by raising
:class:`ScoringError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import structlog

from mediamind.core import config
from mediamind.core.exceptions import ScoringError, SourceError
from mediamind.models.base import MediaType
from mediamind.services.http_client import HttpClient

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ScoringCandidate:
    id: str
    media_type: MediaType
    url: str
    text: str
    image_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class RelevanceJudgment:
    id: str
    relevant: bool
    score: float
    description: Optional[str] = None


def _coerce_score(value: Any) -> Optional[float]:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if score != score:  # NaN
        return None
    return max(0.0, min(1.0, score))


def parse_judgments(payload: Any) -> List[RelevanceJudgment]:
    """Accept ``{"results": [...]}`` or a bare list; skip malformed rows."""
    rows = payload.get("results") if isinstance(payload, dict) else payload
    if not isinstance(rows, list):
        raise ScoringError("scoring response has no results list")
    out: List[RelevanceJudgment] = []
    for row in rows:
        if not isinstance(row, dict) or row.get("id") is None:
            continue
        if row.get("error"):
            continue
        score = _coerce_score(row.get("score", row.get("confidence")))
        if score is None:
            continue
        out.append(
            RelevanceJudgment(
                id=str(row["id"]),
                relevant=row.get("relevant") is True,
                score=score,
                description=row.get("description"),
            )
        )
    return out


class RelevanceScorer(ABC):
    name = "scorer"

    @abstractmethod
    async def score_batch(
        self, topic: str, candidates: Sequence[ScoringCandidate]
    ) -> List[RelevanceJudgment]:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class HTTPRelevanceScorer(RelevanceScorer):
    """Batch scoring service (vision model for images, text otherwise)."""

    name = "http_scorer"

    def __init__(self, url: Optional[str] = None, *, http: Optional[HttpClient] = None) -> None:
        self.url = url or config.RELEVANCE_SCORER_URL
        if not self.url:
            raise ValueError("RELEVANCE_SCORER_URL is not configured")
        self.http = http or HttpClient(
            "relevance_scorer",
            timeout_sec=config.RELEVANCE_SCORER_TIMEOUT_SEC,
            calls_per_minute=60,
            burst=5,
        )

    async def score_batch(
        self, topic: str, candidates: Sequence[ScoringCandidate]
    ) -> List[RelevanceJudgment]:
        payload: Dict[str, Any] = {
            "topic": topic,
            "items": [
                {
                    "id": c.id,
                    "url": c.image_url or c.url,
                    "text": c.text,
                    "media_type": c.media_type.value,
                }
                for c in candidates
            ],
        }
        try:
            data = await self.http.post_json(self.url, payload, source=self.name)
        except SourceError as exc:
            raise ScoringError(str(exc)) from exc
        if data is None:
            raise ScoringError("scoring service returned no usable response")
        return parse_judgments(data)

    async def close(self) -> None:
        await self.http.close()


SCORING_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "results": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "relevant": {"type": "boolean"},
                    "score": {"type": "number", "minimum": 0, "maximum": 1},
                },
                "required": ["id", "relevant", "score"],
            },
        }
    },
    "required": ["results"],
}

SCORING_PROMPT = """Research topic: "{topic}"

For each candidate below decide whether it is genuinely about the topic and
useful as documentary source material. Give a score from 0 to 1.

{items}"""


class LLMRelevanceScorer(RelevanceScorer):
    """Text-only scoring through the structured-output LLM client."""

    name = "llm_scorer"

    def __init__(self, llm: Any) -> None:
        self.llm = llm

    async def score_batch(
        self, topic: str, candidates: Sequence[ScoringCandidate]
    ) -> List[RelevanceJudgment]:
        items = "\n".join(
            f"- id={c.id} [{c.media_type.value}] {c.text} <{c.url}>" for c in candidates
        )
        try:
            raw = await self.llm.generate_structured_output(
                SCORING_PROMPT.format(topic=topic, items=items),
                SCORING_SCHEMA,
                temperature=0.0,
            )
        except Exception as exc:
            raise ScoringError(f"llm scoring failed: {exc}") from exc
        return parse_judgments(raw)
