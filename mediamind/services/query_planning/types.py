from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal

from mediamind.models.base import MediaType

PlanSource = Literal["llm", "fallback", "mixed"]


DEFAULT_TEMPLATES: Dict[MediaType, List[str]] = {
    MediaType.VIDEO: [
        "{topic} documentary explaining",
        "{topic} historical footage",
        "{topic} news coverage report",
    ],
    MediaType.IMAGE: [
        "{topic} historical photographs",
        "{topic} archival images",
        "{topic} photos documentary",
    ],
    MediaType.NEWS: [
        "{topic}",
        "{topic} news report",
    ],
    MediaType.NEWSPAPER: [
        "{topic}",
    ],
}


@dataclass(slots=True)
class PlannerConfig:
    """Configuration knobs for the query planner."""

    max_queries_per_type: int = 5
    enable_llm: bool = True
    timeout_sec: float = 20.0
    templates: Dict[MediaType, List[str]] = field(
        default_factory=lambda: {mt: list(t) for mt, t in DEFAULT_TEMPLATES.items()}
    )


@dataclass(slots=True)
class QueryPlan:
    """Ordered queries per media type for one topic."""

    topic: str
    queries: Dict[MediaType, List[str]]
    topic_type: str = "general"
    source: PlanSource = "fallback"

    def for_type(self, media_type: MediaType) -> List[str]:
        return list(self.queries.get(media_type, []))

    def to_dict(self) -> Dict[str, object]:
        return {
            "topic": self.topic,
            "topic_type": self.topic_type,
            "source": self.source,
            "queries": {mt.value: q for mt, q in self.queries.items()},
        }
