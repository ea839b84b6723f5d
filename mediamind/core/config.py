"""
Core configuration for the MediaMind backend

Tunable knobs for source fan-out, query planning, relevance filtering and
per-type result caps. Every value can be overridden through environment
variables; components read these as defaults and accept explicit overrides
in their constructors.
"""

import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)) or default)
    except Exception:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name, "") or ""
    return [part.strip() for part in raw.split(",") if part.strip()]


SERVICE_NAME = "mediamind"


# ────────────────────────────────────────────────────────────
#  External sources
# ────────────────────────────────────────────────────────────

SEARXNG_URL: str = os.getenv("SEARXNG_URL", "http://localhost:8080").rstrip("/")
SEARXNG_TIMEOUT_SEC: float = _env_float("SEARXNG_TIMEOUT_SEC", 20.0)
SEARXNG_CALLS_PER_MINUTE: int = _env_int("SEARXNG_CALLS_PER_MINUTE", 120)

ARCHIVE_ORG_TIMEOUT_SEC: float = _env_float("ARCHIVE_ORG_TIMEOUT_SEC", 30.0)
# Inner metadata fan-out per search: bounded and paced
ARCHIVE_ORG_METADATA_CONCURRENCY: int = _env_int("ARCHIVE_ORG_METADATA_CONCURRENCY", 4)
ARCHIVE_ORG_METADATA_DELAY_SEC: float = _env_float("ARCHIVE_ORG_METADATA_DELAY_SEC", 0.15)

EUROPEANA_API_KEY: str = os.getenv("EUROPEANA_API_KEY", "")

# Comma separated source names to skip, e.g. "flickr,getty_video"
SOURCES_DISABLED: List[str] = _env_list("SOURCES_DISABLED")

# ────────────────────────────────────────────────────────────
#  Fan-out
# ────────────────────────────────────────────────────────────

FANOUT_CALL_TIMEOUT_SEC: float = _env_float("FANOUT_CALL_TIMEOUT_SEC", 20.0)
FANOUT_MAX_CONCURRENCY: int = _env_int("FANOUT_MAX_CONCURRENCY", 32)
SOURCE_RESULT_LIMIT: int = _env_int("SOURCE_RESULT_LIMIT", 20)

# ────────────────────────────────────────────────────────────
#  Query planning
# ────────────────────────────────────────────────────────────

PLANNER_TIMEOUT_SEC: float = _env_float("PLANNER_TIMEOUT_SEC", 20.0)
PLANNER_MAX_QUERIES_PER_TYPE: int = _env_int("PLANNER_MAX_QUERIES_PER_TYPE", 5)
PLANNER_USE_LLM: bool = _env_bool("PLANNER_USE_LLM", True)
LLM_MODEL: str = os.getenv("LLM_MODEL", "gpt-4o-mini")

# ────────────────────────────────────────────────────────────
#  Relevance filtering
# ────────────────────────────────────────────────────────────

RELEVANCE_FILTER_ENABLED: bool = _env_bool("RELEVANCE_FILTER_ENABLED", False)
RELEVANCE_THRESHOLD: float = 0.5
RELEVANCE_BATCH_SIZE: int = _env_int("RELEVANCE_BATCH_SIZE", 10)
RELEVANCE_SCORER_URL: str = os.getenv("RELEVANCE_SCORER_URL", "")
RELEVANCE_SCORER_TIMEOUT_SEC: float = _env_float("RELEVANCE_SCORER_TIMEOUT_SEC", 60.0)

# ────────────────────────────────────────────────────────────
#  Per-type caps (request options default to these)
# ────────────────────────────────────────────────────────────

DEFAULT_MAX_VIDEOS: int = _env_int("DEFAULT_MAX_VIDEOS", 100)
DEFAULT_MAX_IMAGES: int = _env_int("DEFAULT_MAX_IMAGES", 200)
DEFAULT_MAX_NEWS: int = _env_int("DEFAULT_MAX_NEWS", 100)
DEFAULT_MAX_NEWSPAPERS: int = _env_int("DEFAULT_MAX_NEWSPAPERS", 50)

# ────────────────────────────────────────────────────────────
#  Persistence & lifecycle
# ────────────────────────────────────────────────────────────

DATABASE_URL: str = os.getenv("DATABASE_URL", "")
SHUTDOWN_TIMEOUT_SEC: float = _env_float("SHUTDOWN_TIMEOUT_SEC", 30.0)

TRUSTED_ORIGINS: List[str] = _env_list("TRUSTED_ORIGINS") or [
    "http://localhost:5173",
    "http://localhost:3000",
]
