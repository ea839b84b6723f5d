"""
FastAPI application factory and service wiring
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any, List, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from mediamind import __version__
from mediamind.core import config
from mediamind.core.error_handlers import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from mediamind.logging_config import bind_job_context, configure_logging
from mediamind.routes import health_router, research_router
from mediamind.services.llm_client import LLMClient
from mediamind.services.media_store import InMemoryMediaStore, MediaStore
from mediamind.services.query_planning import QueryPlanner
from mediamind.services.relevance_filter import RelevanceFilter
from mediamind.services.relevance_scoring import (
    HTTPRelevanceScorer,
    LLMRelevanceScorer,
    RelevanceScorer,
)
from mediamind.services.research_orchestrator import ResearchOrchestrator
from mediamind.services.sources import SourceClients, build_source_adapters
from mediamind.services.task_registry import TaskRegistry

logger = structlog.get_logger(__name__)


async def build_store() -> MediaStore:
    if not config.DATABASE_URL:
        logger.warning("DATABASE_URL not set; using in-memory media store")
        return InMemoryMediaStore()

    from mediamind.database.connection import create_engine, init_database
    from mediamind.services.sql_media_store import SQLMediaStore

    engine = create_engine()
    await init_database(engine)
    return SQLMediaStore(engine)


def build_scorer(llm: LLMClient) -> Optional[RelevanceScorer]:
    if not config.RELEVANCE_FILTER_ENABLED:
        return None
    if config.RELEVANCE_SCORER_URL:
        return HTTPRelevanceScorer(config.RELEVANCE_SCORER_URL)
    if llm.is_available:
        return LLMRelevanceScorer(llm)
    logger.warning("Relevance scoring enabled but no scorer configured; blacklist only")
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    closers: List[Any] = []

    if getattr(app.state, "orchestrator", None) is None:
        clients = SourceClients.from_env()
        llm = LLMClient()
        store = await build_store()
        scorer = build_scorer(llm)
        closers.extend([clients, llm, store])
        if scorer is not None:
            closers.append(scorer)

        app.state.orchestrator = ResearchOrchestrator(
            planner=QueryPlanner(llm=llm),
            adapters=build_source_adapters(clients),
            store=store,
            relevance_filter=RelevanceFilter(scorer),
            tasks=TaskRegistry(),
        )
        logger.info(
            "MediaMind services initialized",
            searxng_url=config.SEARXNG_URL,
            llm_available=llm.is_available,
            relevance_scoring=scorer is not None,
            store=type(store).__name__,
        )

    yield

    orchestrator: ResearchOrchestrator = app.state.orchestrator
    await orchestrator.tasks.graceful_shutdown(timeout=config.SHUTDOWN_TIMEOUT_SEC)
    for resource in closers:
        try:
            await resource.close()
        except Exception as e:
            logger.error("Error closing resource", resource=type(resource).__name__, error=str(e))
    logger.info("Shutdown complete")


def create_app(orchestrator: Optional[ResearchOrchestrator] = None) -> FastAPI:
    """Create the FastAPI application.

    Pass ``orchestrator`` to skip environment wiring (tests, embedding).
    """
    configure_logging()

    app = FastAPI(
        title="MediaMind Research API",
        version=__version__,
        description="Multi-source media research aggregation with cancellable jobs",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.TRUSTED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Origin"],
        max_age=600,
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        bind_job_context(request_id=request.state.request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(health_router)
    app.include_router(research_router, prefix="/v1")
    return app
