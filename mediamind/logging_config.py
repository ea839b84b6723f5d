"""Centralised structured logging setup for the MediaMind backend.

Configures *structlog* with a JSON pipeline (or a console renderer when
``LOG_PRETTY=1``) and bridges stdlib logging through the same processors so
aiohttp/uvicorn/sqlalchemy records come out in one format.

Call :pyfunc:`configure_logging` once at startup (``core/app.py`` does).
Modules obtain loggers with :pyfunc:`structlog.get_logger` directly.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

import structlog

__all__ = [
    "configure_logging",
    "bind_job_context",
    "clear_job_context",
    "get_logger",
]


def configure_logging(force: bool = False) -> None:
    """Route structlog and stdlib records through one renderer, once per process.

    Args:
        force: When True, reconfigure even if previously configured.
    """

    if getattr(structlog, "_mediamind_configured", False) and not force:  # type: ignore[attr-defined]
        return

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    if os.getenv("LOG_PRETTY", "0").lower() in {"1", "true", "yes"}:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    # Applied to foreign (stdlib) records and to structlog events alike
    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level, logging.INFO))

    # uvicorn's access log duplicates the request middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    setattr(structlog, "_mediamind_configured", True)  # type: ignore[attr-defined]


def bind_job_context(
    job_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    """Bind job/request identifiers into structlog contextvars.

    Background tasks copy the current context when they are created, so a
    job's pipeline logs carry ``job_id`` without threading it everywhere.
    """
    payload: Dict[str, str] = {}
    if job_id:
        payload["job_id"] = job_id
    if request_id:
        payload["request_id"] = request_id
    if payload:
        structlog.contextvars.bind_contextvars(**payload)


def clear_job_context() -> None:
    structlog.contextvars.unbind_contextvars("job_id", "request_id")


def get_logger(name: Optional[str] = None):
    """Return a structlog logger; ensures configuration first."""
    configure_logging()
    return structlog.get_logger(name) if name else structlog.get_logger()
