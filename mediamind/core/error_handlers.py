"""
JSON error responses for the research API.

Every error body carries ``error``, ``detail`` and the ``request_id`` bound
by the request middleware.
"""

from typing import Any, List

import structlog
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mediamind.core import config

logger = structlog.get_logger(__name__)

EXPECTED_REQUEST_FORMAT = {
    "topic": "research topic (2-300 chars required)",
    "options": {
        "max_videos": f"int (optional, default {config.DEFAULT_MAX_VIDEOS})",
        "max_images": f"int (optional, default {config.DEFAULT_MAX_IMAGES})",
        "max_news": f"int (optional, default {config.DEFAULT_MAX_NEWS})",
        "max_newspapers": f"int (optional, default {config.DEFAULT_MAX_NEWSPAPERS})",
        "media_types": "list of video|image|news|newspaper (optional, default all)",
    },
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _error_response(request: Request, status_code: int, error: str, detail: Any, **extra: Any) -> JSONResponse:
    body = {"error": error, "detail": detail, **extra, "request_id": _request_id(request)}
    return JSONResponse(status_code=status_code, content=body)


def _describe(errors: List[dict]) -> List[str]:
    messages = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        field = ".".join(loc)
        if field == "topic" and err.get("type") == "missing":
            messages.append("Topic field is required")
        elif field:
            messages.append(f"{field}: {err.get('msg')}")
        else:
            messages.append(str(err.get("msg")))
    return messages


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = _describe(exc.errors())
    logger.info("Rejected invalid request", path=request.url.path, errors=messages)
    return _error_response(
        request,
        422,
        "Validation Error",
        messages,
        expected_format=EXPECTED_REQUEST_FORMAT,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, "HTTP Error", exc.detail)


async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        request_id=_request_id(request),
    )
    return _error_response(request, 500, "Internal Server Error", "An unexpected error occurred")
