"""
Research job routes
"""

from typing import Dict, List, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from mediamind.core.exceptions import JobCreationError
from mediamind.models.research import (
    CancelResponse,
    JobCreatedResponse,
    JobStatusResponse,
    ResearchRequest,
)
from mediamind.services.research_orchestrator import ResearchOrchestrator

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/research", tags=["research"])


def get_orchestrator(request: Request) -> ResearchOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Research service not initialized")
    return orchestrator


@router.post("", response_model=JobCreatedResponse)
async def start_research(
    body: ResearchRequest,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """Accept a topic and start the pipeline in the background."""
    try:
        job = await orchestrator.submit(body.topic, body.options)
    except JobCreationError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to create project: {exc.cause}")

    logger.info("Research submitted", job_id=job.id, topic=job.topic)
    return JobCreatedResponse(
        job_id=job.id,
        slug=job.slug,
        topic=job.topic,
        status=job.status.value,
    )


@router.delete("/{job_id}", response_model=CancelResponse)
async def cancel_research(
    job_id: str,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    """Always succeeds; unknown or finished jobs are a no-op."""
    flagged = await orchestrator.request_cancel(job_id)
    return CancelResponse(
        job_id=job_id,
        message="Cancellation requested" if flagged else "No active job to cancel",
    )


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_research(
    job_id: str,
    include_media: bool = True,
    orchestrator: ResearchOrchestrator = Depends(get_orchestrator),
):
    job = await orchestrator.get_status(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Research job not found")

    media: Dict[str, List[Dict[str, Any]]] = {}
    if include_media:
        for record in await orchestrator.store.list_media(job_id):
            media.setdefault(record.media_type.value, []).append(record.to_dict())

    data = job.to_dict()
    return JobStatusResponse(
        job_id=data["id"],
        topic=data["topic"],
        slug=data["slug"],
        status=data["status"],
        counts=data["counts"],
        error_message=data["error_message"],
        created_at=data["created_at"],
        completed_at=data["completed_at"],
        media=media,
    )
