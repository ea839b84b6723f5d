from fastapi import APIRouter, Request

from mediamind import __version__
from mediamind.core.config import SERVICE_NAME

router = APIRouter(tags=["system"])


@router.get("/health")
async def health(request: Request):
    orchestrator = getattr(request.app.state, "orchestrator", None)
    active = await orchestrator.registry.active_count() if orchestrator else 0
    return {
        "status": "ok" if orchestrator else "starting",
        "service": SERVICE_NAME,
        "version": __version__,
        "active_jobs": active,
    }
