from .research import router as research_router
from .health import router as health_router

__all__ = ["research_router", "health_router"]
