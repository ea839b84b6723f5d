"""Entrypoint: ``uvicorn mediamind.main:app``."""

import os

from mediamind.core.app import create_app

app = create_app()

__all__ = ["app"]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mediamind.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "0").lower() in {"1", "true", "yes"},
    )
