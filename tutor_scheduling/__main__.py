"""Development server runner: ``python -m tutor_scheduling``."""

import os

import uvicorn

from .core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "tutor_scheduling.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=not settings.is_production,
        log_level=settings.log_level.lower(),
    )
