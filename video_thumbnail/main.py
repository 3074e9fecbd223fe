"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order

For local development:
    uvicorn video_thumbnail.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from . import __version__
from .api.routes import frames, health
from .config.settings import get_settings

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=get_settings().log_level,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    ffmpeg is not located here: a missing binary must not stop the
    service from starting, it only makes /health/ready and the frame
    endpoints report 503 until the host is reconfigured.
    """
    settings = get_settings()

    logger.info(
        "Video Thumbnail API starting",
        extra={
            "version": __version__,
            "ffmpeg_path": settings.ffmpeg_path or "(auto-detect)",
            "media_root": settings.media_root,
        }
    )

    yield

    logger.info("Video Thumbnail API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Still-frame thumbnail extraction for local video files.

        ## Workflow

        1. **Check readiness**: `GET /health/ready`
           - Confirms a working ffmpeg binary was found

        2. **Pick a frame**: `GET /api/v1/frames/sample?video_path=...&count=5`
           - Returns evenly spaced candidate frames with time and percentage

        3. **Extract it**: `GET /api/v1/frames/extract?video_path=...&position=12.5`
           - Returns the chosen frame as a JPEG
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        frames.router,
        prefix="/api/v1/frames",
        tags=["Frames"],
    )

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - redirect to docs."""
        return {
            "message": "Video Thumbnail API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        Hard engine failures (no temp space, for instance) end up here.
        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn will import
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "video_thumbnail.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
