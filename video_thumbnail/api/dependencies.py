"""
FastAPI dependency injection.

Dependencies provide the extraction engine and configuration to route
handlers. Using dependency injection means:
- Routes don't locate ffmpeg or build components themselves
- Tests can override the engine with fakes
- Configuration is centralized

Each dependency is a function that FastAPI calls when needed.
"""

import logging
import os
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Query, status

from ..config.settings import Settings, get_settings
from ..core.frames.models import BinaryNotFoundError
from ..infrastructure.ffmpeg.engine import FrameEngine, create_frame_engine

logger = logging.getLogger(__name__)

# The engine is rebuilt only when the settings that affect it change,
# so ffmpeg is located once per configuration rather than per request
_engine: Optional[FrameEngine] = None
_engine_key: Optional[tuple] = None


def _engine_settings_key(settings: Settings) -> tuple:
    return (
        settings.ffmpeg_path,
        settings.debug_mode,
        settings.validation_timeout,
        settings.probe_timeout,
        settings.extraction_timeout,
        settings.poll_interval,
        settings.min_frame_bytes,
        settings.temp_dir,
        settings.max_workers,
        settings.frames_count,
        settings.default_frame_percent,
    )


def reset_frame_engine() -> None:
    """Forget the cached engine so the next request re-runs discovery."""
    global _engine, _engine_key
    _engine = None
    _engine_key = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_frame_engine(
    settings: Annotated[Settings, Depends(get_settings)],
) -> FrameEngine:
    """
    Provide the ffmpeg frame engine.

    Raises 503 if no working ffmpeg can be found: the service is up
    but cannot do any extraction work until it is reconfigured.
    """
    global _engine, _engine_key

    key = _engine_settings_key(settings)
    if _engine is not None and _engine_key == key:
        return _engine

    try:
        engine = create_frame_engine(settings)
    except BinaryNotFoundError as e:
        logger.error("ffmpeg unavailable", extra={"error": str(e)})
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        )

    _engine, _engine_key = engine, key
    return engine


def resolve_video_path(
    settings: Annotated[Settings, Depends(get_settings)],
    video_path: str = Query(description="Path of the video, relative to the media root"),
) -> str:
    """
    Map a requested path onto a file inside the media root.

    Anything that escapes the root (absolute paths elsewhere, ../) or
    does not exist is reported as not found.
    """
    root = os.path.realpath(settings.media_root)
    candidate = os.path.realpath(os.path.join(root, video_path))

    if os.path.commonpath([root, candidate]) != root or not os.path.isfile(candidate):
        logger.warning("Video path rejected", extra={"video_path": video_path})
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Video not found",
        )
    return candidate


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
FrameEngineDep = Annotated[FrameEngine, Depends(get_frame_engine)]
VideoPathDep = Annotated[str, Depends(resolve_video_path)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
