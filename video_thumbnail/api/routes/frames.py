"""
Frame extraction endpoints.

Thin HTTP layer over the extraction engine:
- duration of a video
- an even spread of candidate frames (for a thumbnail picker)
- a single frame at an explicit position, as a JPEG
- the default thumbnail at a percentage of the duration

Videos are local files under the configured media root; the engine
never fetches anything remote. Engine calls block on subprocesses, so
they run in a worker thread.
"""

import asyncio
import base64
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field
from starlette.background import BackgroundTask

from ...core.frames.models import ExtractedFrame, format_timestamp
from ...core.frames.sampler import calculate_positions, clamp_count
from ..dependencies import FrameEngineDep, SettingsDep, VideoPathDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class DurationResponse(BaseModel):
    duration_seconds: float = Field(description="Video duration in seconds")
    duration_formatted: str = Field(description="Duration as HH:MM:SS.mmm")


class FrameResponse(BaseModel):
    """One extracted frame, inlined as a data URI."""
    time: float = Field(description="Position of the frame (seconds)")
    time_formatted: str = Field(description="Position as HH:MM:SS.mmm")
    percent: float = Field(description="Position as a percentage of the duration")
    image: str = Field(description="JPEG as a data: URI")


class SampleResponse(BaseModel):
    duration_seconds: float
    requested: int = Field(description="Frame count after clamping to 1-20")
    frames: list[FrameResponse]


class ThumbnailResponse(BaseModel):
    """Default thumbnail plus the values a host stores with the media."""
    frame: FrameResponse
    video_duration: float
    thumbnail_frame_time: float
    thumbnail_frame_percentage: float


def _frame_to_response(frame: ExtractedFrame) -> FrameResponse:
    """Inline the frame and delete its temp file."""
    try:
        encoded = base64.b64encode(frame.read_bytes()).decode("ascii")
    finally:
        frame.discard()
    return FrameResponse(
        time=frame.time,
        time_formatted=frame.time_formatted,
        percent=frame.percent,
        image=f"data:image/jpeg;base64,{encoded}",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/duration",
    response_model=DurationResponse,
    summary="Video duration",
)
async def get_duration(engine: FrameEngineDep, video_path: VideoPathDep) -> DurationResponse:
    duration = await asyncio.to_thread(engine.probe.duration, video_path)
    if duration <= 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Could not determine video duration"
        )
    return DurationResponse(
        duration_seconds=duration,
        duration_formatted=format_timestamp(duration),
    )


@router.get(
    "/sample",
    response_model=SampleResponse,
    summary="Evenly spaced candidate frames",
)
async def sample_frames(
    engine: FrameEngineDep,
    settings: SettingsDep,
    video_path: VideoPathDep,
    count: Optional[int] = Query(default=None, description="Frames to extract (clamped to 1-20)"),
) -> SampleResponse:
    """
    Extract frames spread across the whole video.

    Frames that fail are left out, so the response may hold fewer
    frames than requested. An empty list means the duration could not
    be determined or every extraction failed.
    """
    requested = clamp_count(count if count is not None else settings.frames_count)

    # Probe once and reuse the duration for every position
    duration = await asyncio.to_thread(engine.probe.duration, video_path)
    frames: list[ExtractedFrame] = []
    if duration > 0:
        frames = await asyncio.to_thread(
            engine.sampler.sample_positions,
            video_path,
            calculate_positions(duration, requested),
            duration,
        )

    logger.info(
        "Sampled frames",
        extra={"video_path": video_path, "requested": requested, "extracted": len(frames)}
    )

    try:
        responses = [_frame_to_response(frame) for frame in frames]
    finally:
        for frame in frames:
            frame.discard()

    return SampleResponse(
        duration_seconds=duration,
        requested=requested,
        frames=responses,
    )


@router.get(
    "/extract",
    response_class=FileResponse,
    summary="Single frame as JPEG",
    responses={200: {"content": {"image/jpeg": {}}}},
)
async def extract_frame(
    engine: FrameEngineDep,
    video_path: VideoPathDep,
    position: float = Query(ge=0, description="Position in seconds"),
) -> FileResponse:
    """
    Extract the frame at an exact position.

    The position is not clamped: one past the end of the video is a 422.
    """
    frame_path = await asyncio.to_thread(engine.extractor.extract, video_path, position)
    if frame_path is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Could not extract a frame at {format_timestamp(position)}"
        )

    frame = ExtractedFrame(path=frame_path, time=position, percent=0.0)
    return FileResponse(
        frame_path,
        media_type="image/jpeg",
        headers={"X-Frame-Time": frame.time_formatted},
        background=BackgroundTask(frame.discard),
    )


@router.get(
    "/thumbnail",
    response_model=ThumbnailResponse,
    summary="Default thumbnail frame",
)
async def default_thumbnail(
    engine: FrameEngineDep,
    video_path: VideoPathDep,
    percent: Optional[float] = Query(
        default=None,
        ge=0,
        le=100,
        description="Position as a percentage of the duration (configured default when omitted)",
    ),
) -> ThumbnailResponse:
    result = await asyncio.to_thread(engine.thumbnails.default_thumbnail, video_path, percent)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Could not extract a thumbnail frame"
        )

    data = result.as_media_data()
    return ThumbnailResponse(
        frame=_frame_to_response(result.frame),
        video_duration=data["video_duration"],
        thumbnail_frame_time=data["thumbnail_frame_time"],
        thumbnail_frame_percentage=data["thumbnail_frame_percentage"],
    )
