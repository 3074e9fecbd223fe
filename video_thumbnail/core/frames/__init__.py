"""
Frame extraction domain.

Contains the data model, even sampling and thumbnail selection logic.
Nothing here knows about ffmpeg; the infrastructure layer supplies the
duration and frame sources.
"""

from .models import (
    BinaryCandidate,
    BinaryNotFoundError,
    ExtractedFrame,
    ExtractionRequest,
    FrameExtractionError,
    RunResult,
    TempFileError,
    format_timestamp,
    is_video_media,
    parse_timestamp,
)
from .sampler import FrameSampler, calculate_positions
from .thumbnails import (
    BatchReport,
    MediaRecord,
    RegenerateThumbnails,
    ThumbnailResult,
    ThumbnailService,
)

__all__ = [
    "BinaryCandidate",
    "BinaryNotFoundError",
    "ExtractedFrame",
    "ExtractionRequest",
    "FrameExtractionError",
    "RunResult",
    "TempFileError",
    "format_timestamp",
    "is_video_media",
    "parse_timestamp",
    "FrameSampler",
    "calculate_positions",
    "BatchReport",
    "MediaRecord",
    "RegenerateThumbnails",
    "ThumbnailResult",
    "ThumbnailService",
]
