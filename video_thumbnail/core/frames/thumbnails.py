"""
Thumbnail selection on top of the extraction engine.

Three ways a host picks a thumbnail:
- default_thumbnail(): at a configured percentage of the duration, used
  when a video is first ingested
- candidate_frames(): an even spread of frames for a person to choose from
- frame_at(): the exact position that person chose

RegenerateThumbnails walks every stored media record and rebuilds its
thumbnail. Media storage and thumbnail storage belong to the host and are
only described here as protocols.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Protocol

from ..tracing import NullTracer, Tracer
from .models import (
    DEFAULT_VIDEO_MEDIA_TYPES,
    ExtractedFrame,
    FrameExtractionError,
    is_video_media,
)
from .sampler import (
    DurationSource,
    FrameSampler,
    FrameSource,
    clamp_count,
    clamp_position,
    percent_of,
)

DEFAULT_FRAME_PERCENT = 10.0
DEFAULT_FRAMES_COUNT = 5


@dataclass(frozen=True)
class ThumbnailResult:
    """A chosen frame plus the numbers the host stores alongside it."""
    frame: ExtractedFrame
    video_duration: float

    @property
    def frame_time(self) -> float:
        return self.frame.time

    @property
    def frame_percentage(self) -> float:
        return self.frame.percent

    def as_media_data(self) -> dict[str, float]:
        """Keys the host merges into the media record's data."""
        return {
            "video_duration": self.video_duration,
            "thumbnail_frame_time": self.frame_time,
            "thumbnail_frame_percentage": self.frame_percentage,
        }


class ThumbnailService:
    """Picks thumbnail frames for videos."""

    def __init__(
        self,
        durations: DurationSource,
        frames: FrameSource,
        sampler: Optional[FrameSampler] = None,
        tracer: Optional[Tracer] = None,
        default_percent: float = DEFAULT_FRAME_PERCENT,
        frames_count: int = DEFAULT_FRAMES_COUNT,
    ):
        self._durations = durations
        self._frames = frames
        self._tracer = tracer or NullTracer()
        self._sampler = sampler or FrameSampler(durations, frames, tracer=self._tracer)
        self._default_percent = default_percent
        self._frames_count = clamp_count(frames_count)

    def duration(self, video_path: str) -> float:
        return self._durations.duration(video_path)

    def default_thumbnail(
        self,
        video_path: str,
        percent: Optional[float] = None,
    ) -> Optional[ThumbnailResult]:
        """
        Extract the frame at a percentage of the video's duration.

        Args:
            video_path: local video file
            percent: 0-100; the configured default when None
        """
        duration = self._durations.duration(video_path)
        if duration <= 0:
            return None
        if percent is None:
            percent = self._default_percent
        percent = max(0.0, min(100.0, float(percent)))
        position = clamp_position(duration * percent / 100, duration)
        return self._extract(video_path, position, duration)

    def frame_at(self, video_path: str, position: float) -> Optional[ThumbnailResult]:
        """Extract the frame at a position a person picked."""
        duration = self._durations.duration(video_path)
        if duration <= 0:
            return None
        return self._extract(video_path, clamp_position(position, duration), duration)

    def candidate_frames(self, video_path: str, count: Optional[int] = None) -> list[ExtractedFrame]:
        """Evenly spaced frames to choose a thumbnail from."""
        return self._sampler.sample(video_path, count if count is not None else self._frames_count)

    def _extract(self, video_path: str, position: float, duration: float) -> Optional[ThumbnailResult]:
        path = self._frames.extract(video_path, position)
        if path is None:
            return None
        frame = ExtractedFrame(path=path, time=position, percent=percent_of(position, duration))
        return ThumbnailResult(frame=frame, video_duration=duration)


# ---------------------------------------------------------------------------
# Batch Regeneration
# ---------------------------------------------------------------------------

@dataclass
class MediaRecord:
    """The parts of a host media record the batch job needs."""
    media_id: Any
    media_type: str
    file_path: str
    data: dict[str, Any] = field(default_factory=dict)


class MediaRepository(Protocol):
    """Host-side media persistence."""

    def list_media(self) -> Iterable[MediaRecord]:
        ...

    def save(self, media: MediaRecord) -> None:
        ...


class ThumbnailStore(Protocol):
    """Host-side thumbnail storage. Must copy the frame; the job deletes it."""

    def store_thumbnail(self, media: MediaRecord, frame_path: str) -> None:
        ...


@dataclass(frozen=True)
class BatchReport:
    total: int
    succeeded: int
    failed: int
    skipped: int = 0
    stopped: bool = False


class RegenerateThumbnails:
    """
    Rebuilds the thumbnail of every video media record.

    Each record keeps its own stored percentage when it has one. A
    record that fails is logged and counted; the batch carries on.
    """

    def __init__(
        self,
        service: ThumbnailService,
        repository: MediaRepository,
        store: ThumbnailStore,
        accepted_media_types: Iterable[str] = DEFAULT_VIDEO_MEDIA_TYPES,
        default_percent: float = DEFAULT_FRAME_PERCENT,
        tracer: Optional[Tracer] = None,
    ):
        self._service = service
        self._repository = repository
        self._store = store
        self._accepted = frozenset(accepted_media_types)
        self._default_percent = default_percent
        self._tracer = tracer or NullTracer()

    def run(self, should_stop: Callable[[], bool] = lambda: False) -> BatchReport:
        records = list(self._repository.list_media())
        videos = [r for r in records if is_video_media(r.media_type, self._accepted)]
        skipped = len(records) - len(videos)
        succeeded = failed = 0
        stopped = False

        self._tracer.log(
            logging.INFO,
            f"Starting thumbnail regeneration for {len(videos)} videos",
        )

        for index, media in enumerate(videos, start=1):
            if should_stop():
                self._tracer.log(logging.WARNING, "Regeneration stopped before completion")
                stopped = True
                break
            if self._regenerate_one(media):
                succeeded += 1
                self._tracer.log(
                    logging.INFO,
                    f"Processed media {media.media_id} ({index} of {len(videos)})",
                )
            else:
                failed += 1

        report = BatchReport(
            total=len(videos),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            stopped=stopped,
        )
        self._tracer.log(
            logging.INFO,
            f"Thumbnail regeneration complete. Success: {report.succeeded}, "
            f"Errors: {report.failed}, Total: {report.total}",
        )
        return report

    def _regenerate_one(self, media: MediaRecord) -> bool:
        try:
            percent = float(media.data.get("thumbnail_frame_percentage", self._default_percent))
        except (TypeError, ValueError):
            percent = self._default_percent
        try:
            result = self._service.default_thumbnail(media.file_path, percent)
        except FrameExtractionError as e:
            self._tracer.log(logging.ERROR, f"Error processing media {media.media_id}: {e}")
            return False
        if result is None:
            self._tracer.log(logging.WARNING, f"Failed to extract frame for media {media.media_id}")
            return False

        try:
            self._store.store_thumbnail(media, result.frame.path)
            media.data = {**media.data, **result.as_media_data()}
            self._repository.save(media)
        except Exception as e:
            self._tracer.log(logging.ERROR, f"Error storing thumbnail for media {media.media_id}: {e}")
            return False
        finally:
            result.frame.discard()
        return True
