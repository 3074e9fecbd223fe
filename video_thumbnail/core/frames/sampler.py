"""
Even frame sampling across a video.

Position calculation is a pure function so it can be tested and reused
(UI frame pickers need the same positions). FrameSampler composes a
duration source and a frame source; it depends only on the protocols
below, not on ffmpeg.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Protocol

from ..tracing import NullTracer, Tracer
from .models import ExtractedFrame, FrameExtractionError

MIN_FRAMES = 1
MAX_FRAMES = 20
EDGE_MARGIN_SECONDS = 0.1
SINGLE_FRAME_FRACTION = 0.1


class DurationSource(Protocol):
    def duration(self, video_path: str) -> float:
        ...


class FrameSource(Protocol):
    def extract(self, video_path: str, position_seconds: float) -> Optional[str]:
        ...


def clamp_count(count: int) -> int:
    return max(MIN_FRAMES, min(MAX_FRAMES, int(count)))


def clamp_position(position: float, duration: float) -> float:
    """
    Keep a position clear of the very start and end of the stream.

    ffmpeg tends to return nothing at exactly 0 or at the final frame.
    Videos shorter than two margins collapse to their midpoint.
    """
    low = EDGE_MARGIN_SECONDS
    high = duration - EDGE_MARGIN_SECONDS
    if high < low:
        return duration / 2
    return max(low, min(high, position))


def calculate_positions(duration: float, count: int) -> list[float]:
    """
    Evenly spaced positions over [0, duration], edge-clamped.

    A single frame is taken at 10% of the duration rather than the
    start, which is often a black or title frame.
    """
    if duration <= 0:
        return []
    count = clamp_count(count)
    if count == 1:
        raw = [duration * SINGLE_FRAME_FRACTION]
    else:
        raw = [(i / (count - 1)) * duration for i in range(count)]
    return [clamp_position(position, duration) for position in raw]


def percent_of(position: float, duration: float) -> float:
    if duration <= 0:
        return 0.0
    return max(0.0, min(100.0, (position / duration) * 100))


class FrameSampler:
    """
    Extracts count evenly spaced frames from a video.

    One bad position never aborts the batch; the result is whatever
    subset succeeded, possibly empty.
    """

    def __init__(
        self,
        durations: DurationSource,
        frames: FrameSource,
        tracer: Optional[Tracer] = None,
        max_workers: int = 1,
    ):
        """
        Args:
            durations: where video durations come from
            frames: what extracts a single frame
            tracer: engine tracer
            max_workers: upper bound on simultaneous extractions;
                1 extracts sequentially
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._durations = durations
        self._frames = frames
        self._tracer = tracer or NullTracer()
        self._max_workers = max_workers

    def sample(self, video_path: str, count: int) -> list[ExtractedFrame]:
        """
        Sample frames across the whole video.

        Returns:
            Frames in time order. Callers own (and must delete) the files.
        """
        duration = self._durations.duration(video_path)
        if duration <= 0:
            self._tracer.log(
                logging.WARNING,
                f"Could not determine duration, no frames sampled: {video_path}",
            )
            return []
        return self.sample_positions(video_path, calculate_positions(duration, count), duration)

    def sample_positions(
        self,
        video_path: str,
        positions: list[float],
        duration: float,
    ) -> list[ExtractedFrame]:
        """
        Extract frames at precomputed positions, skipping failures.

        An unexpected exception from the frame source propagates, after
        every frame already written for this batch has been deleted.
        """
        paths = self._extract_all(video_path, positions)

        frames = [
            ExtractedFrame(path=path, time=position, percent=percent_of(position, duration))
            for position, path in zip(positions, paths)
            if path is not None
        ]
        frames.sort(key=lambda frame: frame.time)

        self._tracer.log(
            logging.INFO,
            f"Sampled {len(frames)} of {len(positions)} frames from {video_path}",
        )
        return frames

    def _extract_all(self, video_path: str, positions: list[float]) -> list[Optional[str]]:
        if self._max_workers == 1 or len(positions) <= 1:
            paths: list[Optional[str]] = []
            try:
                for position in positions:
                    paths.append(self._extract_one(video_path, position))
            except Exception:
                _discard_paths(paths)
                raise
            return paths

        workers = min(self._max_workers, len(positions))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(self._extract_one, video_path, p) for p in positions]

        # every future is done once the pool has shut down
        errors = [f.exception() for f in futures if f.exception() is not None]
        paths = [f.result() for f in futures if f.exception() is None]
        if errors:
            _discard_paths(paths)
            raise errors[0]
        return paths

    def _extract_one(self, video_path: str, position: float) -> Optional[str]:
        try:
            path = self._frames.extract(video_path, position)
        except FrameExtractionError as e:
            self._tracer.log(logging.ERROR, f"Frame at {position:.3f}s failed: {e}")
            return None
        if path is None:
            self._tracer.log(logging.WARNING, f"Skipping frame at {position:.3f}s of {video_path}")
        return path


def _discard_paths(paths: list[Optional[str]]) -> None:
    for path in paths:
        if path is None:
            continue
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
