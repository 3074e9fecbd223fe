"""
Single-frame extraction with seek fallbacks.

ffmpeg's seeking behaves differently across builds and containers, so
FrameExtractor tries three command shapes, fastest first, until one
produces a JPEG that is actually there and not trivially small:

1. -ss HH:MM:SS.mmm before -i   input seek, fast and usually close enough
2. -ss <float seconds> before -i   same seek, numeric form
3. -ss after -i   output seek, frame accurate but decodes from the start

Each attempt writes into its own freshly allocated temp file. A failed
attempt's file is deleted before the next one starts, and nothing is
left behind if every strategy fails.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Callable, Optional

from ...core.frames.models import ExtractionRequest, TempFileError, format_timestamp
from ...core.tracing import NullTracer, Tracer
from .runner import ProcessRunner

DEFAULT_EXTRACTION_TIMEOUT = 30.0
DEFAULT_MIN_FRAME_BYTES = 100
TEMP_PREFIX = "vt_"
JPEG_MAGIC = b"\xff\xd8"

_COMMON_INPUT_ARGS = ["-hide_banner", "-loglevel", "error", "-nostdin"]
_OUTPUT_ARGS = ["-frames:v", "1", "-q:v", "2", "-y"]


@dataclass(frozen=True)
class SeekStrategy:
    """A named way of turning (video, position, output) into an ffmpeg argv."""
    name: str
    build: Callable[[str, str, float, str], list[str]]


def _input_seek_formatted(ffmpeg: str, video: str, position: float, output: str) -> list[str]:
    return [
        ffmpeg, *_COMMON_INPUT_ARGS,
        "-ss", format_timestamp(position),
        "-i", video,
        *_OUTPUT_ARGS, output,
    ]


def _input_seek_seconds(ffmpeg: str, video: str, position: float, output: str) -> list[str]:
    return [
        ffmpeg, *_COMMON_INPUT_ARGS,
        "-ss", f"{max(0.0, position):.6f}",
        "-i", video,
        *_OUTPUT_ARGS, output,
    ]


def _output_seek(ffmpeg: str, video: str, position: float, output: str) -> list[str]:
    return [
        ffmpeg, *_COMMON_INPUT_ARGS,
        "-i", video,
        "-ss", format_timestamp(position),
        *_OUTPUT_ARGS, output,
    ]


SEEK_STRATEGIES = (
    SeekStrategy("input-seek-timestamp", _input_seek_formatted),
    SeekStrategy("input-seek-seconds", _input_seek_seconds),
    SeekStrategy("output-seek", _output_seek),
)


class FrameExtractor:
    """
    Extracts one JPEG frame at a given position.

    The returned path belongs to the caller, who must delete it. The
    position is not clamped here; an out-of-range position simply makes
    every strategy fail and extract() returns None.
    """

    def __init__(
        self,
        ffmpeg_path: str,
        runner: ProcessRunner,
        tracer: Optional[Tracer] = None,
        timeout: float = DEFAULT_EXTRACTION_TIMEOUT,
        min_frame_bytes: int = DEFAULT_MIN_FRAME_BYTES,
        temp_dir: Optional[str] = None,
        strategies: tuple[SeekStrategy, ...] = SEEK_STRATEGIES,
    ):
        self._ffmpeg = ffmpeg_path
        self._runner = runner
        self._tracer = tracer or NullTracer()
        self._timeout = timeout
        self._min_frame_bytes = min_frame_bytes
        self._temp_dir = temp_dir
        self._strategies = strategies

    @property
    def ffmpeg_path(self) -> str:
        return self._ffmpeg

    def extract(self, video_path: str, position_seconds: float) -> Optional[str]:
        """
        Extract the frame at position_seconds into a temp .jpg.

        Returns:
            Path of the frame file, or None if no strategy produced one.

        Raises:
            TempFileError: a temp file could not be allocated
        """
        if not (os.path.isfile(video_path) and os.access(video_path, os.R_OK)):
            self._tracer.log(logging.WARNING, f"Video not readable: {video_path}")
            return None
        if not (os.path.isfile(self._ffmpeg) and os.access(self._ffmpeg, os.X_OK)):
            self._tracer.log(logging.ERROR, f"ffmpeg is not executable: {self._ffmpeg}")
            return None

        for strategy in self._strategies:
            frame_path = self._allocate_temp_file()
            command = strategy.build(self._ffmpeg, video_path, position_seconds, frame_path)
            result = self._runner.run(command, self._timeout)

            if result.ok and self._is_valid_frame(frame_path):
                self._tracer.log(
                    logging.DEBUG,
                    f"Extracted frame at {format_timestamp(position_seconds)} "
                    f"from {video_path} via {strategy.name}",
                )
                return frame_path

            self._tracer.log(
                logging.DEBUG,
                f"Strategy {strategy.name} failed at {format_timestamp(position_seconds)} "
                f"(exit {result.exit_code}, timed out {result.timed_out}): "
                f"{result.stderr.strip()[:200]}",
            )
            _remove_quietly(frame_path)

        self._tracer.log(
            logging.WARNING,
            f"All seek strategies failed at {format_timestamp(position_seconds)} for {video_path}",
        )
        return None

    def extract_frame(self, request: ExtractionRequest) -> Optional[str]:
        return self.extract(request.video_path, request.position_seconds)

    def _allocate_temp_file(self) -> str:
        try:
            fd, path = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=".jpg", dir=self._temp_dir)
        except OSError as e:
            raise TempFileError(f"Could not create temporary frame file: {e}") from e
        os.close(fd)
        return path

    def _is_valid_frame(self, path: str) -> bool:
        """Big enough to be a real image and starts with a JPEG SOI marker."""
        try:
            if os.path.getsize(path) < self._min_frame_bytes:
                return False
            with open(path, "rb") as f:
                return f.read(2) == JPEG_MAGIC
        except OSError:
            return False


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
