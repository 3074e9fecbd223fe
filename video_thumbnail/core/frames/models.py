"""
Domain models for frame extraction.

These models describe what the engine produces and consumes. They have no
dependencies on ffmpeg, FastAPI or settings; the infrastructure layer
creates them and the host application consumes them.
"""

import os
import re
from dataclasses import dataclass
from typing import Iterable, Optional

DEFAULT_VIDEO_MEDIA_TYPES = frozenset({"video/mp4", "video/quicktime"})

_TIMESTAMP_RE = re.compile(r"^(\d+):([0-5]?\d):(\d+(?:\.\d+)?)$")


class FrameExtractionError(Exception):
    """Raised for hard failures the engine cannot express as a sentinel."""
    pass


class BinaryNotFoundError(FrameExtractionError):
    """Raised when no working ffmpeg binary could be located."""
    pass


class TempFileError(FrameExtractionError):
    """Raised when a temporary frame file cannot be allocated."""
    pass


def format_timestamp(seconds: float) -> str:
    """
    Format seconds as HH:MM:SS.mmm.

    Works from whole milliseconds so rounding can never produce a
    "60.000" seconds field, and the formatted value always matches
    the raw float to the millisecond.
    """
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def parse_timestamp(text: str) -> float:
    """
    Parse an HH:MM:SS.fraction timestamp into seconds.

    Raises ValueError if the text is not a timestamp.
    """
    match = _TIMESTAMP_RE.match(text.strip())
    if not match:
        raise ValueError(f"Not a timestamp: {text!r}")
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def is_video_media(
    media_type: Optional[str],
    accepted: Iterable[str] = DEFAULT_VIDEO_MEDIA_TYPES,
) -> bool:
    """
    Is this MIME type one we extract thumbnails from?

    Comparison ignores case and any parameters ("video/mp4; codecs=avc1").
    """
    if not media_type:
        return False
    base_type = media_type.split(";", 1)[0].strip().lower()
    return base_type in {a.strip().lower() for a in accepted}


@dataclass
class BinaryCandidate:
    """
    A possible ffmpeg executable found by one detection strategy.

    Only candidates with validated=True ever leave the locator.
    """
    path: str
    source: str
    validated: bool = False


@dataclass(frozen=True)
class ExtractionRequest:
    """A single frame to pull out of a video."""
    video_path: str
    position_seconds: float


@dataclass(frozen=True)
class RunResult:
    """
    Outcome of one subprocess invocation.

    exit_code is None when the process could not be started at all;
    error then holds the reason.
    """
    stdout: str
    stderr: str
    exit_code: Optional[int]
    timed_out: bool = False
    error: str = ""

    @property
    def started(self) -> bool:
        return self.exit_code is not None or self.timed_out

    @property
    def ok(self) -> bool:
        """Process ran to completion within its timeout and exited 0."""
        return not self.timed_out and self.exit_code == 0


@dataclass(frozen=True)
class ExtractedFrame:
    """
    A JPEG frame written to a temporary file.

    The caller owns the file once it is returned and is responsible
    for deleting it.
    """
    path: str
    time: float
    percent: float

    @property
    def time_formatted(self) -> str:
        return format_timestamp(self.time)

    def read_bytes(self) -> bytes:
        with open(self.path, "rb") as f:
            return f.read()

    def discard(self) -> None:
        """Delete the backing file. Safe to call more than once."""
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass
