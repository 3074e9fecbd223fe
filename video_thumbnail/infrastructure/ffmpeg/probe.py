"""
Video duration probing.

Tries the fastest structured method first and falls back to scraping
ffmpeg's diagnostic text:

1. ffprobe colocated with ffmpeg, printing format=duration as a bare number
2. ffmpeg itself with the same show_entries flags (some static builds
   bundle the probe options)
3. ffmpeg -i, scanning stderr for "Duration: HH:MM:SS.ff"

Every strategy runs under its own short timeout. 0.0 means unknown.
"""

import logging
import math
import os
import re
from typing import Callable, Optional

from ...core.frames.models import RunResult
from ...core.tracing import NullTracer, Tracer
from .runner import ProcessRunner

DEFAULT_PROBE_TIMEOUT = 10.0

_DURATION_RE = re.compile(r"Duration:\s*(\d+):(\d{2}):(\d{2}(?:\.\d+)?)")

_SHOW_DURATION_ARGS = [
    "-v", "error",
    "-show_entries", "format=duration",
    "-of", "default=noprint_wrappers=1:nokey=1",
]


def parse_numeric_duration(text: str) -> float:
    """
    Parse ffprobe's bare-number output. 0.0 if it isn't a positive number.

    ffprobe prints "N/A" for streams without a container duration.
    """
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            value = float(line)
        except ValueError:
            return 0.0
        if math.isfinite(value) and value > 0:
            return value
        return 0.0
    return 0.0


def parse_duration_banner(text: str) -> float:
    """Pull the container duration out of ffmpeg's -i banner."""
    match = _DURATION_RE.search(text)
    if not match:
        return 0.0
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class DurationProbe:
    """
    Determines a video's duration in seconds.

    Never raises for a bad input or a misbehaving binary; callers get
    0.0 and decide whether that is fatal for them.
    """

    def __init__(
        self,
        ffmpeg_path: str,
        runner: ProcessRunner,
        ffprobe_path: Optional[str] = None,
        tracer: Optional[Tracer] = None,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ):
        """
        Args:
            ffmpeg_path: validated ffmpeg executable
            runner: subprocess runner shared with the other components
            ffprobe_path: validated ffprobe, usually from
                BinaryLocator.locate_companion(); None skips strategy 1
            tracer: engine tracer
            timeout: seconds per strategy
        """
        self._ffmpeg = ffmpeg_path
        self._ffprobe = ffprobe_path
        self._runner = runner
        self._tracer = tracer or NullTracer()
        self._timeout = timeout

    def duration(self, video_path: str) -> float:
        """Duration of the video in seconds, or 0.0 if it can't be found."""
        if not (os.path.isfile(video_path) and os.access(video_path, os.R_OK)):
            self._tracer.log(logging.WARNING, f"Video not readable: {video_path}")
            return 0.0

        strategies: list[tuple[str, Callable[[str], float]]] = []
        if self._ffprobe:
            strategies.append(("ffprobe", self._probe_with_ffprobe))
        strategies.append(("ffmpeg-show-entries", self._probe_with_show_entries))
        strategies.append(("ffmpeg-banner", self._probe_with_banner))

        for name, strategy in strategies:
            seconds = strategy(video_path)
            if seconds > 0:
                self._tracer.log(
                    logging.DEBUG,
                    f"Duration of {video_path} via {name}: {seconds:.3f}s",
                )
                return seconds
            self._tracer.log(logging.DEBUG, f"Duration strategy {name} failed for {video_path}")

        self._tracer.log(logging.WARNING, f"Could not determine duration of {video_path}")
        return 0.0

    def _probe_with_ffprobe(self, video_path: str) -> float:
        result = self._run([self._ffprobe, *_SHOW_DURATION_ARGS, video_path])
        return parse_numeric_duration(result.stdout) if result.ok else 0.0

    def _probe_with_show_entries(self, video_path: str) -> float:
        result = self._run([self._ffmpeg, "-i", video_path, *_SHOW_DURATION_ARGS])
        return parse_numeric_duration(result.stdout) if result.ok else 0.0

    def _probe_with_banner(self, video_path: str) -> float:
        # ffmpeg exits non-zero here ("At least one output file must be
        # specified"), so the exit code is ignored and only the text counts
        result = self._run([self._ffmpeg, "-hide_banner", "-nostdin", "-i", video_path])
        if result.timed_out:
            return 0.0
        return parse_duration_banner(result.stderr + result.stdout)

    def _run(self, command: list[str]) -> RunResult:
        return self._runner.run(command, self._timeout)
