"""
Wiring for the ffmpeg-backed extraction engine.

The binary is located once per configuration; every component that
runs ffmpeg is then built around that validated path and a single
shared ProcessRunner and tracer.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ...config.settings import Settings
from ...core.frames.sampler import FrameSampler
from ...core.frames.thumbnails import ThumbnailService
from ...core.tracing import Tracer, create_tracer
from .extractor import FrameExtractor
from .locator import BinaryLocator
from .probe import DurationProbe
from .runner import ProcessRunner

logger = logging.getLogger(__name__)


@dataclass
class FrameEngine:
    """Everything a host needs to pull frames out of videos."""
    ffmpeg_path: str
    ffprobe_path: Optional[str]
    runner: ProcessRunner
    probe: DurationProbe
    extractor: FrameExtractor
    sampler: FrameSampler
    thumbnails: ThumbnailService


def create_locator(settings: Settings, tracer: Optional[Tracer] = None) -> BinaryLocator:
    runner = ProcessRunner(poll_interval=settings.poll_interval, tracer=tracer)
    return BinaryLocator(runner, tracer=tracer, validation_timeout=settings.validation_timeout)


def create_frame_engine(settings: Settings, tracer: Optional[Tracer] = None) -> FrameEngine:
    """
    Locate ffmpeg and build the engine around it.

    Args:
        settings: application settings
        tracer: engine tracer; built from settings.debug_mode when None

    Raises:
        BinaryNotFoundError: no working ffmpeg could be found
    """
    tracer = tracer or create_tracer(debug_enabled=settings.debug_mode)
    runner = ProcessRunner(poll_interval=settings.poll_interval, tracer=tracer)
    locator = BinaryLocator(runner, tracer=tracer, validation_timeout=settings.validation_timeout)

    candidate = locator.require(settings.ffmpeg_path)
    ffprobe_path = locator.locate_companion(candidate.path)

    probe = DurationProbe(
        candidate.path,
        runner,
        ffprobe_path=ffprobe_path,
        tracer=tracer,
        timeout=settings.probe_timeout,
    )
    extractor = FrameExtractor(
        candidate.path,
        runner,
        tracer=tracer,
        timeout=settings.extraction_timeout,
        min_frame_bytes=settings.min_frame_bytes,
        temp_dir=settings.temp_dir,
    )
    sampler = FrameSampler(probe, extractor, tracer=tracer, max_workers=settings.max_workers)
    thumbnails = ThumbnailService(
        probe,
        extractor,
        sampler=sampler,
        tracer=tracer,
        default_percent=settings.default_frame_percent,
        frames_count=settings.frames_count,
    )

    logger.info(
        "Frame engine initialized",
        extra={
            "ffmpeg_path": candidate.path,
            "ffprobe_path": ffprobe_path,
            "source": candidate.source,
        }
    )

    return FrameEngine(
        ffmpeg_path=candidate.path,
        ffprobe_path=ffprobe_path,
        runner=runner,
        probe=probe,
        extractor=extractor,
        sampler=sampler,
        thumbnails=thumbnails,
    )
