"""
ffmpeg-backed extraction engine.

- runner: timeout-bounded subprocess execution
- locator: ffmpeg discovery and validation
- probe: video duration
- extractor: single JPEG frame with seek fallbacks
- engine: wires the above together from settings
"""

from .engine import FrameEngine, create_frame_engine, create_locator
from .extractor import FrameExtractor
from .locator import BinaryLocator
from .probe import DurationProbe
from .runner import ProcessRunner

__all__ = [
    "BinaryLocator",
    "DurationProbe",
    "FrameEngine",
    "FrameExtractor",
    "ProcessRunner",
    "create_frame_engine",
    "create_locator",
]
