"""
Video Thumbnail - still-frame extraction from local videos via ffmpeg.

This package contains the complete application:
- core: Framework-agnostic frame model, sampling and thumbnail selection
- infrastructure: ffmpeg discovery, probing and extraction
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
