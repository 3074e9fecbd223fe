"""
Tracing collaborator for the extraction engine.

Every engine component receives a Tracer at construction instead of
reaching for process-wide debug state. The host builds one tracer from
its settings and passes it to each component.
"""

import logging
from typing import Protocol


class Tracer(Protocol):
    """Anything that can record a message at a standard logging level."""

    def log(self, level: int, message: str) -> None:
        ...


class LoggingTracer:
    """
    Tracer backed by the standard logging module.

    Debug-level messages are dropped unless debug_enabled is set, so
    a production deployment can run with verbose engine traces off
    while keeping warnings and errors.
    """

    def __init__(self, logger: logging.Logger, debug_enabled: bool = False):
        self._logger = logger
        self._debug_enabled = debug_enabled

    @property
    def debug_enabled(self) -> bool:
        return self._debug_enabled

    def log(self, level: int, message: str) -> None:
        if level <= logging.DEBUG and not self._debug_enabled:
            return
        self._logger.log(level, message)


class NullTracer:
    """Discards everything. Default when no tracer is supplied."""

    def log(self, level: int, message: str) -> None:
        pass


def create_tracer(name: str = "video_thumbnail.engine", debug_enabled: bool = False) -> LoggingTracer:
    """Build the tracer a host hands to every engine component."""
    return LoggingTracer(logging.getLogger(name), debug_enabled=debug_enabled)
