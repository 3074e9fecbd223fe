"""
Application configuration using Pydantic settings.

Configuration comes from VT_-prefixed environment variables with
sensible defaults.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
