"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (prefixed with VT_)
with sensible defaults. Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

The engine itself never reads settings. The host builds components from
a Settings instance and hands them the values they need.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables,
    e.g. VT_FFMPEG_PATH=/usr/local/bin/ffmpeg.
    For lists (like accepted_media_types), use comma-separated values.
    """

    # API Configuration
    api_title: str = "Video Thumbnail API"
    api_version: str = "v1"

    # Binary Configuration
    ffmpeg_path: str = Field(
        default="",
        description="Path to the ffmpeg executable. Empty triggers auto-detection."
    )

    # Frame Selection
    frames_count: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Number of frames sampled for thumbnail selection."
    )
    default_frame_percent: float = Field(
        default=10.0,
        ge=0.0,
        le=100.0,
        description="Default thumbnail position as a percentage of video duration."
    )
    accepted_media_types: str = Field(
        default="video/mp4,video/quicktime",
        description="Comma-separated MIME types treated as video."
    )

    # Subprocess Behavior
    validation_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed for a candidate binary to print its version."
    )
    probe_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed per duration probing strategy."
    )
    extraction_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds allowed per frame seek strategy."
    )
    poll_interval: float = Field(
        default=0.05,
        gt=0,
        description="Seconds between subprocess liveness/output polls."
    )
    min_frame_bytes: int = Field(
        default=100,
        ge=1,
        description="Extracted frames smaller than this are treated as corrupt."
    )
    temp_dir: Optional[str] = Field(
        default=None,
        description="Directory for extracted frames. System temp dir when unset."
    )
    max_workers: int = Field(
        default=1,
        ge=1,
        le=8,
        description="Simultaneous extractions while sampling. 1 means sequential."
    )

    # HTTP
    media_root: str = Field(
        default=".",
        description="Only videos under this directory are reachable over HTTP."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    debug_mode: bool = Field(
        default=False,
        description="Emit detailed debug traces from the extraction engine."
    )

    model_config = SettingsConfigDict(
        env_prefix="VT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def accepted_media_types_set(self) -> frozenset[str]:
        """Parse comma-separated media types into a normalized set."""
        return frozenset(
            media_type.strip().lower()
            for media_type in self.accepted_media_types.split(",")
            if media_type.strip()
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache means we only load settings once per process.
    For tests, you can call get_settings.cache_clear() to reset.
    """
    return Settings()
