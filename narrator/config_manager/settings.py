"""Pydantic models and helper utilities for configuration values."""
from __future__ import annotations

import sys
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from narrator import logging_manager

from .constants import (
    DEFAULT_DURATION_SECONDS,
    DEFAULT_FFMPEG_PATH,
    DEFAULT_FONT_SIZE,
    DEFAULT_FRAME_RATE,
    DEFAULT_SCROLL_SPEED,
    DEFAULT_TMP_DIR,
    DEFAULT_VIDEO_HEIGHT,
    DEFAULT_VIDEO_WIDTH,
    VALID_FRAME_PARALLELISM,
)

logger = logging_manager.get_logger()


class NarratorSettings(BaseModel):
    """Typed representation of the application configuration."""

    model_config = ConfigDict(extra="allow")

    tts_backend: str = Field(
        default_factory=lambda: "macos_say" if sys.platform == "darwin" else "gtts"
    )
    tts_executable_path: Optional[str] = None
    default_language: Optional[str] = None
    default_region: Optional[str] = None
    synthesis_timeout_seconds: float = 120.0

    ffmpeg_path: str = DEFAULT_FFMPEG_PATH
    ffmpeg_loglevel: str = "error"
    video_codec: str = "libx264"
    pixel_format: str = "yuv420p"
    audio_codec: str = "aac"
    encode_timeout_seconds: float = 600.0

    video_width: int = DEFAULT_VIDEO_WIDTH
    video_height: int = DEFAULT_VIDEO_HEIGHT
    frame_rate: float = DEFAULT_FRAME_RATE
    duration_seconds: Optional[float] = DEFAULT_DURATION_SECONDS
    max_duration_seconds: float = 600.0

    scroll_speed: float = DEFAULT_SCROLL_SPEED
    font_size: int = DEFAULT_FONT_SIZE
    font_path: Optional[str] = None
    text_color: tuple[int, int, int] = (255, 255, 255)
    background_color: tuple[int, int, int] = (0, 0, 0)
    text_margin: int = 10
    line_spacing: float = 1.25
    frame_parallelism: str = "off"
    frame_workers: Optional[int] = None

    tmp_dir: str = str(DEFAULT_TMP_DIR)
    keep_scratch: bool = False
    fetch_timeout_seconds: float = 30.0

    @field_validator("frame_parallelism")
    @classmethod
    def _check_parallelism(cls, value: str) -> str:
        normalized = (value or "off").strip().lower()
        if normalized == "none":
            normalized = "off"
        if normalized not in VALID_FRAME_PARALLELISM:
            raise ValueError(
                f"frame_parallelism must be one of {sorted(VALID_FRAME_PARALLELISM)}"
            )
        return normalized


class EnvironmentOverrides(BaseSettings):
    """Configuration overrides sourced from environment variables."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    tts_backend: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_TTS_BACKEND")
    )
    tts_executable_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_TTS_EXECUTABLE")
    )
    ffmpeg_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("FFMPEG_PATH", "NARRATOR_FFMPEG_PATH")
    )
    ffmpeg_loglevel: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_FFMPEG_LOGLEVEL")
    )
    tmp_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_TMP_DIR")
    )
    keep_scratch: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_KEEP_SCRATCH")
    )
    video_width: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_VIDEO_WIDTH")
    )
    video_height: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_VIDEO_HEIGHT")
    )
    frame_rate: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_FRAME_RATE")
    )
    duration_seconds: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_DURATION_SECONDS")
    )
    font_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_FONT_PATH")
    )
    frame_parallelism: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_FRAME_PARALLELISM")
    )
    frame_workers: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_FRAME_WORKERS")
    )
    default_language: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_LANGUAGE")
    )
    default_region: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("NARRATOR_REGION")
    )


def load_environment_overrides() -> Dict[str, Any]:
    """Return configuration overrides sourced from environment variables."""

    try:
        overrides = EnvironmentOverrides()
    except ValidationError as exc:
        logger.warning(
            "Invalid environment configuration detected; using defaults.",
            extra={"event": "config.env.validation_error", "error": str(exc)},
        )
        return {}
    return overrides.model_dump(exclude_none=True)


def apply_settings_updates(
    settings: NarratorSettings, updates: Dict[str, Any]
) -> NarratorSettings:
    """Return a validated copy of ``settings`` updated with ``updates`` if any values exist."""

    if not updates:
        return settings
    payload = settings.model_dump(mode="python")
    payload.update(updates)
    return NarratorSettings.model_validate(payload)


__all__ = [
    "EnvironmentOverrides",
    "NarratorSettings",
    "apply_settings_updates",
    "load_environment_overrides",
]
