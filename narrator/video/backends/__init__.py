"""Video encoding backend implementations and factory helpers."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from .base import BaseVideoEncoder, VideoOutput
from .ffmpeg_renderer import FFmpegMuxer

DEFAULT_VIDEO_BACKEND = "ffmpeg"


def create_video_encoder(
    name: Optional[str] = None,
    settings: Optional[Any] = None,
) -> BaseVideoEncoder:
    """Instantiate the configured video encoder backend.

    ``settings`` may be a :class:`narrator.config_manager.NarratorSettings`
    instance or a plain mapping using the same keys.
    """

    backend = (name or DEFAULT_VIDEO_BACKEND).lower()
    if backend != "ffmpeg":
        raise ValueError(f"Unknown video backend '{backend}'")
    return FFmpegMuxer(**_coerce_ffmpeg_settings(settings))


def _coerce_ffmpeg_settings(settings: Optional[Any]) -> dict[str, Any]:
    if settings is None:
        values: Mapping[str, Any] = {}
    elif isinstance(settings, Mapping):
        values = settings
    else:
        values = settings.model_dump()

    return {
        "executable": str(values.get("ffmpeg_path") or "ffmpeg"),
        "loglevel": str(values.get("ffmpeg_loglevel") or "error"),
        "video_codec": str(values.get("video_codec") or "libx264"),
        "pixel_format": str(values.get("pixel_format") or "yuv420p"),
        "audio_codec": str(values.get("audio_codec") or "aac"),
        "timeout": values.get("encode_timeout_seconds"),
    }


__all__ = [
    "BaseVideoEncoder",
    "FFmpegMuxer",
    "VideoOutput",
    "create_video_encoder",
]
