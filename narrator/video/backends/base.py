"""Base interfaces and result containers for video encoding backends."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class VideoOutput:
    """A finished video published at its final path."""

    path: Path
    duration_seconds: float
    frame_rate: float
    frame_count: int
    width: int
    height: int
    video_codec: str


@runtime_checkable
class BaseVideoEncoder(Protocol):
    """Protocol implemented by video encoding backends.

    Implementations should raise :class:`narrator.errors.EncodeError` for all
    operational errors and :class:`narrator.errors.PipelineCancelled` when
    ``stop_event`` interrupts them. Nothing may be left at ``output_path``
    unless the encode succeeded.
    """

    def encode(
        self,
        frame_pattern: str,
        frame_rate: float,
        audio_path: Path | str,
        duration_seconds: float,
        output_path: Path | str,
        stop_event: Optional[threading.Event] = None,
    ) -> VideoOutput:
        """Mux the numbered frames and the audio track into ``output_path``."""


__all__ = ["BaseVideoEncoder", "VideoOutput"]
