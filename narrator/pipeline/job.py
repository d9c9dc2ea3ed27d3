"""In-memory representations of render jobs and their lifecycle."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Tuple

from narrator.audio.options import AudioArtifact, Locale, SpeechOptions
from narrator.config_manager import NarratorSettings
from narrator.video.backends.base import VideoOutput
from narrator.video.frames import FrameSet


class PipelineStage(str, Enum):
    """Enumeration of the stages a render job moves through."""

    IDLE = "idle"
    VALIDATING_INPUTS = "validating_inputs"
    SYNTHESIZING_AUDIO = "synthesizing_audio"
    GENERATING_FRAMES = "generating_frames"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STAGES = frozenset({PipelineStage.DONE, PipelineStage.FAILED, PipelineStage.CANCELLED})

_ABORT = {PipelineStage.FAILED, PipelineStage.CANCELLED}
_ALLOWED_TRANSITIONS = {
    PipelineStage.IDLE: {PipelineStage.VALIDATING_INPUTS, PipelineStage.CANCELLED},
    PipelineStage.VALIDATING_INPUTS: {PipelineStage.SYNTHESIZING_AUDIO, *_ABORT},
    PipelineStage.SYNTHESIZING_AUDIO: {PipelineStage.GENERATING_FRAMES, *_ABORT},
    PipelineStage.GENERATING_FRAMES: {PipelineStage.ENCODING, *_ABORT},
    PipelineStage.ENCODING: {PipelineStage.DONE, *_ABORT},
}


class PipelineJobTransitionError(ValueError):
    """Raised when an invalid state transition is requested for a job."""

    def __init__(self, job_id: str, job: "PipelineJob", message: str) -> None:
        super().__init__(message)
        self.job_id = job_id
        self.job = job


@dataclass(frozen=True, slots=True)
class RenderRequest:
    """Caller-facing description of one narrated video.

    ``width``, ``height`` and ``frame_rate`` fall back to the active settings
    when left as ``None``. A ``duration_seconds`` of ``None`` lets the
    narration length decide the clip length.
    """

    text: str
    output_path: Path
    speech_options: Optional[SpeechOptions] = None
    width: Optional[int] = None
    height: Optional[int] = None
    frame_rate: Optional[float] = None
    duration_seconds: Optional[float] = None

    @classmethod
    def from_settings(
        cls,
        text: str,
        output_path: Path | str,
        settings: NarratorSettings,
        **overrides: Any,
    ) -> "RenderRequest":
        """Build a request whose unset fields take the configured defaults."""

        locale = None
        if settings.default_language:
            locale = Locale(settings.default_language, settings.default_region)
        values: dict[str, Any] = {
            "speech_options": SpeechOptions(locale=locale),
            "width": settings.video_width,
            "height": settings.video_height,
            "frame_rate": settings.frame_rate,
            "duration_seconds": settings.duration_seconds,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(text=text, output_path=Path(output_path), **values)


@dataclass
class PipelineJob:
    """State of one render request; owns every scratch artifact it creates."""

    job_id: str
    request: RenderRequest
    text: str = ""
    speech_options: Optional[SpeechOptions] = None
    stage: PipelineStage = PipelineStage.IDLE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    history: List[Tuple[PipelineStage, datetime]] = field(default_factory=list)
    stop_event: threading.Event = field(default_factory=threading.Event)
    scratch_dir: Optional[Path] = None
    width: int = 0
    height: int = 0
    frame_rate: float = 0.0
    duration_seconds: Optional[float] = None
    audio: Optional[AudioArtifact] = None
    frames: Optional[FrameSet] = None
    output: Optional[VideoOutput] = None
    error: Optional[BaseException] = None

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    @property
    def cancel_requested(self) -> bool:
        return self.stop_event.is_set()

    def advance(self, stage: PipelineStage) -> None:
        """Move to ``stage``; only forward transitions are accepted."""

        allowed = _ALLOWED_TRANSITIONS.get(self.stage, set())
        if stage not in allowed:
            raise PipelineJobTransitionError(
                self.job_id,
                self,
                f"Cannot move job {self.job_id} from {self.stage.value} to {stage.value}",
            )
        self.stage = stage
        self.history.append((stage, datetime.now(timezone.utc)))


__all__ = [
    "PipelineJob",
    "PipelineJobTransitionError",
    "PipelineStage",
    "RenderRequest",
    "TERMINAL_STAGES",
]
