"""Typed errors surfaced by the narration pipeline stages."""

from __future__ import annotations

from typing import Optional


class PipelineError(RuntimeError):
    """Base class for stage failures that terminate a render job.

    ``str(error)`` is the single human-readable message shown to users: it
    names the failed stage and the underlying cause.
    """

    stage_label = "Pipeline"

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        self.detail = message
        self.cause = cause
        super().__init__(f"{self.stage_label} failed: {message}")


class InputError(PipelineError):
    """Raised when narration text, options or render geometry are unusable."""

    stage_label = "Input validation"


class SynthesisError(PipelineError):
    """Raised when the speech engine cannot produce the narration audio."""

    stage_label = "Speech synthesis"

    INITIALIZATION = "initialization"
    SYNTHESIS = "synthesis"

    def __init__(
        self,
        message: str,
        *,
        kind: str = SYNTHESIS,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.kind = kind
        super().__init__(message, cause=cause)


class FrameGenerationError(PipelineError):
    """Raised when a frame cannot be rendered or the frame set is incomplete."""

    stage_label = "Frame generation"


class EncodeError(PipelineError):
    """Raised when the encoder cannot be started, fails, or produces no output."""

    stage_label = "Encoding"


class PipelineCancelled(Exception):
    """Raised when a job stops because cancellation was requested.

    Not a :class:`PipelineError`; callers treat it as a clean abort with no
    failure message.
    """

    def __init__(self, message: str = "Render job cancelled") -> None:
        super().__init__(message)


__all__ = [
    "EncodeError",
    "FrameGenerationError",
    "InputError",
    "PipelineCancelled",
    "PipelineError",
    "SynthesisError",
]
