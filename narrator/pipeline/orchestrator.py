"""Sequential render pipeline: text to narration audio to frames to video."""

from __future__ import annotations

import math
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

from narrator import config_manager as cfg
from narrator import logging_manager as log_mgr
from narrator.audio.synthesizer import SpeechSynthesizer
from narrator.config_manager import NarratorSettings
from narrator.errors import (
    EncodeError,
    FrameGenerationError,
    InputError,
    PipelineCancelled,
    PipelineError,
    SynthesisError,
)
from narrator.fsutils import remove_tree
from narrator.observability import pipeline_stage, record_metric
from narrator.text.extraction import extract_narration_text
from narrator.video.backends import BaseVideoEncoder, VideoOutput, create_video_encoder
from narrator.video.frames import MAX_FRAME_COUNT, FrameGenerator, frame_count_for

from .job import PipelineJob, PipelineStage, RenderRequest

logger = log_mgr.logger

NARRATION_FILENAME = "narration.wav"
FRAMES_DIRNAME = "frames"

_STAGE_ERRORS = {
    PipelineStage.VALIDATING_INPUTS: InputError,
    PipelineStage.SYNTHESIZING_AUDIO: SynthesisError,
    PipelineStage.GENERATING_FRAMES: FrameGenerationError,
    PipelineStage.ENCODING: EncodeError,
}


def _stage_error(stage: PipelineStage, exc: BaseException) -> PipelineError:
    """Wrap an unexpected exception in the error type of the stage it escaped from."""

    error_cls = _STAGE_ERRORS.get(stage, PipelineError)
    return error_cls(str(exc) or type(exc).__name__, cause=exc)


class RenderHandle:
    """Caller-side view of a submitted render job."""

    def __init__(self, job: PipelineJob, future: "Future[VideoOutput]") -> None:
        self._job = job
        self._future = future

    @property
    def job(self) -> PipelineJob:
        return self._job

    def cancel(self) -> None:
        """Ask the job to stop at its next cancellation point."""

        self._job.stop_event.set()

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the job settles without raising its error."""

        finished, _ = wait([self._future], timeout=timeout)
        return bool(finished)

    def result(self, timeout: Optional[float] = None) -> VideoOutput:
        """Wait for the job and return its output or raise its error."""

        return self._future.result(timeout=timeout)


class PipelineOrchestrator:
    """Run render jobs one at a time, each in its own scratch directory.

    Starting a new job while another is in flight cancels the older one; the
    new job is queued on the single worker and begins once the superseded job
    has cleaned up.
    """

    def __init__(
        self,
        settings: Optional[NarratorSettings] = None,
        *,
        synthesizer: Optional[SpeechSynthesizer] = None,
        frame_generator: Optional[FrameGenerator] = None,
        encoder: Optional[BaseVideoEncoder] = None,
    ) -> None:
        self._settings = settings or cfg.get_settings()
        self._synthesizer = synthesizer or SpeechSynthesizer(
            config=self._settings, timeout=self._settings.synthesis_timeout_seconds
        )
        self._frame_generator = frame_generator or FrameGenerator.from_settings(self._settings)
        self._encoder = encoder or create_video_encoder("ffmpeg", self._settings)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="narrator-pipeline")
        self._lock = threading.Lock()
        self._current: Optional[PipelineJob] = None
        self._closed = False

    @property
    def settings(self) -> NarratorSettings:
        return self._settings

    @property
    def current_job(self) -> Optional[PipelineJob]:
        return self._current

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def start(self, request: RenderRequest) -> RenderHandle:
        """Queue ``request``, superseding any job that has not finished yet."""

        with self._lock:
            if self._closed:
                raise RuntimeError("PipelineOrchestrator has been closed")
            previous = self._current
            if previous is not None and not previous.is_terminal:
                previous.stop_event.set()
                logger.info(
                    "Superseding render job %s",
                    previous.job_id,
                    extra={"event": "pipeline.job.superseded", "job_id": previous.job_id},
                )
            job = PipelineJob(job_id=uuid4().hex, request=request)
            self._current = job
            future = self._executor.submit(self._run, job)
        return RenderHandle(job, future)

    def render(self, request: RenderRequest) -> VideoOutput:
        return self.start(request).result()

    def render_html(self, html: str, output_path: Path | str, **overrides: Any) -> VideoOutput:
        """Extract narration from ``html`` and render it to ``output_path``."""

        text = extract_narration_text(html)
        request = RenderRequest.from_settings(text, output_path, self._settings, **overrides)
        return self.render(request)

    def cancel(self) -> bool:
        """Cancel the in-flight job, if any; safe to call from any thread."""

        with self._lock:
            job = self._current
            if job is None or job.is_terminal:
                return False
            job.stop_event.set()
        logger.info(
            "Cancellation requested for render job %s",
            job.job_id,
            extra={"event": "pipeline.job.cancel_requested", "job_id": job.job_id},
        )
        return True

    def close(self, *, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self.cancel()
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "PipelineOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Job execution
    # ------------------------------------------------------------------
    def _run(self, job: PipelineJob) -> VideoOutput:
        with log_mgr.log_context(job_id=job.job_id):
            logger.info("Render job started", extra={"event": "pipeline.job.start"})
            try:
                output = self._execute(job)
            except PipelineCancelled as exc:
                self._finish(job, PipelineStage.CANCELLED, exc)
                raise
            except PipelineError as exc:
                self._finish(job, PipelineStage.FAILED, exc)
                raise
            except Exception as exc:
                error = _stage_error(job.stage, exc)
                self._finish(job, PipelineStage.FAILED, error)
                raise error from exc
            self._finish(job, PipelineStage.DONE)
            return output

    def _execute(self, job: PipelineJob) -> VideoOutput:
        self._check_cancelled(job)

        job.advance(PipelineStage.VALIDATING_INPUTS)
        with pipeline_stage(PipelineStage.VALIDATING_INPUTS.value):
            self._validate(job)
        self._check_cancelled(job)

        job.scratch_dir = self._create_scratch_dir(job)

        job.advance(PipelineStage.SYNTHESIZING_AUDIO)
        with pipeline_stage(PipelineStage.SYNTHESIZING_AUDIO.value):
            job.audio = self._synthesizer.synthesize(
                job.text,
                job.speech_options,
                job.scratch_dir / NARRATION_FILENAME,
                stop_event=job.stop_event,
            )
        if job.duration_seconds is None:
            job.duration_seconds = self._duration_from_audio(job)
        self._check_cancelled(job)

        job.advance(PipelineStage.GENERATING_FRAMES)
        with pipeline_stage(
            PipelineStage.GENERATING_FRAMES.value,
            {"frames": frame_count_for(job.frame_rate, job.duration_seconds)},
        ):
            job.frames = self._frame_generator.generate(
                job.text,
                job.width,
                job.height,
                job.frame_rate,
                job.duration_seconds,
                job.scratch_dir / FRAMES_DIRNAME,
                stop_event=job.stop_event,
            )
        self._check_cancelled(job)

        job.advance(PipelineStage.ENCODING)
        with pipeline_stage(PipelineStage.ENCODING.value):
            job.output = self._encoder.encode(
                job.frames.pattern,
                job.frame_rate,
                job.audio.path,
                job.duration_seconds,
                Path(job.request.output_path),
                stop_event=job.stop_event,
            )
        return job.output

    def _finish(
        self,
        job: PipelineJob,
        stage: PipelineStage,
        error: Optional[BaseException] = None,
    ) -> None:
        job.error = error
        job.advance(stage)
        if job.scratch_dir is not None:
            if stage is PipelineStage.DONE and self._settings.keep_scratch:
                logger.info(
                    "Keeping scratch directory %s",
                    job.scratch_dir,
                    extra={"event": "pipeline.scratch.kept"},
                )
            else:
                remove_tree(job.scratch_dir)

        elapsed = job.history[-1][1] - job.created_at
        record_metric("pipeline.job.duration", elapsed.total_seconds() * 1000.0, {"status": stage.value})
        if stage is PipelineStage.DONE:
            logger.info(
                "Render job finished: %s",
                job.output.path if job.output else "",
                extra={"event": "pipeline.job.complete", "status": stage.value},
            )
        elif stage is PipelineStage.CANCELLED:
            logger.info("Render job cancelled", extra={"event": "pipeline.job.cancelled", "status": stage.value})
        else:
            logger.error(
                "Render job failed: %s",
                error,
                extra={"event": "pipeline.job.failed", "status": stage.value},
            )

    @staticmethod
    def _check_cancelled(job: PipelineJob) -> None:
        if job.cancel_requested:
            raise PipelineCancelled()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _validate(self, job: PipelineJob) -> None:
        request = job.request
        settings = self._settings

        text = request.text if isinstance(request.text, str) else ""
        text = text.strip()
        if not text:
            raise InputError("narration text is empty")
        if request.speech_options is None:
            raise InputError("speech options are required")

        width = settings.video_width if request.width is None else request.width
        height = settings.video_height if request.height is None else request.height
        for label, value in (("width", width), ("height", height)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise InputError(f"video {label} must be a positive integer, got {value!r}")
            if value % 2:
                raise InputError(f"video {label} must be even for {settings.pixel_format}, got {value}")

        frame_rate = settings.frame_rate if request.frame_rate is None else request.frame_rate
        if isinstance(frame_rate, bool) or not isinstance(frame_rate, (int, float)) or frame_rate <= 0:
            raise InputError(f"frame rate must be positive, got {frame_rate!r}")

        duration = request.duration_seconds
        if duration is not None:
            if isinstance(duration, bool) or not isinstance(duration, (int, float)) or duration <= 0:
                raise InputError(f"duration must be positive, got {duration!r}")
            if duration > settings.max_duration_seconds:
                raise InputError(
                    f"duration {duration:g}s exceeds the {settings.max_duration_seconds:g}s limit"
                )
            count = frame_count_for(frame_rate, duration)
            if count < 1:
                raise InputError(f"{frame_rate:g} fps for {duration:g}s yields no frames")
            if count > MAX_FRAME_COUNT:
                raise InputError(f"{count} frames exceeds the limit of {MAX_FRAME_COUNT}")

        output_path = Path(request.output_path)
        if output_path.is_dir():
            raise InputError(f"output path {output_path} is a directory")
        if not output_path.suffix:
            raise InputError(
                f"output path {output_path} needs a file extension to pick the container format"
            )

        job.text = text
        job.speech_options = request.speech_options
        job.width = width
        job.height = height
        job.frame_rate = frame_rate
        job.duration_seconds = duration

    def _create_scratch_dir(self, job: PipelineJob) -> Path:
        scratch = Path(self._settings.tmp_dir).expanduser() / f"job-{job.job_id}"
        try:
            (scratch / FRAMES_DIRNAME).mkdir(parents=True, exist_ok=False)
        except OSError as exc:
            raise PipelineError(f"cannot create scratch directory {scratch}: {exc}", cause=exc) from exc
        logger.debug(
            "Created scratch directory %s",
            scratch,
            extra={"event": "pipeline.scratch.created"},
        )
        return scratch

    def _duration_from_audio(self, job: PipelineJob) -> float:
        """Audio length rounded up to a whole frame and capped by the limits."""

        assert job.audio is not None
        frames = math.ceil(job.audio.duration_seconds * job.frame_rate)
        limit = min(
            MAX_FRAME_COUNT,
            math.floor(self._settings.max_duration_seconds * job.frame_rate),
        )
        frames = max(1, min(frames, limit))
        duration = frames / job.frame_rate
        logger.info(
            "Clip length follows narration: %.3fs",
            duration,
            extra={"event": "pipeline.duration.derived", "frames": frames},
        )
        return duration


__all__ = ["PipelineOrchestrator", "RenderHandle"]
