"""Speech synthesis front-end shared by every TTS backend."""

from __future__ import annotations

import math
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional

from pydub import AudioSegment

from narrator import logging_manager as log_mgr
from narrator.errors import PipelineCancelled, SynthesisError
from narrator.fsutils import fsync_file, safe_remove

from .backends import BaseTTSBackend, TTSBackendError, TTSInitializationError, get_tts_backend
from .options import AudioArtifact, SpeechOptions

logger = log_mgr.logger

DEFAULT_POLL_INTERVAL = 0.05


def _apply_volume(segment: AudioSegment, volume: float) -> AudioSegment:
    if volume >= 1.0:
        return segment
    if volume <= 0.0:
        return AudioSegment.silent(duration=len(segment), frame_rate=segment.frame_rate)
    return segment.apply_gain(20.0 * math.log10(volume))


class SpeechSynthesizer:
    """Drive a :class:`BaseTTSBackend` and persist its output as a WAV artifact.

    The backend runs on a private worker thread so the caller can abandon it
    when the job's ``stop_event`` is set or ``timeout`` elapses. Command line
    backends observe the same event and terminate their process; results of an
    abandoned in-process call are discarded.
    """

    def __init__(
        self,
        backend: Optional[BaseTTSBackend] = None,
        *,
        config: Optional[Any] = None,
        timeout: Optional[float] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._backend = backend
        self._config = config
        self._timeout = timeout
        self._poll_interval = poll_interval

    @property
    def backend(self) -> BaseTTSBackend:
        if self._backend is None:
            try:
                self._backend = get_tts_backend(self._config)
            except KeyError as exc:
                raise SynthesisError(
                    str(exc).strip("'\""), kind=SynthesisError.INITIALIZATION, cause=exc
                ) from exc
        return self._backend

    def synthesize(
        self,
        text: str,
        options: SpeechOptions,
        output_path: Path | str,
        *,
        stop_event: Optional[threading.Event] = None,
    ) -> AudioArtifact:
        """Synthesize ``text`` into ``output_path`` and return the flushed artifact."""

        backend = self.backend
        destination = Path(output_path)

        try:
            backend.check_available(options)
        except TTSInitializationError as exc:
            raise SynthesisError(
                str(exc), kind=SynthesisError.INITIALIZATION, cause=exc
            ) from exc

        if options.pitch != 1.0 and not backend.supports_pitch:
            logger.warning(
                "Backend %s cannot adjust pitch; using the engine default.",
                backend.name,
                extra={"event": "audio.synthesis.pitch_unsupported", "pitch": options.pitch},
            )

        segment = self._run_backend(backend, text, options, stop_event)

        if len(segment) <= 0:
            raise SynthesisError(f"{backend.name} returned empty audio")
        if not backend.supports_volume:
            segment = _apply_volume(segment, options.volume)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            segment.export(str(destination), format="wav").close()
            fsync_file(destination)
        except OSError as exc:
            safe_remove(destination)
            raise SynthesisError(f"could not write audio to {destination}", cause=exc) from exc

        if not destination.exists() or destination.stat().st_size == 0:
            raise SynthesisError(f"{backend.name} produced an empty audio file")

        duration = len(segment) / 1000.0
        logger.info(
            "Narration audio written",
            extra={
                "event": "audio.synthesis.complete",
                "backend": backend.name,
                "duration_ms": len(segment),
                "path": str(destination),
            },
        )
        return AudioArtifact(
            path=destination,
            duration_seconds=duration,
            format="wav",
            backend=backend.name,
        )

    def _run_backend(
        self,
        backend: BaseTTSBackend,
        text: str,
        options: SpeechOptions,
        stop_event: Optional[threading.Event],
    ) -> AudioSegment:
        backend_stop = threading.Event()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="narrator-tts")
        future: Future[AudioSegment] = executor.submit(
            backend.synthesize, text=text, options=options, stop_event=backend_stop
        )
        deadline = None if self._timeout is None else time.monotonic() + self._timeout
        try:
            while True:
                if stop_event is not None and stop_event.is_set():
                    backend_stop.set()
                    future.cancel()
                    raise PipelineCancelled("Speech synthesis cancelled")
                if deadline is not None and time.monotonic() >= deadline:
                    backend_stop.set()
                    future.cancel()
                    raise SynthesisError(
                        f"{backend.name} did not finish within {self._timeout:g} seconds"
                    )
                if future.done():
                    break
                time.sleep(self._poll_interval)

            try:
                return future.result()
            except PipelineCancelled:
                raise
            except TTSInitializationError as exc:
                raise SynthesisError(
                    str(exc), kind=SynthesisError.INITIALIZATION, cause=exc
                ) from exc
            except TTSBackendError as exc:
                raise SynthesisError(str(exc), cause=exc) from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)


__all__ = ["SpeechSynthesizer"]
