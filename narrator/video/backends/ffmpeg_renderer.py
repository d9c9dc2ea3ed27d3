"""FFmpeg-backed muxer that joins a frame sequence with a narration track."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional, Sequence
from uuid import uuid4

from PIL import Image

from narrator import logging_manager as log_mgr
from narrator.errors import EncodeError, PipelineCancelled
from narrator.fsutils import AtomicMoveError, atomic_move, safe_remove
from narrator.media.command_runner import run_command
from narrator.media.exceptions import CommandCancelledError, CommandExecutionError

from .base import BaseVideoEncoder, VideoOutput

logger = log_mgr.logger

DEFAULT_VIDEO_CODEC = "libx264"
DEFAULT_PIXEL_FORMAT = "yuv420p"
DEFAULT_AUDIO_CODEC = "aac"
# Pads a short narration with silence; the output ``-t`` clamps the length.
DEFAULT_AUDIO_FILTER: Sequence[str] = ("-af", "apad")


def _format_rate(value: float) -> str:
    return f"{value:g}"


def _format_seconds(value: float) -> str:
    return f"{value:.3f}"


def temporary_output_path(output_path: Path) -> Path:
    """Hidden sibling of ``output_path`` keeping its extension for muxer selection."""

    return output_path.with_name(f".{output_path.stem}.partial-{uuid4().hex}{output_path.suffix}")


class FFmpegMuxer(BaseVideoEncoder):
    """Encode PNG frames plus an audio file into one video using FFmpeg."""

    def __init__(
        self,
        *,
        executable: str = "ffmpeg",
        loglevel: str = "error",
        video_codec: str = DEFAULT_VIDEO_CODEC,
        pixel_format: str = DEFAULT_PIXEL_FORMAT,
        audio_codec: str = DEFAULT_AUDIO_CODEC,
        timeout: Optional[float] = None,
        command_runner=run_command,
    ) -> None:
        self._run_external = command_runner
        self._executable = executable
        self._loglevel = loglevel
        self._video_codec = video_codec
        self._pixel_format = pixel_format
        self._audio_codec = audio_codec
        self._timeout = timeout

    @property
    def video_codec(self) -> str:
        return self._video_codec

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def build_command(
        self,
        frame_pattern: str,
        frame_rate: float,
        audio_path: Path | str,
        duration_seconds: float,
        output_path: Path | str,
    ) -> list[str]:
        """Return the ffmpeg argv; input and output option order is significant."""

        rate = _format_rate(frame_rate)
        command = [self._executable, "-hide_banner", "-loglevel", self._loglevel, "-y"]
        command.extend(["-framerate", rate, "-start_number", "0", "-i", str(frame_pattern)])
        command.extend(["-i", str(audio_path)])
        command.extend(["-map", "0:v:0", "-map", "1:a:0"])
        command.extend(["-c:v", self._video_codec, "-pix_fmt", self._pixel_format, "-r", rate])
        command.extend(["-c:a", self._audio_codec])
        command.extend(DEFAULT_AUDIO_FILTER)
        command.extend(["-t", _format_seconds(duration_seconds)])
        command.append(str(output_path))
        return command

    def encode(
        self,
        frame_pattern: str,
        frame_rate: float,
        audio_path: Path | str,
        duration_seconds: float,
        output_path: Path | str,
        stop_event: Optional[threading.Event] = None,
    ) -> VideoOutput:
        if frame_rate <= 0 or duration_seconds <= 0:
            raise EncodeError("frame rate and duration must be positive")
        audio = Path(audio_path)
        if not audio.is_file() or audio.stat().st_size == 0:
            raise EncodeError(f"audio track {audio} is missing or empty")
        width, height = self._probe_frame_size(frame_pattern)

        final_path = Path(output_path)
        try:
            final_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise EncodeError(f"cannot create {final_path.parent}: {exc}", cause=exc) from exc
        temp_path = temporary_output_path(final_path)

        command = self.build_command(
            frame_pattern, frame_rate, audio, duration_seconds, temp_path
        )
        logger.info(
            "Encoding video to %s",
            final_path,
            extra={
                "event": "video.encode.start",
                "attributes": {"backend": "ffmpeg", "codec": self._video_codec},
            },
        )

        published = False
        try:
            self._run_command(command, stop_event)
            if not temp_path.is_file() or temp_path.stat().st_size == 0:
                raise EncodeError("ffmpeg reported success but wrote no output")
            try:
                atomic_move(temp_path, final_path, overwrite=True)
            except (AtomicMoveError, OSError) as exc:
                raise EncodeError(f"could not publish {final_path}: {exc}", cause=exc) from exc
            published = True
        finally:
            if not published:
                safe_remove(temp_path)

        logger.info(
            "Video saved to: %s",
            final_path,
            extra={"event": "video.encode.complete", "attributes": {"path": str(final_path)}},
        )
        return VideoOutput(
            path=final_path,
            duration_seconds=duration_seconds,
            frame_rate=frame_rate,
            frame_count=int(round(frame_rate * duration_seconds)),
            width=width,
            height=height,
            video_codec=self._video_codec,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _run_command(self, command: Sequence[str], stop_event: Optional[threading.Event]) -> None:
        logger.debug(
            "Executing FFmpeg command", extra={"event": "video.encode.ffmpeg", "cmd": list(command)}
        )
        try:
            self._run_external(command, timeout=self._timeout, stop_event=stop_event)
        except CommandCancelledError as exc:
            raise PipelineCancelled("Encoding cancelled") from exc
        except CommandExecutionError as exc:
            stderr = exc.stderr_tail()
            if stderr:
                logger.error(
                    "FFmpeg stderr: %s",
                    stderr,
                    extra={"event": "video.encode.stderr"},
                )
            if exc.timeout:
                message = f"ffmpeg did not finish within {self._timeout:g} seconds"
            elif exc.returncode is not None:
                message = f"ffmpeg exited with status {exc.returncode}"
            else:
                message = f"could not start {self._executable}"
            raise EncodeError(message, cause=exc) from exc

    @staticmethod
    def _probe_frame_size(frame_pattern: str) -> tuple[int, int]:
        first_frame = frame_pattern % 0
        try:
            with Image.open(first_frame) as image:
                return image.size
        except (OSError, ValueError) as exc:
            raise EncodeError(f"first frame {first_frame} is unreadable", cause=exc) from exc


__all__ = ["FFmpegMuxer", "temporary_output_path"]
