"""eSpeak NG command backend for offline synthesis on Linux."""

from __future__ import annotations

import os
import shutil
import tempfile
import threading
from typing import Optional

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from narrator.audio.options import SpeechOptions
from narrator.errors import PipelineCancelled
from narrator.media.command_runner import run_command
from narrator.media.exceptions import CommandCancelledError, CommandExecutionError

from .base import BaseTTSBackend, TTSBackendError, TTSInitializationError

_CANDIDATE_EXECUTABLES = ("espeak-ng", "espeak")
_DEFAULT_PITCH = 50
_DEFAULT_AMPLITUDE = 100


class ESpeakTTSBackend(BaseTTSBackend):
    """Backend driving the ``espeak-ng`` (or legacy ``espeak``) executable."""

    name = "espeak"
    supports_pitch = True
    supports_volume = True

    def _resolve_executable(self) -> Optional[str]:
        if self.executable_path:
            return self.executable_path
        for candidate in _CANDIDATE_EXECUTABLES:
            found = shutil.which(candidate)
            if found:
                return found
        return None

    def check_available(self, options: SpeechOptions) -> None:
        executable = self._resolve_executable()
        if executable is None or (
            shutil.which(executable) is None and not os.path.isfile(executable)
        ):
            raise TTSInitializationError("espeak-ng is not installed")

    @staticmethod
    def voice_for(options: SpeechOptions) -> Optional[str]:
        locale = options.locale
        if locale is None:
            return None
        if locale.display_name:
            return locale.display_name
        return locale.tag.lower()

    def build_command(
        self, executable: str, text_path: str, destination: str, options: SpeechOptions
    ) -> list[str]:
        pitch = max(0, min(99, round(_DEFAULT_PITCH * options.pitch)))
        amplitude = max(0, min(200, round(_DEFAULT_AMPLITUDE * options.volume)))
        cmd = [executable, "-w", destination, "-p", str(pitch), "-a", str(amplitude)]
        voice = self.voice_for(options)
        if voice:
            cmd.extend(["-v", voice])
        cmd.extend(["-f", text_path])
        return cmd

    def synthesize(
        self,
        *,
        text: str,
        options: SpeechOptions,
        stop_event: Optional[threading.Event] = None,
    ) -> AudioSegment:
        self.check_available(options)
        executable = self._resolve_executable()
        assert executable is not None
        with tempfile.TemporaryDirectory(prefix="narrator-espeak-") as work_dir:
            text_path = os.path.join(work_dir, "narration.txt")
            destination = os.path.join(work_dir, "narration.wav")
            with open(text_path, "w", encoding="utf-8") as handle:
                handle.write(text)

            command = self.build_command(executable, text_path, destination, options)
            try:
                run_command(command, stop_event=stop_event)
            except CommandCancelledError as exc:
                raise PipelineCancelled("Speech synthesis cancelled") from exc
            except CommandExecutionError as exc:
                stderr = exc.stderr_tail()
                if "voice" in stderr.lower():
                    raise TTSInitializationError(
                        f"espeak-ng has no voice for '{self.voice_for(options)}'"
                    ) from exc
                raise TTSBackendError(f"espeak-ng synthesis failed: {stderr or exc}") from exc

            try:
                return AudioSegment.from_file(destination, format="wav")
            except (CouldntDecodeError, OSError) as exc:
                raise TTSBackendError("espeak-ng produced no readable audio") from exc


__all__ = ["ESpeakTTSBackend"]
