"""macOS ``say`` command backend."""

from __future__ import annotations

import os
import shutil
import sys
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


class MacOSTTSBackend(BaseTTSBackend):
    """Backend using the macOS ``say`` command line utility."""

    name = "macos_say"

    def _resolve_executable(self) -> str:
        if self.executable_path:
            return self.executable_path
        return "say"

    def check_available(self, options: SpeechOptions) -> None:
        executable = self._resolve_executable()
        if self.executable_path is None and sys.platform != "darwin":
            raise TTSInitializationError("The macOS 'say' command is only available on macOS")
        if shutil.which(executable) is None and not os.path.isfile(executable):
            raise TTSInitializationError(f"Speech executable '{executable}' was not found")

    def build_command(self, text_path: str, destination: str, options: SpeechOptions) -> list[str]:
        cmd = [self._resolve_executable()]
        locale = options.locale
        if locale is not None and locale.display_name:
            cmd.extend(["-v", locale.display_name])
        cmd.extend(["-o", destination, "-f", text_path])
        return cmd

    def synthesize(
        self,
        *,
        text: str,
        options: SpeechOptions,
        stop_event: Optional[threading.Event] = None,
    ) -> AudioSegment:
        self.check_available(options)
        with tempfile.TemporaryDirectory(prefix="narrator-say-") as work_dir:
            text_path = os.path.join(work_dir, "narration.txt")
            destination = os.path.join(work_dir, "narration.aiff")
            with open(text_path, "w", encoding="utf-8") as handle:
                handle.write(text)

            try:
                run_command(self.build_command(text_path, destination, options), stop_event=stop_event)
            except CommandCancelledError as exc:
                raise PipelineCancelled("Speech synthesis cancelled") from exc
            except CommandExecutionError as exc:
                raise TTSBackendError(
                    f"macOS TTS synthesis failed: {exc.stderr_tail() or exc}"
                ) from exc

            try:
                return AudioSegment.from_file(destination, format="aiff")
            except (CouldntDecodeError, OSError) as exc:
                raise TTSBackendError("macOS TTS produced no readable audio") from exc


__all__ = ["MacOSTTSBackend"]
