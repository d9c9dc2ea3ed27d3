"""Base interfaces for text-to-speech backends."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Optional

from pydub import AudioSegment

from narrator.audio.options import SpeechOptions
from narrator.media.exceptions import MediaBackendError


class TTSBackendError(MediaBackendError):
    """Raised when a backend fails to synthesize audio."""


class TTSInitializationError(TTSBackendError):
    """Raised when the engine, voice or locale is unavailable before synthesis starts."""


class BaseTTSBackend(ABC):
    """Abstract base class for concrete TTS backends.

    Implementations should surface all operational failures as
    :class:`TTSBackendError` (or a subclass), using
    :class:`TTSInitializationError` when the engine or requested locale cannot
    be used at all. Backends that drive an external process pass
    ``stop_event`` to :func:`narrator.media.command_runner.run_command` so a
    cancelled job terminates the process.
    """

    name: str = "base"
    supports_pitch: bool = False
    supports_volume: bool = False

    def __init__(self, *, executable_path: Optional[str] = None) -> None:
        self._executable_path = executable_path

    @property
    def executable_path(self) -> Optional[str]:
        """Return the user-provided executable path override, if any."""

        return self._executable_path

    def check_available(self, options: SpeechOptions) -> None:
        """Raise :class:`TTSInitializationError` if ``options`` cannot be served."""

    @abstractmethod
    def synthesize(
        self,
        *,
        text: str,
        options: SpeechOptions,
        stop_event: Optional[threading.Event] = None,
    ) -> AudioSegment:
        """Generate speech audio for ``text``."""


__all__ = [
    "BaseTTSBackend",
    "TTSBackendError",
    "TTSInitializationError",
]
