"""Speech synthesis for narration tracks."""

from .backends import (
    BaseTTSBackend,
    TTSBackendError,
    TTSInitializationError,
    available_backends,
    create_backend,
    get_default_backend_name,
    get_tts_backend,
    register_backend,
)
from .options import AudioArtifact, Locale, SpeechOptions
from .synthesizer import SpeechSynthesizer

__all__ = [
    "AudioArtifact",
    "BaseTTSBackend",
    "Locale",
    "SpeechOptions",
    "SpeechSynthesizer",
    "TTSBackendError",
    "TTSInitializationError",
    "available_backends",
    "create_backend",
    "get_default_backend_name",
    "get_tts_backend",
    "register_backend",
]
