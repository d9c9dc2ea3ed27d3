"""gTTS backend implementation."""

from __future__ import annotations

import io
import threading
from typing import Optional

from gtts import gTTS, gTTSError
from gtts.lang import tts_langs
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from narrator.audio.options import SpeechOptions
from narrator.errors import PipelineCancelled

from .base import BaseTTSBackend, TTSBackendError, TTSInitializationError

DEFAULT_LANGUAGE = "en"

# Regional accents are served from country-specific Google domains.
_REGION_TLDS = {
    "AU": "com.au",
    "BR": "com.br",
    "CA": "ca",
    "ES": "es",
    "FR": "fr",
    "GB": "co.uk",
    "IE": "ie",
    "IN": "co.in",
    "MX": "com.mx",
    "NG": "com.ng",
    "NZ": "co.nz",
    "PT": "pt",
    "US": "com",
    "ZA": "co.za",
}


class GTTSBackend(BaseTTSBackend):
    """Backend using the Google Text-to-Speech API."""

    name = "gtts"

    def resolve_language(self, options: SpeechOptions) -> tuple[str, str]:
        """Return the ``(lang, tld)`` pair gTTS should use for ``options``."""

        locale = options.locale
        if locale is None:
            return DEFAULT_LANGUAGE, "com"
        supported = tts_langs()
        tld = _REGION_TLDS.get(locale.region or "", "com")
        if locale.region and f"{locale.language}-{locale.region}" in supported:
            return f"{locale.language}-{locale.region}", tld
        if locale.language in supported:
            return locale.language, tld
        raise TTSInitializationError(f"gTTS does not support locale '{locale.tag}'")

    def check_available(self, options: SpeechOptions) -> None:
        self.resolve_language(options)

    def synthesize(
        self,
        *,
        text: str,
        options: SpeechOptions,
        stop_event: Optional[threading.Event] = None,
    ) -> AudioSegment:
        lang, tld = self.resolve_language(options)
        try:
            tts = gTTS(text=text, lang=lang, tld=tld)
        except (AssertionError, ValueError) as exc:
            raise TTSInitializationError(f"gTTS rejected the request: {exc}") from exc

        buffer = io.BytesIO()
        try:
            for chunk in tts.stream():
                if stop_event is not None and stop_event.is_set():
                    raise PipelineCancelled("Speech synthesis cancelled")
                buffer.write(chunk)
        except gTTSError as exc:
            raise TTSBackendError(f"gTTS synthesis failed: {exc}") from exc

        buffer.seek(0)
        try:
            return AudioSegment.from_file(buffer, format="mp3")
        except (CouldntDecodeError, OSError) as exc:
            raise TTSBackendError("gTTS returned undecodable audio") from exc


__all__ = ["GTTSBackend"]
