"""Value objects exchanged with speech synthesis backends."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

MIN_PITCH = 0.5
MAX_PITCH = 2.0
MIN_VOLUME = 0.0
MAX_VOLUME = 1.0


@dataclass(frozen=True, slots=True)
class Locale:
    """Language, optional region and optional engine-specific voice name."""

    language: str
    region: Optional[str] = None
    display_name: Optional[str] = None

    def __post_init__(self) -> None:
        language = (self.language or "").strip().lower()
        if not language:
            raise ValueError("Locale language must not be empty")
        object.__setattr__(self, "language", language)
        region = (self.region or "").strip().upper() or None
        object.__setattr__(self, "region", region)
        name = (self.display_name or "").strip() or None
        object.__setattr__(self, "display_name", name)

    @property
    def tag(self) -> str:
        """Return the ``language-REGION`` tag (or just the language)."""

        return f"{self.language}-{self.region}" if self.region else self.language

    @classmethod
    def parse(cls, value: str, display_name: Optional[str] = None) -> "Locale":
        """Build a locale from ``en``, ``en-US`` or ``en_US``."""

        parts = value.replace("_", "-").split("-", 1)
        region = parts[1] if len(parts) > 1 else None
        return cls(language=parts[0], region=region, display_name=display_name)

    def __str__(self) -> str:
        if self.display_name:
            return f"{self.display_name} ({self.tag})"
        return self.tag


@dataclass(frozen=True, slots=True)
class SpeechOptions:
    """Voice selection plus pitch and volume multipliers for a synthesis call."""

    locale: Optional[Locale] = None
    pitch: float = 1.0
    volume: float = 1.0

    def __post_init__(self) -> None:
        pitch = 1.0 if self.pitch is None else float(self.pitch)
        volume = 1.0 if self.volume is None else float(self.volume)
        if not MIN_PITCH <= pitch <= MAX_PITCH:
            raise ValueError(f"pitch must be within [{MIN_PITCH}, {MAX_PITCH}], got {pitch}")
        if not MIN_VOLUME <= volume <= MAX_VOLUME:
            raise ValueError(f"volume must be within [{MIN_VOLUME}, {MAX_VOLUME}], got {volume}")
        object.__setattr__(self, "pitch", pitch)
        object.__setattr__(self, "volume", volume)


@dataclass(frozen=True, slots=True)
class AudioArtifact:
    """A synthesized narration track that has been flushed to disk."""

    path: Path
    duration_seconds: float
    format: str = "wav"
    backend: str = ""


__all__ = [
    "AudioArtifact",
    "Locale",
    "MAX_PITCH",
    "MAX_VOLUME",
    "MIN_PITCH",
    "MIN_VOLUME",
    "SpeechOptions",
]
