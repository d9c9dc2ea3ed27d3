"""Registry and helpers for TTS backends."""

from __future__ import annotations

import sys
from typing import Any, Mapping, MutableMapping, Optional, Type

from narrator import config_manager as cfg

from .base import BaseTTSBackend, TTSBackendError, TTSInitializationError
from .espeak import ESpeakTTSBackend
from .gtts import GTTSBackend
from .macos import MacOSTTSBackend


_BACKENDS: MutableMapping[str, Type[BaseTTSBackend]] = {
    GTTSBackend.name: GTTSBackend,
    MacOSTTSBackend.name: MacOSTTSBackend,
    ESpeakTTSBackend.name: ESpeakTTSBackend,
}

_BACKEND_ALIASES = {
    "macos": MacOSTTSBackend.name,
    "say": MacOSTTSBackend.name,
    "google": GTTSBackend.name,
    "espeak-ng": ESpeakTTSBackend.name,
    "espeak_ng": ESpeakTTSBackend.name,
}


def get_default_backend_name() -> str:
    """Return the platform default backend identifier."""

    return MacOSTTSBackend.name if sys.platform == "darwin" else GTTSBackend.name


def available_backends() -> list[str]:
    """Return the sorted names of every registered backend."""

    return sorted(_BACKENDS)


def register_backend(name: str, backend_cls: Type[BaseTTSBackend]) -> None:
    """Register ``backend_cls`` under ``name``."""

    _BACKENDS[name.lower()] = backend_cls


def resolve_backend_name(value: Optional[str]) -> str:
    """Normalise ``value`` to a registered backend key, applying aliases."""

    normalized = (value or "").strip().lower()
    if not normalized or normalized == "auto":
        return get_default_backend_name()
    return _BACKEND_ALIASES.get(normalized, normalized)


def create_backend(
    name: str,
    *,
    executable_path: Optional[str] = None,
) -> BaseTTSBackend:
    """Instantiate the backend registered as ``name``."""

    key = resolve_backend_name(name)
    backend_cls = _BACKENDS.get(key)
    if backend_cls is None:
        raise KeyError(f"Unknown TTS backend: {name}")
    return backend_cls(executable_path=executable_path)


def _extract(config: Any, key: str) -> Optional[str]:
    if isinstance(config, Mapping):
        value = config.get(key)
    else:
        value = getattr(config, key, None)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def get_tts_backend(config: Optional[Any] = None) -> BaseTTSBackend:
    """Return an instantiated backend based on ``config`` and defaults.

    ``config`` may be a mapping or a settings object exposing ``tts_backend``
    and ``tts_executable_path``. When it does not name a backend (or asks for
    ``auto``) the active application settings are consulted.
    """

    backend_name: Optional[str] = None
    executable_override: Optional[str] = None
    if config is not None:
        backend_name = _extract(config, "tts_backend")
        executable_override = _extract(config, "tts_executable_path")

    if backend_name is None or backend_name.lower() == "auto":
        settings = cfg.get_settings()
        backend_name = _extract(settings, "tts_backend") or backend_name
        executable_override = executable_override or _extract(settings, "tts_executable_path")

    resolved = resolve_backend_name(backend_name)
    if resolved not in _BACKENDS:
        raise KeyError(f"Unsupported TTS backend '{backend_name}'")
    return create_backend(resolved, executable_path=executable_override)


__all__ = [
    "BaseTTSBackend",
    "ESpeakTTSBackend",
    "GTTSBackend",
    "MacOSTTSBackend",
    "TTSBackendError",
    "TTSInitializationError",
    "available_backends",
    "create_backend",
    "get_default_backend_name",
    "get_tts_backend",
    "register_backend",
    "resolve_backend_name",
]
