"""Layered configuration for narrator."""
from __future__ import annotations

from .constants import (
    CONF_DIR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_FFMPEG_PATH,
    DEFAULT_LOCAL_CONFIG_PATH,
    DEFAULT_TMP_DIR,
)
from .loader import get_settings, load_configuration, reset_settings
from .settings import (
    EnvironmentOverrides,
    NarratorSettings,
    apply_settings_updates,
    load_environment_overrides,
)

__all__ = [
    "CONF_DIR",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_FFMPEG_PATH",
    "DEFAULT_LOCAL_CONFIG_PATH",
    "DEFAULT_TMP_DIR",
    "EnvironmentOverrides",
    "NarratorSettings",
    "apply_settings_updates",
    "get_settings",
    "load_configuration",
    "load_environment_overrides",
    "reset_settings",
]
