"""Configuration loading utilities."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from narrator import logging_manager

from .constants import DEFAULT_CONFIG_PATH, DEFAULT_LOCAL_CONFIG_PATH
from .settings import NarratorSettings, apply_settings_updates, load_environment_overrides

logger = logging_manager.get_logger()

_ACTIVE_SETTINGS: Optional[NarratorSettings] = None


def _read_config_json(path: Optional[Path], label: str = "configuration") -> Dict[str, Any]:
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        logger.debug(
            "No %s found at %s.",
            label,
            path,
            extra={"event": "config.file.missing"},
        )
        return {}
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning(
            "Error loading %s from %s: %s. Proceeding without it.",
            label,
            path,
            exc,
            extra={"event": "config.file.invalid"},
        )
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "Ignoring %s at %s: top-level value must be an object.",
            label,
            path,
            extra={"event": "config.file.invalid"},
        )
        return {}
    logger.debug("Loaded %s from %s", label, path, extra={"event": "config.file.loaded"})
    return data


def load_configuration(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Load the layered configuration and return a dictionary view.

    Layers, lowest precedence first: ``conf/config.json``, the local override
    (``config_file`` or ``conf/config.local.json``), ``NARRATOR_*`` environment
    variables, then explicit ``overrides`` such as CLI flags.
    """

    global _ACTIVE_SETTINGS

    payload: Dict[str, Any] = {}
    payload.update(_read_config_json(DEFAULT_CONFIG_PATH, label="default configuration"))

    if config_file:
        override_path = Path(config_file).expanduser()
        if not override_path.is_absolute():
            override_path = (Path.cwd() / override_path).resolve()
    else:
        override_path = DEFAULT_LOCAL_CONFIG_PATH
    payload.update(_read_config_json(override_path, label="local configuration"))

    try:
        settings = NarratorSettings.model_validate(payload)
        settings = apply_settings_updates(settings, load_environment_overrides())
        settings = apply_settings_updates(
            settings, {k: v for k, v in (overrides or {}).items() if v is not None}
        )
    except ValidationError as exc:
        raise RuntimeError("Invalid configuration detected") from exc

    _ACTIVE_SETTINGS = settings
    return settings.model_dump(mode="python")


def get_settings() -> NarratorSettings:
    """Return the currently loaded :class:`NarratorSettings` instance."""

    global _ACTIVE_SETTINGS
    if _ACTIVE_SETTINGS is None:
        settings = NarratorSettings()
        try:
            settings = apply_settings_updates(settings, load_environment_overrides())
        except ValidationError as exc:
            raise RuntimeError("Invalid configuration detected") from exc
        _ACTIVE_SETTINGS = settings
    return _ACTIVE_SETTINGS


def reset_settings() -> None:
    """Forget the cached settings so the next lookup reloads them."""

    global _ACTIVE_SETTINGS
    _ACTIVE_SETTINGS = None


__all__ = ["get_settings", "load_configuration", "reset_settings"]
