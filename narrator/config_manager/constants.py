"""Shared constants for the configuration manager package."""
from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

MODULE_DIR = Path(__file__).resolve().parent
SCRIPT_DIR = MODULE_DIR.parent.parent.resolve()
CONF_DIR = SCRIPT_DIR / "conf"
DEFAULT_CONFIG_PATH = CONF_DIR / "config.json"
DEFAULT_LOCAL_CONFIG_PATH = CONF_DIR / "config.local.json"

DEFAULT_FFMPEG_PATH = os.environ.get("FFMPEG_PATH") or shutil.which("ffmpeg") or "ffmpeg"
DEFAULT_TMP_DIR = Path(tempfile.gettempdir()) / "narrator"

DEFAULT_VIDEO_WIDTH = 640
DEFAULT_VIDEO_HEIGHT = 480
DEFAULT_FRAME_RATE = 30
DEFAULT_DURATION_SECONDS = 5.0
DEFAULT_SCROLL_SPEED = 5.0
DEFAULT_FONT_SIZE = 24

VALID_FRAME_PARALLELISM = {"off", "thread", "process", "auto"}

__all__ = [
    "MODULE_DIR",
    "SCRIPT_DIR",
    "CONF_DIR",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LOCAL_CONFIG_PATH",
    "DEFAULT_FFMPEG_PATH",
    "DEFAULT_TMP_DIR",
    "DEFAULT_VIDEO_WIDTH",
    "DEFAULT_VIDEO_HEIGHT",
    "DEFAULT_FRAME_RATE",
    "DEFAULT_DURATION_SECONDS",
    "DEFAULT_SCROLL_SPEED",
    "DEFAULT_FONT_SIZE",
    "VALID_FRAME_PARALLELISM",
]
