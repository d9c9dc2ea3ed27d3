import os
import sys
from pathlib import Path

import pytest

os.environ.setdefault("NARRATOR_LOG_DIR", "")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from narrator import config_manager as cfg  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Every test starts from the defaults plus its own overrides."""

    cfg.reset_settings()
    yield
    cfg.reset_settings()
