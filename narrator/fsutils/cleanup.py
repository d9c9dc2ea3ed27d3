"""Best-effort removal of job scratch files."""

from __future__ import annotations

import shutil
from pathlib import Path

from narrator import logging_manager as log_mgr

logger = log_mgr.logger


def safe_remove(path: Path | str) -> bool:
    """Delete the file at ``path``; return ``True`` when nothing is left behind."""

    try:
        Path(path).unlink()
    except FileNotFoundError:
        return True
    except OSError as exc:
        logger.warning(
            "Failed to remove temporary file %s: %s",
            path,
            exc,
            extra={"event": "fs.cleanup.file_failed"},
        )
        return False
    return True


def remove_tree(path: Path | str) -> bool:
    """Delete the directory tree at ``path``, logging instead of raising on failure."""

    target = Path(path)
    if not target.exists():
        return True
    try:
        shutil.rmtree(target)
    except OSError as exc:
        logger.warning(
            "Scratch directory %s was only partially removed: %s",
            target,
            exc,
            extra={"event": "fs.cleanup.tree_failed"},
        )
        return False
    logger.debug("Removed scratch directory %s", target, extra={"event": "fs.cleanup.tree_removed"})
    return True


__all__ = ["remove_tree", "safe_remove"]
