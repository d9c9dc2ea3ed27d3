"""Filesystem utility helpers for narrator."""

from __future__ import annotations

from .atomic_move import AtomicMoveError, ChecksumMismatchError, atomic_move, fsync_file
from .cleanup import remove_tree, safe_remove

__all__ = [
    "AtomicMoveError",
    "ChecksumMismatchError",
    "atomic_move",
    "fsync_file",
    "remove_tree",
    "safe_remove",
]
