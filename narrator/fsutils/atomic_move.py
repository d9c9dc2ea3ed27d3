"""Cross-filesystem aware atomic publication of finished files."""

from __future__ import annotations

import hashlib
import os
import shutil
from pathlib import Path
from uuid import uuid4


class AtomicMoveError(RuntimeError):
    """Raised when a move operation cannot be completed safely."""


class ChecksumMismatchError(AtomicMoveError):
    """Raised when source and destination checksums do not match."""


def _compute_checksum(path: Path, algorithm: str) -> str:
    hasher = hashlib.new(algorithm)
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def _same_filesystem(src: Path, dst_parent: Path) -> bool:
    try:
        return os.stat(src).st_dev == os.stat(dst_parent).st_dev
    except FileNotFoundError as exc:
        raise AtomicMoveError(f"Cannot stat path during move: {exc}") from exc


def _fsync_directory(directory: Path) -> None:
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def fsync_file(path: Path | str) -> None:
    """Flush the contents of ``path`` to stable storage."""

    with open(path, "rb") as handle:
        os.fsync(handle.fileno())


def atomic_move(
    source: Path | str,
    destination: Path | str,
    *,
    overwrite: bool = False,
    checksum: str = "sha256",
) -> None:
    """Move the file ``source`` to ``destination`` so readers never see a partial file.

    On the same filesystem this is a single ``os.replace``. Across filesystems
    the file is copied to a hidden sibling of ``destination``, verified against
    the source checksum and then renamed into place.
    """

    src_path = Path(source)
    dst_path = Path(destination)

    if not src_path.is_file():
        raise FileNotFoundError(f"Source file {src_path} does not exist")

    dst_parent = dst_path.parent
    dst_parent.mkdir(parents=True, exist_ok=True)

    if dst_path.exists() and not overwrite:
        raise AtomicMoveError(f"Destination path {dst_path} already exists")
    if dst_path.is_dir():
        raise AtomicMoveError(f"Destination path {dst_path} is a directory")

    if _same_filesystem(src_path, dst_parent):
        src_path.replace(dst_path)
        _fsync_directory(dst_parent)
        return

    temp_path = dst_parent / f".{dst_path.name}.tmp-{uuid4().hex}"
    try:
        shutil.copy2(src_path, temp_path)
        fsync_file(temp_path)
        if _compute_checksum(src_path, checksum) != _compute_checksum(temp_path, checksum):
            raise ChecksumMismatchError(f"Checksum mismatch for {src_path.name}")
        temp_path.replace(dst_path)
        _fsync_directory(dst_parent)
        src_path.unlink()
    except Exception:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        raise


__all__ = ["AtomicMoveError", "ChecksumMismatchError", "atomic_move", "fsync_file"]
