from __future__ import annotations

from pathlib import Path

import importlib

import pytest

from narrator.fsutils.atomic_move import AtomicMoveError, ChecksumMismatchError, atomic_move
from narrator.fsutils.cleanup import remove_tree, safe_remove

atomic_move_module = importlib.import_module("narrator.fsutils.atomic_move")


def write_file(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_atomic_move_same_filesystem(tmp_path):
    source_file = tmp_path / "work" / ".clip.partial.mp4"
    write_file(source_file, "video bytes")
    destination_file = tmp_path / "out" / "clip.mp4"

    atomic_move(source_file, destination_file)

    assert not source_file.exists()
    assert destination_file.read_text(encoding="utf-8") == "video bytes"


def test_atomic_move_cross_filesystem(monkeypatch, tmp_path):
    source_file = tmp_path / "source.txt"
    write_file(source_file, "cross device data")
    destination_file = tmp_path / "target.txt"

    monkeypatch.setattr(atomic_move_module, "_same_filesystem", lambda _src, _dst: False)

    atomic_move(source_file, destination_file)

    assert not source_file.exists()
    assert destination_file.read_text(encoding="utf-8") == "cross device data"
    assert list(tmp_path.glob(".target.txt.tmp-*")) == []


def test_atomic_move_refuses_existing_destination_without_overwrite(tmp_path):
    source_file = tmp_path / "new.txt"
    destination_file = tmp_path / "old.txt"
    write_file(source_file, "new")
    write_file(destination_file, "old")

    with pytest.raises(AtomicMoveError):
        atomic_move(source_file, destination_file)

    assert destination_file.read_text(encoding="utf-8") == "old"

    atomic_move(source_file, destination_file, overwrite=True)
    assert destination_file.read_text(encoding="utf-8") == "new"


def test_atomic_move_checksum_mismatch_cleans_temp(monkeypatch, tmp_path):
    source_file = tmp_path / "source.txt"
    write_file(source_file, "payload")
    destination_file = tmp_path / "dest" / "target.txt"

    monkeypatch.setattr(atomic_move_module, "_same_filesystem", lambda _src, _dst: False)
    digests = iter(["aaa", "bbb"])
    monkeypatch.setattr(atomic_move_module, "_compute_checksum", lambda _path, _algo: next(digests))

    with pytest.raises(ChecksumMismatchError):
        atomic_move(source_file, destination_file)

    assert source_file.exists()
    assert not destination_file.exists()
    assert list(destination_file.parent.iterdir()) == []


def test_atomic_move_missing_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        atomic_move(tmp_path / "absent.txt", tmp_path / "target.txt")


def test_safe_remove_and_remove_tree(tmp_path):
    target = tmp_path / "scratch" / "frames" / "frame_00000.png"
    write_file(target, "x")

    assert safe_remove(target) is True
    assert safe_remove(target) is True
    assert remove_tree(tmp_path / "scratch") is True
    assert not (tmp_path / "scratch").exists()
    assert remove_tree(tmp_path / "scratch") is True


def test_remove_tree_logs_instead_of_raising(monkeypatch, tmp_path):
    scratch = tmp_path / "scratch"
    scratch.mkdir()

    def failing_rmtree(path):
        raise PermissionError("busy")

    monkeypatch.setattr("narrator.fsutils.cleanup.shutil.rmtree", failing_rmtree)

    assert remove_tree(scratch) is False
    assert scratch.exists()
