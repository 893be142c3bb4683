"""Tests for atomic filesystem helpers."""

from pathlib import Path
from unittest.mock import patch

import pytest

from snapdiff.utils.fs import atomic_write_bytes, atomic_write_text, ensure_dir


class TestAtomicWrite:
    """Tests for atomic_write_bytes() / atomic_write_text()."""

    def test_creates_parents(self, tmp_path: Path):
        target = tmp_path / "a" / "b" / "out.bin"
        atomic_write_bytes(target, b"\x00\x01")
        assert target.read_bytes() == b"\x00\x01"

    def test_replaces_existing(self, tmp_path: Path):
        target = tmp_path / "report.json"
        target.write_text("old")
        atomic_write_text(target, "new")
        assert target.read_text() == "new"

    def test_no_temp_files_left(self, tmp_path: Path):
        atomic_write_text(tmp_path / "x.txt", "data")
        assert [p.name for p in tmp_path.iterdir()] == ["x.txt"]

    def test_failed_write_keeps_original(self, tmp_path: Path):
        target = tmp_path / "keep.txt"
        target.write_text("original")

        with patch("snapdiff.utils.fs.os.fsync", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                atomic_write_text(target, "replacement")

        assert target.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["keep.txt"]


def test_ensure_dir_returns_path(tmp_path: Path):
    result = ensure_dir(str(tmp_path / "new"))
    assert isinstance(result, Path)
    assert result.is_dir()
    assert ensure_dir(result) == result
