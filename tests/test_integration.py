"""Integration tests for the orchestrator.

These exercise real files end to end: codecs, pixel diff, the worker pool,
the snapshot store and report writing together.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
from rich.console import Console

from conftest import make_gradient, make_raster, png_bytes, with_pixels, write_image
from snapdiff.errors import AlreadyExists, DecodeFailure, SnapshotNotFound
from snapdiff.models.config import SnapdiffConfig
from snapdiff.models.snapshot import SnapshotStatus
from snapdiff.orchestrator import Orchestrator
from snapdiff.snapshots.differ import diff_image_name


def _orchestrator(config: SnapdiffConfig) -> Orchestrator:
    return Orchestrator(config, console=Console(record=True, width=120))


@pytest.mark.integration
class TestDirectoryComparison:
    """Design export directory vs screenshot directory."""

    def test_batch_with_reports_and_diffs(self, config, image_dirs, tmp_path: Path):
        base = make_gradient()
        left, right = image_dirs(
            {"home.png": base, "login.png": base, "footer.png": base},
            {"home.png": base, "login.png": with_pixels(base, {(0, 0): (0, 0, 0, 255)})},
        )
        diffs = tmp_path / "diffs"

        report, generated = _orchestrator(config).compare_directories(left, right, diff_output_dir=diffs)

        assert (report.total, report.passed, report.failed) == (3, 1, 2)
        assert [e.file_name for e in report.entries] == ["footer.png", "home.png", "login.png"]
        footer = report.entries[0]
        assert footer.diff_percent == 100.0
        assert footer.note == "missing on right"

        data = json.loads(Path(generated["json"]).read_text())
        assert Path(generated["json"]).name == "report_compare.json"
        assert data["failed"] == 2
        assert data["all_passed"] is False
        assert sorted(p.name for p in diffs.iterdir()) == ["diff-home.png", "diff-login.png"]

    def test_threshold_from_config(self, config, image_dirs):
        base = make_raster(10, 10)
        left, right = image_dirs(
            {"a.png": base},
            {"a.png": with_pixels(base, {(0, 0): (0, 0, 0, 255)})},
        )
        config.threshold = 1.0
        report, _ = _orchestrator(config).compare_directories(left, right)
        assert report.entries[0].diff_percent == 1.0
        assert report.all_passed

    def test_missing_directory(self, config, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="Directory not found"):
            _orchestrator(config).compare_directories(tmp_path / "nope", tmp_path)


@pytest.mark.integration
class TestSingleComparisons:
    """File and byte level comparisons."""

    def test_compare_files_writes_diff(self, config, tmp_path: Path, gradient):
        a = write_image(tmp_path / "a.png", gradient)
        b = write_image(tmp_path / "b.png", with_pixels(gradient, {(1, 1): (255, 255, 255, 255)}))
        out = tmp_path / "out" / "diff.png"

        verdict = _orchestrator(config).compare_files(a, b, diff_output=out)

        assert not verdict.passed
        assert verdict.result.differing_pixels == 1
        assert out.exists()

    def test_compare_bytes(self, config, raster):
        verdict = _orchestrator(config).compare_bytes(png_bytes(raster), png_bytes(raster))
        assert verdict.passed
        assert verdict.result.identical

    def test_compare_bytes_garbage(self, config, raster):
        with pytest.raises(DecodeFailure):
            _orchestrator(config).compare_bytes(b"not an image", png_bytes(raster))


@pytest.mark.integration
class TestSnapshotWorkflow:
    """Create, list and diff snapshots through the orchestrator."""

    def _create(self, orch: Orchestrator, name: str, rasters: dict, day: int):
        return orch.create_snapshot(
            name,
            {key: png_bytes(r) for key, r in rasters.items()},
            source="design-file-42",
            created_at=datetime(2024, 1, day, tzinfo=timezone.utc),
        )

    def test_create_list_and_diff(self, config, tmp_path: Path, gradient):
        orch = _orchestrator(config)
        changed = with_pixels(gradient, {(2, 2): (0, 0, 0, 255), (3, 3): (0, 0, 0, 255)})
        self._create(orch, "v1", {"1:2": gradient, "header": gradient, "nav": gradient}, day=1)
        self._create(orch, "v2", {"1:2": changed, "nav": gradient, "footer": gradient}, day=2)

        assert [s.name for s in orch.list_snapshots()] == ["v2", "v1"]

        out = tmp_path / "snapshot-diffs"
        result, generated = orch.diff_snapshots("v1", "v2", output_dir=out)

        statuses = {e.key: e.status for e in result.entries}
        assert statuses == {
            "1:2": SnapshotStatus.CHANGED,
            "footer": SnapshotStatus.ADDED,
            "header": SnapshotStatus.REMOVED,
            "nav": SnapshotStatus.UNCHANGED,
        }
        assert result.summary.total == 4
        assert result.summary.has_changes
        assert [p.name for p in out.iterdir()] == [diff_image_name("1:2")]

        path = Path(generated["json"])
        assert path.name == "snapshot_diff_v1__v2.json"
        data = json.loads(path.read_text())
        assert data["from"] == "v1"
        assert data["summary"]["changed"] == 1

    def test_duplicate_snapshot(self, config, raster):
        orch = _orchestrator(config)
        self._create(orch, "base", {"a": raster}, day=1)
        with pytest.raises(AlreadyExists):
            self._create(orch, "base", {"a": raster}, day=2)

    def test_overwrite_snapshot(self, config, raster):
        orch = _orchestrator(config)
        self._create(orch, "base", {"a": raster}, day=1)
        snap = orch.create_snapshot("base", {"b": png_bytes(raster)}, overwrite=True)
        assert snap.keys() == ["b"]
        assert orch.store.load("base").keys() == ["b"]

    def test_diff_unknown_snapshot(self, config, raster):
        orch = _orchestrator(config)
        self._create(orch, "base", {"a": raster}, day=1)
        with pytest.raises(SnapshotNotFound):
            orch.diff_snapshots("base", "missing")
