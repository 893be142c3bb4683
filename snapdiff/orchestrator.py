"""Entry point for the surrounding tool: comparisons, snapshots and reports.

The calling layer fetches images (network, design API) and hands over raw
bytes and file-system paths; every operation here takes its settings from
the :class:`SnapdiffConfig` the orchestrator was built with, so several
stores or thresholds can be used side by side.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path

from rich.console import Console

from snapdiff.batch import matcher
from snapdiff.codec.registry import CodecRegistry, default_registry
from snapdiff.models.config import SnapdiffConfig
from snapdiff.models.diff_result import BatchReport, ComparisonVerdict
from snapdiff.models.snapshot import Snapshot, SnapshotDiff
from snapdiff.reporter.report_builder import check_threshold
from snapdiff.reporter.reporter import Reporter
from snapdiff.snapshots.differ import diff_snapshots
from snapdiff.snapshots.store import SnapshotStore

logger = logging.getLogger(__name__)


class Orchestrator:
    """Coordinates comparison, snapshot and reporting operations."""

    def __init__(
        self,
        config: SnapdiffConfig,
        registry: CodecRegistry | None = None,
        console: Console | None = None,
    ):
        self.config = config
        self.registry = registry or default_registry()
        self.store = SnapshotStore(
            Path(config.store_root),
            image_format=config.snapshot_image_format,
            registry=self.registry,
        )
        self.reporter = Reporter(config, console=console)

    def _threshold(self, threshold: float | None) -> float:
        return check_threshold(self.config.threshold if threshold is None else threshold)

    def compare_bytes(self, data1: bytes, data2: bytes, threshold: float | None = None) -> ComparisonVerdict:
        """Compare two image buffers handed over by the fetching layer."""
        return matcher.compare_image_bytes(data1, data2, self._threshold(threshold), registry=self.registry)

    def compare_files(
        self,
        path1: str | Path,
        path2: str | Path,
        diff_output: str | Path | None = None,
        threshold: float | None = None,
    ) -> ComparisonVerdict:
        logger.info("Comparing %s with %s", path1, path2)
        verdict = matcher.compare_files(path1, path2, self._threshold(threshold), diff_output, registry=self.registry)
        logger.info(
            "Pixel diff: %.2f%% (%s %.1f%% threshold)",
            verdict.result.diff_percent,
            "within" if verdict.passed else "exceeds",
            verdict.threshold,
        )
        return verdict

    def compare_directories(
        self,
        left: str | Path,
        right: str | Path,
        diff_output_dir: str | Path | None = None,
        threshold: float | None = None,
        report_name: str | None = None,
    ) -> tuple[BatchReport, dict[str, str]]:
        """Batch compare two directories and write the configured reports.

        Returns the report and a mapping of report format -> output path.
        """
        report = matcher.compare_directories(
            left,
            right,
            self._threshold(threshold),
            diff_output_dir=diff_output_dir,
            diff_format=self.config.diff_image_format,
            max_workers=self.config.max_workers,
            registry=self.registry,
        )
        generated = self.reporter.generate_reports(report, report_name or "compare")
        return report, generated

    def create_snapshot(
        self,
        name: str,
        images: Mapping[str, bytes],
        *,
        overwrite: bool = False,
        source: str | None = None,
        labels: Mapping[str, str] | None = None,
        created_at: datetime | None = None,
    ) -> Snapshot:
        """Capture downloaded exports (item key -> image bytes) as a snapshot."""
        return self.store.create_from_bytes(
            name,
            images,
            overwrite=overwrite,
            source=source,
            labels=labels,
            created_at=created_at,
        )

    def list_snapshots(self) -> list[Snapshot]:
        return self.store.list()

    def diff_snapshots(
        self,
        from_name: str,
        to_name: str,
        output_dir: str | Path | None = None,
        report_name: str | None = None,
    ) -> tuple[SnapshotDiff, dict[str, str]]:
        """Diff two stored snapshots by name and write the configured reports."""
        a = self.store.load(from_name)
        b = self.store.load(to_name)
        result = diff_snapshots(
            a,
            b,
            output_dir=output_dir,
            diff_format=self.config.diff_image_format or self.config.snapshot_image_format,
            max_workers=self.config.max_workers,
            read_item=self.store.read_item,
            registry=self.registry,
        )
        generated = self.reporter.generate_snapshot_diff_reports(result, report_name)
        return result, generated
