"""Report generation orchestration."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console

from snapdiff.models.config import SnapdiffConfig
from snapdiff.models.diff_result import BatchReport
from snapdiff.models.snapshot import SnapshotDiff

from .console_report import print_batch_summary, print_snapshot_diff_summary
from .json_report import generate_json_report, generate_snapshot_diff_report

logger = logging.getLogger(__name__)


class Reporter:
    """Writes reports in every format listed in the configuration."""

    def __init__(self, config: SnapdiffConfig, console: Console | None = None):
        self.config = config
        self.console = console or Console()

    def _output_dir(self, output_dir: Path | None) -> Path:
        out_dir = output_dir or Path(self.config.report_output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Report output directory: %s", out_dir)
        return out_dir

    def generate_reports(
        self,
        report: BatchReport,
        name: str = "compare",
        output_dir: Path | None = None,
    ) -> dict[str, str]:
        """Generate all configured report formats. Returns format -> file path."""
        generated: dict[str, str] = {}

        if "json" in self.config.report_formats:
            path = self._output_dir(output_dir) / f"report_{name}.json"
            generate_json_report(report, path)
            generated["json"] = str(path)
            logger.info("JSON report: %s", path)

        if "console" in self.config.report_formats:
            print_batch_summary(report, self.console)
            generated["console"] = "-"

        return generated

    def generate_snapshot_diff_reports(
        self,
        diff: SnapshotDiff,
        name: str | None = None,
        output_dir: Path | None = None,
    ) -> dict[str, str]:
        name = name or f"{diff.from_name}__{diff.to_name}"
        generated: dict[str, str] = {}

        if "json" in self.config.report_formats:
            path = self._output_dir(output_dir) / f"snapshot_diff_{name}.json"
            generate_snapshot_diff_report(diff, path)
            generated["json"] = str(path)
            logger.info("Snapshot diff report: %s", path)

        if "console" in self.config.report_formats:
            print_snapshot_diff_summary(diff, self.console)
            generated["console"] = "-"

        return generated
