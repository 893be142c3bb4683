"""JSON report output.

Reports are rendered with a fixed key order and fixed float precision so the
same inputs always produce byte-identical files.
"""

from __future__ import annotations

import json
from pathlib import Path

from snapdiff.models.diff_result import BatchReport
from snapdiff.models.snapshot import SnapshotDiff
from snapdiff.utils.fs import atomic_write_text

REPORT_PRECISION = 2


def _pct(value: float) -> float:
    return round(float(value), REPORT_PRECISION)


def batch_report_dict(report: BatchReport) -> dict:
    return {
        "total": report.total,
        "passed": report.passed,
        "failed": report.failed,
        "threshold": _pct(report.threshold),
        "all_passed": report.all_passed,
        "results": [
            {
                "file": e.file_name,
                "diff_percent": _pct(e.diff_percent),
                "passed": e.passed,
                "dimensions_match": e.dimensions_match,
                "note": e.note,
            }
            for e in report.entries
        ],
    }


def snapshot_diff_dict(diff: SnapshotDiff) -> dict:
    summary = diff.summary
    return {
        "from": diff.from_name,
        "to": diff.to_name,
        "summary": {
            "total": summary.total,
            "changed": summary.changed,
            "added": summary.added,
            "removed": summary.removed,
            "unchanged": summary.unchanged,
            "has_changes": summary.has_changes,
        },
        "entries": [
            {
                "key": e.key,
                "label": e.label,
                "status": e.status.value,
                "diff_percent": _pct(e.diff_percent),
                "dimensions_match": e.diff.dimensions_matched if e.diff else None,
                "diff_image": e.diff_image.name if e.diff_image else None,
            }
            for e in diff.entries
        ],
    }


def _dumps(data: dict) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def render_json_report(report: BatchReport) -> str:
    return _dumps(batch_report_dict(report))


def render_snapshot_diff_json(diff: SnapshotDiff) -> str:
    return _dumps(snapshot_diff_dict(diff))


def generate_json_report(report: BatchReport, output_path: Path) -> None:
    """Write a machine-readable JSON report."""
    atomic_write_text(output_path, render_json_report(report))


def generate_snapshot_diff_report(diff: SnapshotDiff, output_path: Path) -> None:
    atomic_write_text(output_path, render_snapshot_diff_json(diff))
