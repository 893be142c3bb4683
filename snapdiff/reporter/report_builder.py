"""Threshold evaluation and batch report aggregation."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from snapdiff.models.diff_result import BatchEntry, BatchReport, ComparisonVerdict, DiffResult

logger = logging.getLogger(__name__)

# Pixel exact unless the caller supplies a tolerance
DEFAULT_THRESHOLD = 0.0


def check_threshold(threshold: float) -> float:
    if not 0.0 <= threshold <= 100.0:
        raise ValueError(f"threshold must be between 0 and 100, got {threshold}")
    return float(threshold)


def evaluate(
    result: DiffResult,
    threshold: float = DEFAULT_THRESHOLD,
    note: str | None = None,
) -> ComparisonVerdict:
    """Turn a diff into a pass/fail verdict. A diff equal to the threshold passes."""
    threshold = check_threshold(threshold)
    if note is None and not result.dimensions_matched and result.left_size != (0, 0):
        note = result.describe_mismatch()
    return ComparisonVerdict(
        result=result,
        threshold=threshold,
        passed=result.diff_percent <= threshold,
        note=note,
    )


def build_report(
    verdicts: Sequence[tuple[str, ComparisonVerdict]],
    threshold: float | None = None,
) -> BatchReport:
    """Aggregate named verdicts into a report, keeping their order.

    The report threshold defaults to the first verdict's threshold.
    """
    if threshold is None:
        threshold = verdicts[0][1].threshold if verdicts else DEFAULT_THRESHOLD

    entries = [
        BatchEntry(
            file_name=name,
            diff_percent=verdict.result.diff_percent,
            passed=verdict.passed,
            dimensions_match=verdict.result.dimensions_matched,
            note=verdict.note,
        )
        for name, verdict in verdicts
    ]
    passed = sum(1 for e in entries if e.passed)
    report = BatchReport(
        total=len(entries),
        passed=passed,
        failed=len(entries) - passed,
        threshold=threshold,
        entries=entries,
    )
    if report.failed:
        logger.warning("%d of %d comparisons failed (threshold %.2f%%)", report.failed, report.total, threshold)
    else:
        logger.debug("All %d comparisons passed", report.total)
    return report
