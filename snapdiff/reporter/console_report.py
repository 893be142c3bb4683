"""Rich console tables summarising batch comparisons and snapshot diffs."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from snapdiff.models.diff_result import BatchReport
from snapdiff.models.snapshot import SnapshotDiff, SnapshotStatus

_STATUS_STYLE = {
    SnapshotStatus.CHANGED: ("~", "yellow"),
    SnapshotStatus.ADDED: ("+", "green"),
    SnapshotStatus.REMOVED: ("-", "red"),
    SnapshotStatus.UNCHANGED: ("=", "dim"),
}


def build_batch_table(report: BatchReport) -> Table:
    table = Table(title=f"Comparison ({report.passed}/{report.total} passed, threshold {report.threshold:.1f}%)")
    table.add_column("File", style="bold")
    table.add_column("Diff", justify="right")
    table.add_column("Result")
    table.add_column("Note")
    for e in report.entries:
        result = "[green]OK[/green]" if e.passed else "[red]FAIL[/red]"
        table.add_row(escape(e.file_name), f"{e.diff_percent:.2f}%", result, escape(e.note or ""))
    return table


def build_snapshot_diff_table(diff: SnapshotDiff) -> Table:
    s = diff.summary
    table = Table(
        title=f"'{diff.from_name}' -> '{diff.to_name}' "
        f"(changed {s.changed}, added {s.added}, removed {s.removed}, unchanged {s.unchanged})"
    )
    table.add_column("", width=1)
    table.add_column("Item", style="bold")
    table.add_column("Status")
    table.add_column("Diff", justify="right")
    for e in diff.entries:
        marker, style = _STATUS_STYLE[e.status]
        pct = f"{e.diff_percent:.1f}%" if e.status == SnapshotStatus.CHANGED else ""
        table.add_row(f"[{style}]{marker}[/{style}]", escape(e.label or e.key), f"[{style}]{e.status.value}[/{style}]", pct)
    return table


def print_batch_summary(report: BatchReport, console: Console | None = None) -> None:
    (console or Console()).print(build_batch_table(report))


def print_snapshot_diff_summary(diff: SnapshotDiff, console: Console | None = None) -> None:
    (console or Console()).print(build_snapshot_diff_table(diff))
