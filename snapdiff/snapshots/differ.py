"""Snapshot diff: classify every tracked item between two snapshots."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from dataclasses import replace
from functools import partial
from pathlib import Path

from snapdiff.codec.registry import CodecRegistry, default_registry
from snapdiff.diff.pixel_diff import diff
from snapdiff.models.diff_result import ComparisonVerdict, DiffResult
from snapdiff.models.raster import Raster
from snapdiff.models.snapshot import (
    Snapshot,
    SnapshotDiff,
    SnapshotDiffEntry,
    SnapshotDiffSummary,
    SnapshotStatus,
)
from snapdiff.reporter.report_builder import build_report
from snapdiff.utils.fs import atomic_write_bytes, ensure_dir
from snapdiff.utils.pool import run_bounded

from .store import read_snapshot_item, safe_filename

logger = logging.getLogger(__name__)

ItemReader = Callable[[Snapshot, str], Raster]


def diff_image_name(key: str, extension: str = ".png") -> str:
    """Deterministic artifact name so reruns overwrite instead of accumulating.

    Keys that had to be rewritten to be file-system safe get a short digest
    of the original key, so ``1:2`` and ``1-2`` never share an artifact.
    """
    stem = safe_filename(key)
    if stem != key:
        stem = f"{stem}-{hashlib.sha256(key.encode('utf-8')).hexdigest()[:8]}"
    return f"{stem}-diff{extension}"


def _classify(
    key: str,
    a: Snapshot,
    b: Snapshot,
    read_item: ItemReader,
    output_dir: Path | None,
    diff_format: str,
    registry: CodecRegistry,
) -> SnapshotDiffEntry:
    label = b.label_for(key) if key in b.items else a.label_for(key)
    result = None
    if key not in a.items:
        status = SnapshotStatus.ADDED
    elif key not in b.items:
        status = SnapshotStatus.REMOVED
    else:
        result = diff(read_item(a, key), read_item(b, key), visualize=output_dir is not None)
        # Same channel tolerance as every other comparison: unchanged means no
        # pixel moved beyond recompression noise.
        status = SnapshotStatus.UNCHANGED if result.identical else SnapshotStatus.CHANGED

    diff_image = None
    if output_dir is not None:
        codec = registry.get(diff_format)
        artifact = output_dir / diff_image_name(key, codec.extensions[0])
        if status == SnapshotStatus.CHANGED and result.diff_raster is not None:
            atomic_write_bytes(artifact, codec.encode(result.diff_raster))
            diff_image = artifact
        else:
            # Left over from an earlier run where this key had changed
            artifact.unlink(missing_ok=True)

    if status != SnapshotStatus.CHANGED:
        return SnapshotDiffEntry(key=key, status=status, label=label)
    # The visualization is on disk (or unwanted); keep the entry light.
    stored = replace(result, diff_raster=None)
    return SnapshotDiffEntry(key=key, status=status, label=label, diff=stored, diff_image=diff_image)


def summarize(entries: list[SnapshotDiffEntry]) -> SnapshotDiffSummary:
    counts = {status: 0 for status in SnapshotStatus}
    for e in entries:
        counts[e.status] += 1
    return SnapshotDiffSummary(
        total=len(entries),
        changed=counts[SnapshotStatus.CHANGED],
        added=counts[SnapshotStatus.ADDED],
        removed=counts[SnapshotStatus.REMOVED],
        unchanged=counts[SnapshotStatus.UNCHANGED],
    )


def _entry_verdict(entry: SnapshotDiffEntry) -> ComparisonVerdict:
    passed = entry.status == SnapshotStatus.UNCHANGED
    result = entry.diff or (
        DiffResult(diff_percent=0.0, total_pixels=0, differing_pixels=0, dimensions_matched=True)
        if passed
        else DiffResult.total_mismatch()
    )
    note = None if passed else entry.status.value
    return ComparisonVerdict(result=result, threshold=0.0, passed=passed, note=note)


def diff_snapshots(
    a: Snapshot,
    b: Snapshot,
    *,
    output_dir: str | Path | None = None,
    diff_format: str = "png",
    max_workers: int = 1,
    read_item: ItemReader | None = None,
    registry: CodecRegistry | None = None,
) -> SnapshotDiff:
    """Compare snapshot ``a`` (older) with ``b`` (newer).

    Entries cover the union of both key sets in lexicographic order. Keys
    present in both snapshots are pixel diffed on the worker pool; the
    aggregation runs afterwards in key order. With ``output_dir`` a diff
    image is written for every changed item of unchanged dimensions.
    """
    read_item = read_item or read_snapshot_item
    out_dir = ensure_dir(output_dir) if output_dir is not None else None
    keys = sorted(set(a.items) | set(b.items))
    logger.info("Comparing snapshot '%s' -> '%s' (%d items)", a.name, b.name, len(keys))

    job = partial(
        _classify,
        a=a,
        b=b,
        read_item=read_item,
        output_dir=out_dir,
        diff_format=diff_format,
        registry=registry or default_registry(),
    )
    entries = run_bounded(job, keys, max_workers)

    for e in entries:
        if e.status == SnapshotStatus.CHANGED and e.diff is not None:
            logger.debug("~ %s (%.1f%% different)", e.label, e.diff.diff_percent)
        else:
            logger.debug("%s %s", e.status.value, e.label)

    summary = summarize(entries)
    report = build_report([(e.key, _entry_verdict(e)) for e in entries], threshold=0.0)
    logger.info(
        "Total: %d | Changed: %d | Added: %d | Removed: %d",
        summary.total, summary.changed, summary.added, summary.removed,
    )
    return SnapshotDiff(from_name=a.name, to_name=b.name, entries=entries, summary=summary, report=report)
