"""Directory-to-directory comparison.

Every image directly under the left directory is paired by base name with an
image under the right directory and compared. The check is one-sided: it
answers "does every design asset have a matching screenshot", so files that
only exist on the right are ignored.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from snapdiff.codec.registry import CodecRegistry, default_registry
from snapdiff.diff.pixel_diff import diff
from snapdiff.errors import DecodeFailure
from snapdiff.models.diff_result import BatchReport, ComparisonVerdict, DiffResult
from snapdiff.reporter.report_builder import DEFAULT_THRESHOLD, build_report, check_threshold, evaluate
from snapdiff.utils.fs import atomic_write_bytes, ensure_dir
from snapdiff.utils.pool import run_bounded

logger = logging.getLogger(__name__)

MISSING_ON_RIGHT = "missing on right"


@dataclass(frozen=True)
class FilePair:
    name: str  # left-side file name, used as the report entry name
    left: Path
    right: Path | None  # None when no counterpart exists


def default_workers() -> int:
    return min(32, os.cpu_count() or 1)


def find_image_files(directory: Path, registry: CodecRegistry) -> list[Path]:
    """Regular image files directly under ``directory``, sorted by base name."""
    files = [
        p for p in directory.iterdir()
        if p.is_file() and not p.name.startswith(".") and registry.is_image_path(p)
    ]
    return sorted(files, key=lambda p: (p.stem, p.name))


def match_files(left: Path, right: Path, registry: CodecRegistry | None = None) -> list[FilePair]:
    """Pair each left image with the right image sharing its base name.

    Base names are compared case-sensitively and extensions are ignored, so
    ``login.png`` pairs with ``login.jpg``. A right file with the exact same
    name wins over other candidates; otherwise the lexicographically first
    candidate is used.
    """
    registry = registry or default_registry()
    right_by_stem: dict[str, list[Path]] = {}
    for path in find_image_files(right, registry):
        right_by_stem.setdefault(path.stem, []).append(path)

    pairs = []
    for path in find_image_files(left, registry):
        candidates = right_by_stem.get(path.stem, [])
        match = next((c for c in candidates if c.name == path.name), None)
        if match is None and candidates:
            match = candidates[0]
        pairs.append(FilePair(name=path.name, left=path, right=match))
    return pairs


def _diff_output_name(left: Path, format_tag: str | None, registry: CodecRegistry) -> tuple[str, str]:
    """``diff-<left name>``, plus the target extension when it differs.

    Left names are unique within a directory, so ``a.png`` and ``a.tiff``
    map to ``diff-a.png`` and ``diff-a.tiff.png`` instead of clashing.
    """
    if format_tag is None:
        codec = registry.for_path(left)
        return f"diff-{left.name}", codec.format
    codec = registry.get(format_tag)
    if left.suffix.lower() in codec.extensions:
        return f"diff-{left.name}", codec.format
    return f"diff-{left.name}{codec.extensions[0]}", codec.format


def _diff_output_paths(
    pairs: list[FilePair],
    out_dir: Path,
    format_tag: str | None,
    registry: CodecRegistry,
) -> dict[str, tuple[Path, str]]:
    """Assign every pair a distinct diff image path and format tag up front."""
    used: set[str] = set()
    targets = {}
    for pair in pairs:
        name, tag = _diff_output_name(pair.left, format_tag, registry)
        stem, ext = Path(name).stem, Path(name).suffix
        candidate = name
        n = 2
        while candidate in used:
            candidate = f"{stem}-{n}{ext}"
            n += 1
        used.add(candidate)
        targets[pair.name] = (out_dir / candidate, tag)
    return targets


def _compare_pair(
    pair: FilePair,
    threshold: float,
    registry: CodecRegistry,
    diff_targets: dict[str, tuple[Path, str]] | None,
) -> ComparisonVerdict:
    if pair.right is None:
        logger.warning("%s: %s", pair.name, MISSING_ON_RIGHT)
        return evaluate(DiffResult.total_mismatch(), threshold, note=MISSING_ON_RIGHT)

    try:
        left_raster = registry.read(pair.left)
        right_raster = registry.read(pair.right)
    except DecodeFailure as e:
        logger.warning("Cannot compare %s: %s", pair.name, e)
        return evaluate(DiffResult.total_mismatch(), threshold, note=f"decode error: {e}")

    target = diff_targets.get(pair.name) if diff_targets else None
    result = diff(left_raster, right_raster, visualize=target is not None)
    verdict = evaluate(result, threshold)
    logger.debug("%s vs %s: %.2f%% (%s)", pair.left.name, pair.right.name, result.diff_percent,
                 "OK" if verdict.passed else "FAIL")

    if target is not None and result.diff_raster is not None:
        out_path, format_tag = target
        atomic_write_bytes(out_path, registry.encode(result.diff_raster, format_tag))
    return verdict


def compare_directories(
    left: str | Path,
    right: str | Path,
    threshold: float = DEFAULT_THRESHOLD,
    *,
    diff_output_dir: str | Path | None = None,
    diff_format: str | None = None,
    max_workers: int | None = None,
    registry: CodecRegistry | None = None,
) -> BatchReport:
    """Compare every image in ``left`` against its counterpart in ``right``.

    Missing counterparts and unreadable files become failing entries instead
    of aborting the batch, so the report always lists every left-side image.
    With ``diff_output_dir`` a ``diff-<name>`` visualization is written for
    each pair of equally sized images.
    """
    left, right = Path(left), Path(right)
    threshold = check_threshold(threshold)
    for d in (left, right):
        if not d.is_dir():
            raise FileNotFoundError(f"Directory not found: {d}")
    registry = registry or default_registry()
    out_dir = ensure_dir(diff_output_dir) if diff_output_dir is not None else None

    pairs = match_files(left, right, registry)
    logger.info("Comparing %d images from %s against %s", len(pairs), left, right)
    diff_targets = _diff_output_paths(pairs, out_dir, diff_format, registry) if out_dir is not None else None

    job = partial(
        _compare_pair,
        threshold=threshold,
        registry=registry,
        diff_targets=diff_targets,
    )
    verdicts = run_bounded(job, pairs, max_workers or default_workers())

    report = build_report([(p.name, v) for p, v in zip(pairs, verdicts)], threshold)
    logger.info("Batch complete: %d passed, %d failed", report.passed, report.failed)
    return report


def compare_files(
    path1: str | Path,
    path2: str | Path,
    threshold: float = DEFAULT_THRESHOLD,
    diff_output: str | Path | None = None,
    registry: CodecRegistry | None = None,
) -> ComparisonVerdict:
    """Compare two image files; decode errors propagate as DecodeFailure."""
    registry = registry or default_registry()
    result = diff(registry.read(path1), registry.read(path2), visualize=diff_output is not None)
    verdict = evaluate(result, threshold)

    if diff_output is not None:
        if result.diff_raster is None:
            logger.warning("No diff image written to %s: %s", diff_output, result.describe_mismatch())
        else:
            codec = registry.for_path(diff_output)
            atomic_write_bytes(diff_output, codec.encode(result.diff_raster))
            logger.info("Diff image: %s", diff_output)
    return verdict


def compare_image_bytes(
    data1: bytes,
    data2: bytes,
    threshold: float = DEFAULT_THRESHOLD,
    visualize: bool = False,
    registry: CodecRegistry | None = None,
) -> ComparisonVerdict:
    """Compare two already-downloaded image buffers of any supported format."""
    registry = registry or default_registry()
    a = registry.decode(data1, "image1")
    b = registry.decode(data2, "image2")
    return evaluate(diff(a, b, visualize=visualize), threshold)
