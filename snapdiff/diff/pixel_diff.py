"""Pixel diff engine: similarity score and diff visualization for two rasters.

Everything here is pure: rasters in, :class:`DiffResult` out, no I/O and no
mutation of the inputs, so identical inputs always give identical output.
"""

from __future__ import annotations

import logging

import numpy as np

from snapdiff.models.diff_result import DiffResult
from snapdiff.models.raster import Raster

logger = logging.getLogger(__name__)

# Per-channel deltas at or below this are recompression noise, not change.
# Shared by batch comparison and snapshot "unchanged" classification.
CHANNEL_TOLERANCE = 2

# Fully opaque magenta marks differing pixels in diff visualizations
DIFF_MARKER = np.array([255, 0, 255, 255], dtype=np.uint8)


def difference_mask(a: Raster, b: Raster) -> np.ndarray:
    """Boolean ``(height, width)`` mask of pixels that differ beyond tolerance.

    Both rasters must have the same dimensions.
    """
    if a.size != b.size:
        raise ValueError(f"Cannot build a difference mask for {a.size} vs {b.size}")
    delta = np.abs(a.pixels.astype(np.int16) - b.pixels.astype(np.int16))
    return np.any(delta > CHANNEL_TOLERANCE, axis=2)


def render_diff_raster(base: Raster, mask: np.ndarray) -> Raster:
    """Dimmed grayscale copy of ``base`` with masked pixels painted magenta."""
    rgb = base.pixels[:, :, :3].astype(np.uint32)
    # ITU-R 601 luma, integer arithmetic for exact reproducibility
    luma = (rgb[:, :, 0] * 299 + rgb[:, :, 1] * 587 + rgb[:, :, 2] * 114) // 1000
    dimmed = (luma // 2).astype(np.uint8)

    out = np.empty(base.pixels.shape, dtype=np.uint8)
    out[:, :, 0] = dimmed
    out[:, :, 1] = dimmed
    out[:, :, 2] = dimmed
    out[:, :, 3] = 255
    out[mask] = DIFF_MARKER
    return Raster.from_array(out)


def diff(a: Raster, b: Raster, visualize: bool = False) -> DiffResult:
    """Compare two rasters pixel by pixel.

    Rasters of different sizes are not resized: the result reports
    ``dimensions_matched=False`` with a diff of 100% and no visualization,
    so layout changes are never hidden by scaling.
    """
    if a.size != b.size:
        logger.debug("Dimension mismatch: %dx%d vs %dx%d", a.width, a.height, b.width, b.height)
        return DiffResult.total_mismatch(a.size, b.size)

    mask = difference_mask(a, b)
    differing = int(np.count_nonzero(mask))
    total = a.pixel_count
    diff_percent = 100.0 * differing / total

    diff_raster = render_diff_raster(a, mask) if visualize else None
    return DiffResult(
        diff_percent=diff_percent,
        total_pixels=total,
        differing_pixels=differing,
        dimensions_matched=True,
        left_size=a.size,
        right_size=b.size,
        diff_raster=diff_raster,
    )
