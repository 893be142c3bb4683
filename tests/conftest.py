"""Pytest configuration and shared fixtures."""

import io
from pathlib import Path
from typing import Callable

import numpy as np
import pytest
from PIL import Image

from snapdiff.codec.registry import CodecRegistry, default_registry
from snapdiff.models.config import SnapdiffConfig
from snapdiff.models.raster import Raster


# ============================================================================
# Raster Factories
# ============================================================================


def make_raster(width: int = 4, height: int = 3, color=(200, 100, 50, 255)) -> Raster:
    """Solid-color raster."""
    return Raster.filled(width, height, color)


def make_gradient(width: int = 8, height: int = 6) -> Raster:
    """Raster with a distinct value in every pixel, for asymmetry checks."""
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[:, :, 0] = (np.arange(width) * 30 % 256).astype(np.uint8)[None, :]
    arr[:, :, 1] = (np.arange(height) * 40 % 256).astype(np.uint8)[:, None]
    arr[:, :, 2] = 90
    arr[:, :, 3] = 255
    return Raster.from_array(arr)


def with_pixels(raster: Raster, changes: dict[tuple[int, int], tuple[int, int, int, int]]) -> Raster:
    """Copy of ``raster`` with the given (x, y) pixels replaced."""
    arr = raster.pixels.copy()
    for (x, y), color in changes.items():
        arr[y, x] = color
    return Raster.from_array(arr)


def png_bytes(raster: Raster) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(raster.pixels)).save(buf, format="PNG")
    return buf.getvalue()


def write_image(path: Path, raster: Raster) -> Path:
    """Write ``raster`` using the format implied by the file extension."""
    img = Image.fromarray(np.ascontiguousarray(raster.pixels))
    if path.suffix.lower() in (".jpg", ".jpeg", ".bmp"):
        img = img.convert("RGB")
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path)
    return path


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def raster() -> Raster:
    return make_raster()


@pytest.fixture
def gradient() -> Raster:
    return make_gradient()


@pytest.fixture
def registry() -> CodecRegistry:
    return default_registry()


@pytest.fixture
def config(tmp_path: Path) -> SnapdiffConfig:
    """Config with every output directory under tmp_path."""
    return SnapdiffConfig(
        threshold=0.0,
        max_workers=2,
        store_root=str(tmp_path / "snapshots"),
        report_output_dir=str(tmp_path / "reports"),
    )


@pytest.fixture
def image_dirs(tmp_path: Path) -> Callable[..., tuple[Path, Path]]:
    """Factory building left/right directories from {filename: Raster} maps."""

    def _build(left: dict[str, Raster], right: dict[str, Raster]) -> tuple[Path, Path]:
        left_dir = tmp_path / "design"
        right_dir = tmp_path / "screenshots"
        left_dir.mkdir(exist_ok=True)
        right_dir.mkdir(exist_ok=True)
        for name, r in left.items():
            write_image(left_dir / name, r)
        for name, r in right.items():
            write_image(right_dir / name, r)
        return left_dir, right_dir

    return _build
