"""In-memory RGBA raster shared by the codec, the diff engine and the store."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class Raster:
    """Decoded image: read-only ``(height, width, 4)`` uint8 RGBA array."""

    pixels: np.ndarray

    def __post_init__(self) -> None:
        arr = self.pixels
        if not isinstance(arr, np.ndarray):
            raise ValueError(f"Raster pixels must be a numpy array, got {type(arr).__name__}")
        if arr.dtype != np.uint8:
            raise ValueError(f"Raster pixels must be uint8, got {arr.dtype}")
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Raster pixels must have shape (height, width, 4), got {arr.shape}")
        if arr.shape[0] == 0 or arr.shape[1] == 0:
            raise ValueError(f"Raster must be at least 1x1, got {arr.shape[1]}x{arr.shape[0]}")
        if arr.flags.writeable:
            raise ValueError("Raster pixels must be read-only; use Raster.from_array()")

    @classmethod
    def from_array(cls, arr: np.ndarray) -> Raster:
        """Copy ``arr`` into a new immutable raster."""
        data = np.array(arr, dtype=np.uint8, copy=True, order="C")
        data.setflags(write=False)
        return cls(pixels=data)

    @classmethod
    def filled(cls, width: int, height: int, color: tuple[int, int, int, int]) -> Raster:
        """Solid-color raster, mostly useful for placeholders and tests."""
        arr = np.empty((height, width, 4), dtype=np.uint8)
        arr[:, :] = color
        return cls.from_array(arr)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def tobytes(self) -> bytes:
        return self.pixels.tobytes()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Raster):
            return NotImplemented
        return self.size == other.size and np.array_equal(self.pixels, other.pixels)

    def __hash__(self) -> int:
        return hash((self.size, self.pixels.tobytes()))

    def __repr__(self) -> str:
        return f"Raster({self.width}x{self.height})"
