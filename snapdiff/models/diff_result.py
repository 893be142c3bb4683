"""Comparison result data structures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

from snapdiff.models.raster import Raster


@dataclass(frozen=True)
class DiffResult:
    diff_percent: float  # 0..100
    total_pixels: int
    differing_pixels: int
    dimensions_matched: bool
    left_size: tuple[int, int] = (0, 0)  # (width, height)
    right_size: tuple[int, int] = (0, 0)
    diff_raster: Raster | None = None

    @classmethod
    def total_mismatch(
        cls,
        left_size: tuple[int, int] = (0, 0),
        right_size: tuple[int, int] = (0, 0),
    ) -> DiffResult:
        """Result for pairs that cannot be compared pixel by pixel."""
        return cls(
            diff_percent=100.0,
            total_pixels=0,
            differing_pixels=0,
            dimensions_matched=False,
            left_size=left_size,
            right_size=right_size,
        )

    @property
    def identical(self) -> bool:
        return self.dimensions_matched and self.differing_pixels == 0

    def describe_mismatch(self) -> str:
        lw, lh = self.left_size
        rw, rh = self.right_size
        return f"dimension mismatch: {lw}x{lh} vs {rw}x{rh}"


@dataclass(frozen=True)
class ComparisonVerdict:
    result: DiffResult
    threshold: float
    passed: bool
    note: str | None = None  # why the entry failed without a real diff


class BatchEntry(BaseModel):
    file_name: str
    diff_percent: float
    passed: bool
    dimensions_match: bool = True
    note: Optional[str] = None


class BatchReport(BaseModel):
    total: int = 0
    passed: int = 0
    failed: int = 0
    threshold: float = 0.0
    entries: list[BatchEntry] = Field(default_factory=list)

    @property
    def all_passed(self) -> bool:
        return self.failed == 0

    def failures(self) -> list[BatchEntry]:
        return [e for e in self.entries if not e.passed]
