"""Configuration model threaded into every comparison and store operation."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from snapdiff.codec.registry import LOSSLESS_FORMATS, normalize_format

SUPPORTED_REPORT_FORMATS = ("json", "console")


def _default_workers() -> int:
    return min(32, os.cpu_count() or 1)


class SnapdiffConfig(BaseModel):
    # Pass/fail: maximum acceptable diff percent (0 = pixel exact)
    threshold: float = 0.0

    # Worker pool size for batch and snapshot comparisons
    max_workers: int = Field(default_factory=_default_workers)

    # Snapshot store
    store_root: str = "./snapshots"
    snapshot_image_format: str = "png"

    # Diff artifacts; None keeps the format family of the inputs
    diff_image_format: Optional[str] = None

    # Reporting
    report_formats: list[str] = Field(default_factory=lambda: ["json"])
    report_output_dir: str = "./snapdiff-reports"

    @field_validator("threshold")
    @classmethod
    def check_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"threshold must be between 0 and 100, got {v}")
        return v

    @field_validator("max_workers")
    @classmethod
    def check_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_workers must be at least 1, got {v}")
        return v

    @field_validator("report_formats")
    @classmethod
    def check_formats(cls, v: list[str]) -> list[str]:
        unknown = [f for f in v if f not in SUPPORTED_REPORT_FORMATS]
        if unknown:
            raise ValueError(f"Unsupported report formats: {', '.join(unknown)}")
        return v

    @field_validator("snapshot_image_format")
    @classmethod
    def check_snapshot_format(cls, v: str) -> str:
        v = v.lower().lstrip(".")
        if normalize_format(v) not in LOSSLESS_FORMATS:
            raise ValueError(f"snapshot_image_format must be one of {', '.join(LOSSLESS_FORMATS)}, got '{v}'")
        return v

    @field_validator("diff_image_format")
    @classmethod
    def normalize_diff_format(cls, v: Optional[str]) -> Optional[str]:
        return v.lower().lstrip(".") if v else v

    @classmethod
    def load(cls, path: str | Path) -> "SnapdiffConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
