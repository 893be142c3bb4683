"""Snapshot metadata structures persisted as ``snapshot.json``."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from snapdiff.models.diff_result import BatchReport, DiffResult


class SnapshotItem(BaseModel):
    key: str  # logical item id, e.g. a node id or frame name
    label: str = ""  # human readable name, defaults to the key
    filename: str  # relative to the snapshot directory
    image_hash: str  # SHA-256 hex digest of the stored file
    width: int
    height: int


class Snapshot(BaseModel):
    name: str
    created_at: str  # ISO-8601, UTC
    source: Optional[str] = None  # e.g. the design file the items came from
    items: dict[str, SnapshotItem] = Field(default_factory=dict)

    # Where the snapshot was loaded from; never written to the metadata file
    directory: Path = Field(default=Path("."), exclude=True)

    def keys(self) -> list[str]:
        return sorted(self.items)

    def item_path(self, key: str) -> Path:
        return self.directory / self.items[key].filename

    def label_for(self, key: str) -> str:
        item = self.items.get(key)
        if item is None:
            return key
        return item.label or key


class SnapshotStatus(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class SnapshotDiffEntry:
    key: str
    status: SnapshotStatus
    label: str = ""
    diff: DiffResult | None = None  # only for CHANGED
    diff_image: Path | None = None  # written visualization, if any

    @property
    def diff_percent(self) -> float:
        match self.status:
            case SnapshotStatus.UNCHANGED:
                return 0.0
            case SnapshotStatus.CHANGED:
                return self.diff.diff_percent if self.diff else 100.0
            case _:
                return 100.0


class SnapshotDiffSummary(BaseModel):
    total: int = 0
    changed: int = 0
    added: int = 0
    removed: int = 0
    unchanged: int = 0

    @property
    def has_changes(self) -> bool:
        return self.total != self.unchanged


@dataclass(frozen=True)
class SnapshotDiff:
    from_name: str
    to_name: str
    entries: list[SnapshotDiffEntry]
    summary: SnapshotDiffSummary
    report: BatchReport
