"""Exception hierarchy for comparison and snapshot store failures."""

from __future__ import annotations

from pathlib import Path


class SnapdiffError(Exception):
    """Base class for all snapdiff errors."""


class DecodeFailure(SnapdiffError):
    """Image bytes could not be decoded (or encoded) by any codec."""

    def __init__(self, message: str, source: str | None = None):
        self.source = source
        if source:
            message = f"{source}: {message}"
        super().__init__(message)


class SnapshotStoreError(SnapdiffError):
    """A snapshot store operation failed; carries the snapshot name."""

    def __init__(self, message: str, name: str, path: Path | None = None):
        self.name = name
        self.path = path
        super().__init__(message)


class AlreadyExists(SnapshotStoreError):
    pass


class SnapshotNotFound(SnapshotStoreError):
    pass


class StoreCorruption(SnapshotStoreError):
    """Metadata or a referenced image on disk is missing or invalid."""
