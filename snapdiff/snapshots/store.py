"""Snapshot store: named, timestamped captures of rasters kept on disk.

Layout::

    <root>/
      <name>/
        snapshot.json        # name, created_at, source, key -> item record
        <safe key>.png       # one image per item

A snapshot is staged in a hidden ``.staging-*`` directory and renamed into
place only when every image and the metadata file are written, so readers
never see a half-written capture. Snapshot objects are rebuilt from disk on
every call; nothing is cached between invocations.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import shutil
import threading
import uuid
import weakref
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from snapdiff.codec.registry import LOSSLESS_FORMATS, CodecRegistry, default_registry, normalize_format
from snapdiff.errors import AlreadyExists, DecodeFailure, SnapshotNotFound, StoreCorruption
from snapdiff.models.raster import Raster
from snapdiff.models.snapshot import Snapshot, SnapshotItem
from snapdiff.utils.fs import atomic_write_bytes, atomic_write_text, ensure_dir, fsync_dir

logger = logging.getLogger(__name__)

METADATA_FILE = "snapshot.json"
STAGING_PREFIX = ".staging-"
TRASH_PREFIX = ".trash-"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

# Serialises writers per snapshot directory within this process; the atomic
# directory rename is what protects readers and other processes. Entries go
# away once no writer holds the lock.
_write_locks: weakref.WeakValueDictionary[Path, threading.Lock] = weakref.WeakValueDictionary()
_write_locks_guard = threading.Lock()


def _write_lock(path: Path) -> threading.Lock:
    key = path.resolve()
    with _write_locks_guard:
        lock = _write_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _write_locks[key] = lock
        return lock


def safe_filename(key: str) -> str:
    """File-system safe stem for an item key (``12:34`` -> ``12-34``)."""
    return _UNSAFE_CHARS.sub("-", key).strip(".-") or "item"


def validate_name(name: str) -> str:
    if not name or name.strip() != name:
        raise ValueError(f"Invalid snapshot name: {name!r}")
    if "/" in name or "\\" in name or name.startswith(".") or "\x00" in name:
        raise ValueError(f"Invalid snapshot name: {name!r}")
    return name


def _now_iso(created_at: datetime | None = None) -> str:
    ts = created_at or datetime.now(timezone.utc)
    return ts.astimezone(timezone.utc).isoformat()


def _parse_created_at(snapshot: Snapshot) -> datetime:
    return datetime.fromisoformat(snapshot.created_at)


def read_snapshot_item(snapshot: Snapshot, key: str, registry: CodecRegistry | None = None) -> Raster:
    """Decode one stored item, checking it against the hash recorded at capture."""
    item = snapshot.items[key]
    path = snapshot.item_path(key)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise StoreCorruption(f"Snapshot '{snapshot.name}': cannot read {path}: {e}", snapshot.name, path) from e

    digest = hashlib.sha256(data).hexdigest()
    if digest != item.image_hash:
        raise StoreCorruption(
            f"Snapshot '{snapshot.name}': {path} does not match its recorded hash",
            snapshot.name,
            path,
        )
    try:
        return (registry or default_registry()).decode(data, key)
    except DecodeFailure as e:
        raise StoreCorruption(f"Snapshot '{snapshot.name}': {e}", snapshot.name, path) from e


class SnapshotStore:
    """Creates, lists and loads snapshots under a single root directory."""

    def __init__(self, root: str | Path, image_format: str = "png", registry: CodecRegistry | None = None):
        if normalize_format(image_format) not in LOSSLESS_FORMATS:
            raise ValueError(
                f"Snapshot image format must be lossless RGBA ({', '.join(LOSSLESS_FORMATS)}), got '{image_format}'"
            )
        self.root = Path(root)
        self.registry = registry or default_registry()
        self.codec = self.registry.get(image_format)

    def snapshot_dir(self, name: str) -> Path:
        return self.root / validate_name(name)

    def exists(self, name: str) -> bool:
        return (self.snapshot_dir(name) / METADATA_FILE).exists()

    def _unique_filenames(self, keys: list[str]) -> dict[str, str]:
        ext = self.codec.extensions[0]
        used: set[str] = {METADATA_FILE}
        names = {}
        for key in keys:
            stem = safe_filename(key)
            candidate = f"{stem}{ext}"
            n = 2
            while candidate in used:
                candidate = f"{stem}-{n}{ext}"
                n += 1
            used.add(candidate)
            names[key] = candidate
        return names

    def _stage(
        self,
        staging: Path,
        name: str,
        items: Mapping[str, Raster],
        source: str | None,
        labels: Mapping[str, str],
        created_at: datetime | None,
    ) -> Snapshot:
        staging.mkdir(parents=True)
        keys = sorted(items)
        filenames = self._unique_filenames(keys)
        records: dict[str, SnapshotItem] = {}
        for key in keys:
            raster = items[key]
            data = self.codec.encode(raster)
            atomic_write_bytes(staging / filenames[key], data)
            records[key] = SnapshotItem(
                key=key,
                label=labels.get(key, key),
                filename=filenames[key],
                image_hash=hashlib.sha256(data).hexdigest(),
                width=raster.width,
                height=raster.height,
            )
            logger.debug("Staged %s -> %s (%dx%d)", key, filenames[key], raster.width, raster.height)

        snapshot = Snapshot(name=name, created_at=_now_iso(created_at), source=source, items=records)
        atomic_write_text(staging / METADATA_FILE, json.dumps(snapshot.model_dump(mode="json"), indent=2) + "\n")
        return snapshot

    def create(
        self,
        name: str,
        items: Mapping[str, Raster],
        *,
        overwrite: bool = False,
        source: str | None = None,
        labels: Mapping[str, str] | None = None,
        created_at: datetime | None = None,
    ) -> Snapshot:
        """Persist ``items`` as snapshot ``name``.

        Raises AlreadyExists when the name is taken unless ``overwrite`` is
        set, in which case the previous snapshot is replaced as a whole.
        """
        final = self.snapshot_dir(name)
        ensure_dir(self.root)

        with _write_lock(final):
            if (final / METADATA_FILE).exists() and not overwrite:
                raise AlreadyExists(f"Snapshot '{name}' already exists at {final}", name, final)

            staging = self.root / f"{STAGING_PREFIX}{name}-{uuid.uuid4().hex[:8]}"
            try:
                snapshot = self._stage(staging, name, items, source, labels or {}, created_at)
            except BaseException:
                shutil.rmtree(staging, ignore_errors=True)
                raise

            trash = None
            if final.exists():
                trash = self.root / f"{TRASH_PREFIX}{name}-{uuid.uuid4().hex[:8]}"
                final.rename(trash)
            try:
                staging.rename(final)
            except OSError:
                if trash is not None:
                    trash.rename(final)
                shutil.rmtree(staging, ignore_errors=True)
                raise
            fsync_dir(self.root)
            if trash is not None:
                shutil.rmtree(trash, ignore_errors=True)
                logger.info("Replaced snapshot '%s'", name)

        logger.info("Snapshot '%s' created with %d items at %s", name, len(snapshot.items), final)
        return snapshot.model_copy(update={"directory": final})

    def create_from_bytes(self, name: str, images: Mapping[str, bytes], **kwargs) -> Snapshot:
        """Decode collaborator-supplied image bytes, then :meth:`create`.

        Every buffer is decoded before anything touches the disk, so a bad
        image aborts the capture without leaving partial state.
        """
        rasters = {key: self.registry.decode(data, key) for key, data in images.items()}
        return self.create(name, rasters, **kwargs)

    def load(self, name: str) -> Snapshot:
        """Rebuild a snapshot from its metadata, checking every image is present."""
        directory = self.snapshot_dir(name)
        meta_path = directory / METADATA_FILE
        if not meta_path.exists():
            raise SnapshotNotFound(f"Snapshot '{name}' not found at {directory}", name, directory)

        try:
            with open(meta_path) as f:
                data = json.load(f)
            snapshot = Snapshot.model_validate({**data, "directory": directory})
            _parse_created_at(snapshot)
        except (OSError, ValueError, ValidationError) as e:
            raise StoreCorruption(f"Snapshot '{name}': invalid metadata {meta_path}: {e}", name, meta_path) from e

        if snapshot.name != name:
            raise StoreCorruption(
                f"Snapshot '{name}': metadata names it '{snapshot.name}'", name, meta_path
            )
        for key, item in snapshot.items.items():
            if item.key != key:
                raise StoreCorruption(f"Snapshot '{name}': item '{key}' is recorded as '{item.key}'", name, meta_path)
            path = directory / item.filename
            if Path(item.filename).name != item.filename or not path.is_file():
                raise StoreCorruption(f"Snapshot '{name}': missing image for '{key}': {path}", name, path)
        return snapshot

    def list(self) -> list[Snapshot]:
        """All snapshots, most recent first (ties broken by name).

        Directories whose names could never have been created through the
        store are skipped with a warning rather than failing the listing.
        """
        if not self.root.is_dir():
            return []
        snapshots = []
        for child in self.root.iterdir():
            if not child.is_dir() or child.name.startswith(".") or not (child / METADATA_FILE).exists():
                continue
            try:
                validate_name(child.name)
            except ValueError:
                logger.warning("Skipping %s: not a valid snapshot name", child)
                continue
            snapshots.append(self.load(child.name))
        snapshots.sort(key=lambda s: s.name)
        snapshots.sort(key=_parse_created_at, reverse=True)
        return snapshots

    def read_item(self, snapshot: Snapshot, key: str) -> Raster:
        return read_snapshot_item(snapshot, key, self.registry)

    def delete(self, name: str) -> None:
        final = self.snapshot_dir(name)
        with _write_lock(final):
            if not (final / METADATA_FILE).exists():
                raise SnapshotNotFound(f"Snapshot '{name}' not found at {final}", name, final)
            trash = self.root / f"{TRASH_PREFIX}{name}-{uuid.uuid4().hex[:8]}"
            final.rename(trash)
            shutil.rmtree(trash, ignore_errors=True)
        logger.info("Deleted snapshot '%s'", name)
