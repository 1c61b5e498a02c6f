"""Durable asset manifest persisted as JSON and CSV.

Both forms are rewritten in full on every registration through
temp-file-and-replace, so readers only ever observe a complete manifest.
Callers serialize the load-modify-persist cycle with ``transaction()``.
"""

import json
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import pandas as pd
import structlog
from filelock import FileLock, Timeout
from pydantic import ValidationError

from ..utils.errors import IOFailureError, ManifestCorruptionError
from ..utils.types import (
    MANIFEST_CSV_NAME,
    MANIFEST_FIELDS,
    MANIFEST_JSON_NAME,
    Asset,
)

logger = structlog.get_logger(__name__)

ManifestSnapshot = dict[Path, bytes | None]


def write_bytes_atomic(path: Path, content: bytes) -> None:
    """Atomically replace ``path`` with ``content``."""
    tmp_path = stage_bytes(path, content)
    try:
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def stage_bytes(path: Path, content: bytes) -> Path:
    """Write ``content`` to a temp file beside ``path`` and return its location."""
    with tempfile.NamedTemporaryFile(
        "wb", dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as handle:
        tmp_path = Path(handle.name)
        try:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        except OSError:
            handle.close()
            tmp_path.unlink(missing_ok=True)
            raise
    return tmp_path


class ManifestStore:
    """Reads and rewrites the asset manifest under an exclusive lock."""

    def __init__(self, manifest_dir: Path | str, lock_timeout: float = 10.0):
        """Initialize manifest store."""
        self.manifest_dir = Path(manifest_dir)
        self.json_path = self.manifest_dir / MANIFEST_JSON_NAME
        self.csv_path = self.manifest_dir / MANIFEST_CSV_NAME
        self.lock_path = self.manifest_dir / f"{MANIFEST_JSON_NAME}.lock"
        self.lock_timeout = lock_timeout

        self._thread_lock = threading.RLock()
        self._file_lock = FileLock(str(self.lock_path))

    @contextmanager
    def transaction(self) -> Iterator[list[Asset]]:
        """Hold the manifest lock and yield the current records."""
        with self._thread_lock:
            try:
                self._file_lock.acquire(timeout=self.lock_timeout)
            except Timeout as e:
                logger.error(
                    "Timed out acquiring manifest lock",
                    lock_path=str(self.lock_path),
                    timeout=self.lock_timeout,
                )
                raise IOFailureError(
                    f"Timed out after {self.lock_timeout:.1f}s acquiring manifest lock "
                    f"{self.lock_path}",
                    cause=e,
                ) from e
            try:
                yield self.load()
            finally:
                self._file_lock.release()

    def load(self) -> list[Asset]:
        """Load all records; a missing manifest is an empty one."""
        if not self.json_path.exists():
            return []

        try:
            raw = json.loads(self.json_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ManifestCorruptionError(
                "Manifest is unreadable", manifest_path=self.json_path, cause=e
            ) from e

        if not isinstance(raw, list):
            raise ManifestCorruptionError(
                f"Manifest must be a list of records, found {type(raw).__name__}",
                manifest_path=self.json_path,
            )

        try:
            assets = [Asset.model_validate(record) for record in raw]
        except ValidationError as e:
            raise ManifestCorruptionError(
                "Manifest contains an invalid record",
                manifest_path=self.json_path,
                cause=e,
            ) from e

        seen: set[tuple[str, str, str, str]] = set()
        for asset in assets:
            if asset.key in seen:
                raise ManifestCorruptionError(
                    f"Manifest contains duplicate key {asset.key}",
                    manifest_path=self.json_path,
                )
            seen.add(asset.key)
        return assets

    def persist(self, assets: list[Asset]) -> None:
        """Rewrite both manifest forms, leaving prior content on failure."""
        json_content = (
            json.dumps([asset.to_record() for asset in assets], indent=2) + "\n"
        ).encode("utf-8")
        frame = pd.DataFrame(
            [asset.to_row() for asset in assets], columns=list(MANIFEST_FIELDS)
        )
        csv_content = frame.to_csv(index=False).encode("utf-8")

        staged: list[Path] = []
        try:
            staged.append(stage_bytes(self.json_path, json_content))
            staged.append(stage_bytes(self.csv_path, csv_content))
            previous = self.snapshot()
            os.replace(staged[0], self.json_path)
            try:
                os.replace(staged[1], self.csv_path)
            except OSError:
                self.restore(previous)
                raise
        except OSError as e:
            logger.error(
                "Failed to persist manifest",
                manifest=str(self.json_path),
                error=str(e),
            )
            raise IOFailureError(
                f"Could not write manifest {self.json_path}", cause=e
            ) from e
        finally:
            for tmp_path in staged:
                tmp_path.unlink(missing_ok=True)

        logger.debug("Persisted manifest", records=len(assets))

    def snapshot(self) -> ManifestSnapshot:
        """Capture the raw bytes of both manifest files."""
        return {
            path: path.read_bytes() if path.exists() else None
            for path in (self.json_path, self.csv_path)
        }

    def restore(self, snapshot: ManifestSnapshot) -> None:
        """Put back manifest files captured by ``snapshot``."""
        for path, content in snapshot.items():
            if content is None:
                path.unlink(missing_ok=True)
            else:
                write_bytes_atomic(path, content)

    @staticmethod
    def upsert(assets: list[Asset], asset: Asset) -> tuple[list[Asset], Asset | None]:
        """Replace the record sharing ``asset``'s key in place, or append it."""
        updated = list(assets)
        for index, existing in enumerate(updated):
            if existing.key == asset.key:
                updated[index] = asset
                return updated, existing
        updated.append(asset)
        return updated, None
