"""
Blob Store Implementations

The ledger lives in one named blob holding a JSON array, the same way the
browser version kept it in a single localStorage key. FileBlobStore keeps
one file per key under a data directory; InMemoryBlobStore is for tests.

Writes go to a temporary file first and are swapped in with os.replace, so a
crash mid-write leaves the previous ledger intact.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from salary_tracker.services.storage.interface import BlobStore, StorageError


logger = structlog.get_logger(__name__)


class FileBlobStore(BlobStore):
    """Blob store backed by files in a directory."""

    def __init__(self, directory: Path):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, key: str) -> Path:
        return self._directory / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def put(self, key: str, data: bytes) -> None:
        try:
            self._write_atomic(self.path_for(key), data)
        except OSError as e:
            raise StorageError(f"Failed to write blob {key!r}: {e}")

    def delete(self, key: str) -> None:
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete blob {key!r}: {e}")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write_atomic(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
        except OSError:
            logger.warning("blob_write_retry", path=str(path))
            Path(tmp_name).unlink(missing_ok=True)
            raise


class InMemoryBlobStore(BlobStore):
    """Blob store held in a dict. Nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, bytes]] = None):
        self._blobs: dict[str, bytes] = dict(initial or {})

    def get(self, key: str) -> Optional[bytes]:
        return self._blobs.get(key)

    def put(self, key: str, data: bytes) -> None:
        self._blobs[key] = bytes(data)

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)
