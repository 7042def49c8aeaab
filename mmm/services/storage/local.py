"""
Local Storage Implementations

JsonFileBlobStore keeps each blob in ``<data_dir>/<key>.json``. Writes go
to a temporary file in the same directory followed by an atomic rename,
so a crash mid-save leaves the previous blob intact.

InMemoryBlobStore keeps the serialized blobs in a dict. It is the backend
for tests and for running without any persistence.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional

from mmm.services.storage.interface import BlobLedgerStorage, StorageError


class InMemoryBlobStore(BlobLedgerStorage):
    """Blobs held in process memory."""

    def __init__(
        self,
        transactions_key: str = "mmm_transactions",
        groups_key: str = "mmm_groups",
    ):
        super().__init__(transactions_key, groups_key)
        self.blobs: dict[str, str] = {}

    def _read_blob(self, key: str) -> Optional[str]:
        return self.blobs.get(key)

    def _write_blob(self, key: str, value: str) -> None:
        self.blobs[key] = value


class JsonFileBlobStore(BlobLedgerStorage):
    """One JSON file per blob key in a data directory."""

    def __init__(
        self,
        data_dir: Path,
        transactions_key: str = "mmm_transactions",
        groups_key: str = "mmm_groups",
    ):
        super().__init__(transactions_key, groups_key)
        self.data_dir = Path(data_dir)

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def _read_blob(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def _write_blob(self, key: str, value: str) -> None:
        path = self.path_for(key)
        temp_name = None
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                suffix=".tmp",
                prefix=f"{key}-",
                dir=self.data_dir,
                delete=False,
            ) as tf:
                temp_name = tf.name
                tf.write(value)
                tf.flush()
                os.fsync(tf.fileno())
            os.replace(temp_name, path)
        except OSError as e:
            if temp_name and os.path.exists(temp_name):
                os.unlink(temp_name)
            raise StorageError(f"Failed to write {path}: {e}") from e
