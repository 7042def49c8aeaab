"""
Storage Services Package

Provides the ledger persistence interface and its implementations:
local JSON files (default), in-memory (tests), and Google Sheets.
"""

from mmm.services.storage.interface import (
    BlobLedgerStorage,
    CorruptDataError,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)
from mmm.services.storage.local import InMemoryBlobStore, JsonFileBlobStore
from mmm.services.storage.google_sheets import (
    GoogleSheetsBlobStore,
    GoogleSheetsClient,
)

__all__ = [
    # Interfaces
    "BlobLedgerStorage",
    "LedgerStorageInterface",
    # Exceptions
    "CorruptDataError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "GoogleSheetsBlobStore",
    "GoogleSheetsClient",
    "InMemoryBlobStore",
    "JsonFileBlobStore",
]
