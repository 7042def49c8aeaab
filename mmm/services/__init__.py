"""Services package."""

from mmm.services.scan import (
    GeminiSlipScanner,
    ScanFailure,
    ScanRequestTracker,
    draft_from_scan,
)
from mmm.services.storage import (
    BlobLedgerStorage,
    CorruptDataError,
    GoogleSheetsBlobStore,
    GoogleSheetsClient,
    InMemoryBlobStore,
    JsonFileBlobStore,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Scan services
    "GeminiSlipScanner",
    "ScanFailure",
    "ScanRequestTracker",
    "draft_from_scan",
    # Storage services
    "BlobLedgerStorage",
    "CorruptDataError",
    "GoogleSheetsBlobStore",
    "GoogleSheetsClient",
    "InMemoryBlobStore",
    "JsonFileBlobStore",
    "LedgerStorageInterface",
    "StorageConnectionError",
    "StorageError",
]
