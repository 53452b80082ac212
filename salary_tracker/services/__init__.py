"""Services package."""

from salary_tracker.services.storage import (
    AuditStorageInterface,
    BlobEntryStorage,
    BlobStore,
    EntryStorageInterface,
    FileBlobStore,
    FormatError,
    InMemoryBlobStore,
    JsonLinesAuditStorage,
    StorageError,
    snapshot_filename,
)

__all__ = [
    "AuditStorageInterface",
    "BlobEntryStorage",
    "BlobStore",
    "EntryStorageInterface",
    "FileBlobStore",
    "FormatError",
    "InMemoryBlobStore",
    "JsonLinesAuditStorage",
    "StorageError",
    "snapshot_filename",
]
