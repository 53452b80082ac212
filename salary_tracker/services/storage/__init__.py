"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The ledger is a single JSON blob kept in a local directory, but the
interfaces allow other backends.
"""

from salary_tracker.services.storage.interface import (
    AuditStorageInterface,
    BlobStore,
    EntryStorageInterface,
    FormatError,
    StorageError,
)
from salary_tracker.services.storage.blob_store import (
    FileBlobStore,
    InMemoryBlobStore,
)
from salary_tracker.services.storage.entry_store import (
    DEFAULT_ENTRIES_KEY,
    BlobEntryStorage,
    snapshot_filename,
)
from salary_tracker.services.storage.audit_store import JsonLinesAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BlobStore",
    "EntryStorageInterface",
    # Exceptions
    "FormatError",
    "StorageError",
    # Implementations
    "BlobEntryStorage",
    "DEFAULT_ENTRIES_KEY",
    "FileBlobStore",
    "InMemoryBlobStore",
    "JsonLinesAuditStorage",
    "snapshot_filename",
]
