"""
Abstract Storage Interface

We define abstract interfaces for storage operations so that:
1. The local JSON blob store can be swapped for something else later
2. Tests can run against in-memory storage
3. Business logic stays decoupled from where the bytes live

The interface is intentionally small. Entries are never updated in place,
so there is no update operation.
"""

from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import Optional

from salary_tracker.models.audit import AuditEvent
from salary_tracker.models.entry import FinancialEntry


class BlobStore(ABC):
    """
    Key-value store of opaque byte blobs.

    The tracker keeps its whole ledger in a single blob under a fixed key.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the blob stored under key, or None if there is none."""
        pass

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """
        Store data under key, replacing any previous blob.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the blob under key. Missing keys are ignored."""
        pass


class EntryStorageInterface(ABC):
    """
    Abstract interface for the entry ledger.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def list_entries(self) -> list[FinancialEntry]:
        """
        List all entries.

        Returns:
            Entries ordered by date, most recent first. Entries sharing
            a date keep their insertion order.
        """
        pass

    @abstractmethod
    def append_entry(self, entry: FinancialEntry) -> None:
        """
        Persist a new entry.

        Args:
            entry: The entry to store

        Raises:
            EntryValidationError: If amount, source or date is missing
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove_entry(self, entry_id: str) -> bool:
        """
        Delete an entry by ID. Removing an unknown ID is a no-op.

        Returns:
            True if an entry was removed
        """
        pass

    @abstractmethod
    def export_snapshot(self) -> bytes:
        """
        Serialize the full current collection.

        Returns:
            The exact persisted JSON array as bytes
        """
        pass

    @abstractmethod
    def export_to_file(self, directory: Path, today: Optional[date] = None) -> Path:
        """
        Write the snapshot to salary_backup_<date>.json in directory.

        Returns:
            Path of the written file
        """
        pass

    @abstractmethod
    def import_snapshot(self, blob: bytes) -> bool:
        """
        Replace the whole collection with the records in blob.

        Args:
            blob: JSON array of entry records

        Returns:
            True on success

        Raises:
            FormatError: If blob is not a JSON array of objects. Existing
                data is left untouched.
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(self, correlation_id) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Get the most recent audit events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class FormatError(StorageError):
    """A backup blob could not be read as an array of entry records."""
    pass
