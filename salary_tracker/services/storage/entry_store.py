"""
Entry Ledger over a Blob Store

The whole ledger is one JSON array stored under a fixed key. It is loaded
once when the storage is opened and written back in full after every
mutation, sorted by date with the most recent entry first.

Records are kept as plain dicts and only parsed into FinancialEntry on the
way out. An imported backup is stored byte for byte, so exporting straight
after an import returns exactly the file that was imported. Import only
checks that the backup is a JSON array; elements that are not objects are
never listed and are dropped from the blob at the next change.
"""

import json
from datetime import date
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from salary_tracker.models.entry import (
    EntryValidationError,
    FinancialEntry,
    coerce_date,
)
from salary_tracker.services.storage.interface import (
    BlobStore,
    EntryStorageInterface,
    FormatError,
    StorageError,
)


DEFAULT_ENTRIES_KEY = "financial_track_data_v2"

logger = structlog.get_logger(__name__)


def snapshot_filename(today: Optional[date] = None) -> str:
    """Backup file name, e.g. salary_backup_2024-03-01.json."""
    today = today or date.today()
    return f"salary_backup_{today.isoformat()}.json"


def _record_date(record: dict) -> date:
    # Records without a readable date sort last.
    return coerce_date(record.get("date")) or date.min


def _decode_snapshot(blob: Union[bytes, str]) -> list:
    """Parse a backup blob. Any JSON array is accepted."""
    try:
        parsed = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise FormatError(f"Backup is not valid JSON: {e}")

    if not isinstance(parsed, list):
        raise FormatError(
            f"Backup must contain a JSON array, got {type(parsed).__name__}"
        )
    return parsed


def _object_records(parsed: list) -> list[dict]:
    """Keep the elements that can hold an entry; the rest are never listed."""
    records = [record for record in parsed if isinstance(record, dict)]
    if len(records) != len(parsed):
        logger.warning(
            "ledger_non_object_records_ignored",
            ignored=len(parsed) - len(records),
        )
    return records


class BlobEntryStorage(EntryStorageInterface):
    """
    Entry ledger persisted as a single JSON blob.

    Call open() at startup. Operations open lazily if it was not called.
    """

    def __init__(self, blob_store: BlobStore, key: str = DEFAULT_ENTRIES_KEY):
        self._blob_store = blob_store
        self._key = key
        self._records: Optional[list[dict]] = None
        self._raw: Optional[bytes] = None

    @property
    def key(self) -> str:
        return self._key

    def open(self) -> 'BlobEntryStorage':
        """Load the persisted ledger. A corrupt blob reads as an empty ledger."""
        raw = self._blob_store.get(self._key)
        self._raw = raw
        if not raw:
            self._records = []
            return self

        try:
            self._records = _object_records(_decode_snapshot(raw))
        except FormatError as e:
            logger.warning("ledger_unreadable", key=self._key, error=str(e))
            self._records = []
        return self

    def _ensure_open(self) -> list[dict]:
        if self._records is None:
            self.open()
        return self._records

    def _flush(self, records: list[dict]) -> None:
        records = sorted(records, key=_record_date, reverse=True)
        data = json.dumps(records, ensure_ascii=False).encode("utf-8")
        self._blob_store.put(self._key, data)
        self._records = records
        self._raw = data

    def list_entries(self) -> list[FinancialEntry]:
        entries = []
        for record in self._ensure_open():
            try:
                entries.append(FinancialEntry.from_record(record))
            except ValidationError as e:
                logger.warning(
                    "ledger_record_skipped",
                    entry_id=record.get("id"),
                    error_count=e.error_count(),
                )
        # sorted() is stable with reverse=True, so same-day entries keep their order
        return sorted(entries, key=lambda entry: entry.entry_date, reverse=True)

    def append_entry(self, entry: FinancialEntry) -> None:
        missing = entry.missing_required_fields()
        if missing:
            raise EntryValidationError(missing)

        records = list(self._ensure_open())
        records.append(entry.to_record())
        self._flush(records)
        logger.debug("ledger_entry_appended", entry_id=entry.id, size=len(records))

    def remove_entry(self, entry_id: str) -> bool:
        records = self._ensure_open()
        kept = [record for record in records if record.get("id") != entry_id]
        if len(kept) == len(records):
            return False
        self._flush(kept)
        return True

    def export_snapshot(self) -> bytes:
        self._ensure_open()
        return self._raw or b"[]"

    def export_to_file(self, directory: Path, today: Optional[date] = None) -> Path:
        path = Path(directory) / snapshot_filename(today)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(self.export_snapshot())
        except OSError as e:
            raise StorageError(f"Failed to write backup {path}: {e}")
        return path

    def import_snapshot(self, blob: Union[bytes, str]) -> bool:
        records = _decode_snapshot(blob)
        data = blob.encode("utf-8") if isinstance(blob, str) else bytes(blob)
        self._blob_store.put(self._key, data)
        self._records = _object_records(records)
        self._raw = data
        return True

    def clear(self) -> None:
        self._blob_store.delete(self._key)
        self._records = []
        self._raw = None
