"""
Tests for the ledger storage.

Uses InMemoryBlobStore for the ledger logic and tmp_path for the
file-backed store and the audit log.
"""

import json
from datetime import date
from uuid import uuid4

import pytest

from salary_tracker.analytics.engine import compute_totals
from salary_tracker.models.audit import AuditEventBuilder
from salary_tracker.models.entry import EntryValidationError, FinancialEntry
from salary_tracker.services.storage import (
    DEFAULT_ENTRIES_KEY,
    BlobEntryStorage,
    FileBlobStore,
    FormatError,
    InMemoryBlobStore,
    JsonLinesAuditStorage,
    StorageError,
    snapshot_filename,
)


def make_entry(entry_date: str, **fields) -> FinancialEntry:
    fields.setdefault("source", "Acme Corp")
    fields.setdefault("amount", 1000)
    return FinancialEntry(date=entry_date, **fields)


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def storage(blob_store):
    return BlobEntryStorage(blob_store).open()


class TestBlobEntryStorage:
    """Tests for the single-blob ledger."""

    def test_empty_ledger(self, storage):
        assert storage.list_entries() == []
        assert storage.export_snapshot() == b"[]"

    def test_default_key(self, blob_store, storage):
        storage.append_entry(make_entry("2024-01-31"))
        assert blob_store.get(DEFAULT_ENTRIES_KEY) is not None
        assert storage.key == "financial_track_data_v2"

    def test_entries_sorted_newest_first(self, storage):
        storage.append_entry(make_entry("2024-01-31", amount=1))
        storage.append_entry(make_entry("2024-03-31", amount=3))
        storage.append_entry(make_entry("2024-02-29", amount=2))

        assert [entry.amount for entry in storage.list_entries()] == [3, 2, 1]

    def test_persisted_blob_is_sorted_camel_case_array(self, blob_store, storage):
        storage.append_entry(make_entry("2024-01-31", gross_amount=1300))
        storage.append_entry(make_entry("2024-02-29"))

        records = json.loads(blob_store.get(DEFAULT_ENTRIES_KEY))

        assert [record["date"] for record in records] == ["2024-02-29", "2024-01-31"]
        assert records[1]["grossAmount"] == 1300

    def test_same_day_entries_keep_insertion_order(self, storage):
        storage.append_entry(make_entry("2024-01-31", source="First"))
        storage.append_entry(make_entry("2024-01-31", source="Second"))

        assert [entry.source for entry in storage.list_entries()] == ["First", "Second"]

    def test_append_rejects_incomplete_entry(self, storage):
        with pytest.raises(EntryValidationError):
            storage.append_entry(make_entry("2024-01-31", amount=0))
        assert storage.list_entries() == []

    def test_remove_entry(self, storage):
        entry = make_entry("2024-01-31")
        storage.append_entry(entry)
        storage.append_entry(make_entry("2024-02-29"))

        assert storage.remove_entry(entry.id) is True
        assert entry.id not in [e.id for e in storage.list_entries()]
        assert len(storage.list_entries()) == 1

    def test_remove_is_idempotent(self, storage):
        """Removing an unknown id is a no-op."""
        storage.append_entry(make_entry("2024-01-31"))
        before = storage.export_snapshot()

        assert storage.remove_entry("missing") is False
        assert storage.export_snapshot() == before

    def test_survives_reopen(self, blob_store, storage):
        storage.append_entry(make_entry("2024-01-31", source="Acme"))

        reopened = BlobEntryStorage(blob_store).open()

        assert [entry.source for entry in reopened.list_entries()] == ["Acme"]

    def test_corrupt_blob_reads_as_empty(self):
        blob_store = InMemoryBlobStore({DEFAULT_ENTRIES_KEY: b"{not json"})
        assert BlobEntryStorage(blob_store).open().list_entries() == []

    def test_unusable_records_skipped(self):
        records = [
            {"id": "ok", "date": "2024-01-31", "source": "Acme", "amount": 1},
            {"id": "no-date", "source": "Acme", "amount": 1},
        ]
        blob_store = InMemoryBlobStore({DEFAULT_ENTRIES_KEY: json.dumps(records).encode()})

        entries = BlobEntryStorage(blob_store).open().list_entries()

        assert [entry.id for entry in entries] == ["ok"]

    def test_clear(self, blob_store, storage):
        storage.append_entry(make_entry("2024-01-31"))

        storage.clear()

        assert storage.list_entries() == []
        assert blob_store.get(DEFAULT_ENTRIES_KEY) is None


class TestSnapshots:
    """Tests for backup export and import."""

    def test_import_replaces_ledger(self, storage):
        storage.append_entry(make_entry("2024-01-31", source="Old"))
        backup = json.dumps([
            {"id": "a", "date": "2023-05-31", "source": "New", "amount": 10},
        ])

        assert storage.import_snapshot(backup) is True

        assert [entry.source for entry in storage.list_entries()] == ["New"]

    def test_export_after_import_is_byte_identical(self, storage):
        backup = b'[{"id": "a", "date": "2023-05-31", "source": "New", "amount": 10}]'

        storage.import_snapshot(backup)

        assert storage.export_snapshot() == backup

    def test_import_accepts_any_array(self, storage):
        """Elements that are not objects are kept in the backup but never listed."""
        storage.append_entry(make_entry("2024-01-31", source="Old"))
        backup = b'[1, {"id": "a", "date": "2023-05-31", "source": "New", "amount": 10}, "x"]'

        assert storage.import_snapshot(backup) is True

        assert storage.export_snapshot() == backup
        assert [entry.id for entry in storage.list_entries()] == ["a"]

    def test_import_array_without_objects(self, storage):
        assert storage.import_snapshot("[1, 2]") is True

        assert storage.export_snapshot() == b"[1, 2]"
        assert storage.list_entries() == []

    def test_append_to_ledger_with_non_object_records(self, blob_store):
        blob_store.put(DEFAULT_ENTRIES_KEY, b'[null, {"id": "a", "date": "2023-05-31", "source": "Acme", "amount": 1}]')
        storage = BlobEntryStorage(blob_store).open()

        storage.append_entry(make_entry("2024-01-31"))

        assert [entry.entry_date for entry in storage.list_entries()] == [
            date(2024, 1, 31),
            date(2023, 5, 31),
        ]

    def test_imported_long_text_is_listed_and_counted(self, storage):
        """Long notes, sources and line-item names never hide a record."""
        record = {
            "id": "long",
            "date": "2024-02-29",
            "source": "S" * 400,
            "amount": 1000,
            "notes": "x" * 2500,
            "lineItems": [{"name": "E" * 300, "amount": 1000}],
        }
        storage.import_snapshot(json.dumps([record]))

        entries = storage.list_entries()

        assert [entry.id for entry in entries] == ["long"]
        assert len(entries[0].notes) == 2500
        assert compute_totals(entries).total_net == 1000

    @pytest.mark.parametrize("payload", [
        '{"a": 1}',
        '"text"',
        "not json",
    ])
    def test_invalid_import_keeps_data(self, storage, payload):
        """A rejected import leaves the ledger untouched."""
        storage.append_entry(make_entry("2024-01-31", source="Kept"))
        before = storage.export_snapshot()

        with pytest.raises(FormatError):
            storage.import_snapshot(payload)

        assert storage.export_snapshot() == before
        assert [entry.source for entry in storage.list_entries()] == ["Kept"]

    def test_snapshot_filename(self):
        assert snapshot_filename(date(2024, 3, 1)) == "salary_backup_2024-03-01.json"

    def test_export_to_file(self, storage, tmp_path):
        storage.append_entry(make_entry("2024-01-31"))

        path = storage.export_to_file(tmp_path, today=date(2024, 3, 1))

        assert path.name == "salary_backup_2024-03-01.json"
        assert path.read_bytes() == storage.export_snapshot()


class TestFileBlobStore:
    """Tests for the file-backed blob store."""

    def test_missing_key(self, tmp_path):
        assert FileBlobStore(tmp_path).get("absent") is None

    def test_put_get_delete(self, tmp_path):
        store = FileBlobStore(tmp_path / "data")

        store.put("ledger", b"[]")

        assert store.path_for("ledger").exists()
        assert store.get("ledger") == b"[]"

        store.delete("ledger")
        store.delete("ledger")

        assert store.get("ledger") is None

    def test_no_temp_files_left(self, tmp_path):
        store = FileBlobStore(tmp_path)
        store.put("ledger", b"[1]")
        store.put("ledger", b"[2]")

        assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]

    def test_write_failure_raises_storage_error(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("a file, not a directory")

        with pytest.raises(StorageError):
            FileBlobStore(blocker).put("ledger", b"[]")


class TestJsonLinesAuditStorage:
    """Tests for the append-only audit log."""

    def test_recent_events_newest_first(self, tmp_path):
        audit = JsonLinesAuditStorage(tmp_path / "audit.jsonl")
        audit.append_event(AuditEventBuilder.ledger_cleared(entry_count=1))
        audit.append_event(AuditEventBuilder.ledger_cleared(entry_count=2))

        events = audit.get_recent_events()

        assert [event.details["entry_count"] for event in events] == [2, 1]

    def test_events_by_correlation_id(self, tmp_path):
        audit = JsonLinesAuditStorage(tmp_path / "audit.jsonl")
        correlation_id = uuid4()
        audit.append_event(AuditEventBuilder.entry_deleted("a", True, correlation_id))
        audit.append_event(AuditEventBuilder.entry_deleted("b", True))

        events = audit.get_events_by_correlation_id(correlation_id)

        assert [event.entity_id for event in events] == ["a"]

    def test_truncated_line_skipped(self, tmp_path):
        path = tmp_path / "audit.jsonl"
        audit = JsonLinesAuditStorage(path)
        audit.append_event(AuditEventBuilder.ledger_cleared(entry_count=1))
        with path.open("a", encoding="utf-8") as handle:
            handle.write('{"event_type": "ledger_cl')

        assert len(audit.get_recent_events()) == 1

    def test_missing_file(self, tmp_path):
        assert JsonLinesAuditStorage(tmp_path / "none.jsonl").get_recent_events() == []
