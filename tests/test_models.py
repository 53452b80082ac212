"""
Tests for Salary Tracker

Test strategy:
1. Unit tests for individual components (models, policies, analytics)
2. Integration tests for flows (with fake Gemini models)
3. No real API calls in tests
"""

import pytest
from datetime import date
from uuid import uuid4

from pydantic import ValidationError

from salary_tracker.analytics.policies import resolve_currency
from salary_tracker.models.entry import (
    Disbursement,
    EntryDraft,
    EntryValidationError,
    ExtractedEntryData,
    FinancialEntry,
    LineItem,
    LineItemType,
    TransactionType,
    coerce_date,
    coerce_number,
)
from salary_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


STORED_RECORD = {
    "id": "entry-1",
    "type": "income",
    "category": "Salary",
    "date": "2024-01-31",
    "source": "Acme Corp",
    "amount": 3000,
    "grossAmount": 4000,
    "tax": 700,
    "deductions": 300,
    "currency": "GBP",
    "workedHours": 160,
    "lineItems": [
        {"name": "Base Salary", "amount": 3800, "ytd": 38000, "type": "EARNING"},
        {"name": "Pension", "amount": 200, "type": "benefit"},
        {"amount": 5},
    ],
    "disbursements": [
        {"bankCode": "20-00-00", "bankName": "Barclays", "accountNo": 12345678, "amount": 3000},
    ],
}


class TestCoercion:
    """Tests for the lenient number and date parsing."""

    def test_number_strips_thousands_separator(self):
        assert coerce_number("1,234.50") == 1234.5

    def test_number_rejects_non_finite(self):
        """NaN and infinity never make it into an entry."""
        assert coerce_number(float("nan")) == 0.0
        assert coerce_number(float("inf")) == 0.0
        assert coerce_number("abc") == 0.0

    def test_number_uses_default_for_blank(self):
        assert coerce_number("", default=None) is None
        assert coerce_number(None, default=None) is None

    def test_date_formats(self):
        assert coerce_date("2024-01-31") == date(2024, 1, 31)
        assert coerce_date("31/01/2024") == date(2024, 1, 31)
        assert coerce_date("2024-01-31T00:00:00.000Z") == date(2024, 1, 31)

    def test_date_unreadable(self):
        assert coerce_date("last tuesday") is None
        assert coerce_date(None) is None


class TestFinancialEntry:
    """Tests for the committed entry model."""

    def test_from_record_reads_camel_case(self):
        """Stored records use camelCase keys."""
        entry = FinancialEntry.from_record(STORED_RECORD)

        assert entry.id == "entry-1"
        assert entry.entry_date == date(2024, 1, 31)
        assert entry.gross_amount == 4000
        assert entry.worked_hours == 160
        assert entry.currency == "GBP"

    def test_malformed_line_items_are_dropped(self):
        """A line item without a name is dropped, the others kept."""
        entry = FinancialEntry.from_record(STORED_RECORD)

        assert [item.name for item in entry.line_items] == ["Base Salary", "Pension"]
        assert entry.line_items[0].type == LineItemType.EARNING
        assert entry.line_items[1].type == LineItemType.BENEFIT

    def test_account_number_coerced_to_text(self):
        entry = FinancialEntry.from_record(STORED_RECORD)
        assert entry.disbursements[0].account_no == "12345678"

    def test_to_record_round_trips_keys(self):
        """to_record writes camelCase keys and omits empty optionals."""
        record = FinancialEntry.from_record(STORED_RECORD).to_record()

        assert record["date"] == "2024-01-31"
        assert record["grossAmount"] == 4000
        assert record["lineItems"][0]["name"] == "Base Salary"
        assert record["disbursements"][0]["bankName"] == "Barclays"
        assert "jobTitle" not in record
        assert "entry_date" not in record

    def test_default_id_is_unique(self):
        first = FinancialEntry(date="2024-01-01", source="A", amount=1)
        second = FinancialEntry(date="2024-01-01", source="A", amount=1)
        assert first.id != second.id

    def test_default_category_follows_type(self):
        income = FinancialEntry(date="2024-01-01", source="A", amount=1)
        expense = FinancialEntry(
            date="2024-01-01", source="Landlord", amount=1, type="expense"
        )
        assert income.category == "Salary"
        assert expense.category == "Other"

    def test_category_must_match_type(self):
        """Expense categories are rejected on income entries."""
        with pytest.raises(ValidationError, match="not valid for income"):
            FinancialEntry(date="2024-01-01", source="A", amount=1, category="Rent")

    def test_entry_is_immutable(self):
        entry = FinancialEntry(date="2024-01-01", source="A", amount=1)
        with pytest.raises(ValidationError):
            entry.amount = 2

    def test_missing_required_fields(self):
        """A zero amount counts as missing."""
        entry = FinancialEntry(date="2024-01-01", amount=0)
        assert entry.missing_required_fields() == ["amount", "source"]

    def test_missing_date_rejected(self):
        with pytest.raises(ValidationError):
            FinancialEntry.from_record({"source": "A", "amount": 1})

    def test_currency_stored_as_entered(self):
        """Source and category are trimmed; the currency code is kept verbatim."""
        entry = FinancialEntry(
            date="2024-01-01", source="  Acme  ", amount=1, category=" Salary ", currency=" gbp "
        )

        assert entry.source == "Acme"
        assert entry.category == "Salary"
        assert entry.currency == " gbp "
        assert entry.to_record()["currency"] == " gbp "
        assert resolve_currency(entry.currency) == "USD"

    def test_long_text_fields_accepted(self):
        entry = FinancialEntry(
            date="2024-01-01",
            source="S" * 400,
            amount=1,
            notes="n" * 2500,
            line_items=[{"name": "Overtime " * 50, "amount": 10}],
        )

        assert len(entry.notes) == 2500
        assert len(entry.source) == 400
        assert entry.line_items[0].name == ("Overtime " * 50).strip()


class TestExtractedEntryData:
    """Tests for the AI extraction result model."""

    def test_empty_result(self):
        assert ExtractedEntryData().is_empty

    def test_partial_result(self):
        extracted = ExtractedEntryData.model_validate({
            "source": "Acme Corp",
            "workedHours": "160",
            "taxCode": 1257,
            "date": "not a date",
        })

        assert not extracted.is_empty
        assert extracted.worked_hours == 160
        assert extracted.tax_code == "1257"
        assert extracted.entry_date is None

    def test_blank_strings_become_none(self):
        extracted = ExtractedEntryData.model_validate({"source": "   "})
        assert extracted.source is None
        assert extracted.is_empty


class TestEntryDraft:
    """Tests for the staging draft between extraction and save."""

    def test_defaults(self):
        draft = EntryDraft()

        assert draft.type == TransactionType.INCOME
        assert draft.category == "Salary"
        assert draft.entry_date == date.today()
        assert draft.currency == "USD"

    def test_build_requires_basic_details(self):
        draft = EntryDraft()

        with pytest.raises(EntryValidationError) as exc_info:
            draft.build()

        assert exc_info.value.missing_fields == ["amount", "source"]
        assert str(exc_info.value).startswith("Please fill in basic details")

    def test_build_requires_date(self):
        draft = EntryDraft(source="Acme", amount=100, date=None)

        with pytest.raises(EntryValidationError) as exc_info:
            draft.build()

        assert exc_info.value.missing_fields == ["date"]

    def test_build_creates_entry(self):
        draft = EntryDraft(source="Acme", amount="3,000", date="2024-02-29")
        draft.tax = 500

        entry = draft.build()

        assert isinstance(entry, FinancialEntry)
        assert entry.amount == 3000
        assert entry.tax == 500
        assert entry.deductions == 0
        assert entry.gross_amount is None
        assert entry.entry_date == date(2024, 2, 29)

    def test_merge_overlays_found_fields(self):
        """Fields the model did not find keep their current values."""
        draft = EntryDraft(source="Typed by hand", notes="keep me")
        extracted = ExtractedEntryData(
            source="Acme Corp",
            amount=3000,
            gross_amount=4000,
        )

        draft.merge(extracted)

        assert draft.source == "Acme Corp"
        assert draft.amount == 3000
        assert draft.gross_amount == 4000
        assert draft.notes == "keep me"
        assert draft.tax is None

    def test_merge_forces_salary(self):
        """A scanned document is always a pay stub."""
        draft = EntryDraft(type="expense", category="Rent")

        draft.merge(ExtractedEntryData(source="Acme Corp"))

        assert draft.type == TransactionType.INCOME
        assert draft.category == "Salary"

    def test_merge_keeps_line_items_when_none_found(self):
        draft = EntryDraft()
        draft.add_line_item("Overtime", 120)

        draft.merge(ExtractedEntryData(source="Acme Corp"))

        assert [item.name for item in draft.line_items] == ["Overtime"]

    def test_merge_replaces_line_items_when_found(self):
        draft = EntryDraft()
        draft.add_line_item("Overtime", 120)
        extracted = ExtractedEntryData(
            line_items=[LineItem(name="Base Salary", amount=3800)],
        )

        draft.merge(extracted)

        assert [item.name for item in draft.line_items] == ["Base Salary"]

    def test_line_item_editing(self):
        draft = EntryDraft()
        draft.add_line_item()
        draft.add_line_item("Pension", 200, LineItemType.BENEFIT)

        updated = draft.update_line_item(0, name="Base Salary", amount="3,800")
        draft.remove_line_item(1)

        assert updated.name == "Base Salary"
        assert updated.amount == 3800
        assert [item.name for item in draft.line_items] == ["Base Salary"]

    def test_new_line_item_defaults(self):
        item = EntryDraft().add_line_item()
        assert item.name == "New Item"
        assert item.amount == 0
        assert item.type == LineItemType.EARNING

    def test_disbursements_carried_into_entry(self):
        draft = EntryDraft(source="Acme", amount=3000)
        draft.disbursements = [Disbursement(bank_name="Barclays", amount=3000)]

        entry = draft.build()

        assert entry.disbursements[0].bank_name == "Barclays"


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.ENTRY_SAVED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.ENTRY_SAVED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description="Something failed",
            error_message="boom",
            correlation_id=correlation_id,
        )

        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "system_error"
        assert log_dict["severity"] == "error"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["error_message"] == "boom"

    def test_builder_entry_saved(self):
        event = AuditEventBuilder.entry_saved(
            entry_id="entry-1",
            source="Acme Corp",
            amount=3000,
        )
        assert event.event_type == AuditEventType.ENTRY_SAVED
        assert event.entity_id == "entry-1"
        assert event.is_user_action
        assert "3,000.00" in event.description

    def test_builder_insight_fallback_is_failure(self):
        event = AuditEventBuilder.insight_generated(
            generation=3,
            line_count=1,
            is_fallback=True,
        )
        assert event.event_type == AuditEventType.INSIGHT_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_id == "3"

    def test_builder_import_failed(self):
        event = AuditEventBuilder.snapshot_import_failed(reason="not an array")
        assert event.event_type == AuditEventType.SNAPSHOT_IMPORT_FAILED
        assert event.error_message == "not an array"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
