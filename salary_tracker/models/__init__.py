"""
Data Models Package

This package contains all Pydantic models used in the Salary Tracker.
All data flowing through the system must conform to these schemas.
"""

from salary_tracker.models.entry import (
    CATEGORIES_BY_TYPE,
    Disbursement,
    EntryDraft,
    EntryValidationError,
    ExpenseCategory,
    ExtractedEntryData,
    FinancialEntry,
    IncomeCategory,
    LineItem,
    LineItemType,
    TransactionType,
    coerce_date,
    coerce_number,
)
from salary_tracker.models.analytics import (
    CareerScorecard,
    CompositionSlice,
    DashboardSummary,
    DisbursementGroup,
    HourlyPoint,
    LineItemPoint,
    MonthlyBucket,
    Totals,
    YearlyBucket,
)
from salary_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entry models
    "CATEGORIES_BY_TYPE",
    "Disbursement",
    "EntryDraft",
    "EntryValidationError",
    "ExpenseCategory",
    "ExtractedEntryData",
    "FinancialEntry",
    "IncomeCategory",
    "LineItem",
    "LineItemType",
    "TransactionType",
    "coerce_date",
    "coerce_number",
    # Analytics models
    "CareerScorecard",
    "CompositionSlice",
    "DashboardSummary",
    "DisbursementGroup",
    "HourlyPoint",
    "LineItemPoint",
    "MonthlyBucket",
    "Totals",
    "YearlyBucket",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
