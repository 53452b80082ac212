"""
Core Data Models for Salary Tracker

These models define the schemas for every record flowing through the system:

1. FinancialEntry - a committed, immutable pay/expense record
2. ExtractedEntryData - what the AI thinks it read off a document
3. EntryDraft - the user-editable staging area between the two

Persisted JSON uses camelCase keys (``grossAmount``, ``lineItems``) so backup
files stay interchangeable with the browser version of the tracker. Python
code uses the snake_case attribute names.

Numeric fields never hold NaN or infinity. Blank form values and garbage
from the extraction model are coerced before validation.
"""

import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Whether an entry is money coming in or going out."""
    INCOME = "income"
    EXPENSE = "expense"


class IncomeCategory(str, Enum):
    SALARY = "Salary"
    BONUS = "Bonus"
    FREELANCE = "Freelance"
    INVESTMENT = "Investment"
    OTHER = "Other"


class ExpenseCategory(str, Enum):
    RENT = "Rent"
    FOOD = "Food"
    TRANSPORT = "Transport"
    UTILITIES = "Utilities"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    OTHER = "Other"


class LineItemType(str, Enum):
    """Role of a line item in the gross breakdown of a pay stub."""
    EARNING = "earning"
    DEDUCTION = "deduction"
    BENEFIT = "benefit"


CATEGORIES_BY_TYPE: dict[TransactionType, set[str]] = {
    TransactionType.INCOME: {c.value for c in IncomeCategory},
    TransactionType.EXPENSE: {c.value for c in ExpenseCategory},
}

DEFAULT_CATEGORY: dict[TransactionType, str] = {
    TransactionType.INCOME: IncomeCategory.SALARY.value,
    TransactionType.EXPENSE: ExpenseCategory.OTHER.value,
}


# =============================================================================
# ERRORS
# =============================================================================

class EntryValidationError(ValueError):
    """An entry is missing fields required before it can be stored."""

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = missing_fields
        super().__init__(
            "Please fill in basic details. Missing: " + ", ".join(missing_fields)
        )


# =============================================================================
# COERCION HELPERS
# =============================================================================

def coerce_number(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    """
    Turn a form or model value into a finite float.

    None, blank strings, non-numeric strings, NaN and infinity all become
    ``default``. Thousands separators in strings are tolerated.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def coerce_date(value: Any) -> Optional[date]:
    """Leniently parse a date, returning None when it cannot be read."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%m/%d/%Y", "%d-%m-%Y"):
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        # ISO timestamps such as 2024-01-31T00:00:00.000Z
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def _coerce_text(value: Any) -> Any:
    """Trimmed text. Codes and account numbers sometimes come back as numbers."""
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return value


_CAMEL_CONFIG = dict(
    alias_generator=to_camel,
    populate_by_name=True,
)


# =============================================================================
# CHILD RECORDS
# =============================================================================

class LineItem(BaseModel):
    """A named earning, deduction or benefit on a pay stub."""

    model_config = ConfigDict(frozen=True, **_CAMEL_CONFIG)

    name: str = Field(..., min_length=1)
    amount: float = 0.0
    ytd: Optional[float] = None
    type: LineItemType = LineItemType.EARNING

    @field_validator('name', mode='before')
    @classmethod
    def coerce_name(cls, v: Any) -> Any:
        return _coerce_text(v)

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        return coerce_number(v)

    @field_validator('ytd', mode='before')
    @classmethod
    def coerce_ytd(cls, v: Any) -> Optional[float]:
        return coerce_number(v, default=None)

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v: Any) -> Any:
        if v is None or v == "":
            return LineItemType.EARNING
        if isinstance(v, str):
            return v.strip().lower()
        return v


class Disbursement(BaseModel):
    """
    Where part of the net pay was sent.

    Disbursements are informational. They are not required to add up
    to the entry's net amount.
    """

    model_config = ConfigDict(frozen=True, **_CAMEL_CONFIG)

    bank_code: str = ""
    bank_name: str = ""
    account_no: str = ""
    amount: float = 0.0

    @field_validator('bank_code', 'bank_name', 'account_no', mode='before')
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _coerce_text(v)

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Any) -> float:
        return coerce_number(v)


def _keep_valid(model: type[BaseModel], items: Any) -> list:
    """Validate a list of child records, dropping the malformed ones."""
    if not isinstance(items, (list, tuple)):
        return []
    kept = []
    for item in items:
        if isinstance(item, model):
            kept.append(item)
            continue
        if not isinstance(item, dict):
            continue
        try:
            kept.append(model.model_validate(item))
        except ValidationError:
            continue
    return kept


# =============================================================================
# COMMITTED ENTRY
# =============================================================================

class FinancialEntry(BaseModel):
    """
    One recorded pay stub or expense.

    Entries are immutable. The only lifecycle events are creation
    (from an EntryDraft or an imported backup) and deletion by id.
    """

    model_config = ConfigDict(frozen=True, **_CAMEL_CONFIG)

    # Identity
    id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Opaque unique identifier"
    )

    # Classification
    type: TransactionType = TransactionType.INCOME
    category: str = Field(
        default="",
        description="Category, must belong to the entry type"
    )

    # Temporal
    entry_date: date = Field(
        ...,
        alias="date",
        description="Pay date"
    )

    # Monetary
    source: str = Field(
        default="",
        description="Employer for income, merchant for expenses"
    )
    amount: float = Field(
        default=0.0,
        description="Net amount for income, total for expenses"
    )
    gross_amount: Optional[float] = None
    tax: float = 0.0
    deductions: float = 0.0
    currency: str = Field(
        default="USD",
        description="Currency code as entered; display falls back to USD"
    )

    # Professional details
    job_title: Optional[str] = None
    department: Optional[str] = None
    worked_hours: Optional[float] = None
    tax_code: Optional[str] = None
    ytd_gross: Optional[float] = None
    ytd_net: Optional[float] = None
    notes: Optional[str] = None

    # Breakdown
    line_items: tuple[LineItem, ...] = ()
    disbursements: tuple[Disbursement, ...] = ()

    @field_validator('entry_date', mode='before')
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        parsed = coerce_date(v)
        return parsed if parsed is not None else v

    @field_validator('amount', 'tax', 'deductions', mode='before')
    @classmethod
    def coerce_required_number(cls, v: Any) -> float:
        return coerce_number(v)

    @field_validator(
        'gross_amount', 'worked_hours', 'ytd_gross', 'ytd_net', mode='before'
    )
    @classmethod
    def coerce_optional_number(cls, v: Any) -> Optional[float]:
        return coerce_number(v, default=None)

    @field_validator('source', 'category', mode='before')
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _coerce_text(v)

    @field_validator('currency', mode='before')
    @classmethod
    def blank_if_none(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator('line_items', mode='before')
    @classmethod
    def keep_valid_line_items(cls, v: Any) -> list:
        return _keep_valid(LineItem, v)

    @field_validator('disbursements', mode='before')
    @classmethod
    def keep_valid_disbursements(cls, v: Any) -> list:
        return _keep_valid(Disbursement, v)

    @model_validator(mode='after')
    def validate_category(self) -> 'FinancialEntry':
        """Fill in the default category and reject ones from the other type."""
        if not self.category:
            object.__setattr__(self, "category", DEFAULT_CATEGORY[self.type])
        elif self.category not in CATEGORIES_BY_TYPE[self.type]:
            raise ValueError(
                f"Category {self.category!r} is not valid for {self.type.value} entries"
            )
        return self

    def missing_required_fields(self) -> list[str]:
        """Required fields that are absent (a zero amount counts as absent)."""
        missing = []
        if not self.amount:
            missing.append("amount")
        if not self.source:
            missing.append("source")
        if self.entry_date is None:
            missing.append("date")
        return missing

    def to_record(self) -> dict:
        """Serialize to the camelCase JSON shape used in storage and backups."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, record: dict) -> 'FinancialEntry':
        """Parse a stored record. Raises pydantic.ValidationError if unusable."""
        return cls.model_validate(record)


# =============================================================================
# AI EXTRACTION RESULT
# =============================================================================

class ExtractedEntryData(BaseModel):
    """
    Fields the extraction model read off a pay stub.

    This is PROPOSED data, not verified. It is only ever merged into an
    EntryDraft for the user to review. Every field is optional because
    the model might miss any of them.
    """

    model_config = ConfigDict(**_CAMEL_CONFIG)

    source: Optional[str] = None
    entry_date: Optional[date] = Field(default=None, alias="date")
    currency: Optional[str] = None
    tax_code: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    worked_hours: Optional[float] = None
    gross_amount: Optional[float] = None
    amount: Optional[float] = None
    tax: Optional[float] = None
    deductions: Optional[float] = None
    ytd_gross: Optional[float] = None
    ytd_net: Optional[float] = None
    line_items: list[LineItem] = Field(default_factory=list)
    disbursements: list[Disbursement] = Field(default_factory=list)

    @field_validator('entry_date', mode='before')
    @classmethod
    def parse_date(cls, v: Any) -> Optional[date]:
        return coerce_date(v)

    @field_validator(
        'worked_hours', 'gross_amount', 'amount', 'tax', 'deductions',
        'ytd_gross', 'ytd_net',
        mode='before',
    )
    @classmethod
    def coerce_optional_number(cls, v: Any) -> Optional[float]:
        return coerce_number(v, default=None)

    @field_validator(
        'source', 'currency', 'tax_code', 'job_title', 'department',
        mode='before',
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if v is None:
            return None
        if not isinstance(v, str):
            v = str(v)
        return v.strip() or None

    @field_validator('line_items', mode='before')
    @classmethod
    def keep_valid_line_items(cls, v: Any) -> list:
        return _keep_valid(LineItem, v)

    @field_validator('disbursements', mode='before')
    @classmethod
    def keep_valid_disbursements(cls, v: Any) -> list:
        return _keep_valid(Disbursement, v)

    @property
    def is_empty(self) -> bool:
        """True when nothing usable was extracted."""
        return not self.model_dump(exclude_none=True, exclude_defaults=True)


# =============================================================================
# STAGING DRAFT
# =============================================================================

class EntryDraft(BaseModel):
    """
    User-editable form state for a new entry.

    Starts from form defaults, may be overlaid with an extraction result,
    edited field by field, and finally built into a FinancialEntry.
    """

    model_config = ConfigDict(validate_assignment=True, **_CAMEL_CONFIG)

    type: TransactionType = TransactionType.INCOME
    category: str = IncomeCategory.SALARY.value
    entry_date: Optional[date] = Field(default_factory=date.today, alias="date")
    source: str = ""
    amount: Optional[float] = None
    gross_amount: Optional[float] = None
    tax: Optional[float] = None
    deductions: Optional[float] = None
    currency: str = "USD"
    job_title: Optional[str] = None
    department: Optional[str] = None
    worked_hours: Optional[float] = None
    tax_code: Optional[str] = None
    ytd_gross: Optional[float] = None
    ytd_net: Optional[float] = None
    notes: Optional[str] = None
    line_items: list[LineItem] = Field(default_factory=list)
    disbursements: list[Disbursement] = Field(default_factory=list)

    @field_validator('entry_date', mode='before')
    @classmethod
    def parse_date(cls, v: Any) -> Optional[date]:
        return coerce_date(v)

    @field_validator(
        'amount', 'gross_amount', 'tax', 'deductions', 'worked_hours',
        'ytd_gross', 'ytd_net',
        mode='before',
    )
    @classmethod
    def coerce_optional_number(cls, v: Any) -> Optional[float]:
        return coerce_number(v, default=None)

    @field_validator('source', 'category', mode='before')
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return _coerce_text(v)

    @field_validator('currency', mode='before')
    @classmethod
    def blank_if_none(cls, v: Any) -> Any:
        return "" if v is None else v

    def merge(self, extracted: ExtractedEntryData) -> 'EntryDraft':
        """
        Overlay the fields the extraction model found.

        Fields it did not find keep their current values. A scanned
        document is always a pay stub, so the category becomes Salary.
        """
        found = extracted.model_dump(exclude_none=True)
        for field_name, value in found.items():
            if field_name in ("line_items", "disbursements"):
                if value:
                    setattr(self, field_name, list(getattr(extracted, field_name)))
                continue
            setattr(self, field_name, value)
        self.type = TransactionType.INCOME
        self.category = IncomeCategory.SALARY.value
        return self

    def add_line_item(
        self,
        name: str = "New Item",
        amount: float = 0.0,
        item_type: LineItemType = LineItemType.EARNING,
        ytd: Optional[float] = None,
    ) -> LineItem:
        item = LineItem(name=name, amount=amount, type=item_type, ytd=ytd)
        self.line_items = [*self.line_items, item]
        return item

    def update_line_item(self, index: int, **fields: Any) -> LineItem:
        """Replace one line item with a copy carrying the given field values."""
        current = self.line_items[index]
        updated = LineItem.model_validate({**current.model_dump(), **fields})
        items = list(self.line_items)
        items[index] = updated
        self.line_items = items
        return updated

    def remove_line_item(self, index: int) -> None:
        self.line_items = [
            item for i, item in enumerate(self.line_items) if i != index
        ]

    def build(self) -> FinancialEntry:
        """
        Commit the draft into an immutable entry.

        Raises:
            EntryValidationError: If amount, source or date is missing
        """
        missing = []
        if not self.amount:
            missing.append("amount")
        if not self.source:
            missing.append("source")
        if self.entry_date is None:
            missing.append("date")
        if missing:
            raise EntryValidationError(missing)

        return FinancialEntry(
            type=self.type,
            category=self.category,
            entry_date=self.entry_date,
            source=self.source,
            amount=self.amount,
            gross_amount=self.gross_amount,
            tax=self.tax or 0.0,
            deductions=self.deductions or 0.0,
            currency=self.currency or "USD",
            job_title=self.job_title or None,
            department=self.department or None,
            worked_hours=self.worked_hours,
            tax_code=self.tax_code or None,
            ytd_gross=self.ytd_gross,
            ytd_net=self.ytd_net,
            notes=self.notes or None,
            line_items=tuple(self.line_items),
            disbursements=tuple(self.disbursements),
        )
