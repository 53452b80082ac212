"""
Analytics Result Models

Shapes returned by the analytics engine. They are plain data: every
value is already computed, finite and ready to chart or display.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from salary_tracker.models.entry import FinancialEntry, LineItemType


class Totals(BaseModel):
    """Sums across an entry collection."""

    model_config = ConfigDict(frozen=True)

    total_net: float = 0.0
    total_gross: float = 0.0
    total_deductions: float = Field(
        default=0.0,
        description="Canonical leakage figure: total_gross - total_net"
    )
    total_tax: float = 0.0
    component_deductions: float = Field(
        default=0.0,
        description="Sum of explicit tax + deductions fields; may differ from total_deductions"
    )
    total_benefits: float = Field(
        default=0.0,
        description="Sum of benefit line items"
    )
    entry_count: int = 0

    @property
    def deductions_drift(self) -> float:
        """How far the two deduction derivations disagree (0 for consistent data)."""
        return self.total_deductions - self.component_deductions


class YearlyBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    year: int
    gross: float = 0.0
    net: float = 0.0
    growth: float = Field(
        default=0.0,
        description="Gross growth vs the previous year present, in percent"
    )


class MonthlyBucket(BaseModel):
    """One bar of the earnings chart."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Display label such as 'Jan 24'")
    year: int
    month: int = Field(..., ge=1, le=12)
    gross: float = 0.0
    net: float = 0.0
    deductions: float = 0.0

    @property
    def period_start(self) -> date:
        return date(self.year, self.month, 1)


class DisbursementGroup(BaseModel):
    """Total routed to one bank account."""

    model_config = ConfigDict(frozen=True)

    bank_name: str
    bank_code: str
    account_no: str
    total: float = 0.0


class LineItemPoint(BaseModel):
    """One point of a line item's history across pay periods."""

    model_config = ConfigDict(frozen=True)

    entry_date: date
    amount: float = 0.0
    type: LineItemType = LineItemType.EARNING
    present: bool = Field(
        default=True,
        description="False when the entry had no matching item and the point is a filler"
    )


class CompositionSlice(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: float


class HourlyPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    entry_date: date
    label: str
    hourly: float = 0.0


class CareerScorecard(BaseModel):
    """Headline figures for the insights view."""

    model_config = ConfigDict(frozen=True)

    hourly_rate: float = 0.0
    keep_rate: float = 0.0
    keep_grade: str = "Leakage"
    momentum: float = 0.0
    lifetime_projection: float = 0.0
    latest_entry: Optional[FinancialEntry] = None
    hourly_trend: list[HourlyPoint] = Field(default_factory=list)


class DashboardSummary(BaseModel):
    """Everything the dashboard needs in one recomputation pass."""

    model_config = ConfigDict(frozen=True)

    currency: str = "USD"
    timeframe: str = "1Y"
    totals: Totals = Field(default_factory=Totals)
    keep_rate: float = 0.0
    monthly: list[MonthlyBucket] = Field(default_factory=list)
    recent: list[FinancialEntry] = Field(default_factory=list)
    available_years: list[str] = Field(default_factory=list)
