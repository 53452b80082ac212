"""
Analytics Engine

Pure functions from a collection of entries to derived metrics and
chart-ready series. They never mutate their input, return the same output
for the same input, and return a neutral result (0, empty list) for an
empty collection instead of raising.

Time-series functions work on the collection sorted by date ascending.
Entries sharing a date keep the order they were given in.

Deductions are derived one way everywhere: gross - net. The sum of the
explicit tax and deductions fields is reported separately on Totals as
component_deductions so disagreements in the source data stay visible.
"""

import re
from calendar import monthrange
from datetime import date
from typing import Iterable, Optional, Sequence

from salary_tracker.analytics.policies import (
    DEFAULT_CURRENCY,
    resolve_currency,
    resolve_gross,
    resolve_leakage,
    resolve_net,
    safe_number,
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
from salary_tracker.models.entry import FinancialEntry, LineItemType


# Career length assumed by the lifetime projection, in years.
CAREER_YEARS = 35

# Average days per month used to turn a date span into months.
DAYS_PER_MONTH = 30.44

MOMENTUM_WINDOW = 3
RECENT_ENTRY_COUNT = 5
HOURLY_TREND_POINTS = 12

# Keep rates above this grade as "Optimal".
OPTIMAL_KEEP_RATE = 75.0

TIMEFRAME_TRAILING_YEAR = "1Y"
TIMEFRAME_YEAR_TO_DATE = "YTD"
TIMEFRAME_ALL = "ALL"

_YEAR_PATTERN = re.compile(r"\d{4}")


def _ratio_percent(numerator: float, denominator: float) -> float:
    """numerator / denominator as a percentage, 0 when the denominator is 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator * 100


def _mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def sort_by_date(entries: Iterable[FinancialEntry]) -> list[FinancialEntry]:
    """Oldest first. Same-day entries keep their relative order."""
    return sorted(entries, key=lambda entry: entry.entry_date)


def recent_entries(
    entries: Iterable[FinancialEntry],
    limit: int = RECENT_ENTRY_COUNT,
) -> list[FinancialEntry]:
    return sorted(entries, key=lambda entry: entry.entry_date, reverse=True)[:limit]


def display_currency(entries: Sequence[FinancialEntry]) -> str:
    """Currency of the most recent entry, with the USD fallback applied."""
    latest = recent_entries(entries, limit=1)
    if not latest:
        return DEFAULT_CURRENCY
    return resolve_currency(latest[0].currency)


# =============================================================================
# TOTALS AND RATIOS
# =============================================================================

def compute_totals(entries: Sequence[FinancialEntry]) -> Totals:
    total_net = sum(resolve_net(entry) for entry in entries)
    total_gross = sum(resolve_gross(entry) for entry in entries)
    total_tax = sum(safe_number(entry.tax) for entry in entries)
    explicit_deductions = sum(safe_number(entry.deductions) for entry in entries)
    total_benefits = sum(
        safe_number(item.amount)
        for entry in entries
        for item in entry.line_items
        if item.type == LineItemType.BENEFIT
    )
    return Totals(
        total_net=total_net,
        total_gross=total_gross,
        total_deductions=total_gross - total_net,
        total_tax=total_tax,
        component_deductions=total_tax + explicit_deductions,
        total_benefits=total_benefits,
        entry_count=len(entries),
    )


def keep_rate(entries: Sequence[FinancialEntry]) -> float:
    """
    Share of gross pay that arrived as net pay, in percent.

    0 when there is no gross at all. Inconsistent data can push this
    above 100 or below 0; that is reported as is.
    """
    totals = compute_totals(entries)
    return _ratio_percent(totals.total_net, totals.total_gross)


def keep_grade(rate: float) -> str:
    return "Optimal" if rate > OPTIMAL_KEEP_RATE else "Leakage"


def momentum(entries: Sequence[FinancialEntry]) -> float:
    """
    Relative change between early and late average gross, in percent.

    Compares the first three and last three entries by date. With fewer
    than six entries the windows overlap; with four entries the first
    window is entries 0-2 and the last is entries 1-3.
    """
    ordered = sort_by_date(entries)
    if not ordered:
        return 0.0
    first = _mean([resolve_gross(entry) for entry in ordered[:MOMENTUM_WINDOW]])
    last = _mean([resolve_gross(entry) for entry in ordered[-MOMENTUM_WINDOW:]])
    return _ratio_percent(last - first, first)


def effective_hourly_rate(entries: Sequence[FinancialEntry]) -> float:
    """
    Mean of gross / hours over entries that record hours worked.

    Entries without hours are left out entirely rather than counted as a
    zero rate.
    """
    rates = [
        resolve_gross(entry) / safe_number(entry.worked_hours)
        for entry in entries
        if safe_number(entry.worked_hours) > 0
    ]
    return _mean(rates)


def hourly_trend(
    entries: Sequence[FinancialEntry],
    last: int = HOURLY_TREND_POINTS,
) -> list[HourlyPoint]:
    points = []
    for entry in sort_by_date(entries):
        hours = safe_number(entry.worked_hours)
        points.append(HourlyPoint(
            entry_date=entry.entry_date,
            label=entry.entry_date.strftime("%b"),
            hourly=resolve_gross(entry) / hours if hours > 0 else 0.0,
        ))
    return points[-last:] if last else points


def lifetime_projection(entries: Sequence[FinancialEntry]) -> float:
    """
    Gross earnings over a full career at the observed monthly pace.

    The monthly pace is total gross over the months between the first and
    last entry (at least one month), projected over CAREER_YEARS.
    """
    ordered = sort_by_date(entries)
    if not ordered:
        return 0.0
    span_days = (ordered[-1].entry_date - ordered[0].entry_date).days
    months_span = span_days / DAYS_PER_MONTH
    total_gross = sum(resolve_gross(entry) for entry in ordered)
    avg_monthly_gross = total_gross / max(months_span, 1)
    return avg_monthly_gross * 12 * CAREER_YEARS


# =============================================================================
# TIMEFRAMES
# =============================================================================

def _months_before(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def filter_by_timeframe(
    entries: Sequence[FinancialEntry],
    timeframe: str = TIMEFRAME_ALL,
    today: Optional[date] = None,
) -> list[FinancialEntry]:
    """
    Restrict entries to a window.

    Args:
        entries: Entries to filter
        timeframe: "1Y" (trailing twelve months from today), "YTD" (the
            current calendar year), "ALL", or a four digit year
        today: Reference date, defaults to date.today()

    Any other timeframe string selects nothing, so views render empty
    instead of failing.
    """
    today = today or date.today()
    key = (timeframe or TIMEFRAME_ALL).strip().upper()

    if key == TIMEFRAME_ALL:
        return list(entries)
    if key == TIMEFRAME_YEAR_TO_DATE:
        return [entry for entry in entries if entry.entry_date.year == today.year]
    if key == TIMEFRAME_TRAILING_YEAR:
        cutoff = _months_before(today, 12)
        return [entry for entry in entries if entry.entry_date >= cutoff]
    if _YEAR_PATTERN.fullmatch(key):
        year = int(key)
        return [entry for entry in entries if entry.entry_date.year == year]

    return []


def available_years(entries: Sequence[FinancialEntry]) -> list[str]:
    """Years present in the data, newest first, for a year picker."""
    years = {entry.entry_date.year for entry in entries}
    return [str(year) for year in sorted(years, reverse=True)]


# =============================================================================
# SERIES
# =============================================================================

def yearly_rollup(entries: Sequence[FinancialEntry]) -> list[YearlyBucket]:
    """Gross and net per calendar year with year-over-year gross growth."""
    sums: dict[int, list[float]] = {}
    for entry in entries:
        bucket = sums.setdefault(entry.entry_date.year, [0.0, 0.0])
        bucket[0] += resolve_gross(entry)
        bucket[1] += resolve_net(entry)

    rollup = []
    previous_gross = None
    for year in sorted(sums):
        gross, net = sums[year]
        growth = 0.0
        if previous_gross is not None:
            growth = _ratio_percent(gross - previous_gross, previous_gross)
        rollup.append(YearlyBucket(year=year, gross=gross, net=net, growth=growth))
        previous_gross = gross
    return rollup


def monthly_series(
    entries: Sequence[FinancialEntry],
    timeframe: Optional[str] = None,
    last: Optional[int] = None,
    today: Optional[date] = None,
) -> list[MonthlyBucket]:
    """
    Gross, net and deductions per calendar month, oldest month first.

    Buckets are ordered by their date, not by label. Pass a timeframe to
    filter first, and/or last=6 or last=12 to keep only the trailing buckets.
    """
    if last is not None and last < 1:
        raise ValueError("last must be a positive number of months")
    if timeframe is not None:
        entries = filter_by_timeframe(entries, timeframe, today)

    sums: dict[tuple[int, int], list[float]] = {}
    for entry in entries:
        key = (entry.entry_date.year, entry.entry_date.month)
        bucket = sums.setdefault(key, [0.0, 0.0, 0.0])
        bucket[0] += resolve_gross(entry)
        bucket[1] += resolve_net(entry)
        bucket[2] += resolve_leakage(entry)

    series = [
        MonthlyBucket(
            label=date(year, month, 1).strftime("%b %y"),
            year=year,
            month=month,
            gross=gross,
            net=net,
            deductions=deductions,
        )
        for (year, month), (gross, net, deductions) in sorted(sums.items())
    ]
    if last is not None:
        series = series[-last:]
    return series


def disbursement_rollup(
    entries: Sequence[FinancialEntry],
    sort_by: str = "total",
    descending: bool = True,
) -> list[DisbursementGroup]:
    """
    Total routed to each bank account.

    Accounts are identified by (bank code, account number), so two accounts
    at the same bank stay separate. The bank name shown is the first one
    seen for the account.

    Args:
        sort_by: "total" or "bank_name"
        descending: Sort direction
    """
    groups: dict[tuple[str, str], dict] = {}
    for entry in entries:
        for disbursement in entry.disbursements:
            key = (disbursement.bank_code, disbursement.account_no)
            group = groups.setdefault(key, {
                "bank_name": disbursement.bank_name,
                "bank_code": disbursement.bank_code,
                "account_no": disbursement.account_no,
                "total": 0.0,
            })
            if not group["bank_name"]:
                group["bank_name"] = disbursement.bank_name
            group["total"] += safe_number(disbursement.amount)

    rollup = [DisbursementGroup(**group) for group in groups.values()]

    if sort_by == "total":
        rollup.sort(key=lambda group: group.total, reverse=descending)
    elif sort_by in ("bank_name", "bankName"):
        rollup.sort(key=lambda group: group.bank_name.lower(), reverse=descending)
    else:
        raise ValueError(f"Cannot sort disbursements by {sort_by!r}")
    return rollup


def line_item_names(entries: Sequence[FinancialEntry]) -> list[str]:
    names: dict[str, None] = {}
    for entry in sort_by_date(entries):
        for item in entry.line_items:
            names.setdefault(item.name, None)
    return list(names)


def line_item_progression(
    entries: Sequence[FinancialEntry],
    item_name: str,
    timeframe: str = TIMEFRAME_ALL,
    today: Optional[date] = None,
) -> list[LineItemPoint]:
    """
    History of one line item, one point per entry.

    The first item whose name matches exactly (case-sensitive) is used.
    Entries without the item still get a point, with amount 0 and type
    earning, so the series has no gaps.
    """
    points = []
    for entry in sort_by_date(filter_by_timeframe(entries, timeframe, today)):
        match = next(
            (item for item in entry.line_items if item.name == item_name),
            None,
        )
        if match is None:
            points.append(LineItemPoint(entry_date=entry.entry_date, present=False))
        else:
            points.append(LineItemPoint(
                entry_date=entry.entry_date,
                amount=safe_number(match.amount),
                type=match.type,
            ))
    return points


def composition_split(
    entries: Sequence[FinancialEntry],
    timeframe: str = TIMEFRAME_ALL,
    today: Optional[date] = None,
) -> list[CompositionSlice]:
    """Where gross pay went: net, tax and deductions. Zero slices are left out."""
    selected = filter_by_timeframe(entries, timeframe, today)
    slices = [
        CompositionSlice(name="Net Pay", value=sum(resolve_net(e) for e in selected)),
        CompositionSlice(name="Tax", value=sum(safe_number(e.tax) for e in selected)),
        CompositionSlice(
            name="Deductions",
            value=sum(safe_number(e.deductions) for e in selected),
        ),
    ]
    return [piece for piece in slices if piece.value != 0]


# =============================================================================
# VIEWS
# =============================================================================

def career_scorecard(entries: Sequence[FinancialEntry]) -> CareerScorecard:
    ordered = sort_by_date(entries)
    rate = keep_rate(ordered)
    return CareerScorecard(
        hourly_rate=effective_hourly_rate(ordered),
        keep_rate=rate,
        keep_grade=keep_grade(rate),
        momentum=momentum(ordered),
        lifetime_projection=lifetime_projection(ordered),
        latest_entry=ordered[-1] if ordered else None,
        hourly_trend=hourly_trend(ordered),
    )


def dashboard_summary(
    entries: Sequence[FinancialEntry],
    timeframe: str = TIMEFRAME_TRAILING_YEAR,
    today: Optional[date] = None,
) -> DashboardSummary:
    """One recomputation pass for the dashboard over a snapshot of entries."""
    snapshot = list(entries)
    totals = compute_totals(snapshot)
    return DashboardSummary(
        currency=display_currency(snapshot),
        timeframe=timeframe,
        totals=totals,
        keep_rate=_ratio_percent(totals.total_net, totals.total_gross),
        monthly=monthly_series(snapshot, timeframe=timeframe, today=today),
        recent=recent_entries(snapshot),
        available_years=available_years(snapshot),
    )
