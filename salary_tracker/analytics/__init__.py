"""Analytics package - pure aggregation over FinancialEntry collections."""

from salary_tracker.analytics.policies import (
    DEFAULT_CURRENCY,
    format_currency,
    resolve_currency,
    resolve_gross,
    resolve_leakage,
    resolve_net,
    safe_number,
)
from salary_tracker.analytics.engine import (
    CAREER_YEARS,
    DAYS_PER_MONTH,
    available_years,
    career_scorecard,
    composition_split,
    compute_totals,
    dashboard_summary,
    disbursement_rollup,
    display_currency,
    effective_hourly_rate,
    filter_by_timeframe,
    hourly_trend,
    keep_grade,
    keep_rate,
    lifetime_projection,
    line_item_names,
    line_item_progression,
    momentum,
    monthly_series,
    recent_entries,
    sort_by_date,
    yearly_rollup,
)

__all__ = [
    # Policies
    "DEFAULT_CURRENCY",
    "format_currency",
    "resolve_currency",
    "resolve_gross",
    "resolve_leakage",
    "resolve_net",
    "safe_number",
    # Engine
    "CAREER_YEARS",
    "DAYS_PER_MONTH",
    "available_years",
    "career_scorecard",
    "composition_split",
    "compute_totals",
    "dashboard_summary",
    "disbursement_rollup",
    "display_currency",
    "effective_hourly_rate",
    "filter_by_timeframe",
    "hourly_trend",
    "keep_grade",
    "keep_rate",
    "lifetime_projection",
    "line_item_names",
    "line_item_progression",
    "momentum",
    "monthly_series",
    "recent_entries",
    "sort_by_date",
    "yearly_rollup",
]
