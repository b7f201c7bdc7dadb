"""Derived views over the mirrored ledger."""

from budget_tracker.views.derivations import (
    MONTH_LABELS,
    available_years,
    categories_by_type,
    category_totals,
    current_month_summary,
    eligible_categories,
    filter_and_sort,
    month_bounds,
    recent_transactions,
    transaction_category_names,
    year_summary,
    yearly_series,
)

__all__ = [
    "MONTH_LABELS",
    "available_years",
    "categories_by_type",
    "category_totals",
    "current_month_summary",
    "eligible_categories",
    "filter_and_sort",
    "month_bounds",
    "recent_transactions",
    "transaction_category_names",
    "year_summary",
    "yearly_series",
]
