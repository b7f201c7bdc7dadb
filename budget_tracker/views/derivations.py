"""
View Derivation Engine

Pure functions from mirrored records to the values the screens display.

DESIGN DECISION: Derivations are DETERMINISTIC and stateless.
Nothing here reads the clock, touches the store or caches results: callers
pass the reference date and the current snapshot, and every call builds a
fresh result. All money is accumulated as Decimal.
"""

import calendar
import unicodedata
from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Union

from budget_tracker.models.ledger import (
    Category,
    CategoryGroups,
    CategoryTotal,
    CategoryType,
    MonthlyEntry,
    MonthSummary,
    SortKey,
    Transaction,
    TransactionFilters,
    TransactionType,
    TypeFilter,
    YearSummary,
)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
MONTHS_PER_YEAR = 12

# Fixed English labels; calendar.month_abbr follows the process locale
MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def _collation_key(text: Optional[str]) -> tuple[str, str]:
    """Accent- and case-insensitive ordering, raw text as tie-breaker."""
    raw = text or ""
    decomposed = unicodedata.normalize("NFKD", raw)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (stripped.casefold(), raw)


def _totals(transactions: Iterable[Transaction]) -> tuple[Decimal, Decimal]:
    income = ZERO
    expenses = ZERO
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expenses += t.amount
    return income, expenses


# =============================================================================
# DASHBOARD
# =============================================================================

def month_bounds(reference_date: date) -> tuple[date, date]:
    """First and last calendar day of the month containing ``reference_date``."""
    last_day = calendar.monthrange(reference_date.year, reference_date.month)[1]
    return (
        reference_date.replace(day=1),
        reference_date.replace(day=last_day),
    )


def current_month_summary(
    transactions: Iterable[Transaction],
    reference_date: date,
) -> MonthSummary:
    """
    Income, expenses and net for the month containing ``reference_date``.

    Both month boundaries are inclusive.
    """
    start, end = month_bounds(reference_date)
    income, expenses = _totals(t for t in transactions if start <= t.date <= end)
    return MonthSummary(income=income, expenses=expenses, net=income - expenses)


def recent_transactions(transactions: Iterable[Transaction], n: int = 10) -> list[Transaction]:
    """
    The first ``n`` transactions in delivered (canonical) order.

    Raises:
        ValueError: If ``n`` is negative
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    return list(transactions)[:n]


# =============================================================================
# FULL LEDGER VIEW
# =============================================================================

def _matches(t: Transaction, filters: TransactionFilters, needle: Optional[str]) -> bool:
    if filters.type != TypeFilter.ALL and t.type.value != filters.type.value:
        return False
    if filters.category is not None and t.category != filters.category:
        return False
    if filters.date_from is not None and t.date < filters.date_from:
        return False
    if filters.date_to is not None and t.date > filters.date_to:
        return False
    if needle:
        haystacks = (t.category or "", t.description or "")
        if not any(needle in h.casefold() for h in haystacks):
            return False
    return True


def filter_and_sort(
    transactions: Iterable[Transaction],
    filters: Optional[TransactionFilters] = None,
    sort_key: Union[SortKey, str] = SortKey.DATE_DESC,
) -> list[Transaction]:
    """
    Filter then sort a transaction sequence.

    Filters combine with AND. Sorting is stable, so records that compare
    equal keep their canonical relative order; with no filters and the
    default sort the canonical order comes back unchanged.

    Raises:
        ValueError: If ``sort_key`` is not a known sort order
    """
    filters = filters or TransactionFilters()
    sort_key = SortKey(sort_key)
    needle = filters.search.strip().casefold() if filters.search else None

    selected = [t for t in transactions if _matches(t, filters, needle)]

    if sort_key == SortKey.DATE_DESC:
        return sorted(selected, key=lambda t: t.date, reverse=True)
    if sort_key == SortKey.DATE_ASC:
        return sorted(selected, key=lambda t: t.date)
    if sort_key == SortKey.AMOUNT_DESC:
        return sorted(selected, key=lambda t: t.amount, reverse=True)
    if sort_key == SortKey.AMOUNT_ASC:
        return sorted(selected, key=lambda t: t.amount)
    return sorted(selected, key=lambda t: _collation_key(t.category))


def transaction_category_names(transactions: Iterable[Transaction]) -> list[str]:
    """Distinct category names used by transactions, for the filter list."""
    return sorted({t.category for t in transactions}, key=_collation_key)


# =============================================================================
# REPORTS
# =============================================================================

def yearly_series(transactions: Iterable[Transaction], year: int) -> list[MonthlyEntry]:
    """Twelve monthly entries for ``year``, January first, zero-filled."""
    buckets: dict[int, list[Transaction]] = defaultdict(list)
    for t in transactions:
        if t.date.year == year:
            buckets[t.date.month].append(t)

    series = []
    for month in range(1, MONTHS_PER_YEAR + 1):
        income, expenses = _totals(buckets.get(month, ()))
        series.append(MonthlyEntry(
            month=month,
            label=MONTH_LABELS[month - 1],
            income=income,
            expenses=expenses,
            net=income - expenses,
        ))
    return series


def year_summary(series: Iterable[MonthlyEntry]) -> YearSummary:
    """
    Totals over a yearly series.

    Monthly averages always divide by 12, also for a year still in progress.
    """
    total_income = ZERO
    total_expenses = ZERO
    for entry in series:
        total_income += entry.income
        total_expenses += entry.expenses

    divisor = Decimal(MONTHS_PER_YEAR)
    return YearSummary(
        total_income=total_income,
        total_expenses=total_expenses,
        net=total_income - total_expenses,
        avg_monthly_income=(total_income / divisor).quantize(CENT, rounding=ROUND_HALF_UP),
        avg_monthly_expenses=(total_expenses / divisor).quantize(CENT, rounding=ROUND_HALF_UP),
    )


def available_years(transactions: Iterable[Transaction]) -> list[int]:
    """Years that have at least one transaction, newest first."""
    return sorted({t.date.year for t in transactions}, reverse=True)


def category_totals(
    transactions: Iterable[Transaction],
    transaction_type: Optional[TransactionType] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[CategoryTotal]:
    """
    Sum and count per category name, largest total first.

    Equal totals are ordered by category name.
    """
    sums: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    wanted = TransactionType(transaction_type) if transaction_type is not None else None

    for t in transactions:
        if wanted is not None and t.type != wanted:
            continue
        if date_from is not None and t.date < date_from:
            continue
        if date_to is not None and t.date > date_to:
            continue
        sums[t.category] += t.amount
        counts[t.category] += 1

    ordered = sorted(sums, key=_collation_key)
    ordered.sort(key=lambda name: sums[name], reverse=True)
    return [CategoryTotal(category=name, total=sums[name], count=counts[name]) for name in ordered]


# =============================================================================
# CATEGORIES
# =============================================================================

def eligible_categories(
    categories: Iterable[Category],
    transaction_type: TransactionType,
) -> list[Category]:
    """Categories a transaction of ``transaction_type`` may be filed under."""
    transaction_type = TransactionType(transaction_type)
    return [c for c in categories if c.accepts(transaction_type)]


def categories_by_type(categories: Iterable[Category]) -> CategoryGroups:
    groups = CategoryGroups()
    for c in categories:
        if c.type == CategoryType.INCOME:
            groups.income.append(c)
        elif c.type == CategoryType.EXPENSE:
            groups.expense.append(c)
        else:
            groups.both.append(c)
    return groups
