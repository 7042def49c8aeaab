"""
Aggregation Engine

Pure functions that turn a list of transactions (and groups) into the
numbers the screens show: balance, budget consumption, alert levels,
category and daily breakdowns, filtered views.

DESIGN DECISION: Nothing here holds state or mutates its input.
Every function is safe to call repeatedly and from any thread. The only
time dependency, the "this month" filter, reads a Clock passed in by the
caller instead of the system time.
"""

import math
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Union

from pydantic import BaseModel

from mmm.aggregation.clock import Clock, system_clock
from mmm.models.ledger import (
    GROUP_FILTER_ALL,
    GROUP_FILTER_PERSONAL,
    Group,
    Ownership,
    Transaction,
    TransactionType,
)

# Budget alert policy
WARNING_RATIO = 0.8
EXCEEDED_RATIO = 1.0

DAILY_SERIES_BUCKETS = 7
RECENT_TRANSACTIONS_LIMIT = 5


class AlertLevel(str, Enum):
    """Budget consumption state of a group."""
    NONE = "none"
    WARNING = "warning"
    EXCEEDED = "exceeded"


class TimeFilter(str, Enum):
    """Report time window."""
    ALL = "all"
    CURRENT_MONTH = "month"


class CategoryTotal(BaseModel):
    """One slice of a pie chart."""

    name: str
    value: float


class DailyBucket(BaseModel):
    """Income and expense summed over one date."""

    date: str  # ISO date, the sort key
    label: str  # MM/DD chart label
    income: float = 0.0
    expense: float = 0.0


# =============================================================================
# TOTALS
# =============================================================================

def total_by_type(
    transactions: Iterable[Transaction],
    type: Union[TransactionType, str],
) -> float:
    """Sum of amounts over transactions of one type."""
    type = TransactionType(type)
    return sum(t.amount for t in transactions if t.type == type)


def balance(transactions: Sequence[Transaction]) -> float:
    """Income minus expense."""
    return (
        total_by_type(transactions, TransactionType.INCOME)
        - total_by_type(transactions, TransactionType.EXPENSE)
    )


def group_spend(transactions: Iterable[Transaction], group_id: str) -> float:
    """Expenses charged to a group."""
    return sum(
        t.amount
        for t in transactions
        if t.group_id == group_id and t.type == TransactionType.EXPENSE
    )


# =============================================================================
# BUDGETS
# =============================================================================

def budget_ratio(spend: float, budget: float) -> float:
    """
    Fraction of the budget consumed.

    Validated groups always have a positive budget, but persisted data can
    bypass validation. A non-positive budget counts as fully exceeded.
    """
    if not budget > 0:
        return math.inf
    return spend / budget


def classify_alert(ratio: float) -> AlertLevel:
    """Map a budget ratio onto the fixed 80% / 100% alert policy."""
    if ratio < WARNING_RATIO:
        return AlertLevel.NONE
    if ratio < EXCEEDED_RATIO:
        return AlertLevel.WARNING
    return AlertLevel.EXCEEDED


# =============================================================================
# BREAKDOWNS
# =============================================================================

def category_breakdown(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """
    Expense totals per category.

    Output order is the order each category first appears, which keeps
    chart legends stable. Missing categories count as Other.
    """
    totals: dict[str, float] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        category = t.effective_category
        totals[category] = totals.get(category, 0.0) + t.amount
    return [CategoryTotal(name=name, value=value) for name, value in totals.items()]


def group_spend_breakdown(
    transactions: Sequence[Transaction],
    groups: Iterable[Group],
) -> list[CategoryTotal]:
    """Expense totals per group, in group order, skipping groups with no spend."""
    slices = []
    for group in groups:
        spent = group_spend(transactions, group.id)
        if spent > 0:
            slices.append(CategoryTotal(name=group.name, value=spent))
    return slices


def daily_series(
    transactions: Iterable[Transaction],
    buckets: int = DAILY_SERIES_BUCKETS,
) -> list[DailyBucket]:
    """
    Income vs expense per date, for the most recent dates with activity.

    Only dates present in the data become buckets; gaps are not filled.
    The result is ascending by date and holds at most ``buckets`` entries.
    """
    by_date: dict[str, DailyBucket] = {}
    for t in transactions:
        key = t.date.isoformat()
        bucket = by_date.get(key)
        if bucket is None:
            bucket = DailyBucket(date=key, label=t.date.strftime("%m/%d"))
            by_date[key] = bucket
        if t.type == TransactionType.INCOME:
            bucket.income += t.amount
        else:
            bucket.expense += t.amount

    ordered = sorted(by_date.values(), key=lambda b: b.date)
    if buckets <= 0:
        return []
    return ordered[-buckets:]


# =============================================================================
# FILTERED VIEWS
# =============================================================================

def sort_newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Descending by date; equal dates keep their collection order."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)


def filter_view(
    transactions: Iterable[Transaction],
    group_filter: str = GROUP_FILTER_ALL,
    time_filter: Union[TimeFilter, str] = TimeFilter.ALL,
    clock: Clock = system_clock,
) -> list[Transaction]:
    """
    Transactions matching a group and time filter, newest first.

    Args:
        group_filter: "all", "personal", or a group id. A group id matches
                      on group_id alone, whatever the ownership flag says.
        time_filter: ALL, or CURRENT_MONTH (same month and year as clock())
        clock: Source of "today"
    """
    time_filter = TimeFilter(time_filter)
    selected = list(transactions)

    if group_filter == GROUP_FILTER_PERSONAL:
        selected = [t for t in selected if t.ownership == Ownership.PERSONAL]
    elif group_filter != GROUP_FILTER_ALL:
        selected = [t for t in selected if t.group_id == group_filter]

    if time_filter == TimeFilter.CURRENT_MONTH:
        today = clock()
        selected = [
            t for t in selected
            if t.date.year == today.year and t.date.month == today.month
        ]

    return sort_newest_first(selected)


def recent_transactions(
    transactions: Iterable[Transaction],
    n: int = RECENT_TRANSACTIONS_LIMIT,
) -> list[Transaction]:
    """The ``n`` latest transactions by date."""
    if n <= 0:
        return []
    return sort_newest_first(transactions)[:n]
