"""
View Selector

One call per screen. Each builder composes aggregation engine calls over a
snapshot into a named screen model; there is no logic here beyond choosing
which aggregates a screen needs.

Nothing is cached. Models are rebuilt from whatever snapshot is passed in,
at a cost linear in the number of transactions.
"""

from typing import Union

from pydantic import BaseModel, Field

from mmm.aggregation import (
    RECENT_TRANSACTIONS_LIMIT,
    AlertLevel,
    CategoryTotal,
    Clock,
    DailyBucket,
    TimeFilter,
    balance,
    budget_ratio,
    category_breakdown,
    classify_alert,
    daily_series,
    filter_view,
    group_spend,
    group_spend_breakdown,
    recent_transactions,
    system_clock,
    total_by_type,
)
from mmm.ledger import LedgerSnapshot
from mmm.models.ledger import GROUP_FILTER_ALL, Transaction, TransactionType


class GroupBudgetRow(BaseModel):
    """Budget consumption of one group."""

    group_id: str
    name: str
    icon: str
    budget: float
    spent: float
    remaining: float
    ratio: float
    percent: float = Field(description="Consumption for progress bars, capped at 100")
    level: AlertLevel


class DashboardModel(BaseModel):
    """Everything the dashboard screen shows."""

    balance: float
    total_income: float
    total_expense: float
    alerts: list[GroupBudgetRow]
    group_budget_rows: list[GroupBudgetRow]
    category_pie: list[CategoryTotal]
    group_pie: list[CategoryTotal]
    recent: list[Transaction]


class ReportModel(BaseModel):
    """The report screen for one filter combination."""

    group_filter: str
    time_filter: TimeFilter
    transactions: list[Transaction]
    total_income: float
    total_expense: float
    category_pie: list[CategoryTotal]
    daily_series: list[DailyBucket]


def group_budget_rows(snapshot: LedgerSnapshot) -> list[GroupBudgetRow]:
    """Budget rows for every group, in group order."""
    rows = []
    for group in snapshot.groups:
        spent = group_spend(snapshot.transactions, group.id)
        ratio = budget_ratio(spent, group.budget)
        rows.append(GroupBudgetRow(
            group_id=group.id,
            name=group.name,
            icon=group.icon,
            budget=group.budget,
            spent=spent,
            remaining=group.budget - spent,
            ratio=ratio,
            percent=min(ratio * 100, 100.0),
            level=classify_alert(ratio),
        ))
    return rows


def build_dashboard(
    snapshot: LedgerSnapshot,
    recent_limit: int = RECENT_TRANSACTIONS_LIMIT,
) -> DashboardModel:
    """Dashboard over the whole ledger."""
    transactions = snapshot.transactions
    rows = group_budget_rows(snapshot)
    return DashboardModel(
        balance=balance(transactions),
        total_income=total_by_type(transactions, TransactionType.INCOME),
        total_expense=total_by_type(transactions, TransactionType.EXPENSE),
        alerts=[row for row in rows if row.level != AlertLevel.NONE],
        group_budget_rows=rows,
        category_pie=category_breakdown(transactions),
        group_pie=group_spend_breakdown(transactions, snapshot.groups),
        recent=recent_transactions(transactions, recent_limit),
    )


def build_report(
    snapshot: LedgerSnapshot,
    group_filter: str = GROUP_FILTER_ALL,
    time_filter: Union[TimeFilter, str] = TimeFilter.CURRENT_MONTH,
    clock: Clock = system_clock,
) -> ReportModel:
    """Report for a group/time filter; every aggregate reads the filtered list."""
    time_filter = TimeFilter(time_filter)
    filtered = filter_view(snapshot.transactions, group_filter, time_filter, clock)
    return ReportModel(
        group_filter=group_filter,
        time_filter=time_filter,
        transactions=filtered,
        total_income=total_by_type(filtered, TransactionType.INCOME),
        total_expense=total_by_type(filtered, TransactionType.EXPENSE),
        category_pie=category_breakdown(filtered),
        daily_series=daily_series(filtered),
    )


def build_group_overview(snapshot: LedgerSnapshot) -> list[GroupBudgetRow]:
    """Group manager screen."""
    return group_budget_rows(snapshot)
