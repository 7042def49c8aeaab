"""Aggregation engine package."""

from mmm.aggregation.clock import Clock, fixed_clock, system_clock
from mmm.aggregation.engine import (
    DAILY_SERIES_BUCKETS,
    EXCEEDED_RATIO,
    RECENT_TRANSACTIONS_LIMIT,
    WARNING_RATIO,
    AlertLevel,
    CategoryTotal,
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
    sort_newest_first,
    total_by_type,
)

__all__ = [
    "Clock",
    "fixed_clock",
    "system_clock",
    "DAILY_SERIES_BUCKETS",
    "EXCEEDED_RATIO",
    "RECENT_TRANSACTIONS_LIMIT",
    "WARNING_RATIO",
    "AlertLevel",
    "CategoryTotal",
    "DailyBucket",
    "TimeFilter",
    "balance",
    "budget_ratio",
    "category_breakdown",
    "classify_alert",
    "daily_series",
    "filter_view",
    "group_spend",
    "group_spend_breakdown",
    "recent_transactions",
    "sort_newest_first",
    "total_by_type",
]
