"""Screen models package."""

from mmm.views.selector import (
    DashboardModel,
    GroupBudgetRow,
    ReportModel,
    build_dashboard,
    build_group_overview,
    build_report,
    group_budget_rows,
)

__all__ = [
    "DashboardModel",
    "GroupBudgetRow",
    "ReportModel",
    "build_dashboard",
    "build_group_overview",
    "build_report",
    "group_budget_rows",
]
