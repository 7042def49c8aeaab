"""Tests for the view selector screen models."""

from datetime import date

import pytest

from mmm.aggregation import AlertLevel, TimeFilter, fixed_clock
from mmm.ledger import LedgerStore
from mmm.views import build_dashboard, build_group_overview, build_report


@pytest.fixture
def store():
    store = LedgerStore()
    store.add_group({"id": "office", "name": "Office", "budget": 15000, "icon": "🏢"})
    store.add_group({"id": "trip", "name": "Trip", "budget": 5000, "icon": "✈️"})
    store.add_or_replace_transaction({
        "id": "salary", "date": date(2024, 5, 1), "merchant": "Employer",
        "amount": 50000, "type": "income",
    })
    store.add_or_replace_transaction({
        "id": "rent", "date": date(2024, 5, 2), "merchant": "Office Rent",
        "amount": 12500, "ownership": "group", "group_id": "office",
        "category": "Office",
    })
    store.add_or_replace_transaction({
        "id": "lunch", "date": date(2024, 5, 3), "merchant": "Noodle Shop",
        "amount": 120, "category": "Food",
    })
    return store


class TestDashboard:
    """Tests for build_dashboard."""

    def test_totals(self, store):
        """Test balance and totals over the whole ledger."""
        dashboard = build_dashboard(store.snapshot())
        assert dashboard.total_income == 50000
        assert dashboard.total_expense == 12620
        assert dashboard.balance == 37380

    def test_warning_then_exceeded(self, store):
        """Test a group crosses from warning to exceeded as spend grows."""
        dashboard = build_dashboard(store.snapshot())
        office = dashboard.group_budget_rows[0]
        assert office.level == AlertLevel.WARNING
        assert office.ratio == pytest.approx(12500 / 15000)
        assert [row.group_id for row in dashboard.alerts] == ["office"]

        store.add_or_replace_transaction({
            "id": "chairs", "date": date(2024, 5, 4), "merchant": "Furniture",
            "amount": 3000, "ownership": "group", "group_id": "office",
        })
        dashboard = build_dashboard(store.snapshot())
        office = dashboard.group_budget_rows[0]
        assert office.level == AlertLevel.EXCEEDED
        assert office.ratio == pytest.approx(1.0333, abs=1e-4)
        assert office.percent == 100
        assert office.remaining == -500

    def test_idle_group_has_no_alert(self, store):
        """Test groups below 80% are not alerted."""
        dashboard = build_dashboard(store.snapshot())
        trip = dashboard.group_budget_rows[1]
        assert trip.level == AlertLevel.NONE
        assert trip.spent == 0
        assert all(row.group_id != "trip" for row in dashboard.alerts)

    def test_pies_and_recent(self, store):
        """Test chart slices and the recent list."""
        dashboard = build_dashboard(store.snapshot(), recent_limit=2)
        assert {c.name: c.value for c in dashboard.category_pie} == {
            "Office": 12500,
            "Food": 120,
        }
        assert [(s.name, s.value) for s in dashboard.group_pie] == [("Office", 12500)]
        assert [t.id for t in dashboard.recent] == ["lunch", "rent"]


class TestReport:
    """Tests for build_report."""

    def test_group_report(self, store):
        """Test a group filter drives every aggregate of the report."""
        report = build_report(
            store.snapshot(),
            group_filter="office",
            time_filter=TimeFilter.ALL,
        )
        assert [t.id for t in report.transactions] == ["rent"]
        assert report.total_income == 0
        assert report.total_expense == 12500
        assert [c.name for c in report.category_pie] == ["Office"]
        assert [b.date for b in report.daily_series] == ["2024-05-02"]

    def test_month_report_uses_clock(self, store):
        """Test the default month filter reads the supplied clock."""
        report = build_report(store.snapshot(), clock=fixed_clock(date(2024, 6, 1)))
        assert report.time_filter == TimeFilter.CURRENT_MONTH
        assert report.transactions == []

        report = build_report(store.snapshot(), clock=fixed_clock(date(2024, 5, 31)))
        assert len(report.transactions) == 3


class TestGroupOverview:
    """Tests for build_group_overview."""

    def test_rows_in_group_order(self, store):
        """Test one row per group in insertion order."""
        rows = build_group_overview(store.snapshot())
        assert [(row.name, row.icon) for row in rows] == [("Office", "🏢"), ("Trip", "✈️")]
