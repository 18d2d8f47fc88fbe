"""
Tests for month-over-month trends and seasonal patterns.
"""

from datetime import datetime, timezone

import pytest

from bizhub.analytics import trends
from bizhub.config import AnalyticsSettings
from bizhub.models.records import Client, Project, TimeEntry


def at(month, day=15, year=2024):
    return datetime(year, month, day, 10, tzinfo=timezone.utc)


def entry(created_at, minutes, rate=100.0, billable=True):
    return TimeEntry(
        task_id="t1",
        project_id="p1",
        user_id="user-1",
        start_time=created_at,
        duration=minutes,
        billable=billable,
        hourly_rate=rate,
        created_at=created_at,
    )


def client(created_at, n):
    return Client(name=f"Client {n}", email=f"c{n}@example.com", created_at=created_at)


class TestGrowthSeries:
    """Tests for monthly growth series."""

    def test_revenue_growth(self):
        """Test 100 then 150 is 50 percent growth."""
        rows = trends.revenue_growth([entry(at(5), 60), entry(at(6), 90)])
        assert [r.period for r in rows] == ["2024-05", "2024-06"]
        assert rows[0].growth == 0.0
        assert rows[1].value == pytest.approx(150.0)
        assert rows[1].growth == pytest.approx(50.0)

    def test_gaps_compare_with_previous_present_month(self):
        """Test a missing month is skipped, not treated as zero."""
        rows = trends.revenue_growth([entry(at(1), 60), entry(at(4), 120)])
        assert [r.period for r in rows] == ["2024-01", "2024-04"]
        assert rows[1].growth == pytest.approx(100.0)

    def test_non_revenue_entries_do_not_create_months(self):
        """Test unbilled work does not appear in the revenue series."""
        rows = trends.revenue_growth([entry(at(3), 60, billable=False)])
        assert rows == []

    def test_client_growth_is_cumulative(self):
        """Test value is the running total and growth compares new clients."""
        clients = [
            client(at(1), 1), client(at(1, 20), 2),
            client(at(2), 3),
            client(at(4), 4), client(at(4, 2), 5), client(at(4, 3), 6),
        ]
        rows = trends.client_growth(clients)
        assert [r.period for r in rows] == ["2024-01", "2024-02", "2024-04"]
        assert [r.value for r in rows] == [2.0, 3.0, 6.0]
        assert [r.growth for r in rows] == pytest.approx([0.0, -50.0, 200.0])

    def test_project_volume(self):
        """Test new projects per month."""
        projects = [
            Project(title="A", client_id="c1", created_at=at(3)),
            Project(title="B", client_id="c1", created_at=at(3, 1)),
            Project(title="C", client_id="c1", created_at=at(5)),
        ]
        rows = trends.project_volume(projects)
        assert [(r.period, r.value) for r in rows] == [("2024-03", 2.0), ("2024-05", 1.0)]
        assert rows[1].growth == pytest.approx(-50.0)

    def test_productivity_trends(self):
        """Test entries per month and revenue per hour."""
        rows = trends.productivity_trends([
            entry(at(2), 60),
            entry(at(2, 20), 120, billable=False),
        ])
        assert len(rows) == 1
        feb = rows[0]
        assert feb.entry_count == 2
        assert feb.average_hours_per_entry == pytest.approx(1.5)
        assert feb.efficiency == pytest.approx(100 / 3)


class TestSeasonalPatterns:
    """Tests for quarter classification."""

    def test_peak_quarter(self):
        """Test 100/100/500/100 makes Q3 a peak against a mean of 200."""
        entries = [
            entry(at(2), 60),
            entry(at(5), 60),
            entry(at(8), 300),
            entry(at(11), 60),
        ]
        patterns = trends.seasonal_patterns(entries, [], AnalyticsSettings())
        assert [p.period for p in patterns] == ["Q1", "Q2", "Q3", "Q4"]
        assert [p.revenue for p in patterns] == pytest.approx([100, 100, 500, 100])
        assert [p.pattern for p in patterns] == ["low", "low", "peak", "low"]

    def test_even_year_is_normal(self):
        """Test equal quarters are all normal."""
        entries = [entry(at(month), 60) for month in (1, 4, 7, 10)]
        patterns = trends.seasonal_patterns(entries, [], AnalyticsSettings())
        assert {p.pattern for p in patterns} == {"normal"}

    def test_years_fold_together(self):
        """Test the same quarter of different years is one bucket."""
        entries = [entry(at(2, year=2023), 60), entry(at(2, year=2024), 60)]
        patterns = trends.seasonal_patterns(entries, [], AnalyticsSettings())
        assert patterns[0].revenue == pytest.approx(200.0)

    def test_project_volume_per_quarter(self):
        """Test new projects are counted by quarter."""
        projects = [Project(title="A", client_id="c1", created_at=at(12))]
        patterns = trends.seasonal_patterns([], projects, AnalyticsSettings())
        assert [p.project_volume for p in patterns] == [0, 0, 0, 1]

    def test_no_revenue_is_normal(self):
        """Test an empty year classifies every quarter as normal."""
        patterns = trends.seasonal_patterns([], [], AnalyticsSettings())
        assert [p.pattern for p in patterns] == ["normal"] * 4
