"""
Tests for the analytics engine over live stores.
"""

import asyncio
from datetime import timedelta

from bizhub.analytics import revenue
from bizhub.models.analytics import (
    AnalyticsFilter,
    BusinessOverview,
    DateRange,
)
from bizhub.models.audit import AuditEventType
from bizhub.models.records import ProjectStatus


def populate(hub, clock):
    """One client with an active and a cancelled project, and two entries."""
    async def go():
        client = await hub.clients.add({"name": "Acme", "email": "a@acme.test"})
        active = await hub.projects.add({
            "title": "Site", "client_id": client.id, "hourly_rate": 100, "estimated_hours": 2,
        })
        cancelled = await hub.projects.add({
            "title": "Dropped", "client_id": client.id, "status": ProjectStatus.CANCELLED,
        })
        task = await hub.tasks.add({"title": "Build", "project_id": active.id})
        last_month = clock() - timedelta(days=30)
        for created_at, minutes in ((last_month, 60), (clock(), 90)):
            await hub.time_entries.add({
                "task_id": task.id,
                "project_id": active.id,
                "start_time": created_at,
                "duration": minutes,
                "hourly_rate": 100,
                "created_at": created_at,
            })
        return active, cancelled

    return asyncio.run(go())


class TestViews:
    """Tests for individual views computed from the stores."""

    def test_business_overview(self, hub, clock):
        """Test the overview reads all stores."""
        populate(hub, clock)
        overview = asyncio.run(hub.analytics.get_business_overview())
        assert overview.total_projects == 2
        assert overview.total_clients == 1
        assert overview.total_revenue == 250.0
        assert overview.monthly_revenue == 150.0
        assert overview.revenue_growth == 50.0

    def test_filter_hides_cancelled_projects(self, hub, clock):
        """Test a filter is applied before aggregation."""
        populate(hub, clock)
        overview = asyncio.run(hub.analytics.get_business_overview(AnalyticsFilter()))
        assert overview.total_projects == 1

    def test_date_range_applies_to_trends(self, hub, clock):
        """Test trend views honor the filter's date range."""
        populate(hub, clock)
        this_month = AnalyticsFilter(
            date_range=DateRange(start=clock() - timedelta(days=1), end=clock())
        )
        unfiltered = asyncio.run(hub.analytics.get_trend_analytics())
        filtered = asyncio.run(hub.analytics.get_trend_analytics(this_month))
        assert len(unfiltered.revenue_growth) == 2
        assert [r.period for r in filtered.revenue_growth] == ["2024-06"]

    def test_views_are_repeatable(self, hub, clock):
        """Test computing a view twice gives the same result."""
        populate(hub, clock)
        first = asyncio.run(hub.analytics.get_revenue_analytics())
        second = asyncio.run(hub.analytics.get_revenue_analytics())
        assert first == second

    def test_views_do_not_change_stored_records(self, hub, clock):
        """Test analytics are read-only."""
        populate(hub, clock)
        before = asyncio.run(hub.projects.get_all())
        asyncio.run(hub.analytics.get_business_analytics())
        assert asyncio.run(hub.projects.get_all()) == before

    def test_time_view_matches_store_hours(self, hub, clock):
        """Test the time view and the store stats agree on total hours."""
        populate(hub, clock)
        view = asyncio.run(hub.analytics.get_time_analytics())
        stats = asyncio.run(hub.time_entries.get_stats())
        assert sum(d.total_hours for d in view.daily_hours) == stats.total_hours == 2.5

    def test_combined_view(self, hub, clock):
        """Test all seven views come back together."""
        populate(hub, clock)
        analytics = asyncio.run(hub.analytics.get_business_analytics())
        assert analytics.overview.total_revenue == 250.0
        assert analytics.clients.total_clients == 1
        assert analytics.projects.project_status_distribution
        assert analytics.time_tracking.project_time_allocation
        assert len(analytics.trends.seasonal_patterns) == 4


class TestFailures:
    """Tests that analytics degrade instead of raising."""

    def test_failed_view_returns_empty(self, hub, clock, audit_storage, monkeypatch):
        """Test an aggregation error yields the empty view and is audited."""
        populate(hub, clock)

        def explode(*args, **kwargs):
            raise ZeroDivisionError("bad data")

        monkeypatch.setattr(revenue, "business_overview", explode)
        overview = asyncio.run(hub.analytics.get_business_overview())
        assert overview == BusinessOverview()

        events = asyncio.run(audit_storage.get_recent_events())
        failed = [e for e in events if e.event_type == AuditEventType.ANALYTICS_FAILED]
        assert failed and failed[0].entity_id == "overview"

    def test_unreadable_storage_gives_zeros(self, hub, clock, kv_store):
        """Test a failing backend reads as an empty business."""
        populate(hub, clock)
        kv_store.failing_reads.update({"test_projects", "test_time_entries"})
        overview = asyncio.run(hub.analytics.get_business_overview())
        assert overview.total_projects == 0
        assert overview.total_revenue == 0.0

    def test_successful_view_is_audited(self, hub, audit_storage):
        """Test each computed view leaves an audit event."""
        asyncio.run(hub.analytics.get_time_analytics())
        events = asyncio.run(audit_storage.get_recent_events())
        computed = [e for e in events if e.event_type == AuditEventType.ANALYTICS_COMPUTED]
        assert computed[0].entity_id == "time"
        assert computed[0].details["filtered"] is False
