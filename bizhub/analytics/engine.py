"""
Analytics Engine

DESIGN DECISION: Analytics are READ-ONLY and recomputed on every call.
The engine pulls the full collections from the record stores, applies
the optional filter per collection and hands plain lists to pure
aggregation functions. Nothing is cached and nothing is written back.

GUARANTEES:
- A view never raises. Any failure is logged and audited, and the
  caller gets the view's empty model
- The input collections are never mutated
- Collections are fetched concurrently; a write landing mid-fetch can
  give a torn snapshot, which is accepted for a single local writer
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional, TypeVar

from pydantic import BaseModel

from bizhub.analytics import productivity, revenue, timesheet, trends
from bizhub.analytics.filters import (
    filter_clients,
    filter_projects,
    filter_tasks,
    filter_time_entries,
)
from bizhub.audit import AuditLogger, get_logger
from bizhub.config import AnalyticsSettings, get_settings
from bizhub.models.analytics import (
    AnalyticsFilter,
    BusinessAnalytics,
    BusinessOverview,
    ClientAnalytics,
    ProductivityAnalytics,
    ProjectPerformanceAnalytics,
    RevenueAnalytics,
    TimeAnalytics,
    TrendAnalytics,
)
from bizhub.models.records import Client, Project, Task, TimeEntry, utc_now

if TYPE_CHECKING:
    from bizhub.repositories import ClientStore, ProjectStore, TaskStore, TimeEntryStore


ViewT = TypeVar("ViewT", bound=BaseModel)


@dataclass
class Snapshot:
    """Filtered collections plus the moment they were read."""

    now: datetime
    projects: list[Project] = field(default_factory=list)
    clients: list[Client] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    time_entries: list[TimeEntry] = field(default_factory=list)

    def record_counts(self) -> dict[str, int]:
        return {
            "projects": len(self.projects),
            "clients": len(self.clients),
            "tasks": len(self.tasks),
            "time_entries": len(self.time_entries),
        }


class AnalyticsEngine:
    """
    Computes the analytics views from the four record stores.

    Only get_all() is ever called on the stores.
    """

    def __init__(
        self,
        clients: "ClientStore",
        projects: "ProjectStore",
        tasks: "TaskStore",
        time_entries: "TimeEntryStore",
        settings: Optional[AnalyticsSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._clients = clients
        self._projects = projects
        self._tasks = tasks
        self._time_entries = time_entries
        self._settings = settings or get_settings().analytics
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or utc_now
        self._logger = get_logger("bizhub.analytics")

    async def _snapshot(
        self,
        flt: Optional[AnalyticsFilter],
        projects: bool = False,
        clients: bool = False,
        tasks: bool = False,
        time_entries: bool = False,
    ) -> Snapshot:
        """Fetch the requested collections concurrently and filter them."""
        async def nothing():
            return []

        raw = await asyncio.gather(
            self._projects.get_all() if projects else nothing(),
            self._clients.get_all() if clients else nothing(),
            self._tasks.get_all() if tasks else nothing(),
            self._time_entries.get_all() if time_entries else nothing(),
        )
        return Snapshot(
            now=self._clock(),
            projects=filter_projects(raw[0], flt),
            clients=filter_clients(raw[1], flt),
            tasks=filter_tasks(raw[2], flt),
            time_entries=filter_time_entries(raw[3], flt),
        )

    async def _compute(
        self,
        view: str,
        empty: type[ViewT],
        flt: Optional[AnalyticsFilter],
        build: Callable[[Snapshot], ViewT],
        **collections: bool,
    ) -> ViewT:
        """Run one view; any failure yields the empty view."""
        try:
            snapshot = await self._snapshot(flt, **collections)
            result = build(snapshot)
        except Exception as e:
            self._logger.error("analytics_failed", view=view, error=str(e))
            await self._audit.log_analytics_failed(view=view, error_message=str(e))
            return empty()

        await self._audit.log_analytics_computed(
            view=view,
            record_counts=snapshot.record_counts(),
            filtered=flt is not None,
        )
        return result

    # =========================================================================
    # VIEWS
    # =========================================================================

    async def get_business_overview(
        self,
        flt: Optional[AnalyticsFilter] = None,
    ) -> BusinessOverview:
        return await self._compute(
            "overview",
            BusinessOverview,
            flt,
            lambda s: revenue.business_overview(s.projects, s.clients, s.time_entries, s.now),
            projects=True,
            clients=True,
            time_entries=True,
        )

    async def get_revenue_analytics(
        self,
        flt: Optional[AnalyticsFilter] = None,
    ) -> RevenueAnalytics:
        return await self._compute(
            "revenue",
            RevenueAnalytics,
            flt,
            lambda s: revenue.revenue_analytics(
                s.projects, s.clients, s.time_entries, self._settings
            ),
            projects=True,
            clients=True,
            time_entries=True,
        )

    async def get_productivity_analytics(
        self,
        flt: Optional[AnalyticsFilter] = None,
    ) -> ProductivityAnalytics:
        return await self._compute(
            "productivity",
            ProductivityAnalytics,
            flt,
            lambda s: productivity.productivity_analytics(
                s.tasks, s.projects, s.time_entries, s.now.date(), self._settings
            ),
            projects=True,
            tasks=True,
            time_entries=True,
        )

    async def get_client_analytics(
        self,
        flt: Optional[AnalyticsFilter] = None,
    ) -> ClientAnalytics:
        return await self._compute(
            "clients",
            ClientAnalytics,
            flt,
            lambda s: revenue.client_analytics(
                s.clients, s.projects, s.time_entries, s.now, self._settings
            ),
            projects=True,
            clients=True,
            time_entries=True,
        )

    async def get_project_performance_analytics(
        self,
        flt: Optional[AnalyticsFilter] = None,
    ) -> ProjectPerformanceAnalytics:
        return await self._compute(
            "project_performance",
            ProjectPerformanceAnalytics,
            flt,
            lambda s: productivity.project_performance_analytics(s.projects, s.time_entries),
            projects=True,
            time_entries=True,
        )

    async def get_time_analytics(
        self,
        flt: Optional[AnalyticsFilter] = None,
    ) -> TimeAnalytics:
        return await self._compute(
            "time",
            TimeAnalytics,
            flt,
            lambda s: timesheet.time_analytics(s.time_entries, s.projects, self._settings),
            projects=True,
            time_entries=True,
        )

    async def get_trend_analytics(
        self,
        flt: Optional[AnalyticsFilter] = None,
    ) -> TrendAnalytics:
        return await self._compute(
            "trends",
            TrendAnalytics,
            flt,
            lambda s: trends.trend_analytics(
                s.projects, s.clients, s.time_entries, self._settings
            ),
            projects=True,
            clients=True,
            time_entries=True,
        )

    async def get_business_analytics(
        self,
        flt: Optional[AnalyticsFilter] = None,
    ) -> BusinessAnalytics:
        """All seven views for the same filter, computed concurrently."""
        (
            overview,
            revenue_view,
            productivity_view,
            clients_view,
            projects_view,
            time_view,
            trends_view,
        ) = await asyncio.gather(
            self.get_business_overview(flt),
            self.get_revenue_analytics(flt),
            self.get_productivity_analytics(flt),
            self.get_client_analytics(flt),
            self.get_project_performance_analytics(flt),
            self.get_time_analytics(flt),
            self.get_trend_analytics(flt),
        )
        return BusinessAnalytics(
            overview=overview,
            revenue=revenue_view,
            productivity=productivity_view,
            clients=clients_view,
            projects=projects_view,
            time_tracking=time_view,
            trends=trends_view,
        )
