"""
Data Models Package

This package contains all Pydantic models used in Business Hub.
All data flowing through the system must conform to these schemas.
"""

from bizhub.models.records import (
    ActiveTimer,
    Client,
    ClientStatus,
    Priority,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    TimeEntry,
    TimeTrackingPreferences,
    new_record_id,
    utc_now,
)
from bizhub.models.analytics import (
    AnalyticsFilter,
    BillableSplit,
    BusinessAnalytics,
    BusinessOverview,
    ClientAnalytics,
    ClientRevenue,
    DailyHours,
    DateRange,
    GrowthTrend,
    MonthlyRevenue,
    MonthlyTimeBreakdown,
    OvertimeAnalysis,
    ProductivityAnalytics,
    ProductivityBottleneck,
    ProductivityTrend,
    ProjectPerformanceAnalytics,
    ProjectProfitability,
    ProjectRevenue,
    ProjectTimeAllocation,
    RevenueAnalytics,
    SeasonalPattern,
    StatusDistribution,
    TeamEfficiency,
    TimeAnalytics,
    TrendAnalytics,
    WeeklyTrend,
)
from bizhub.models.stats import (
    DailyTimeStats,
    ProjectStats,
    ProjectTimeStats,
    TaskStats,
    TaskTimeStats,
    TimeTrackingStats,
)
from bizhub.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "ActiveTimer",
    "Client",
    "ClientStatus",
    "Priority",
    "Project",
    "ProjectStatus",
    "Task",
    "TaskStatus",
    "TimeEntry",
    "TimeTrackingPreferences",
    "new_record_id",
    "utc_now",
    # Analytics models
    "AnalyticsFilter",
    "BillableSplit",
    "BusinessAnalytics",
    "BusinessOverview",
    "ClientAnalytics",
    "ClientRevenue",
    "DailyHours",
    "DateRange",
    "GrowthTrend",
    "MonthlyRevenue",
    "MonthlyTimeBreakdown",
    "OvertimeAnalysis",
    "ProductivityAnalytics",
    "ProductivityBottleneck",
    "ProductivityTrend",
    "ProjectPerformanceAnalytics",
    "ProjectProfitability",
    "ProjectRevenue",
    "ProjectTimeAllocation",
    "RevenueAnalytics",
    "SeasonalPattern",
    "StatusDistribution",
    "TeamEfficiency",
    "TimeAnalytics",
    "TrendAnalytics",
    "WeeklyTrend",
    # Store statistics
    "DailyTimeStats",
    "ProjectStats",
    "ProjectTimeStats",
    "TaskStats",
    "TaskTimeStats",
    "TimeTrackingStats",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
