"""
Time aggregation.

Daily, weekly and monthly buckets key on each entry's start_time, the
moment the work happened.

Overtime is counted per entry: an entry longer than the threshold
(8 hours by default) contributes the excess. Several shorter entries on
the same day never produce overtime.
"""

from collections import defaultdict

from bizhub.analytics.common import (
    amount,
    day_key,
    hours_of,
    iso_week_key,
    month_key,
    percentage,
    revenue_of,
    safe_ratio,
)
from bizhub.config import AnalyticsSettings
from bizhub.models.analytics import (
    DailyHours,
    MonthlyTimeBreakdown,
    OvertimeAnalysis,
    ProjectTimeAllocation,
    TimeAnalytics,
    WeeklyTrend,
)
from bizhub.models.records import Project, TimeEntry


def overtime_hours(entry: TimeEntry, threshold_hours: float) -> float:
    return max(0.0, entry.hours - threshold_hours)


def daily_hours(entries: list[TimeEntry]) -> list[DailyHours]:
    grouped = defaultdict(list)
    for entry in entries:
        grouped[day_key(entry.start_time)].append(entry)
    return [
        DailyHours(
            date=day,
            total_hours=hours_of(grouped[day]),
            billable_hours=hours_of(grouped[day], billable=True),
            non_billable_hours=hours_of(grouped[day], billable=False),
        )
        for day in sorted(grouped)
    ]


def weekly_trends(entries: list[TimeEntry]) -> list[WeeklyTrend]:
    grouped = defaultdict(list)
    for entry in entries:
        grouped[iso_week_key(entry.start_time)].append(entry)

    rows = []
    for week in sorted(grouped):
        hours = hours_of(grouped[week])
        revenue = revenue_of(grouped[week])
        rows.append(WeeklyTrend(
            week=week,
            total_hours=hours,
            revenue=revenue,
            efficiency=safe_ratio(revenue, hours),
        ))
    return rows


def monthly_breakdown(
    entries: list[TimeEntry],
    threshold_hours: float,
) -> list[MonthlyTimeBreakdown]:
    grouped = defaultdict(list)
    for entry in entries:
        grouped[month_key(entry.start_time)].append(entry)

    rows = []
    for month in sorted(grouped):
        group = grouped[month]
        total = hours_of(group)
        active_days = {day_key(e.start_time) for e in group}
        rows.append(MonthlyTimeBreakdown(
            month=month,
            total_hours=total,
            billable_hours=hours_of(group, billable=True),
            overtime_hours=sum(overtime_hours(e, threshold_hours) for e in group),
            average_daily_hours=safe_ratio(total, len(active_days)),
        ))
    return rows


def project_time_allocation(
    projects: list[Project],
    entries: list[TimeEntry],
) -> list[ProjectTimeAllocation]:
    """Actual against estimated hours, one row per project."""
    by_project = defaultdict(list)
    for entry in entries:
        by_project[entry.project_id].append(entry)

    rows = []
    for project in projects:
        actual = hours_of(by_project.get(project.id, []))
        allocated = amount(project.estimated_hours)
        rows.append(ProjectTimeAllocation(
            project_id=project.id,
            project_title=project.title,
            allocated_hours=allocated,
            actual_hours=actual,
            variance=actual - allocated,
        ))
    return rows


def overtime_analysis(
    entries: list[TimeEntry],
    allocations: list[ProjectTimeAllocation],
    settings: AnalyticsSettings,
) -> OvertimeAnalysis:
    threshold = settings.overtime_threshold_hours
    overtime = sum(overtime_hours(e, threshold) for e in entries)
    over_budget = sorted(
        (a for a in allocations if a.variance > 0),
        key=lambda a: a.variance,
        reverse=True,
    )
    return OvertimeAnalysis(
        total_overtime_hours=overtime,
        overtime_percentage=percentage(overtime, hours_of(entries)),
        # Placeholder overtime rate
        cost_of_overtime=overtime * settings.overtime_rate,
        top_overtime_projects=over_budget[:settings.top_projects_limit],
    )


def time_analytics(
    entries: list[TimeEntry],
    projects: list[Project],
    settings: AnalyticsSettings,
) -> TimeAnalytics:
    allocations = project_time_allocation(projects, entries)
    return TimeAnalytics(
        daily_hours=daily_hours(entries),
        weekly_trends=weekly_trends(entries),
        monthly_breakdown=monthly_breakdown(entries, settings.overtime_threshold_hours),
        project_time_allocation=allocations,
        overtime_analysis=overtime_analysis(entries, allocations, settings),
    )
