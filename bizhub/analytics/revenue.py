"""
Overview, revenue and client aggregation.

These passes bucket time entries by created_at (the moment the work was
recorded), unlike the time views which use start_time.
"""

from collections import defaultdict
from datetime import datetime

from bizhub.analytics.common import (
    amount,
    earns_revenue,
    hours_of,
    month_key,
    percent_change,
    percentage,
    previous_month_key,
    revenue_of,
    safe_ratio,
)
from bizhub.config import AnalyticsSettings
from bizhub.models.analytics import (
    BillableSplit,
    BusinessOverview,
    ClientAnalytics,
    ClientRevenue,
    MonthlyRevenue,
    ProjectRevenue,
    RevenueAnalytics,
)
from bizhub.models.records import (
    Client,
    ClientStatus,
    Project,
    ProjectStatus,
    TimeEntry,
)


def _entries_by_project(entries: list[TimeEntry]) -> dict[str, list[TimeEntry]]:
    grouped = defaultdict(list)
    for entry in entries:
        grouped[entry.project_id].append(entry)
    return grouped


def business_overview(
    projects: list[Project],
    clients: list[Client],
    entries: list[TimeEntry],
    now: datetime,
) -> BusinessOverview:
    """Headline counts, hours and revenue, with this month against last month."""
    total_hours = hours_of(entries)
    billable_hours = hours_of(entries, billable=True)

    this_month = month_key(now)
    last_month = previous_month_key(now)
    monthly_revenue = revenue_of(e for e in entries if month_key(e.created_at) == this_month)
    previous_revenue = revenue_of(e for e in entries if month_key(e.created_at) == last_month)

    return BusinessOverview(
        total_revenue=revenue_of(entries),
        monthly_revenue=monthly_revenue,
        revenue_growth=percent_change(monthly_revenue, previous_revenue),
        total_projects=len(projects),
        active_projects=sum(1 for p in projects if p.status == ProjectStatus.ACTIVE),
        completed_projects=sum(1 for p in projects if p.status == ProjectStatus.COMPLETED),
        total_clients=len(clients),
        active_clients=sum(1 for c in clients if c.status == ClientStatus.ACTIVE),
        total_hours=total_hours,
        billable_hours=billable_hours,
        utilization=percentage(billable_hours, total_hours),
    )


def monthly_revenue(entries: list[TimeEntry], projects: list[Project]) -> list[MonthlyRevenue]:
    """
    Revenue and billable hours per created_at month, plus completed
    projects per end_date month. Ascending by month.
    """
    months: dict[str, MonthlyRevenue] = {}

    def bucket(key: str) -> MonthlyRevenue:
        if key not in months:
            months[key] = MonthlyRevenue(month=key)
        return months[key]

    for entry in entries:
        row = bucket(month_key(entry.created_at))
        if earns_revenue(entry):
            row.revenue += entry.duration / 60 * entry.hourly_rate
            row.billable_hours += entry.duration / 60

    for project in projects:
        if project.status == ProjectStatus.COMPLETED and project.end_date:
            bucket(month_key(project.end_date)).projects_completed += 1

    return [months[key] for key in sorted(months)]


def project_revenue(projects: list[Project], entries: list[TimeEntry]) -> list[ProjectRevenue]:
    """One row per project, in project order."""
    by_project = _entries_by_project(entries)
    rows = []
    for project in projects:
        revenue = revenue_of(by_project.get(project.id, []))
        profit = revenue - amount(project.total_spent)
        rows.append(ProjectRevenue(
            project_id=project.id,
            project_title=project.title,
            revenue=revenue,
            profitability=percentage(profit, revenue),
            completion_percentage=percentage(project.completed_tasks, project.task_count),
        ))
    return rows


def client_revenue(
    clients: list[Client],
    projects: list[Project],
    entries: list[TimeEntry],
) -> list[ClientRevenue]:
    """One row per client, over the client's projects in the given list."""
    by_project = _entries_by_project(entries)
    projects_by_client = defaultdict(list)
    for project in projects:
        projects_by_client[project.client_id].append(project)

    rows = []
    for client in clients:
        client_projects = projects_by_client.get(client.id, [])
        revenue = sum(revenue_of(by_project.get(p.id, [])) for p in client_projects)
        rows.append(ClientRevenue(
            client_id=client.id,
            client_name=client.name,
            revenue=revenue,
            project_count=len(client_projects),
            average_project_value=safe_ratio(revenue, len(client_projects)),
        ))
    return rows


def revenue_analytics(
    projects: list[Project],
    clients: list[Client],
    entries: list[TimeEntry],
    settings: AnalyticsSettings,
) -> RevenueAnalytics:
    by_project = project_revenue(projects, entries)
    non_billable_hours = hours_of(entries, billable=False)

    return RevenueAnalytics(
        monthly=monthly_revenue(entries, projects),
        by_project=by_project,
        by_client=client_revenue(clients, projects, entries),
        billable_vs_non_billable=BillableSplit(
            billable=revenue_of(entries),
            # Placeholder cost rate, display only
            non_billable=non_billable_hours * settings.non_billable_cost_rate,
        ),
        average_project_value=safe_ratio(sum(p.revenue for p in by_project), len(by_project)),
        top_performing_projects=sorted(
            by_project, key=lambda p: p.profitability, reverse=True
        )[:settings.top_projects_limit],
    )


def client_analytics(
    clients: list[Client],
    projects: list[Project],
    entries: list[TimeEntry],
    now: datetime,
    settings: AnalyticsSettings,
) -> ClientAnalytics:
    this_month = month_key(now)
    ranked = sorted(
        client_revenue(clients, projects, entries),
        key=lambda c: c.revenue,
        reverse=True,
    )
    return ClientAnalytics(
        total_clients=len(clients),
        new_clients_this_month=sum(1 for c in clients if month_key(c.created_at) == this_month),
        average_projects_per_client=safe_ratio(len(projects), len(clients)),
        top_clients_by_revenue=ranked[:settings.top_clients_limit],
    )
