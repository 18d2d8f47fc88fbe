"""
Productivity and project-performance aggregation.

A task counts as overdue here when its due date is before today and it
is not completed. Cancelled tasks past their due date still count.
"""

from collections import defaultdict
from datetime import date

from bizhub.analytics.common import amount, as_utc, hours_of, percentage, revenue_of
from bizhub.config import AnalyticsSettings
from bizhub.models.analytics import (
    ProductivityAnalytics,
    ProductivityBottleneck,
    ProjectPerformanceAnalytics,
    ProjectProfitability,
    StatusDistribution,
    TeamEfficiency,
)
from bizhub.models.records import (
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    TimeEntry,
)


SECONDS_PER_DAY = 24 * 60 * 60


def is_past_due(task: Task, today: date) -> bool:
    return (
        task.due_date is not None
        and task.due_date < today
        and task.status != TaskStatus.COMPLETED
    )


def _delivered_on_time(project: Project) -> bool:
    return (
        project.end_date is not None
        and project.deadline is not None
        and project.end_date <= project.deadline
    )


def average_completion_days(tasks: list[Task]) -> float:
    """Mean days from creation to completion over completed tasks."""
    durations = [
        (as_utc(t.completed_at) - as_utc(t.created_at)).total_seconds() / SECONDS_PER_DAY
        for t in tasks
        if t.status == TaskStatus.COMPLETED and t.completed_at is not None
    ]
    if not durations:
        return 0.0
    return sum(durations) / len(durations)


def team_efficiency(tasks: list[Task], entries: list[TimeEntry]) -> list[TeamEfficiency]:
    """Per user seen in entries or assignments, ordered by user ID."""
    entries_by_user = defaultdict(list)
    for entry in entries:
        entries_by_user[entry.user_id].append(entry)

    completed_by_user = defaultdict(int)
    users = set(entries_by_user)
    for task in tasks:
        users.update(task.assigned_to)
        if task.status == TaskStatus.COMPLETED:
            for user_id in set(task.assigned_to):
                completed_by_user[user_id] += 1

    rows = []
    for user_id in sorted(users):
        worked = hours_of(entries_by_user.get(user_id, []))
        billable = hours_of(entries_by_user.get(user_id, []), billable=True)
        rows.append(TeamEfficiency(
            user_id=user_id,
            tasks_completed=completed_by_user[user_id],
            hours_worked=worked,
            billable_hours=billable,
            utilization=percentage(billable, worked),
        ))
    return rows


def productivity_analytics(
    tasks: list[Task],
    projects: list[Project],
    entries: list[TimeEntry],
    today: date,
    settings: AnalyticsSettings,
) -> ProductivityAnalytics:
    completed_tasks = [t for t in tasks if t.status == TaskStatus.COMPLETED]
    overdue_count = sum(1 for t in tasks if is_past_due(t, today))
    overdue_percentage = percentage(overdue_count, len(tasks))

    completed_projects = [p for p in projects if p.status == ProjectStatus.COMPLETED]
    on_time = sum(1 for p in completed_projects if _delivered_on_time(p))

    bottlenecks = []
    if overdue_percentage > settings.overdue_bottleneck_threshold:
        bottlenecks.append(ProductivityBottleneck(
            type="task",
            description="High percentage of overdue tasks",
            impact="high",
            affected_projects=[p.id for p in projects],
        ))

    return ProductivityAnalytics(
        tasks_completed=len(completed_tasks),
        average_task_completion_time=average_completion_days(tasks),
        overdue_tasks_count=overdue_count,
        overdue_tasks_percentage=overdue_percentage,
        project_delivery_rate=percentage(on_time, len(completed_projects)),
        team_efficiency=team_efficiency(tasks, entries),
        bottlenecks=bottlenecks,
    )


def project_profitability(
    projects: list[Project],
    entries: list[TimeEntry],
) -> list[ProjectProfitability]:
    by_project = defaultdict(list)
    for entry in entries:
        by_project[entry.project_id].append(entry)

    rows = []
    for project in projects:
        revenue = revenue_of(by_project.get(project.id, []))
        costs = amount(project.total_spent)
        profit = revenue - costs
        rows.append(ProjectProfitability(
            project_id=project.id,
            project_title=project.title,
            revenue=revenue,
            costs=costs,
            profit=profit,
            profit_margin=percentage(profit, revenue),
        ))
    return rows


def status_distribution(projects: list[Project]) -> list[StatusDistribution]:
    """Count and share per status present, in status declaration order."""
    counts = defaultdict(int)
    for project in projects:
        counts[project.status] += 1
    return [
        StatusDistribution(
            status=status,
            count=counts[status],
            percentage=percentage(counts[status], len(projects)),
        )
        for status in ProjectStatus
        if counts[status]
    ]


def project_performance_analytics(
    projects: list[Project],
    entries: list[TimeEntry],
) -> ProjectPerformanceAnalytics:
    completed = [p for p in projects if p.status == ProjectStatus.COMPLETED]
    on_time = sum(1 for p in completed if _delivered_on_time(p))

    budgeted = [p for p in projects if amount(p.budget) > 0 and p.total_spent is not None]
    on_budget = sum(1 for p in budgeted if p.total_spent <= p.budget)

    return ProjectPerformanceAnalytics(
        on_time_delivery=percentage(on_time, len(completed)),
        budget_adherence=percentage(on_budget, len(budgeted)),
        profitability_analysis=project_profitability(projects, entries),
        project_status_distribution=status_distribution(projects),
    )
