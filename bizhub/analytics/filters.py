"""
Per-collection filtering.

Each collection is filtered only on the fields it has:
- projects:     created_at, project ID, client ID, cancelled status
- clients:      created_at, client ID, archived status
- tasks:        created_at, project ID, assignees
- time entries: created_at, project ID, user ID

Without a filter every function returns the list it was given.
"""

from datetime import datetime
from typing import Optional

from bizhub.models.analytics import AnalyticsFilter
from bizhub.models.records import (
    Client,
    ClientStatus,
    Project,
    ProjectStatus,
    Task,
    TimeEntry,
)


def _in_date_range(flt: AnalyticsFilter, created_at: datetime) -> bool:
    return flt.date_range is None or flt.date_range.contains(created_at)


def _allowed(allowed: Optional[set[str]], value: str) -> bool:
    return allowed is None or value in allowed


def filter_projects(projects: list[Project], flt: Optional[AnalyticsFilter]) -> list[Project]:
    if flt is None:
        return projects
    return [
        p for p in projects
        if _in_date_range(flt, p.created_at)
        and _allowed(flt.projects, p.id)
        and _allowed(flt.clients, p.client_id)
        and (flt.include_archived or p.status != ProjectStatus.CANCELLED)
    ]


def filter_clients(clients: list[Client], flt: Optional[AnalyticsFilter]) -> list[Client]:
    if flt is None:
        return clients
    return [
        c for c in clients
        if _in_date_range(flt, c.created_at)
        and _allowed(flt.clients, c.id)
        and (flt.include_archived or c.status != ClientStatus.ARCHIVED)
    ]


def filter_tasks(tasks: list[Task], flt: Optional[AnalyticsFilter]) -> list[Task]:
    if flt is None:
        return tasks
    return [
        t for t in tasks
        if _in_date_range(flt, t.created_at)
        and _allowed(flt.projects, t.project_id)
        and (flt.users is None or any(u in flt.users for u in t.assigned_to))
    ]


def filter_time_entries(
    entries: list[TimeEntry],
    flt: Optional[AnalyticsFilter],
) -> list[TimeEntry]:
    if flt is None:
        return entries
    return [
        e for e in entries
        if _in_date_range(flt, e.created_at)
        and _allowed(flt.projects, e.project_id)
        and _allowed(flt.users, e.user_id)
    ]
