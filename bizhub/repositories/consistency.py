"""
Cross-Store Consistency Updater

Recomputes derived fields after the mutation that invalidated them:
- Client.project_count     <- number of projects with that client_id
- Project.task_count       <- number of tasks with that project_id
- Project.completed_tasks  <- how many of those are COMPLETED
- Task.actual_hours        <- sum of its entries' minutes / 60, 2 dp
- Project.client_name      <- current Client.name

DESIGN DECISION: Refreshes are awaited inside the call that caused the
change, and never fail that call. A failed refresh is logged and
audited, then swallowed: the primary write has already succeeded and
the derived field is recomputed from scratch on the next refresh.
"""

from typing import Any, Awaitable, Optional
from uuid import UUID

from bizhub.audit import AuditLogger, get_logger
from bizhub.models.records import TaskStatus
from bizhub.repositories.clients import ClientStore
from bizhub.repositories.projects import ProjectStore
from bizhub.repositories.tasks import TaskStore
from bizhub.repositories.time_tracking import TimeEntryStore


class ConsistencyUpdater:
    """
    Owns references to all four stores and binds itself to each so that
    their mutations trigger the matching refresh.
    """

    def __init__(
        self,
        clients: ClientStore,
        projects: ProjectStore,
        tasks: TaskStore,
        time_entries: TimeEntryStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._clients = clients
        self._projects = projects
        self._tasks = tasks
        self._time_entries = time_entries
        self._audit = audit_logger or AuditLogger()
        self._logger = get_logger("bizhub.repositories.consistency")

        for store in (clients, projects, tasks, time_entries):
            store.bind_consistency(self)

    async def _guard(
        self,
        operation: str,
        entity_type: str,
        entity_id: str,
        refresh: Awaitable[Optional[dict[str, Any]]],
        correlation_id: Optional[UUID],
    ) -> bool:
        """Run one refresh; log and swallow any failure."""
        try:
            values = await refresh
        except Exception as e:
            self._logger.error(
                "consistency_update_failed",
                operation=operation,
                entity_type=entity_type,
                entity_id=entity_id,
                error=str(e),
            )
            await self._audit.log_consistency_failed(
                entity_type=entity_type,
                entity_id=entity_id,
                operation=operation,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return False

        if values is not None:
            await self._audit.log_derived_refreshed(
                entity_type=entity_type,
                entity_id=entity_id,
                values=values,
                correlation_id=correlation_id,
            )
        return True

    async def refresh_client_project_count(
        self,
        client_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Recount the client's projects. Returns False if the refresh failed."""
        async def refresh():
            count = len(await self._projects.get_by_client(client_id))
            await self._clients.update_project_count(client_id, count)
            return {"project_count": count}

        return await self._guard(
            "refresh_client_project_count", "client", client_id, refresh(), correlation_id
        )

    async def refresh_project_task_counts(
        self,
        project_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Recount the project's tasks and completed tasks."""
        async def refresh():
            tasks = await self._tasks.get_by_project(project_id)
            total = len(tasks)
            completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
            await self._projects.set_task_counts(project_id, total, completed)
            return {"task_count": total, "completed_tasks": completed}

        return await self._guard(
            "refresh_project_task_counts", "project", project_id, refresh(), correlation_id
        )

    async def refresh_task_actual_hours(
        self,
        task_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Re-sum the task's logged minutes into hours (2 dp)."""
        async def refresh():
            entries = await self._time_entries.get_by_task(task_id)
            hours = round(sum(e.duration for e in entries) / 60, 2)
            task = await self._tasks.set_actual_hours(task_id, hours)
            if task is None:
                # Entries can outlive their task
                return None
            return {"actual_hours": hours}

        return await self._guard(
            "refresh_task_actual_hours", "task", task_id, refresh(), correlation_id
        )

    async def resync_project_client_names(
        self,
        client_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Copy the client's current name onto each of its projects."""
        async def refresh():
            projects = await self._projects.get_by_client(client_id)
            for project in projects:
                await self._projects.resync_client_name(project.id)
            return {"projects_resynced": len(projects)}

        return await self._guard(
            "resync_project_client_names", "client", client_id, refresh(), correlation_id
        )
