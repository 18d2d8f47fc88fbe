"""
Task Store

Status transitions drive completed_at: it is stamped when a task moves
into COMPLETED and cleared when it moves out. A change of status or
project refreshes the affected projects' task counters.

Not-found on update/delete returns None/False instead of raising,
unlike the client and project stores.
"""

from datetime import date
from typing import Any, Optional, Union

from bizhub.audit import create_correlation_id
from bizhub.models.records import Task, TaskStatus
from bizhub.models.stats import TaskStats
from bizhub.repositories.base import RecordStore


# Statuses that can no longer become overdue
CLOSED_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})


def is_overdue(task: Task, today: date) -> bool:
    """Due before today and still open."""
    return (
        task.due_date is not None
        and task.due_date < today
        and task.status not in CLOSED_STATUSES
    )


class TaskStore(RecordStore[Task]):
    """CRUD, status transitions and lookups for tasks."""

    collection = "tasks"
    entity_type = "task"
    model = Task

    def _with_status_transition(self, old_status: Optional[TaskStatus], task: Task) -> Task:
        """
        Stamp or clear completed_at for a move between statuses.

        old_status is None for a new task, which may carry its own
        completed_at (imported or seeded history).
        """
        if task.status == TaskStatus.COMPLETED:
            if old_status == TaskStatus.COMPLETED:
                return task
            if old_status is None and task.completed_at is not None:
                return task
            return task.model_copy(update={"completed_at": self.now()})
        if task.completed_at is not None:
            return task.model_copy(update={"completed_at": None})
        return task

    async def _refresh_projects(self, project_ids: set[str], correlation_id=None) -> None:
        if not self._consistency:
            return
        for project_id in sorted(project_ids):
            await self._consistency.refresh_project_task_counts(
                project_id, correlation_id=correlation_id
            )

    async def add(self, data: Union[Task, dict[str, Any]]) -> Task:
        """
        Create a task and refresh its project's counters.

        actual_hours always starts at 0; it is derived from time entries.

        Raises:
            ValueError: If the data does not form a valid task
            StorageError: If the collection cannot be written
        """
        task = self._with_status_transition(None, self._build(data, actual_hours=0.0))
        tasks = await self._load()
        await self._save([task] + tasks)

        correlation_id = create_correlation_id()
        await self._audit.log_record_created(
            self.entity_type, task.id, task.title, correlation_id=correlation_id
        )
        await self._refresh_projects({task.project_id}, correlation_id)
        return task

    async def update(self, task_id: str, changes: dict[str, Any]) -> Optional[Task]:
        """
        Replace a task with its stored values overlaid by `changes`.

        Returns:
            The updated task, or None if no task has this ID

        Raises:
            ValueError: If the merged task is invalid
            StorageError: If the collection cannot be written
        """
        tasks = await self._load()
        index = self._index_of(tasks, task_id)
        if index == -1:
            self._logger.warning("task_not_found", task_id=task_id)
            return None

        old = tasks[index]
        updated = self._with_status_transition(old.status, self._merge(old, changes))
        tasks[index] = updated
        await self._save(tasks)

        correlation_id = create_correlation_id()
        await self._audit.log_record_updated(
            self.entity_type,
            task_id,
            self._changed_fields(old, updated),
            correlation_id=correlation_id,
        )
        if updated.status != old.status or updated.project_id != old.project_id:
            await self._refresh_projects(
                {old.project_id, updated.project_id}, correlation_id
            )
        return updated

    async def delete(self, task_id: str) -> bool:
        """
        Remove a task and drop it from every other task's dependencies.

        Returns:
            False if no task has this ID

        Raises:
            StorageError: If the collection cannot be written
        """
        tasks = await self._load()
        index = self._index_of(tasks, task_id)
        if index == -1:
            self._logger.warning("task_not_found", task_id=task_id)
            return False

        removed = tasks.pop(index)
        remaining = [
            t.model_copy(update={"dependencies": [d for d in t.dependencies if d != task_id]})
            if task_id in t.dependencies else t
            for t in tasks
        ]
        await self._save(remaining)

        correlation_id = create_correlation_id()
        await self._audit.log_record_deleted(
            self.entity_type, task_id, correlation_id=correlation_id
        )
        await self._refresh_projects({removed.project_id}, correlation_id)
        return True

    async def bulk_update_status(self, task_ids: list[str], status: TaskStatus) -> list[Task]:
        """
        Move several tasks to one status in a single write.

        Unknown IDs are ignored. Returns the updated tasks.
        """
        status = TaskStatus(status)
        wanted = set(task_ids)
        tasks = await self._load()
        updated_tasks = []
        project_ids = set()
        for i, task in enumerate(tasks):
            if task.id not in wanted:
                continue
            updated = self._with_status_transition(
                task.status, self._merge(task, {"status": status})
            )
            tasks[i] = updated
            updated_tasks.append(updated)
            project_ids.add(task.project_id)

        if not updated_tasks:
            return []
        await self._save(tasks)

        correlation_id = create_correlation_id()
        for task in updated_tasks:
            await self._audit.log_record_updated(
                self.entity_type, task.id, ["status"], correlation_id=correlation_id
            )
        await self._refresh_projects(project_ids, correlation_id)
        return updated_tasks

    async def set_actual_hours(self, task_id: str, hours: float) -> Optional[Task]:
        """Set the derived logged hours."""
        return await self.update(task_id, {"actual_hours": hours})

    async def get_by_project(self, project_id: str) -> list[Task]:
        return [t for t in await self._load() if t.project_id == project_id]

    async def get_by_status(self, status: TaskStatus) -> list[Task]:
        status = TaskStatus(status)
        return [t for t in await self._load() if t.status == status]

    async def get_by_assignee(self, user_id: str) -> list[Task]:
        return [t for t in await self._load() if user_id in t.assigned_to]

    async def get_overdue(self) -> list[Task]:
        """Tasks due before today that are neither completed nor cancelled."""
        today = self.now().date()
        return [t for t in await self._load() if is_overdue(t, today)]

    async def get_stats(self, project_id: Optional[str] = None) -> TaskStats:
        """Status counts, optionally for one project."""
        tasks = await self.get_by_project(project_id) if project_id else await self._load()
        today = self.now().date()
        return TaskStats(
            total=len(tasks),
            completed=sum(1 for t in tasks if t.status == TaskStatus.COMPLETED),
            in_progress=sum(1 for t in tasks if t.status == TaskStatus.IN_PROGRESS),
            todo=sum(1 for t in tasks if t.status == TaskStatus.TODO),
            overdue=sum(1 for t in tasks if is_overdue(t, today)),
            blocked=sum(1 for t in tasks if t.status == TaskStatus.BLOCKED),
        )
