"""
Project Store

client_name is a denormalized copy of the owning client's name. It is
filled on add, and re-synced when the client is renamed or when
resync_client_name is called. A client's project_count is refreshed
after every add, delete and client_id change.
"""

from typing import Any, Optional, Union

from bizhub.audit import AuditLogger, create_correlation_id
from bizhub.models.records import Project, ProjectStatus
from bizhub.models.stats import ProjectStats
from bizhub.repositories.base import Clock, RecordStore
from bizhub.repositories.clients import ClientStore
from bizhub.storage import KeyValueStoreInterface, NotFoundError


UNKNOWN_CLIENT = "Unknown Client"


class ProjectStore(RecordStore[Project]):
    """CRUD and lookups for projects."""

    collection = "projects"
    entity_type = "project"
    model = Project

    def __init__(
        self,
        kv_store: KeyValueStoreInterface,
        clients: ClientStore,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        key_prefix: Optional[str] = None,
    ):
        super().__init__(kv_store, audit_logger, clock, key_prefix)
        self._clients = clients

    async def _client_name(self, client_id: str) -> str:
        client = await self._clients.get_by_id(client_id)
        return client.name if client else UNKNOWN_CLIENT

    async def add(self, data: Union[Project, dict[str, Any]]) -> Project:
        """
        Create a project and refresh its client's project count.

        client_name is looked up from the client when not supplied.

        Raises:
            ValueError: If the data does not form a valid project
            StorageError: If the collection cannot be written
        """
        project = self._build(data)
        if not project.client_name:
            project = project.model_copy(
                update={"client_name": await self._client_name(project.client_id)}
            )

        projects = await self._load()
        await self._save([project] + projects)

        correlation_id = create_correlation_id()
        await self._audit.log_record_created(
            self.entity_type, project.id, project.title, correlation_id=correlation_id
        )
        if self._consistency:
            await self._consistency.refresh_client_project_count(
                project.client_id, correlation_id=correlation_id
            )
        return project

    async def update(self, project_id: str, changes: dict[str, Any]) -> Project:
        """
        Replace a project with its stored values overlaid by `changes`.

        Moving a project to another client refreshes both clients' counts.

        Raises:
            NotFoundError: If no project has this ID
            ValueError: If the merged project is invalid
            StorageError: If the collection cannot be written
        """
        projects = await self._load()
        index = self._index_of(projects, project_id)
        if index == -1:
            raise NotFoundError(f"Project not found: {project_id}")

        old = projects[index]
        updated = self._merge(old, changes)
        if updated.client_id != old.client_id and "client_name" not in changes:
            updated = updated.model_copy(
                update={"client_name": await self._client_name(updated.client_id)}
            )
        projects[index] = updated
        await self._save(projects)

        correlation_id = create_correlation_id()
        await self._audit.log_record_updated(
            self.entity_type,
            project_id,
            self._changed_fields(old, updated),
            correlation_id=correlation_id,
        )
        if updated.client_id != old.client_id and self._consistency:
            await self._consistency.refresh_client_project_count(
                old.client_id, correlation_id=correlation_id
            )
            await self._consistency.refresh_client_project_count(
                updated.client_id, correlation_id=correlation_id
            )
        return updated

    async def delete(self, project_id: str) -> bool:
        """
        Remove a project and refresh its client's project count.

        Raises:
            NotFoundError: If no project has this ID
            StorageError: If the collection cannot be written
        """
        projects = await self._load()
        index = self._index_of(projects, project_id)
        if index == -1:
            raise NotFoundError(f"Project not found: {project_id}")

        removed = projects.pop(index)
        await self._save(projects)

        correlation_id = create_correlation_id()
        await self._audit.log_record_deleted(
            self.entity_type, project_id, correlation_id=correlation_id
        )
        if self._consistency:
            await self._consistency.refresh_client_project_count(
                removed.client_id, correlation_id=correlation_id
            )
        return True

    async def set_task_counts(
        self,
        project_id: str,
        task_count: int,
        completed_tasks: int,
    ) -> Project:
        """Set the derived task counters."""
        return await self.update(
            project_id,
            {"task_count": task_count, "completed_tasks": completed_tasks},
        )

    async def resync_client_name(self, project_id: str) -> Project:
        """
        Copy the current client name onto the project.

        Raises:
            NotFoundError: If no project has this ID
        """
        project = await self.get_by_id(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        name = await self._client_name(project.client_id)
        if name == project.client_name:
            return project
        return await self.update(project_id, {"client_name": name})

    async def get_by_client(self, client_id: str) -> list[Project]:
        return [p for p in await self._load() if p.client_id == client_id]

    async def get_by_status(self, status: ProjectStatus) -> list[Project]:
        status = ProjectStatus(status)
        return [p for p in await self._load() if p.status == status]

    async def search(self, query: str) -> list[Project]:
        """Case-insensitive match on title, description or client name."""
        projects = await self._load()
        needle = query.strip().lower()
        if not needle:
            return projects
        return [
            p for p in projects
            if needle in p.title.lower()
            or (p.description and needle in p.description.lower())
            or (p.client_name and needle in p.client_name.lower())
        ]

    async def get_stats(self) -> ProjectStats:
        """Counts per status plus budget and spend totals."""
        projects = await self._load()
        by_status = {status: 0 for status in ProjectStatus}
        for project in projects:
            by_status[project.status] += 1
        return ProjectStats(
            total=len(projects),
            active=by_status[ProjectStatus.ACTIVE],
            completed=by_status[ProjectStatus.COMPLETED],
            on_hold=by_status[ProjectStatus.ON_HOLD],
            cancelled=by_status[ProjectStatus.CANCELLED],
            total_budget=round(sum(p.budget or 0.0 for p in projects), 2),
            total_spent=round(sum(p.total_spent or 0.0 for p in projects), 2),
        )
