"""
Client Store

New clients are inserted at the front of the collection so the most
recent client lists first. project_count is derived and maintained by
the consistency updater.
"""

from typing import Any, Union

from bizhub.audit import create_correlation_id
from bizhub.models.records import Client, ClientStatus
from bizhub.repositories.base import RecordStore
from bizhub.storage import NotFoundError


class ClientStore(RecordStore[Client]):
    """CRUD and lookups for clients."""

    collection = "clients"
    entity_type = "client"
    model = Client

    async def add(self, data: Union[Client, dict[str, Any]]) -> Client:
        """
        Create a client with a fresh ID, timestamps and project_count 0.

        Raises:
            ValueError: If the data does not form a valid client
            StorageError: If the collection cannot be written
        """
        client = self._build(data, project_count=0)
        clients = await self._load()
        await self._save([client] + clients)
        await self._audit.log_record_created(self.entity_type, client.id, client.name)
        return client

    async def update(self, client_id: str, changes: dict[str, Any]) -> Client:
        """
        Replace a client with its stored values overlaid by `changes`.

        Renaming a client re-syncs client_name on its projects.

        Raises:
            NotFoundError: If no client has this ID
            ValueError: If the merged client is invalid
            StorageError: If the collection cannot be written
        """
        clients = await self._load()
        index = self._index_of(clients, client_id)
        if index == -1:
            raise NotFoundError(f"Client not found: {client_id}")

        old = clients[index]
        updated = self._merge(old, changes)
        clients[index] = updated
        await self._save(clients)

        correlation_id = create_correlation_id()
        await self._audit.log_record_updated(
            self.entity_type,
            client_id,
            self._changed_fields(old, updated),
            correlation_id=correlation_id,
        )
        if updated.name != old.name and self._consistency:
            await self._consistency.resync_project_client_names(
                client_id, correlation_id=correlation_id
            )
        return updated

    async def delete(self, client_id: str) -> bool:
        """
        Remove a client. Its projects are left in place.

        Raises:
            NotFoundError: If no client has this ID
            StorageError: If the collection cannot be written
        """
        clients = await self._load()
        remaining = [c for c in clients if c.id != client_id]
        if len(remaining) == len(clients):
            raise NotFoundError(f"Client not found: {client_id}")

        await self._save(remaining)
        await self._audit.log_record_deleted(self.entity_type, client_id)
        return True

    async def update_project_count(self, client_id: str, count: int) -> Client:
        """Set the derived project count."""
        return await self.update(client_id, {"project_count": count})

    async def search(self, query: str) -> list[Client]:
        """Case-insensitive match on name, email or company. Blank returns all."""
        clients = await self._load()
        needle = query.strip().lower()
        if not needle:
            return clients
        return [
            c for c in clients
            if needle in c.name.lower()
            or needle in c.email.lower()
            or (c.company and needle in c.company.lower())
        ]

    async def get_by_status(self, status: ClientStatus) -> list[Client]:
        status = ClientStatus(status)
        return [c for c in await self._load() if c.status == status]

