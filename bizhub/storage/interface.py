"""
Abstract Storage Interface

DESIGN DECISION: The record stores sit on a plain key-value contract
holding JSON-serializable values. This allows us to:
1. Keep everything in memory for tests and throwaway sessions
2. Persist to JSON files on disk for a single local user
3. Swap in another backend later without touching the stores
4. Keep business logic decoupled from storage implementation

The interface is intentionally simple - we're not building a database.
Each collection lives under one key and is read and written whole.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from bizhub.models.audit import AuditEvent


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for key-value storage.

    Values must be JSON-serializable (dicts, lists, strings, numbers,
    booleans, None).
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[Any]:
        """
        Read the value stored under a key.

        Returns:
            The stored value, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set_item(self, key: str, value: Any) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """
        Remove a key. Removing an absent key is not an error.

        Raises:
            StorageError: If the removal fails
        """
        pass

    @abstractmethod
    async def clear(self) -> None:
        """Remove every key."""
        pass

    @abstractmethod
    async def get_all_keys(self) -> list[str]:
        """List stored keys."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., a mutation and its refreshes).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class StorageConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass
