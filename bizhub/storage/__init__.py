"""
Storage Package

Provides the abstract key-value and audit interfaces and their
implementations: in-memory (tests, throwaway sessions) and JSON files
on disk (persistent single-user storage).
"""

from bizhub.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from bizhub.storage.memory import (
    InMemoryAuditStorage,
    InMemoryKeyValueStore,
)
from bizhub.storage.json_file import (
    JsonFileClient,
    JsonFileKeyValueStore,
    JsonLinesAuditStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryKeyValueStore",
    # JSON file implementation
    "JsonFileClient",
    "JsonFileKeyValueStore",
    "JsonLinesAuditStorage",
]
