"""
Component Wiring for Business Hub

This module builds one consistent set of components:
1. A key-value backend (memory or JSON files) shared by every store
2. The four record stores and the consistency updater binding them
3. The analytics engine reading from those stores
4. One audit logger used by all of the above

DESIGN DECISION: There are no module-level store singletons. Whoever
calls create_app_components() owns the returned BusinessHub and passes
it (or its parts) explicitly. Tests build their own hub on in-memory
storage with a fixed clock.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from bizhub.analytics import AnalyticsEngine
from bizhub.audit import AuditLogger, get_logger
from bizhub.config import get_settings
from bizhub.repositories import (
    ClientStore,
    ConsistencyUpdater,
    ProjectStore,
    TaskStore,
    TimeEntryStore,
)
from bizhub.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryKeyValueStore,
    JsonFileClient,
    JsonFileKeyValueStore,
    JsonLinesAuditStorage,
    KeyValueStoreInterface,
    StorageConnectionError,
)


logger = get_logger("bizhub.orchestrator")


@dataclass
class BusinessHub:
    """Everything a front end needs, wired together."""

    kv_store: KeyValueStoreInterface
    audit_logger: AuditLogger
    clients: ClientStore
    projects: ProjectStore
    tasks: TaskStore
    time_entries: TimeEntryStore
    consistency: ConsistencyUpdater
    analytics: AnalyticsEngine


def build_hub(
    kv_store: KeyValueStoreInterface,
    audit_storage: Optional[AuditStorageInterface] = None,
    clock: Optional[Callable[[], datetime]] = None,
    key_prefix: Optional[str] = None,
    user_id: Optional[str] = None,
) -> BusinessHub:
    """
    Wire stores, updater and engine over an existing key-value backend.

    Args:
        kv_store: Backend shared by all stores
        audit_storage: Where audit events persist; local log only if None
        clock: Current-time source for stores and analytics
        key_prefix: Storage key prefix (defaults to settings)
        user_id: User recorded on timer entries (defaults to settings)
    """
    settings = get_settings()
    audit_logger = AuditLogger(audit_storage)

    clients = ClientStore(kv_store, audit_logger, clock, key_prefix)
    projects = ProjectStore(kv_store, clients, audit_logger, clock, key_prefix)
    tasks = TaskStore(kv_store, audit_logger, clock, key_prefix)
    time_entries = TimeEntryStore(
        kv_store,
        projects,
        tasks,
        audit_logger,
        clock,
        key_prefix,
        user_id=user_id,
    )
    consistency = ConsistencyUpdater(clients, projects, tasks, time_entries, audit_logger)
    analytics = AnalyticsEngine(
        clients,
        projects,
        tasks,
        time_entries,
        settings=settings.analytics,
        audit_logger=audit_logger,
        clock=clock,
    )

    return BusinessHub(
        kv_store=kv_store,
        audit_logger=audit_logger,
        clients=clients,
        projects=projects,
        tasks=tasks,
        time_entries=time_entries,
        consistency=consistency,
        analytics=analytics,
    )


def create_app_components(
    backend: Optional[str] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> BusinessHub:
    """
    Factory function to create all application components.

    Args:
        backend: "memory" or "json"; defaults to the configured backend.
                 If the JSON data directory cannot be created, falls
                 back to memory so the app still starts.
        clock: Current-time source (tests pin this)

    Returns:
        A fully wired BusinessHub
    """
    storage_settings = get_settings().storage
    backend = backend or storage_settings.backend

    if backend == "json":
        try:
            file_client = JsonFileClient(storage_settings.data_path)
            file_client.connect()
            return build_hub(
                JsonFileKeyValueStore(file_client),
                JsonLinesAuditStorage(client=file_client),
                clock=clock,
            )
        except StorageConnectionError as e:
            # Storage not usable - continue in memory
            logger.warning("json_storage_unavailable", error=str(e))

    return build_hub(InMemoryKeyValueStore(), InMemoryAuditStorage(), clock=clock)
