"""
Audit Logger

DESIGN DECISION: Every record mutation, derived-field refresh and
analytics run is logged.
This provides:
1. Complete traceability
2. Debugging capability when derived counts drift
3. A history the user can review

The audit logger:
- Is async so stores can await it inline
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to tie a mutation to its follow-up refreshes
"""

from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from bizhub.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from bizhub.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None):
    """Structured logger shared by the package."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = get_logger("bizhub.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                stored = await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False
            if not stored:
                self._logger.warning(
                    "audit_storage_rejected",
                    event_id=str(event.event_id),
                )
            return stored

        return True

    async def log_record_created(
        self,
        entity_type: str,
        entity_id: str,
        label: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log record creation."""
        await self.log(AuditEventBuilder.record_created(
            entity_type=entity_type,
            entity_id=entity_id,
            label=label,
            correlation_id=correlation_id,
        ))

    async def log_record_updated(
        self,
        entity_type: str,
        entity_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log record update."""
        await self.log(AuditEventBuilder.record_updated(
            entity_type=entity_type,
            entity_id=entity_id,
            changed_fields=changed_fields,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log record deletion."""
        await self.log(AuditEventBuilder.record_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))

    async def log_derived_refreshed(
        self,
        entity_type: str,
        entity_id: str,
        values: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.derived_field_refreshed(
            entity_type=entity_type,
            entity_id=entity_id,
            values=values,
            correlation_id=correlation_id,
        ))

    async def log_consistency_failed(
        self,
        entity_type: str,
        entity_id: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a derived-field refresh that could not complete."""
        await self.log(AuditEventBuilder.consistency_update_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_timer_started(
        self,
        time_entry_id: str,
        task_id: str,
        project_id: str,
        billable: bool,
    ) -> None:
        await self.log(AuditEventBuilder.timer_started(
            time_entry_id=time_entry_id,
            task_id=task_id,
            project_id=project_id,
            billable=billable,
        ))

    async def log_timer_stopped(
        self,
        time_entry_id: str,
        task_id: str,
        duration_minutes: int,
    ) -> None:
        await self.log(AuditEventBuilder.timer_stopped(
            time_entry_id=time_entry_id,
            task_id=task_id,
            duration_minutes=duration_minutes,
        ))

    async def log_analytics_computed(
        self,
        view: str,
        record_counts: dict[str, int],
        filtered: bool,
    ) -> None:
        await self.log(AuditEventBuilder.analytics_computed(
            view=view,
            record_counts=record_counts,
            filtered=filtered,
        ))

    async def log_analytics_failed(
        self,
        view: str,
        error_message: str,
    ) -> None:
        """Log an analytics view that degraded to its empty result."""
        await self.log(AuditEventBuilder.analytics_failed(
            view=view,
            error_message=error_message,
        ))

    async def log_storage_read_failed(
        self,
        key: str,
        error_message: str,
    ) -> None:
        await self.log(AuditEventBuilder.storage_read_failed(
            key=key,
            error_message=error_message,
        ))

    async def log_storage_write_failed(
        self,
        key: str,
        error_message: str,
        reraised: bool,
    ) -> None:
        await self.log(AuditEventBuilder.storage_write_failed(
            key=key,
            error_message=error_message,
            reraised=reraised,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., deleting a project).
    Pass it through the follow-up refreshes.
    """
    return uuid4()
