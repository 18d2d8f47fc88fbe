"""
Audit Models for Business Hub

Every mutation of a record, every derived-field refresh and every
analytics run is logged for audit purposes.
This provides:
1. Traceability of who changed what and when
2. Debugging information when derived counts look wrong
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from bizhub.models.records import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Record lifecycle events are shared by all four collections;
    entity_type tells them apart.
    """
    # Record lifecycle
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # Cross-store consistency
    DERIVED_FIELD_REFRESHED = "derived_field_refreshed"
    CONSISTENCY_UPDATE_FAILED = "consistency_update_failed"

    # Time tracking
    TIMER_STARTED = "timer_started"
    TIMER_STOPPED = "timer_stopped"

    # Analytics
    ANALYTICS_COMPUTED = "analytics_computed"
    ANALYTICS_FAILED = "analytics_failed"

    # Storage
    STORAGE_READ_FAILED = "storage_read_failed"
    STORAGE_WRITE_FAILED = "storage_write_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'client', 'task', 'analytics')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a mutation and its refreshes)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """
        Serialize as a single JSON line for the append-only audit file.
        """
        return json.dumps(self.to_log_dict(), default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("client", client_id, "Acme")
        event = AuditEventBuilder.timer_stopped(entry_id, task_id, 90)
    """

    @staticmethod
    def record_created(
        entity_type: str,
        entity_id: str,
        label: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} created: {label}"[:500],
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        entity_type: str,
        entity_id: str,
        changed_fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} updated",
            details={
                "changed_fields": sorted(changed_fields),
            },
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        entity_type: str,
        entity_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def derived_field_refreshed(
        entity_type: str,
        entity_id: str,
        values: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DERIVED_FIELD_REFRESHED,
            severity=AuditSeverity.DEBUG,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Derived fields refreshed on {entity_type}",
            details=values,
        )

    @staticmethod
    def consistency_update_failed(
        entity_type: str,
        entity_id: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONSISTENCY_UPDATE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Consistency update failed: {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )

    @staticmethod
    def timer_started(
        time_entry_id: str,
        task_id: str,
        project_id: str,
        billable: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TIMER_STARTED,
            entity_type="time_entry",
            entity_id=time_entry_id,
            description="Timer started",
            details={
                "task_id": task_id,
                "project_id": project_id,
                "billable": billable,
            },
            is_user_action=True,
        )

    @staticmethod
    def timer_stopped(
        time_entry_id: str,
        task_id: str,
        duration_minutes: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TIMER_STOPPED,
            entity_type="time_entry",
            entity_id=time_entry_id,
            description=f"Timer stopped after {duration_minutes} minutes",
            details={
                "task_id": task_id,
                "duration_minutes": duration_minutes,
            },
            is_user_action=True,
        )

    @staticmethod
    def analytics_computed(
        view: str,
        record_counts: dict[str, int],
        filtered: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYTICS_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="analytics",
            entity_id=view,
            description=f"Analytics computed: {view}",
            details={
                "record_counts": record_counts,
                "filtered": filtered,
            },
        )

    @staticmethod
    def analytics_failed(
        view: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYTICS_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="analytics",
            entity_id=view,
            description=f"Analytics failed, returning empty view: {view}",
            error_message=error_message,
        )

    @staticmethod
    def storage_read_failed(
        key: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_READ_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="storage_key",
            entity_id=key,
            description=f"Storage read failed for {key}, using default",
            error_message=error_message,
        )

    @staticmethod
    def storage_write_failed(
        key: str,
        error_message: str,
        reraised: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="storage_key",
            entity_id=key,
            description=f"Storage write failed for {key}",
            error_message=error_message,
            details={
                "reraised": reraised,
            },
        )
