"""
Core Record Models for Business Hub

These models define the schemas of the four persisted collections
(clients, projects, tasks, time entries) plus the transient active timer
and the time tracking preferences.

DESIGN DECISION: Records are immutable-by-replacement. A store never
patches a stored record in place; it validates a complete new record and
swaps it into the collection. Validators here therefore see every
mutation.

Derived fields (project_count, task_count, completed_tasks, actual_hours)
are owned by the consistency updater. Callers may pass them but they are
overwritten on the next refresh.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ClientStatus(str, Enum):
    """Lifecycle status of a client."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"
    ARCHIVED = "archived"  # Hidden from analytics unless include_archived


class ProjectStatus(str, Enum):
    """Lifecycle status of a project."""
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"  # Hidden from analytics unless include_archived


class TaskStatus(str, Enum):
    """Task workflow status."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


# =============================================================================
# RECORD MODELS
# =============================================================================

class Client(BaseModel):
    """
    A customer of the business.

    project_count is derived: it always equals the number of projects
    pointing at this client.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_record_id,
        description="Unique client ID"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Client display name"
    )
    email: str = Field(
        ...,
        min_length=3,
        max_length=254,
        description="Primary contact email"
    )
    phone: Optional[str] = Field(default=None, max_length=50)
    company: Optional[str] = Field(default=None, max_length=200)
    address: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=2000)
    last_contact_date: Optional[date] = None

    status: ClientStatus = Field(
        default=ClientStatus.ACTIVE,
        description="Client status"
    )
    project_count: int = Field(
        default=0,
        ge=0,
        description="Derived: number of projects for this client"
    )

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Project(BaseModel):
    """
    A piece of client work.

    client_name is a denormalized copy of Client.name taken when the
    project is saved; it is re-synced when the client is renamed.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_record_id,
        description="Unique project ID"
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Project title"
    )
    description: Optional[str] = Field(default=None, max_length=5000)

    client_id: str = Field(
        ...,
        min_length=1,
        description="ID of the owning client"
    )
    client_name: Optional[str] = Field(
        default=None,
        description="Cached client name"
    )

    status: ProjectStatus = Field(default=ProjectStatus.ACTIVE)
    priority: Priority = Field(default=Priority.MEDIUM)

    # Money and effort (all optional, never negative)
    budget: Optional[float] = Field(default=None, ge=0)
    total_spent: Optional[float] = Field(default=None, ge=0)
    hourly_rate: Optional[float] = Field(default=None, ge=0)
    estimated_hours: Optional[float] = Field(default=None, ge=0)

    # Derived from the project's tasks
    task_count: int = Field(default=0, ge=0)
    completed_tasks: int = Field(default=0, ge=0)

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    deadline: Optional[date] = None
    notes: Optional[str] = Field(default=None, max_length=5000)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_dates(self) -> 'Project':
        """Validate date relationships."""
        if self.start_date and self.end_date:
            if self.end_date < self.start_date:
                raise ValueError("Project end date cannot be before start date")
        if self.completed_tasks > self.task_count:
            raise ValueError("Completed task count cannot exceed task count")
        return self


class Task(BaseModel):
    """
    A unit of work inside a project.

    completed_at is set by the task store exactly when the status moves
    into COMPLETED and cleared when it moves out again.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_record_id)
    title: str = Field(
        ...,
        min_length=1,
        max_length=300,
        description="Task title"
    )
    description: str = Field(default="", max_length=5000)
    project_id: str = Field(
        ...,
        min_length=1,
        description="ID of the owning project"
    )
    assigned_to: list[str] = Field(
        default_factory=list,
        description="User IDs assigned to this task"
    )
    created_by: Optional[str] = None

    status: TaskStatus = Field(default=TaskStatus.TODO)
    priority: Priority = Field(default=Priority.MEDIUM)

    estimated_hours: float = Field(default=0.0, ge=0)
    actual_hours: float = Field(
        default=0.0,
        ge=0,
        description="Derived: logged time in hours, 2 decimal places"
    )

    start_date: Optional[date] = None
    due_date: Optional[date] = None
    completed_at: Optional[datetime] = None

    dependencies: list[str] = Field(
        default_factory=list,
        description="IDs of tasks that must finish first"
    )
    tags: list[str] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_dependencies(self) -> 'Task':
        """A task can never depend on itself."""
        if self.id in self.dependencies:
            raise ValueError("Task cannot depend on itself")
        return self


class TimeEntry(BaseModel):
    """
    A block of tracked time against a task.

    duration is whole minutes. Entries produced by the timer use the
    rounded difference between end_time and start_time.
    """

    id: str = Field(default_factory=new_record_id)
    task_id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    description: str = Field(default="", max_length=2000)

    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int = Field(
        default=0,
        ge=0,
        description="Duration in minutes"
    )
    is_running: bool = False

    billable: bool = True
    hourly_rate: float = Field(
        default=0.0,
        ge=0,
        description="Rate for billable entries; always 0 when not billable"
    )
    tags: list[str] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode='after')
    def validate_times(self) -> 'TimeEntry':
        """Validate time ordering and the non-billable rate."""
        if self.end_time and self.end_time < self.start_time:
            raise ValueError("End time cannot be before start time")
        if not self.billable:
            self.hourly_rate = 0.0
        return self

    @property
    def hours(self) -> float:
        return self.duration / 60


class ActiveTimer(BaseModel):
    """
    A running timer.

    At most one exists at a time. Stopping it materializes a TimeEntry
    that reuses time_entry_id.
    """

    time_entry_id: str = Field(default_factory=new_record_id)
    task_id: str = Field(..., min_length=1)
    project_id: str = Field(..., min_length=1)
    start_time: datetime = Field(default_factory=utc_now)
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    billable: bool = True


class TimeTrackingPreferences(BaseModel):
    """User preferences for time tracking (persisted best-effort)."""

    default_billable: bool = True
    reminder_enabled: bool = True
    reminder_interval: int = Field(
        default=30,
        ge=1,
        description="Minutes between running-timer reminders"
    )
    auto_stop_enabled: bool = False
    auto_stop_duration: int = Field(
        default=8,
        ge=1,
        le=24,
        description="Hours after which a running timer is stopped"
    )
    rounding_enabled: bool = False
    rounding_interval: int = Field(
        default=15,
        ge=1,
        le=60,
        description="Minutes to round entries to"
    )
