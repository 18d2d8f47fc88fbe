"""
Record Store Statistics

Summary shapes returned by the record stores themselves (as opposed to
the analytics engine). Figures here are rounded to 2 decimal places for
display.
"""

from pydantic import BaseModel, Field


class ProjectStats(BaseModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    on_hold: int = 0
    cancelled: int = 0
    total_budget: float = 0.0
    total_spent: float = 0.0


class TaskStats(BaseModel):
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    todo: int = 0
    overdue: int = 0
    blocked: int = 0


class ProjectTimeStats(BaseModel):
    project_id: str
    project_title: str
    total_hours: float = 0.0
    billable_hours: float = 0.0
    estimated_hours: float = 0.0
    total_revenue: float = 0.0
    completion_percentage: float = Field(
        default=0.0,
        description="Logged hours against estimate, capped at 100"
    )


class TaskTimeStats(BaseModel):
    task_id: str
    task_title: str
    total_hours: float = 0.0
    estimated_hours: float = 0.0
    completion_percentage: float = 0.0
    is_overtime: bool = False


class DailyTimeStats(BaseModel):
    date: str
    total_hours: float = 0.0
    billable_hours: float = 0.0
    entries: int = 0
    revenue: float = 0.0


class TimeTrackingStats(BaseModel):
    total_hours: float = 0.0
    billable_hours: float = 0.0
    non_billable_hours: float = 0.0
    total_revenue: float = 0.0
    average_hourly_rate: float = 0.0
    project_breakdown: list[ProjectTimeStats] = Field(default_factory=list)
    task_breakdown: list[TaskTimeStats] = Field(default_factory=list)
    daily_breakdown: list[DailyTimeStats] = Field(default_factory=list)
