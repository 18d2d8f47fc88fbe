"""
Analytics Models for Business Hub

Input filter and output views of the analytics engine.

DESIGN DECISION: Every numeric field on a view defaults to its zero
value and every list to empty. A view built with no arguments is the
"nothing to report" result, which is what the engine returns when an
aggregation cannot be computed.
"""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from bizhub.models.records import ProjectStatus


# =============================================================================
# FILTER
# =============================================================================

class DateRange(BaseModel):
    """Inclusive range compared against each record's created_at."""

    start: datetime
    end: datetime

    @field_validator('start', 'end')
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive datetimes are taken as UTC so they compare with stored timestamps."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode='after')
    def validate_order(self) -> 'DateRange':
        if self.end < self.start:
            raise ValueError("Date range end cannot be before start")
        return self

    def contains(self, moment: datetime) -> bool:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return self.start <= moment <= self.end


class AnalyticsFilter(BaseModel):
    """
    Optional restriction applied before aggregation.

    A set left as None does not restrict. A set that is present but
    empty matches nothing.
    """

    date_range: Optional[DateRange] = None
    projects: Optional[set[str]] = Field(
        default=None,
        description="Allowed project IDs"
    )
    clients: Optional[set[str]] = Field(
        default=None,
        description="Allowed client IDs"
    )
    users: Optional[set[str]] = Field(
        default=None,
        description="Allowed user IDs (entry user or task assignee)"
    )
    include_archived: bool = Field(
        default=False,
        description="Keep cancelled projects and archived clients"
    )


# =============================================================================
# OVERVIEW & REVENUE
# =============================================================================

class BusinessOverview(BaseModel):
    total_revenue: float = 0.0
    monthly_revenue: float = 0.0
    revenue_growth: float = Field(
        default=0.0,
        description="Percent change of this month's revenue vs last month"
    )
    total_projects: int = 0
    active_projects: int = 0
    completed_projects: int = 0
    total_clients: int = 0
    active_clients: int = 0
    total_hours: float = 0.0
    billable_hours: float = 0.0
    utilization: float = Field(
        default=0.0,
        description="Billable hours as a percentage of total hours"
    )


class MonthlyRevenue(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    revenue: float = 0.0
    billable_hours: float = 0.0
    projects_completed: int = 0


class ProjectRevenue(BaseModel):
    project_id: str
    project_title: str
    revenue: float = 0.0
    profitability: float = Field(
        default=0.0,
        description="(revenue - total_spent) / revenue * 100"
    )
    completion_percentage: float = 0.0


class ClientRevenue(BaseModel):
    client_id: str
    client_name: str
    revenue: float = 0.0
    project_count: int = 0
    average_project_value: float = 0.0


class BillableSplit(BaseModel):
    billable: float = 0.0
    non_billable: float = Field(
        default=0.0,
        description="Non-billable hours priced at the placeholder cost rate"
    )


class RevenueAnalytics(BaseModel):
    monthly: list[MonthlyRevenue] = Field(default_factory=list)
    by_project: list[ProjectRevenue] = Field(default_factory=list)
    by_client: list[ClientRevenue] = Field(default_factory=list)
    billable_vs_non_billable: BillableSplit = Field(default_factory=BillableSplit)
    average_project_value: float = 0.0
    top_performing_projects: list[ProjectRevenue] = Field(default_factory=list)


class ClientAnalytics(BaseModel):
    total_clients: int = 0
    new_clients_this_month: int = 0
    average_projects_per_client: float = 0.0
    top_clients_by_revenue: list[ClientRevenue] = Field(default_factory=list)


# =============================================================================
# PRODUCTIVITY & PROJECT PERFORMANCE
# =============================================================================

class TeamEfficiency(BaseModel):
    """Per-user figures computed from tasks and time entries."""

    user_id: str
    tasks_completed: int = 0
    hours_worked: float = 0.0
    billable_hours: float = 0.0
    utilization: float = 0.0


class ProductivityBottleneck(BaseModel):
    type: Literal["task", "resource", "client", "process"]
    description: str
    impact: Literal["low", "medium", "high"]
    affected_projects: list[str] = Field(default_factory=list)


class ProductivityAnalytics(BaseModel):
    tasks_completed: int = 0
    average_task_completion_time: float = Field(
        default=0.0,
        description="Mean days from creation to completion"
    )
    overdue_tasks_count: int = 0
    overdue_tasks_percentage: float = 0.0
    project_delivery_rate: float = 0.0
    team_efficiency: list[TeamEfficiency] = Field(default_factory=list)
    bottlenecks: list[ProductivityBottleneck] = Field(default_factory=list)


class ProjectProfitability(BaseModel):
    project_id: str
    project_title: str
    revenue: float = 0.0
    costs: float = 0.0
    profit: float = 0.0
    profit_margin: float = 0.0


class StatusDistribution(BaseModel):
    status: ProjectStatus
    count: int = 0
    percentage: float = 0.0


class ProjectPerformanceAnalytics(BaseModel):
    on_time_delivery: float = 0.0
    budget_adherence: float = 0.0
    profitability_analysis: list[ProjectProfitability] = Field(default_factory=list)
    project_status_distribution: list[StatusDistribution] = Field(default_factory=list)


# =============================================================================
# TIME
# =============================================================================

class DailyHours(BaseModel):
    date: str = Field(..., description="YYYY-MM-DD of the entry start")
    total_hours: float = 0.0
    billable_hours: float = 0.0
    non_billable_hours: float = 0.0


class WeeklyTrend(BaseModel):
    week: str = Field(..., description="ISO week, YYYY-Www")
    total_hours: float = 0.0
    revenue: float = 0.0
    efficiency: float = Field(
        default=0.0,
        description="Revenue per tracked hour"
    )


class MonthlyTimeBreakdown(BaseModel):
    month: str
    total_hours: float = 0.0
    billable_hours: float = 0.0
    overtime_hours: float = 0.0
    average_daily_hours: float = 0.0


class ProjectTimeAllocation(BaseModel):
    project_id: str
    project_title: str
    allocated_hours: float = 0.0
    actual_hours: float = 0.0
    variance: float = Field(
        default=0.0,
        description="actual_hours - allocated_hours"
    )


class OvertimeAnalysis(BaseModel):
    total_overtime_hours: float = 0.0
    overtime_percentage: float = 0.0
    cost_of_overtime: float = 0.0
    top_overtime_projects: list[ProjectTimeAllocation] = Field(default_factory=list)


class TimeAnalytics(BaseModel):
    daily_hours: list[DailyHours] = Field(default_factory=list)
    weekly_trends: list[WeeklyTrend] = Field(default_factory=list)
    monthly_breakdown: list[MonthlyTimeBreakdown] = Field(default_factory=list)
    project_time_allocation: list[ProjectTimeAllocation] = Field(default_factory=list)
    overtime_analysis: OvertimeAnalysis = Field(default_factory=OvertimeAnalysis)


# =============================================================================
# TRENDS
# =============================================================================

class GrowthTrend(BaseModel):
    period: str
    value: float = 0.0
    growth: float = 0.0


class ProductivityTrend(BaseModel):
    period: str
    entry_count: int = 0
    average_hours_per_entry: float = 0.0
    efficiency: float = 0.0


SeasonalClass = Literal["peak", "normal", "low"]


class SeasonalPattern(BaseModel):
    period: Literal["Q1", "Q2", "Q3", "Q4"]
    revenue: float = 0.0
    project_volume: int = 0
    pattern: SeasonalClass = "normal"


class TrendAnalytics(BaseModel):
    revenue_growth: list[GrowthTrend] = Field(default_factory=list)
    client_growth: list[GrowthTrend] = Field(default_factory=list)
    project_volume: list[GrowthTrend] = Field(default_factory=list)
    productivity_trends: list[ProductivityTrend] = Field(default_factory=list)
    seasonal_patterns: list[SeasonalPattern] = Field(default_factory=list)


# =============================================================================
# COMBINED
# =============================================================================

class BusinessAnalytics(BaseModel):
    """All seven views computed for the same filter."""

    overview: BusinessOverview = Field(default_factory=BusinessOverview)
    revenue: RevenueAnalytics = Field(default_factory=RevenueAnalytics)
    productivity: ProductivityAnalytics = Field(default_factory=ProductivityAnalytics)
    clients: ClientAnalytics = Field(default_factory=ClientAnalytics)
    projects: ProjectPerformanceAnalytics = Field(default_factory=ProjectPerformanceAnalytics)
    time_tracking: TimeAnalytics = Field(default_factory=TimeAnalytics)
    trends: TrendAnalytics = Field(default_factory=TrendAnalytics)
