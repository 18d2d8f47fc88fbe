"""
Trend and seasonal aggregation.

Month-over-month series bucket records by created_at. Growth compares
each month with the previous month present in the series, not with the
previous calendar month, so gaps are skipped.

Seasonal patterns fold every year into four fixed calendar quarters.
"""

from collections import defaultdict

from bizhub.analytics.common import (
    earns_revenue,
    entry_revenue,
    hours_of,
    month_key,
    percent_change,
    quarter_of,
    revenue_of,
    safe_ratio,
)
from bizhub.config import AnalyticsSettings
from bizhub.models.analytics import (
    GrowthTrend,
    ProductivityTrend,
    SeasonalPattern,
    TrendAnalytics,
)
from bizhub.models.records import Client, Project, TimeEntry


QUARTERS = ("Q1", "Q2", "Q3", "Q4")


def growth_series(monthly: dict[str, float]) -> list[GrowthTrend]:
    """Ascending months, each with its growth over the month before it."""
    rows = []
    previous = None
    for period in sorted(monthly):
        value = monthly[period]
        rows.append(GrowthTrend(
            period=period,
            value=value,
            growth=percent_change(value, previous) if previous is not None else 0.0,
        ))
        previous = value
    return rows


def revenue_growth(entries: list[TimeEntry]) -> list[GrowthTrend]:
    monthly = defaultdict(float)
    for entry in entries:
        if earns_revenue(entry):
            monthly[month_key(entry.created_at)] += entry_revenue(entry)
    return growth_series(monthly)


def client_growth(clients: list[Client]) -> list[GrowthTrend]:
    """
    Client growth per month of created_at.

    value is the running client total at the end of the month. growth is
    NOT the change in value: it is the percent change in the number of
    new clients in the month against the preceding listed month (0 for
    the first month).
    """
    new_clients = defaultdict(int)
    for client in clients:
        new_clients[month_key(client.created_at)] += 1

    rows = []
    cumulative = 0
    for row in growth_series(new_clients):
        cumulative += new_clients[row.period]
        rows.append(row.model_copy(update={"value": float(cumulative)}))
    return rows


def project_volume(projects: list[Project]) -> list[GrowthTrend]:
    monthly = defaultdict(int)
    for project in projects:
        monthly[month_key(project.created_at)] += 1
    return growth_series(monthly)


def productivity_trends(entries: list[TimeEntry]) -> list[ProductivityTrend]:
    grouped = defaultdict(list)
    for entry in entries:
        grouped[month_key(entry.created_at)].append(entry)

    rows = []
    for period in sorted(grouped):
        group = grouped[period]
        hours = hours_of(group)
        rows.append(ProductivityTrend(
            period=period,
            entry_count=len(group),
            average_hours_per_entry=safe_ratio(hours, len(group)),
            efficiency=safe_ratio(revenue_of(group), hours),
        ))
    return rows


def classify_quarter(revenue: float, mean: float, settings: AnalyticsSettings) -> str:
    if revenue > mean * settings.peak_multiplier:
        return "peak"
    if revenue < mean * settings.low_multiplier:
        return "low"
    return "normal"


def seasonal_patterns(
    entries: list[TimeEntry],
    projects: list[Project],
    settings: AnalyticsSettings,
) -> list[SeasonalPattern]:
    """
    Revenue and new-project volume per quarter, classified against the
    mean quarter (total revenue / 4).
    """
    revenue = defaultdict(float)
    for entry in entries:
        revenue[quarter_of(entry.created_at)] += entry_revenue(entry)
    volume = defaultdict(int)
    for project in projects:
        volume[quarter_of(project.created_at)] += 1

    mean = sum(revenue.values()) / len(QUARTERS)
    return [
        SeasonalPattern(
            period=quarter,
            revenue=revenue[quarter],
            project_volume=volume[quarter],
            pattern=classify_quarter(revenue[quarter], mean, settings),
        )
        for quarter in QUARTERS
    ]


def trend_analytics(
    projects: list[Project],
    clients: list[Client],
    entries: list[TimeEntry],
    settings: AnalyticsSettings,
) -> TrendAnalytics:
    return TrendAnalytics(
        revenue_growth=revenue_growth(entries),
        client_growth=client_growth(clients),
        project_volume=project_volume(projects),
        productivity_trends=productivity_trends(entries),
        seasonal_patterns=seasonal_patterns(entries, projects, settings),
    )
