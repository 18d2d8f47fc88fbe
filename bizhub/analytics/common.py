"""
Shared arithmetic for the analytics passes.

Zero-value policy, in one place:
- A ratio with a zero (or negative) denominator is 0
- A percent change from a zero (or negative) baseline is 0
- An absent optional amount (budget, total_spent, hourly_rate,
  estimated_hours) counts as 0
- Revenue only comes from billable entries with a positive rate
"""

from datetime import date, datetime, timezone
from typing import Iterable, Optional, Union

from bizhub.models.records import TimeEntry


def safe_ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def percentage(part: float, whole: float) -> float:
    return safe_ratio(part, whole) * 100


def percent_change(current: float, previous: float) -> float:
    """Growth of current over previous in percent; 0 without a positive baseline."""
    if previous <= 0:
        return 0.0
    return (current - previous) / previous * 100


def amount(value: Optional[float]) -> float:
    """Read an optional numeric field."""
    return value if value is not None else 0.0


# =============================================================================
# CALENDAR KEYS
# =============================================================================

def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def month_key(moment: Union[date, datetime]) -> str:
    """YYYY-MM; datetimes are bucketed in UTC."""
    if isinstance(moment, datetime):
        moment = as_utc(moment)
    return f"{moment.year:04d}-{moment.month:02d}"


def previous_month_key(moment: Union[date, datetime]) -> str:
    if isinstance(moment, datetime):
        moment = as_utc(moment)
    if moment.month == 1:
        return f"{moment.year - 1:04d}-12"
    return f"{moment.year:04d}-{moment.month - 1:02d}"


def day_key(moment: datetime) -> str:
    return as_utc(moment).date().isoformat()


def iso_week_key(moment: datetime) -> str:
    """
    YYYY-Www by ISO-8601: weeks start Monday and belong to the year
    holding their Thursday.
    """
    year, week, _ = as_utc(moment).isocalendar()
    return f"{year:04d}-W{week:02d}"


def quarter_of(moment: datetime) -> str:
    return f"Q{(as_utc(moment).month - 1) // 3 + 1}"


# =============================================================================
# TIME ENTRY SUMS
# =============================================================================

def earns_revenue(entry: TimeEntry) -> bool:
    return entry.billable and entry.hourly_rate > 0


def entry_revenue(entry: TimeEntry) -> float:
    if not earns_revenue(entry):
        return 0.0
    return entry.duration / 60 * entry.hourly_rate


def revenue_of(entries: Iterable[TimeEntry]) -> float:
    return sum(entry_revenue(e) for e in entries)


def hours_of(entries: Iterable[TimeEntry], billable: Optional[bool] = None) -> float:
    """Tracked hours, optionally only billable (True) or non-billable (False)."""
    minutes = sum(
        e.duration for e in entries
        if billable is None or e.billable == billable
    )
    return minutes / 60
