"""
Analytics Package

Pure aggregation passes over the record collections, and the engine
that feeds them from the record stores.
"""

from bizhub.analytics.common import percent_change, safe_ratio
from bizhub.analytics.filters import (
    filter_clients,
    filter_projects,
    filter_tasks,
    filter_time_entries,
)
from bizhub.analytics.engine import AnalyticsEngine, Snapshot

__all__ = [
    "AnalyticsEngine",
    "Snapshot",
    "filter_clients",
    "filter_projects",
    "filter_tasks",
    "filter_time_entries",
    "percent_change",
    "safe_ratio",
]
