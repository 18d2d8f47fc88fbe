"""
Record Stores Package

One store per collection over a shared key-value backend, plus the
consistency updater that keeps derived fields in sync across stores.
"""

from bizhub.repositories.base import RecordStore
from bizhub.repositories.clients import ClientStore
from bizhub.repositories.projects import ProjectStore
from bizhub.repositories.tasks import TaskStore, is_overdue
from bizhub.repositories.time_tracking import TimeEntryStore
from bizhub.repositories.consistency import ConsistencyUpdater

__all__ = [
    "ClientStore",
    "ConsistencyUpdater",
    "ProjectStore",
    "RecordStore",
    "TaskStore",
    "TimeEntryStore",
    "is_overdue",
]
