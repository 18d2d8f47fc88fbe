"""
Time Tracking Store

Time entries, the single active timer and the tracking preferences.

DESIGN DECISION: The active timer is its own key, not a running entry
in the collection. Stopping it materializes a finished TimeEntry that
reuses the timer's time_entry_id, so stopping the same timer twice
(e.g. after a failed cleanup) upserts instead of duplicating.

Timer and preference writes are best-effort: a failure is logged and
the operation returns None (timer) or the unsaved value (preferences).
Entry create/update/delete re-raise storage failures.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any, Optional, Union

from pydantic import ValidationError

from bizhub.analytics.common import amount, as_utc, hours_of, revenue_of, safe_ratio
from bizhub.audit import AuditLogger
from bizhub.config import get_settings
from bizhub.models.records import ActiveTimer, TimeEntry, TimeTrackingPreferences
from bizhub.models.stats import (
    DailyTimeStats,
    ProjectTimeStats,
    TaskTimeStats,
    TimeTrackingStats,
)
from bizhub.repositories.base import PROTECTED_FIELDS, Clock, RecordStore
from bizhub.repositories.projects import ProjectStore
from bizhub.repositories.tasks import TaskStore
from bizhub.storage import KeyValueStoreInterface, StorageError


UNKNOWN_PROJECT = "Unknown Project"
UNKNOWN_TASK = "Unknown Task"


def _completion(hours: float, estimated: float) -> float:
    """Logged hours against estimate as a percentage, capped at 100."""
    if estimated <= 0:
        return 0.0
    return round(min(hours / estimated * 100, 100.0), 2)


class TimeEntryStore(RecordStore[TimeEntry]):
    """
    Time entries plus timer lifecycle.

    Every entry change refreshes actual_hours on the affected task(s).
    """

    collection = "time_entries"
    entity_type = "time_entry"
    model = TimeEntry

    def __init__(
        self,
        kv_store: KeyValueStoreInterface,
        projects: ProjectStore,
        tasks: TaskStore,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Clock] = None,
        key_prefix: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        super().__init__(kv_store, audit_logger, clock, key_prefix)
        self._projects = projects
        self._tasks = tasks
        self._user_id = user_id or get_settings().app.current_user_id

    @property
    def timer_key(self) -> str:
        return self.key_for("active_timer")

    @property
    def preferences_key(self) -> str:
        return self.key_for("time_settings")

    async def _refresh_tasks(self, task_ids: set[str]) -> None:
        if not self._consistency:
            return
        for task_id in sorted(task_ids):
            await self._consistency.refresh_task_actual_hours(task_id)

    # =========================================================================
    # ENTRY CRUD
    # =========================================================================

    async def add(self, data: Union[TimeEntry, dict[str, Any]]) -> TimeEntry:
        """
        Save an entry.

        When the data carries an ID that is already stored, that entry is
        replaced, keeping its created_at unless one is supplied. Otherwise
        a new entry is appended. For a TimeEntry model only the fields
        explicitly set count as supplied. user_id defaults to the
        configured current user.

        Raises:
            ValueError: If the data does not form a valid entry
            StorageError: If the collection cannot be written
        """
        if isinstance(data, TimeEntry):
            # Unset fields keep their stored values on upsert
            values = data.model_dump(exclude_unset=True)
            values["id"] = data.id
        else:
            values = dict(data)
        values.setdefault("user_id", self._user_id)

        entries = await self._load()
        entry_id = values.get("id")
        index = self._index_of(entries, entry_id) if entry_id else -1
        now = self.now()

        if index >= 0:
            previous = entries[index]
            values.setdefault("created_at", previous.created_at)
            values["updated_at"] = now
            entry = TimeEntry.model_validate(values)
            entries[index] = entry
        else:
            previous = None
            values.setdefault("created_at", now)
            values["updated_at"] = now
            if not entry_id:
                values.pop("id", None)
            entry = TimeEntry.model_validate(values)
            entries.append(entry)

        await self._save(entries)

        if previous is None:
            await self._audit.log_record_created(
                self.entity_type, entry.id, entry.description or entry.task_id
            )
        else:
            await self._audit.log_record_updated(
                self.entity_type, entry.id, self._changed_fields(previous, entry)
            )
        affected = {entry.task_id}
        if previous is not None:
            affected.add(previous.task_id)
        await self._refresh_tasks(affected)
        return entry

    async def update(self, entry_id: str, changes: dict[str, Any]) -> Optional[TimeEntry]:
        """
        Replace an entry with its stored values overlaid by `changes`.

        Returns:
            The updated entry, or None if no entry has this ID
        """
        entries = await self._load()
        index = self._index_of(entries, entry_id)
        if index == -1:
            self._logger.warning("time_entry_not_found", entry_id=entry_id)
            return None

        old = entries[index]
        updated = self._merge(old, changes)
        entries[index] = updated
        await self._save(entries)

        await self._audit.log_record_updated(
            self.entity_type, entry_id, self._changed_fields(old, updated)
        )
        await self._refresh_tasks({old.task_id, updated.task_id})
        return updated

    async def delete(self, entry_id: str) -> bool:
        """Remove an entry. False if no entry has this ID."""
        entries = await self._load()
        index = self._index_of(entries, entry_id)
        if index == -1:
            self._logger.warning("time_entry_not_found", entry_id=entry_id)
            return False

        removed = entries.pop(index)
        await self._save(entries)
        await self._audit.log_record_deleted(self.entity_type, entry_id)
        await self._refresh_tasks({removed.task_id})
        return True

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_by_task(self, task_id: str) -> list[TimeEntry]:
        return [e for e in await self._load() if e.task_id == task_id]

    async def get_by_project(self, project_id: str) -> list[TimeEntry]:
        return [e for e in await self._load() if e.project_id == project_id]

    async def get_by_date_range(self, start: datetime, end: datetime) -> list[TimeEntry]:
        """Entries whose start_time falls within [start, end]."""
        start, end = as_utc(start), as_utc(end)
        return [e for e in await self._load() if start <= as_utc(e.start_time) <= end]

    # =========================================================================
    # TIMER
    # =========================================================================

    async def get_active_timer(self) -> Optional[ActiveTimer]:
        """The running timer, or None (also on read failure)."""
        raw = await self._read_key(self.timer_key)
        if not raw:
            return None
        try:
            return ActiveTimer.model_validate(raw)
        except ValidationError as e:
            self._logger.error("active_timer_invalid", error=str(e))
            return None

    async def start_timer(
        self,
        task_id: str,
        project_id: str,
        description: Optional[str] = None,
        tags: Optional[list[str]] = None,
        billable: Optional[bool] = None,
    ) -> Optional[ActiveTimer]:
        """
        Start a timer, stopping any running one first.

        billable defaults to the preferences' default_billable.

        Returns:
            The new timer, or None if it could not be saved or the
            running timer could not be stopped
        """
        await self.stop_timer()
        running = await self.get_active_timer()
        if running is not None:
            # The running timer's entry was not saved; keep it.
            self._logger.error(
                "timer_start_blocked",
                task_id=task_id,
                running_time_entry_id=running.time_entry_id,
            )
            return None

        preferences = await self.get_preferences()
        timer = ActiveTimer(
            task_id=task_id,
            project_id=project_id,
            start_time=self.now(),
            description=description,
            tags=list(tags or []),
            billable=preferences.default_billable if billable is None else billable,
        )
        try:
            await self._kv.set_item(self.timer_key, timer.model_dump(mode="json"))
        except StorageError as e:
            self._logger.error("timer_start_failed", task_id=task_id, error=str(e))
            await self._audit.log_storage_write_failed(
                key=self.timer_key, error_message=str(e), reraised=False
            )
            return None

        await self._audit.log_timer_started(
            time_entry_id=timer.time_entry_id,
            task_id=task_id,
            project_id=project_id,
            billable=timer.billable,
        )
        return timer

    async def stop_timer(self, description: Optional[str] = None) -> Optional[TimeEntry]:
        """
        Stop the running timer and save it as a finished entry.

        duration is the elapsed time in whole minutes (rounded). The rate
        is the project's hourly_rate for billable timers, else 0.

        Returns:
            The saved entry, or None when no timer runs or saving failed
        """
        timer = await self.get_active_timer()
        if timer is None:
            return None

        now = self.now()
        start_time = as_utc(timer.start_time)
        elapsed_minutes = (now - start_time).total_seconds() / 60
        duration = max(0, int(round(elapsed_minutes)))

        project = await self._projects.get_by_id(timer.project_id)
        rate = amount(project.hourly_rate) if project else 0.0

        entry = TimeEntry(
            id=timer.time_entry_id,
            task_id=timer.task_id,
            project_id=timer.project_id,
            user_id=self._user_id,
            description=description or timer.description or "",
            start_time=start_time,
            end_time=max(now, start_time),
            duration=duration,
            is_running=False,
            tags=timer.tags,
            billable=timer.billable,
            hourly_rate=rate if timer.billable else 0.0,
            created_at=start_time,
            updated_at=now,
        )

        try:
            saved = await self.add(entry)
            await self._kv.remove_item(self.timer_key)
        except StorageError as e:
            self._logger.error(
                "timer_stop_failed",
                time_entry_id=timer.time_entry_id,
                error=str(e),
            )
            return None

        await self._audit.log_timer_stopped(
            time_entry_id=saved.id,
            task_id=saved.task_id,
            duration_minutes=saved.duration,
        )
        return saved

    # =========================================================================
    # PREFERENCES
    # =========================================================================

    async def get_preferences(self) -> TimeTrackingPreferences:
        """Stored preferences, or the defaults."""
        raw = await self._read_key(self.preferences_key)
        if not raw:
            return TimeTrackingPreferences()
        try:
            return TimeTrackingPreferences.model_validate(raw)
        except ValidationError as e:
            self._logger.warning("preferences_invalid", error=str(e))
            return TimeTrackingPreferences()

    async def update_preferences(self, changes: dict[str, Any]) -> TimeTrackingPreferences:
        """
        Merge changes into the stored preferences and save them.

        Raises:
            ValueError: If the merged preferences are invalid
        """
        current = await self.get_preferences()
        values = current.model_dump()
        values.update({k: v for k, v in changes.items() if k not in PROTECTED_FIELDS})
        preferences = TimeTrackingPreferences.model_validate(values)
        try:
            await self._kv.set_item(self.preferences_key, preferences.model_dump(mode="json"))
        except StorageError as e:
            self._logger.error("preferences_write_failed", error=str(e))
            await self._audit.log_storage_write_failed(
                key=self.preferences_key, error_message=str(e), reraised=False
            )
        return preferences

    # =========================================================================
    # STATISTICS
    # =========================================================================

    async def get_stats(
        self,
        project_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> TimeTrackingStats:
        """
        Totals and breakdowns over entries, optionally for one project and
        a start_time range (applied only when both ends are given).
        """
        entries = await self._load()
        if project_id:
            entries = [e for e in entries if e.project_id == project_id]
        if start is not None and end is not None:
            lo, hi = as_utc(start), as_utc(end)
            entries = [e for e in entries if lo <= as_utc(e.start_time) <= hi]

        total_hours = hours_of(entries)
        billable_hours = hours_of(entries, billable=True)
        revenue = revenue_of(entries)
        average_rate = safe_ratio(revenue, billable_hours)

        return TimeTrackingStats(
            total_hours=round(total_hours, 2),
            billable_hours=round(billable_hours, 2),
            non_billable_hours=round(total_hours - billable_hours, 2),
            total_revenue=round(revenue, 2),
            average_hourly_rate=round(average_rate, 2),
            project_breakdown=await self._project_breakdown(entries),
            task_breakdown=await self._task_breakdown(entries),
            daily_breakdown=self._daily_breakdown(entries),
        )

    async def _project_breakdown(self, entries: list[TimeEntry]) -> list[ProjectTimeStats]:
        grouped = defaultdict(list)
        for entry in entries:
            grouped[entry.project_id].append(entry)
        projects = {p.id: p for p in await self._projects.get_all()}

        breakdown = []
        for project_id, group in grouped.items():
            project = projects.get(project_id)
            hours = hours_of(group)
            estimated = amount(project.estimated_hours) if project else 0.0
            breakdown.append(ProjectTimeStats(
                project_id=project_id,
                project_title=project.title if project else UNKNOWN_PROJECT,
                total_hours=round(hours, 2),
                billable_hours=round(hours_of(group, billable=True), 2),
                estimated_hours=estimated,
                total_revenue=round(revenue_of(group), 2),
                completion_percentage=_completion(hours, estimated),
            ))
        return sorted(breakdown, key=lambda s: s.total_hours, reverse=True)

    async def _task_breakdown(self, entries: list[TimeEntry]) -> list[TaskTimeStats]:
        grouped = defaultdict(list)
        for entry in entries:
            grouped[entry.task_id].append(entry)
        tasks = {t.id: t for t in await self._tasks.get_all()}

        breakdown = []
        for task_id, group in grouped.items():
            task = tasks.get(task_id)
            hours = hours_of(group)
            estimated = task.estimated_hours if task else 0.0
            breakdown.append(TaskTimeStats(
                task_id=task_id,
                task_title=task.title if task else UNKNOWN_TASK,
                total_hours=round(hours, 2),
                estimated_hours=estimated,
                completion_percentage=_completion(hours, estimated),
                is_overtime=estimated > 0 and hours > estimated,
            ))
        return sorted(breakdown, key=lambda s: s.total_hours, reverse=True)

    @staticmethod
    def _daily_breakdown(entries: list[TimeEntry]) -> list[DailyTimeStats]:
        """Per start date, newest day first."""
        grouped = defaultdict(list)
        for entry in entries:
            grouped[as_utc(entry.start_time).date().isoformat()].append(entry)

        breakdown = [
            DailyTimeStats(
                date=day,
                total_hours=round(hours_of(group), 2),
                billable_hours=round(hours_of(group, billable=True), 2),
                entries=len(group),
                revenue=round(revenue_of(group), 2),
            )
            for day, group in grouped.items()
        ]
        return sorted(breakdown, key=lambda s: s.date, reverse=True)
