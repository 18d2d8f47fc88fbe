"""
Tests for time entries, the active timer and preferences.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from bizhub.models.records import TimeEntry
from bizhub.storage import StorageError


@pytest.fixture
def work(hub):
    """A client, a billable-rate project and one task."""
    client = asyncio.run(hub.clients.add({"name": "Acme", "email": "a@acme.test"}))
    project = asyncio.run(hub.projects.add({
        "title": "Site",
        "client_id": client.id,
        "hourly_rate": 80,
    }))
    task = asyncio.run(hub.tasks.add({"title": "Build", "project_id": project.id}))
    return project, task


def entry_data(project, task, start, minutes, **fields):
    data = {
        "task_id": task.id,
        "project_id": project.id,
        "start_time": start,
        "end_time": start + timedelta(minutes=minutes),
        "duration": minutes,
        "hourly_rate": 80,
    }
    data.update(fields)
    return data


class TestTimeEntries:
    """Tests for entry CRUD."""

    def test_add_defaults_user(self, hub, work, clock):
        """Test entries are stamped with the configured user."""
        project, task = work
        entry = asyncio.run(hub.time_entries.add(entry_data(project, task, clock(), 30)))
        assert entry.user_id == "user-1"
        assert entry.created_at == clock()

    def test_add_with_existing_id_replaces(self, hub, work, clock):
        """Test add upserts by ID and keeps the original created_at."""
        project, task = work
        first = asyncio.run(hub.time_entries.add(entry_data(project, task, clock(), 30)))
        clock.advance(hours=1)
        second = asyncio.run(hub.time_entries.add(
            entry_data(project, task, first.start_time, 45, id=first.id)
        ))
        entries = asyncio.run(hub.time_entries.get_all())
        assert len(entries) == 1
        assert second.duration == 45
        assert second.created_at == first.created_at

    def test_add_accepts_model(self, hub, work, clock):
        """Test a TimeEntry instance is accepted as well as a dict."""
        project, task = work
        model = TimeEntry(
            task_id=task.id,
            project_id=project.id,
            user_id="user-2",
            start_time=clock(),
            duration=10,
        )
        entry = asyncio.run(hub.time_entries.add(model))
        assert entry.user_id == "user-2"
        assert entry.id == model.id

    def test_add_model_with_existing_id_keeps_created_at(self, hub, work, clock):
        """Test upserting a TimeEntry model keeps the stored created_at."""
        project, task = work
        first = asyncio.run(hub.time_entries.add(entry_data(project, task, clock(), 30)))
        clock.advance(hours=2)

        replacement = TimeEntry(
            id=first.id,
            task_id=task.id,
            project_id=project.id,
            user_id=first.user_id,
            start_time=first.start_time,
            duration=45,
        )
        second = asyncio.run(hub.time_entries.add(replacement))
        assert second.created_at == first.created_at
        assert second.updated_at == clock()
        assert second.duration == 45
        assert len(asyncio.run(hub.time_entries.get_all())) == 1

    def test_update_and_delete_unknown(self, hub):
        """Test missing entries give None and False."""
        assert asyncio.run(hub.time_entries.update("missing", {"duration": 5})) is None
        assert asyncio.run(hub.time_entries.delete("missing")) is False

    def test_lookups(self, hub, work, clock):
        """Test by-task, by-project and by-date-range lookups."""
        project, task = work
        start = clock()
        asyncio.run(hub.time_entries.add(entry_data(project, task, start - timedelta(days=3), 30)))
        asyncio.run(hub.time_entries.add(entry_data(project, task, start, 30)))

        assert len(asyncio.run(hub.time_entries.get_by_task(task.id))) == 2
        assert len(asyncio.run(hub.time_entries.get_by_project(project.id))) == 2
        recent = asyncio.run(hub.time_entries.get_by_date_range(start - timedelta(days=1), start))
        assert len(recent) == 1

    def test_write_failure_is_raised(self, hub, work, kv_store, clock):
        """Test entry writes re-raise storage failures."""
        project, task = work
        kv_store.failing_writes.add("test_time_entries")
        with pytest.raises(StorageError):
            asyncio.run(hub.time_entries.add(entry_data(project, task, clock(), 30)))


class TestTimer:
    """Tests for the start/stop lifecycle."""

    def test_ninety_minute_timer(self, hub, work, clock):
        """Test stopping after 90 minutes logs 90 minutes and 1.5 task hours."""
        project, task = work
        timer = asyncio.run(hub.time_entries.start_timer(task.id, project.id, "pairing"))
        assert timer is not None
        assert asyncio.run(hub.time_entries.get_active_timer()) == timer

        clock.advance(minutes=90)
        entry = asyncio.run(hub.time_entries.stop_timer())

        assert entry.id == timer.time_entry_id
        assert entry.duration == 90
        assert entry.hourly_rate == 80
        assert entry.description == "pairing"
        assert entry.is_running is False
        assert asyncio.run(hub.time_entries.get_active_timer()) is None
        assert asyncio.run(hub.tasks.get_by_id(task.id)).actual_hours == 1.5

    def test_duration_rounds_to_nearest_minute(self, hub, work, clock):
        """Test elapsed seconds are rounded to whole minutes."""
        project, task = work
        asyncio.run(hub.time_entries.start_timer(task.id, project.id))
        clock.advance(minutes=10, seconds=40)
        entry = asyncio.run(hub.time_entries.stop_timer())
        assert entry.duration == 11

    def test_non_billable_timer_has_zero_rate(self, hub, work, clock):
        """Test a non-billable timer ignores the project rate."""
        project, task = work
        asyncio.run(hub.time_entries.start_timer(task.id, project.id, billable=False))
        clock.advance(minutes=30)
        entry = asyncio.run(hub.time_entries.stop_timer())
        assert entry.billable is False
        assert entry.hourly_rate == 0.0

    def test_starting_stops_the_running_timer(self, hub, work, clock):
        """Test at most one timer runs; the old one becomes an entry."""
        project, task = work
        first = asyncio.run(hub.time_entries.start_timer(task.id, project.id))
        clock.advance(minutes=20)
        second = asyncio.run(hub.time_entries.start_timer(task.id, project.id))

        entries = asyncio.run(hub.time_entries.get_all())
        assert [e.id for e in entries] == [first.time_entry_id]
        assert asyncio.run(hub.time_entries.get_active_timer()) == second

    def test_stop_without_timer(self, hub):
        """Test stopping when nothing runs."""
        assert asyncio.run(hub.time_entries.stop_timer()) is None

    def test_start_failure_returns_none(self, hub, work, kv_store):
        """Test a timer that cannot be saved is reported as None."""
        project, task = work
        kv_store.failing_writes.add("test_active_timer")
        assert asyncio.run(hub.time_entries.start_timer(task.id, project.id)) is None

    def test_stop_failure_keeps_timer(self, hub, work, kv_store, clock):
        """Test a failed stop leaves the timer to retry, without duplicates."""
        project, task = work
        timer = asyncio.run(hub.time_entries.start_timer(task.id, project.id))
        clock.advance(minutes=15)

        kv_store.failing_writes.add("test_time_entries")
        assert asyncio.run(hub.time_entries.stop_timer()) is None
        assert asyncio.run(hub.time_entries.get_active_timer()) == timer

        kv_store.failing_writes.clear()
        entry = asyncio.run(hub.time_entries.stop_timer())
        assert entry.id == timer.time_entry_id
        assert len(asyncio.run(hub.time_entries.get_all())) == 1

    def test_start_keeps_timer_that_could_not_be_stopped(self, hub, work, kv_store, clock):
        """Test a new timer never replaces a running one whose entry was not saved."""
        project, task = work
        first = asyncio.run(hub.time_entries.start_timer(task.id, project.id))
        clock.advance(minutes=120)

        kv_store.failing_writes.add("test_time_entries")
        assert asyncio.run(hub.time_entries.start_timer(task.id, project.id)) is None
        assert asyncio.run(hub.time_entries.get_active_timer()) == first
        assert asyncio.run(hub.time_entries.get_all()) == []

        kv_store.failing_writes.clear()
        entry = asyncio.run(hub.time_entries.stop_timer())
        assert entry.id == first.time_entry_id
        assert entry.duration == 120

    def test_billable_defaults_from_preferences(self, hub, work):
        """Test the timer takes default_billable from preferences."""
        project, task = work
        asyncio.run(hub.time_entries.update_preferences({"default_billable": False}))
        timer = asyncio.run(hub.time_entries.start_timer(task.id, project.id))
        assert timer.billable is False


class TestPreferences:
    """Tests for time tracking preferences."""

    def test_defaults_when_unset(self, hub):
        """Test defaults come back before anything is saved."""
        prefs = asyncio.run(hub.time_entries.get_preferences())
        assert prefs.default_billable is True

    def test_update_merges(self, hub):
        """Test a partial update keeps the other preferences."""
        asyncio.run(hub.time_entries.update_preferences({"reminder_interval": 45}))
        asyncio.run(hub.time_entries.update_preferences({"rounding_enabled": True}))
        prefs = asyncio.run(hub.time_entries.get_preferences())
        assert prefs.reminder_interval == 45
        assert prefs.rounding_enabled is True

    def test_write_failure_is_swallowed(self, hub, kv_store):
        """Test preference writes are best-effort."""
        kv_store.failing_writes.add("test_time_settings")
        prefs = asyncio.run(hub.time_entries.update_preferences({"reminder_interval": 5}))
        assert prefs.reminder_interval == 5
        assert asyncio.run(hub.time_entries.get_preferences()).reminder_interval == 30

    def test_invalid_update_raises(self, hub):
        """Test out-of-range preferences are rejected."""
        with pytest.raises(ValueError):
            asyncio.run(hub.time_entries.update_preferences({"rounding_interval": 0}))


class TestTimeStats:
    """Tests for the store's own time summaries."""

    def test_totals_and_breakdowns(self, hub, work, clock):
        """Test hours, revenue and per-day rows."""
        project, task = work
        today = clock()
        asyncio.run(hub.time_entries.add(entry_data(project, task, today, 60)))
        asyncio.run(hub.time_entries.add(
            entry_data(project, task, today - timedelta(days=1), 30, billable=False)
        ))

        stats = asyncio.run(hub.time_entries.get_stats())
        assert stats.total_hours == 1.5
        assert stats.billable_hours == 1.0
        assert stats.non_billable_hours == 0.5
        assert stats.total_revenue == 80.0
        assert stats.average_hourly_rate == 80.0
        assert [d.date for d in stats.daily_breakdown] == ["2024-06-15", "2024-06-14"]
        assert stats.project_breakdown[0].project_title == "Site"
        assert stats.task_breakdown[0].total_hours == 1.5

    def test_hours_equal_sum_of_entries(self, hub, work, clock):
        """Test total hours is the sum of entry minutes over 60."""
        project, task = work
        minutes = [15, 40, 125]
        for offset, duration in enumerate(minutes):
            start = clock() - timedelta(hours=offset * 3)
            asyncio.run(hub.time_entries.add(entry_data(project, task, start, duration)))
        stats = asyncio.run(hub.time_entries.get_stats(project_id=project.id))
        assert stats.total_hours == round(sum(minutes) / 60, 2)

    def test_days_are_bucketed_in_utc(self, hub, work):
        """Test an entry with a local offset lands on its UTC day, like the time view."""
        project, task = work
        local = timezone(timedelta(hours=5))
        start = datetime(2024, 6, 15, 1, 0, tzinfo=local)
        asyncio.run(hub.time_entries.add(entry_data(project, task, start, 60)))

        stats = asyncio.run(hub.time_entries.get_stats())
        view = asyncio.run(hub.analytics.get_time_analytics())
        assert [d.date for d in stats.daily_breakdown] == ["2024-06-14"]
        assert [d.date for d in view.daily_hours] == ["2024-06-14"]
