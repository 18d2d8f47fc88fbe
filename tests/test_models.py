"""
Tests for Business Hub models

Test strategy:
1. Record validators reject impossible records
2. Analytics views build empty with no arguments
3. Audit events serialize for the local log and the JSON-lines file
"""

import json
from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from bizhub.models.analytics import (
    AnalyticsFilter,
    BusinessAnalytics,
    DateRange,
    RevenueAnalytics,
    SeasonalPattern,
)
from bizhub.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from bizhub.models.records import (
    ActiveTimer,
    Client,
    ClientStatus,
    Project,
    ProjectStatus,
    Task,
    TaskStatus,
    TimeEntry,
    TimeTrackingPreferences,
)


START = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class TestRecordModels:
    """Tests for the persisted record schemas."""

    def test_client_defaults(self):
        """Test a client gets an ID, ACTIVE status and zero projects."""
        client = Client(name="Acme", email="ops@acme.test")
        assert client.id
        assert client.status == ClientStatus.ACTIVE
        assert client.project_count == 0
        assert client.created_at.tzinfo is not None

    def test_client_strips_whitespace(self):
        """Test that whitespace is stripped from the client name."""
        client = Client(name="  Acme  ", email="ops@acme.test")
        assert client.name == "Acme"

    def test_client_requires_name(self):
        """Test that a blank name is rejected."""
        with pytest.raises(ValidationError):
            Client(name="   ", email="ops@acme.test")

    def test_project_rejects_end_before_start(self):
        """Test the project date ordering check."""
        with pytest.raises(ValidationError):
            Project(
                title="Site",
                client_id="c1",
                start_date=date(2024, 5, 1),
                end_date=date(2024, 4, 1),
            )

    def test_project_rejects_negative_budget(self):
        """Test that money fields are never negative."""
        with pytest.raises(ValidationError):
            Project(title="Site", client_id="c1", budget=-1)

    def test_project_completed_tasks_bounded_by_task_count(self):
        """Test completed_tasks cannot exceed task_count."""
        with pytest.raises(ValidationError):
            Project(title="Site", client_id="c1", task_count=1, completed_tasks=2)

    def test_task_cannot_depend_on_itself(self):
        """Test the self-dependency check."""
        with pytest.raises(ValidationError):
            Task(id="t1", title="Build", project_id="p1", dependencies=["t1"])

    def test_task_defaults(self):
        """Test a new task is TODO with no logged hours."""
        task = Task(title="Build", project_id="p1")
        assert task.status == TaskStatus.TODO
        assert task.actual_hours == 0.0
        assert task.completed_at is None

    def test_time_entry_rejects_end_before_start(self):
        """Test time ordering on entries."""
        with pytest.raises(ValidationError):
            TimeEntry(
                task_id="t1",
                project_id="p1",
                user_id="u1",
                start_time=START,
                end_time=START - timedelta(minutes=1),
            )

    def test_non_billable_entry_has_zero_rate(self):
        """Test that a non-billable entry never carries a rate."""
        entry = TimeEntry(
            task_id="t1",
            project_id="p1",
            user_id="u1",
            start_time=START,
            duration=30,
            billable=False,
            hourly_rate=90,
        )
        assert entry.hourly_rate == 0.0

    def test_time_entry_hours(self):
        """Test minutes to hours conversion."""
        entry = TimeEntry(
            task_id="t1",
            project_id="p1",
            user_id="u1",
            start_time=START,
            duration=90,
        )
        assert entry.hours == 1.5

    def test_time_entry_rejects_negative_duration(self):
        """Test that duration is never negative."""
        with pytest.raises(ValidationError):
            TimeEntry(
                task_id="t1",
                project_id="p1",
                user_id="u1",
                start_time=START,
                duration=-5,
            )

    def test_record_round_trips_through_json_dump(self):
        """Test that a stored dump validates back to an equal record."""
        project = Project(
            title="Site",
            client_id="c1",
            status=ProjectStatus.ON_HOLD,
            deadline=date(2024, 9, 1),
        )
        restored = Project.model_validate(project.model_dump(mode="json"))
        assert restored == project


class TestTimerModels:
    """Tests for the active timer and preferences."""

    def test_active_timer_gets_entry_id(self):
        """Test a timer reserves the ID of the entry it will become."""
        timer = ActiveTimer(task_id="t1", project_id="p1")
        assert timer.time_entry_id
        assert timer.billable is True

    def test_preferences_defaults(self):
        """Test default preferences."""
        prefs = TimeTrackingPreferences()
        assert prefs.default_billable is True
        assert prefs.reminder_interval == 30
        assert prefs.auto_stop_duration == 8
        assert prefs.rounding_interval == 15

    def test_preferences_bounds(self):
        """Test that out-of-range preferences are rejected."""
        with pytest.raises(ValidationError):
            TimeTrackingPreferences(auto_stop_duration=25)
        with pytest.raises(ValidationError):
            TimeTrackingPreferences(rounding_interval=0)


class TestAnalyticsModels:
    """Tests for the analytics filter and views."""

    def test_date_range_rejects_reversed_bounds(self):
        """Test that end before start is rejected."""
        with pytest.raises(ValidationError):
            DateRange(start=START, end=START - timedelta(days=1))

    def test_date_range_is_inclusive(self):
        """Test that both bounds are inside the range."""
        end = START + timedelta(days=1)
        date_range = DateRange(start=START, end=end)
        assert date_range.contains(START)
        assert date_range.contains(end)
        assert not date_range.contains(end + timedelta(seconds=1))

    def test_date_range_treats_naive_as_utc(self):
        """Test naive bounds compare against aware timestamps."""
        date_range = DateRange(start=datetime(2024, 3, 1), end=datetime(2024, 3, 2))
        assert date_range.start.tzinfo is not None
        assert date_range.contains(START)

    def test_filter_defaults_restrict_nothing(self):
        """Test an empty filter leaves every set unset."""
        flt = AnalyticsFilter()
        assert flt.date_range is None
        assert flt.projects is None
        assert flt.include_archived is False

    def test_views_build_empty(self):
        """Test every view has an all-zero default."""
        analytics = BusinessAnalytics()
        assert analytics.overview.total_revenue == 0.0
        assert analytics.revenue == RevenueAnalytics()
        assert analytics.trends.seasonal_patterns == []

    def test_seasonal_pattern_rejects_unknown_quarter(self):
        """Test quarter labels are Q1 to Q4."""
        with pytest.raises(ValidationError):
            SeasonalPattern(period="Q5")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            description="Client created",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to a log dict."""
        event = AuditEventBuilder.record_updated("task", "t1", ["title", "status"])
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "record_updated"
        assert log_dict["entity_id"] == "t1"
        assert log_dict["details"]["changed_fields"] == ["status", "title"]

    def test_audit_event_to_json_line(self):
        """Test the JSON-lines encoding is one parseable line."""
        event = AuditEventBuilder.timer_stopped("e1", "t1", 90)
        line = event.to_json_line()
        assert "\n" not in line
        assert json.loads(line)["details"]["duration_minutes"] == 90

    def test_storage_write_failed_records_reraise(self):
        """Test the write failure event says whether it propagated."""
        event = AuditEventBuilder.storage_write_failed("k", "disk full", reraised=True)
        assert event.severity == AuditSeverity.ERROR
        assert event.details == {"reraised": True}

    def test_analytics_failed_is_error(self):
        """Test analytics failures are logged as errors."""
        event = AuditEventBuilder.analytics_failed("revenue", "boom")
        assert event.severity == AuditSeverity.ERROR
        assert event.entity_id == "revenue"
