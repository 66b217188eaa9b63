"""
Tests for snapshot parsing and the domain model invariants.
"""

import pytest
from datetime import date, datetime

from sprint_analytics.errors import IncompleteSnapshotError, NotFoundError, ValidationError
from sprint_analytics.models import (
    LeaveDay,
    Role,
    Sprint,
    SprintSnapshot,
    Task,
    TaskCategory,
    TaskPriority,
    TaskStatus,
    TeamMember,
)
from sprint_analytics.schemas import parse_members, parse_snapshot, parse_sprint, parse_tasks


def make_payload() -> dict:
    return {
        "sprint": {
            "id": "S1",
            "name": "Sprint 1",
            "startDate": "2024-01-01",
            "duration": 10,
            "status": "ACTIVE",
            "memberIds": ["alice"],
            "taskIds": ["T1"],
        },
        "members": [
            {"id": "alice", "name": "Alice", "dailyCapacity": 6, "role": "BACKEND", "leaveDates": ["2024-01-04"]},
        ],
        "tasks": [
            {
                "id": "T1",
                "storyPoints": 8,
                "timeSpent": 2.5,
                "status": "IN_PROGRESS",
                "priority": "HIGH",
                "category": "FEATURE",
                "assigneeIds": ["alice"],
                "dueDate": "2024-01-10",
                "lastModified": "2024-01-05T10:30:00",
            },
        ],
        "holidays": [
            {"date": "2020-01-01", "recurring": True, "name": "New Year"},
        ],
    }


class TestParseSnapshot:
    """Tests for parse_snapshot."""

    def test_camel_case_payload(self):
        """Camel-case keys map onto the domain model."""
        snapshot = parse_snapshot(make_payload())

        member = snapshot.member("alice")
        assert member.daily_capacity == 6
        assert member.role == Role.BACKEND
        assert member.leave_dates == [date(2024, 1, 4)]

        task = snapshot.task("T1")
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.priority == TaskPriority.HIGH
        assert task.category == TaskCategory.FEATURE
        assert task.updated_at == datetime(2024, 1, 5, 10, 30)
        assert task.time_spent == 2.5

        assert snapshot.holidays[0].recurring

    def test_end_date_derived_over_holidays(self):
        """A missing end date is derived; the recurring New Year pushes it out."""
        sprint = parse_snapshot(make_payload()).sprint

        assert sprint.end_date == date(2024, 1, 15)
        assert sprint.freeze_date == date(2024, 1, 11)

    def test_explicit_end_date_kept(self):
        """A supplied end date is used as is."""
        payload = make_payload()
        payload["sprint"]["endDate"] = "2024-01-12"
        assert parse_snapshot(payload).sprint.end_date == date(2024, 1, 12)

    def test_snake_case_accepted(self):
        """Snake-case keys are accepted too."""
        sprint = parse_sprint({"id": "S1", "start_date": "2024-01-01", "duration": 5})
        assert sprint.end_date == date(2024, 1, 5)

    def test_missing_optional_task_fields(self):
        """Absent estimates and category fall back to defaults."""
        task = parse_tasks([{"id": "T1"}])[0]

        assert task.story_points == 0
        assert task.time_spent == 0
        assert task.category == TaskCategory.OTHER
        assert task.effective_estimate == 0

    def test_require_complete(self):
        """A complete snapshot passes the completeness check."""
        snapshot = parse_snapshot(make_payload(), require_complete=True)
        assert snapshot.sprint.id == "S1"


class TestValidationErrors:
    """Tests that invalid payloads name the offending field."""

    def test_malformed_date(self):
        """A malformed start date names sprint.startDate."""
        payload = make_payload()
        payload["sprint"]["startDate"] = "2024-13-45"

        with pytest.raises(ValidationError) as exc:
            parse_snapshot(payload)
        assert exc.value.field == "sprint.startDate"

    def test_negative_story_points(self):
        """Negative estimates are rejected."""
        payload = make_payload()
        payload["tasks"][0]["storyPoints"] = -1

        with pytest.raises(ValidationError) as exc:
            parse_snapshot(payload)
        assert exc.value.field == "tasks.0.storyPoints"

    def test_non_positive_capacity(self):
        """Daily capacity must be positive."""
        with pytest.raises(ValidationError) as exc:
            parse_members([{"id": "alice", "dailyCapacity": 0}])
        assert exc.value.field == "dailyCapacity"

    @pytest.mark.parametrize("duration", [0, -5, None])
    def test_invalid_duration(self, duration):
        """Duration must be a positive integer."""
        with pytest.raises(ValidationError) as exc:
            parse_sprint({"id": "S1", "startDate": "2024-01-01", "duration": duration})
        assert exc.value.field == "duration"

    def test_end_before_start(self):
        """An end date before the start date is rejected."""
        with pytest.raises(ValidationError) as exc:
            parse_sprint({"id": "S1", "startDate": "2024-01-10", "endDate": "2024-01-01", "duration": 5})
        assert exc.value.field == "end_date"

    def test_validation_error_is_value_error(self):
        """Callers can catch the standard ValueError."""
        with pytest.raises(ValueError):
            parse_members([{"id": "alice", "dailyCapacity": -2}])


class TestSnapshotModel:
    """Tests for SprintSnapshot and entity invariants."""

    def test_incomplete_snapshot(self):
        """Referenced ids missing from the snapshot raise."""
        sprint = Sprint(id="S1", start_date=date(2024, 1, 1), duration=10,
                        member_ids=["alice", "bob"], task_ids=["T1", "T2"])
        snapshot = SprintSnapshot(sprint=sprint, members=[TeamMember(id="alice", daily_capacity=6)],
                                  tasks=[Task(id="T1")])

        with pytest.raises(IncompleteSnapshotError) as exc:
            snapshot.require_complete()
        assert exc.value.missing_members == ["bob"]
        assert exc.value.missing_tasks == ["T2"]

    def test_lookup_not_found(self):
        """Unknown ids raise NotFoundError."""
        snapshot = SprintSnapshot(sprint=Sprint(id="S1", start_date=date(2024, 1, 1), duration=10))

        with pytest.raises(NotFoundError):
            snapshot.member("ghost")
        with pytest.raises(NotFoundError):
            snapshot.task("T404")

    def test_leave_days_ordered_and_deduplicated(self):
        """Leave days are sorted with one record per date."""
        member = TeamMember(id="alice", daily_capacity=6, leave_days=[
            LeaveDay(member_id="alice", leave_date=date(2024, 1, 9)),
            LeaveDay(member_id="alice", leave_date=date(2024, 1, 3)),
            LeaveDay(member_id="alice", leave_date=date(2024, 1, 9)),
        ])
        assert member.leave_dates == [date(2024, 1, 3), date(2024, 1, 9)]

    def test_effective_estimate(self):
        """Original estimate wins when positive, otherwise story points."""
        assert Task(id="T1", story_points=5, original_estimate=8).effective_estimate == 8
        assert Task(id="T2", story_points=5, original_estimate=0).effective_estimate == 5
        assert Task(id="T3", story_points=5).effective_estimate == 5

    def test_negative_time_spent(self):
        """Negative time spent is rejected."""
        with pytest.raises(ValidationError) as exc:
            Task(id="T1", time_spent=-1)
        assert exc.value.field == "time_spent"
