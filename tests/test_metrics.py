"""
Tests for sprint dashboard metrics.
"""

import pytest
from datetime import date, datetime

from sprint_analytics.metrics import SprintMetrics, round_half_up
from sprint_analytics.models import (
    EventType,
    Holiday,
    LeaveDay,
    Sprint,
    SprintEvent,
    SprintSnapshot,
    SprintStatus,
    Task,
    TaskCategory,
    TaskStatus,
    TeamMember,
)

TODAY = date(2024, 1, 10)


def current_snapshot() -> SprintSnapshot:
    sprint = Sprint(
        id="S3", name="Sprint 3", start_date=date(2024, 1, 1), duration=10,
        end_date=date(2024, 1, 12), status=SprintStatus.ACTIVE,
    )
    members = [TeamMember(id="alice", daily_capacity=6), TeamMember(id="bob", daily_capacity=4)]
    tasks = [
        Task(id="C1", story_points=10, time_spent=10, status=TaskStatus.DONE, category=TaskCategory.FEATURE,
             assignee_ids=["alice"], created_at=datetime(2024, 1, 1, 9), updated_at=datetime(2024, 1, 5, 16)),
        Task(id="C2", story_points=8, original_estimate=12, time_spent=4, status=TaskStatus.IN_PROGRESS,
             category=TaskCategory.TECH_DEBT, assignee_ids=["alice"]),
        Task(id="C3", story_points=6, time_spent=6, status=TaskStatus.DONE, category=TaskCategory.PROD_ISSUE,
             assignee_ids=["bob"], created_at=datetime(2024, 1, 2, 10), updated_at=datetime(2024, 1, 4, 11)),
        Task(id="C4", story_points=4, status=TaskStatus.TODO, category=TaskCategory.OTHER, assignee_ids=["bob"]),
    ]
    return SprintSnapshot(sprint=sprint, members=members, tasks=tasks)


def archived_snapshot(sprint_id: str, end: date, tasks: list[Task]) -> SprintSnapshot:
    sprint = Sprint(id=sprint_id, start_date=date(end.year, end.month, 1), duration=10,
                    end_date=end, status=SprintStatus.ARCHIVED)
    return SprintSnapshot(sprint=sprint, tasks=tasks)


def archived_snapshots() -> list[SprintSnapshot]:
    # Deliberately out of order
    return [
        archived_snapshot("A2", date(2023, 12, 29), [
            Task(id="B1", story_points=12, status=TaskStatus.DONE,
                 created_at=datetime(2023, 12, 18), updated_at=datetime(2023, 12, 22)),
            Task(id="B2", story_points=8, status=TaskStatus.DONE,
                 created_at=datetime(2023, 12, 18), updated_at=datetime(2023, 12, 24)),
        ]),
        archived_snapshot("A1", date(2023, 12, 15), [
            Task(id="A1-1", story_points=10, status=TaskStatus.DONE),
            Task(id="A1-2", story_points=10, status=TaskStatus.TODO),
        ]),
    ]


class TestRounding:
    """Tests for half-up rounding."""

    def test_half_up(self):
        """Halves round away from zero."""
        assert round_half_up(2.675, 2) == 2.68
        assert round_half_up(0.125, 2) == 0.13
        assert round_half_up(30.85, 1) == 30.9


class TestWorkDistribution:
    """Tests for work distribution."""

    def test_labels_and_percentages(self):
        """Each category maps to its label with a 2dp percentage."""
        distribution = SprintMetrics(TODAY).work_distribution(current_snapshot().tasks)
        data = distribution.to_dict()

        assert data["labels"] == ["Features", "Tech Debt", "Bug Fixes", "Support"]
        assert data["values"] == [1, 1, 1, 1]
        assert data["percentages"] == [25.0, 25.0, 25.0, 25.0]
        assert data["total_tasks"] == 4

    def test_empty_categories_omitted(self):
        """Categories without tasks are left out."""
        tasks = [Task(id=f"T{i}", category=TaskCategory.FEATURE) for i in range(2)]
        tasks.append(Task(id="T9", category=TaskCategory.PROD_ISSUE))
        data = SprintMetrics(TODAY).work_distribution(tasks).to_dict()

        assert data["labels"] == ["Features", "Bug Fixes"]
        assert data["percentages"] == [66.67, 33.33]

    def test_no_tasks(self):
        """An empty sprint has an empty distribution."""
        assert SprintMetrics(TODAY).work_distribution([]).to_dict()["labels"] == []


class TestVelocityTrend:
    """Tests for the velocity trend."""

    def test_chronological_then_current(self):
        """Archived sprints come oldest first, then the current sprint."""
        trend = SprintMetrics(TODAY).velocity_trend(current_snapshot(), archived_snapshots())

        assert [s.sprint_id for s in trend.sprints] == ["A1", "A2", "S3"]
        assert [s.completed_points for s in trend.sprints] == [10, 20, 16]
        assert trend.sprints[-1].committed_points == 28

    def test_average_over_archived_only(self):
        """The current sprint does not count towards the average."""
        trend = SprintMetrics(TODAY).velocity_trend(current_snapshot(), archived_snapshots())
        assert trend.average_velocity == 15.0

    def test_limit(self):
        """Only the most recent archived sprints are used."""
        archived = [
            archived_snapshot(f"A{m}", date(2023, m, 28), [Task(id=f"T{m}", story_points=m, status=TaskStatus.DONE)])
            for m in range(1, 8)
        ]
        trend = SprintMetrics(TODAY).velocity_trend(current_snapshot(), archived, limit=5)

        assert [s.sprint_id for s in trend.sprints] == ["A3", "A4", "A5", "A6", "A7", "S3"]
        assert trend.average_velocity == 5.0

    def test_non_archived_history_ignored(self):
        """Completed but not archived sprints are not history."""
        history = archived_snapshots()
        history[0].sprint.status = SprintStatus.COMPLETED
        trend = SprintMetrics(TODAY).velocity_trend(current_snapshot(), history)

        assert [s.sprint_id for s in trend.sprints] == ["A1", "S3"]
        assert trend.average_velocity == 10.0


class TestSummaryMetrics:
    """Tests for summary metrics."""

    def test_summary(self):
        """Velocity, success rate, cycle time and utilization."""
        summary = SprintMetrics(TODAY).summary_metrics(current_snapshot(), archived_snapshots())

        assert summary.velocity.current == 16
        assert summary.velocity.average == 15.0
        assert summary.velocity.percentage_change == -20.0
        assert summary.velocity.trend == "down"

        assert summary.success_rate.current == 50.0
        assert summary.success_rate.percentage_change == -50.0
        assert summary.success_rate.trend == "down"

        assert summary.cycle_time.current == 3.0
        assert summary.cycle_time.baseline == 5.0
        assert summary.cycle_time.difference == -2.0
        assert summary.cycle_time.trend == "down"

        # alice 22/60, bob 10/40
        assert summary.utilization.average == 30.8
        assert summary.utilization.status == "under"

    def test_no_history(self):
        """Without archived sprints the comparisons are neutral."""
        summary = SprintMetrics(TODAY).summary_metrics(current_snapshot(), [])

        assert summary.velocity.average == 0
        assert summary.velocity.trend == "neutral"
        assert summary.success_rate.trend == "neutral"
        assert summary.cycle_time.baseline == 0
        assert summary.to_dict()["velocity"]["current"] == 16

    def test_utilization_over(self):
        """Average above 90% is over."""
        snapshot = current_snapshot()
        snapshot.tasks.append(Task(id="C5", story_points=40, assignee_ids=["alice"]))
        snapshot.tasks.append(Task(id="C6", story_points=30, assignee_ids=["bob"]))

        # alice 62/60, bob 40/40
        metric = SprintMetrics(TODAY).utilization_metric(snapshot)
        assert metric.average == 101.7
        assert metric.status == "over"


class TestCurrentSprintMetrics:
    """Tests for current sprint metrics."""

    def test_mid_sprint(self):
        """Progress counts working days; today counts as a day left."""
        metrics = SprintMetrics(TODAY).current_sprint_metrics(current_snapshot())

        assert metrics.progress.days_elapsed == 8
        assert metrics.progress.total_days == 10
        assert metrics.progress.percent_complete == 80.0
        assert metrics.work_remaining.hours == 12.0
        assert metrics.work_remaining.working_days_left == 3
        assert metrics.tasks_completed.completed == 2
        assert metrics.tasks_completed.percent_complete == 50.0

    def test_holiday_event_excluded(self):
        """A sprint HOLIDAY event is not a working day."""
        snapshot = current_snapshot()
        snapshot.sprint.events.append(
            SprintEvent(id="E1", event_type=EventType.HOLIDAY, name="Offsite", event_date=date(2024, 1, 11))
        )
        metrics = SprintMetrics(TODAY).current_sprint_metrics(snapshot)

        assert metrics.progress.total_days == 9
        assert metrics.work_remaining.working_days_left == 2

    def test_before_start_and_after_end(self):
        """Progress is 0 before start; no days left after end."""
        before = SprintMetrics(date(2023, 12, 20)).current_sprint_metrics(current_snapshot())
        after = SprintMetrics(date(2024, 2, 1)).current_sprint_metrics(current_snapshot())

        assert before.progress.days_elapsed == 0
        assert before.work_remaining.working_days_left == 10
        assert after.progress.percent_complete == 100.0
        assert after.work_remaining.working_days_left == 0


class TestQuickStats:
    """Tests for quick stats."""

    def test_quick_stats(self):
        """Assigned hours use effective estimates; capacity uses working days."""
        stats = SprintMetrics(TODAY).quick_stats(current_snapshot())

        assert stats.team_members == 2
        assert stats.start_date == "Jan 01"
        assert stats.end_date == "Jan 12"
        assert stats.assigned_hours == 32.0
        assert stats.capacity_hours == 100.0

    def test_holidays_and_leave_reduce_capacity(self):
        """Snapshot holidays and working-day leave reduce capacity."""
        snapshot = current_snapshot()
        snapshot.holidays.append(Holiday(holiday_date=date(2020, 1, 1), name="New Year", recurring=True))
        snapshot.members[0].leave_days.append(LeaveDay(member_id="alice", leave_date=date(2024, 1, 2)))

        # alice 6 x 8, bob 4 x 9
        assert SprintMetrics(TODAY).quick_stats(snapshot).capacity_hours == pytest.approx(84.0)
