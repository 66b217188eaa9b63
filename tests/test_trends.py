"""
Tests for the historical trend aggregator.
"""

import pytest
from datetime import date

from sprint_analytics.models import (
    Role,
    Sprint,
    SprintSnapshot,
    SprintStatus,
    Task,
    TaskCategory,
    TeamMember,
)
from sprint_analytics.trends import (
    HistoricalTrendAggregator,
    VelocityPoint,
    VelocityStats,
    build_trend_report,
)


def make_snapshot(sprint_id: str, end: date, tasks: list[Task], members: list[TeamMember] = None) -> SprintSnapshot:
    sprint = Sprint(
        id=sprint_id, start_date=date(end.year, end.month, 1), duration=10,
        end_date=end, status=SprintStatus.ARCHIVED,
    )
    return SprintSnapshot(sprint=sprint, members=members or [], tasks=tasks)


def velocity_stats(*hours: float) -> VelocityStats:
    return VelocityStats.from_points([VelocityPoint(f"S{i}", None, h) for i, h in enumerate(hours, 1)])


class TestVelocityStats:
    """Tests for velocity statistics."""

    def test_empty_history(self):
        """No data gives zeros and an unknown trend."""
        stats = velocity_stats()

        assert stats.average == 0
        assert stats.trend == "unknown"
        assert stats.sprints_analyzed == 0

    def test_basic_stats(self):
        """Average, median, min and max of the series."""
        stats = velocity_stats(20, 25, 30, 25, 20)

        assert stats.average == 24
        assert stats.median == 25
        assert stats.min == 20
        assert stats.max == 30
        assert stats.sprints_analyzed == 5

    def test_slowest_and_fastest_sprints(self):
        """The extremes point back at the sprints that produced them."""
        stats = velocity_stats(20, 25, 30, 25, 12)
        data = stats.to_dict()

        assert stats.slowest.sprint_id == "S5"
        assert stats.fastest.sprint_id == "S3"
        assert data["slowest_sprint"] == "S5"
        assert data["min"] == 12

    def test_even_median(self):
        """Median of an even-length series is the middle average."""
        assert velocity_stats(10, 20, 30, 40).median == 25

    def test_improving_trend(self):
        """Second half more than 10% above the first is improving."""
        assert velocity_stats(15, 18, 25, 28).trend == "improving"

    def test_declining_trend(self):
        """Second half more than 10% below the first is declining."""
        assert velocity_stats(30, 28, 20, 18).trend == "declining"

    def test_stable_trend(self):
        """Changes within 10% are stable."""
        assert velocity_stats(25, 26, 24, 25).trend == "stable"

    def test_short_history_unknown(self):
        """Fewer than four values give an unknown trend."""
        assert velocity_stats(20, 30, 40).trend == "unknown"

    def test_confidence_range(self):
        """95% interval around the average, floored at zero."""
        stats = VelocityStats(average=25, median=25, std_dev=5, slowest=None, fastest=None, trend="stable", sprints_analyzed=5)
        low, high = stats.confidence_range

        assert low == pytest.approx(25 - 9.8)
        assert high == pytest.approx(25 + 9.8)

        wide = VelocityStats(average=5, median=5, std_dev=10, slowest=None, fastest=None, trend="stable", sprints_analyzed=5)
        assert wide.confidence_range[0] == 0


class TestTrendAggregator:
    """Tests for multi-sprint trends."""

    def test_velocity_trend(self):
        """Delivered hours per sprint sum story points."""
        snapshots = [
            make_snapshot("S1", date(2024, 1, 12), [Task(id="T1", story_points=10), Task(id="T2", story_points=5)]),
            make_snapshot("S2", date(2024, 2, 12), [Task(id="T3", story_points=None)]),
        ]
        trend = HistoricalTrendAggregator().velocity_trend(snapshots)

        assert [p.total_hours for p in trend] == [15, 0]
        assert trend[0].to_dict()["end_date"] == "2024-01-12"

    def test_work_mix_uses_effective_estimate(self):
        """Shares are based on the effective estimate per category."""
        tasks = [
            Task(id="T1", story_points=10, original_estimate=30, category=TaskCategory.FEATURE),
            Task(id="T2", story_points=10, category=TaskCategory.TECH_DEBT),
            Task(id="T3", story_points=5, category=TaskCategory.PROD_ISSUE),
            Task(id="T4", story_points=5, category=TaskCategory.OTHER),
        ]
        mix = HistoricalTrendAggregator().work_mix_trend([make_snapshot("S1", date(2024, 1, 12), tasks)])[0].mix

        assert mix[TaskCategory.FEATURE] == pytest.approx(60)
        assert mix[TaskCategory.TECH_DEBT] == pytest.approx(20)
        assert mix[TaskCategory.PROD_ISSUE] == pytest.approx(10)
        assert TaskCategory.OTHER not in mix

    def test_work_mix_empty_sprint(self):
        """A sprint without estimates has zero shares."""
        mix = HistoricalTrendAggregator().work_mix_trend([make_snapshot("S1", date(2024, 1, 12), [])])[0].mix
        assert set(mix.values()) == {0.0}

    def test_role_utilization_across_sprints(self):
        """Assigned over duration-based capacity, summed per role across sprints."""
        backend = TeamMember(id="alice", daily_capacity=6, role=Role.BACKEND)
        qa = TeamMember(id="bob", daily_capacity=4, role=Role.QA)

        snapshots = [
            make_snapshot("S1", date(2024, 1, 12),
                          [Task(id="T1", story_points=30, assignee_ids=["alice"]),
                           Task(id="T2", story_points=20, assignee_ids=["bob"])],
                          [backend, qa]),
            make_snapshot("S2", date(2024, 2, 12),
                          [Task(id="T3", story_points=60, assignee_ids=["alice"])],
                          [backend]),
        ]
        roles = {r.role: r for r in HistoricalTrendAggregator().role_utilization(snapshots)}

        # Backend: 90 / (60 + 60); QA: 20 / 40
        assert roles[Role.BACKEND].utilization == pytest.approx(75)
        assert roles[Role.QA].utilization == pytest.approx(50)

    def test_report(self):
        """The report bundles every trend with velocity stats."""
        snapshots = [
            make_snapshot(f"S{i}", date(2024, i, 12), [Task(id=f"T{i}", story_points=10 * i)])
            for i in range(1, 5)
        ]
        report = build_trend_report(snapshots)

        assert report.sprints_analyzed == 4
        assert report.velocity_stats.trend == "improving"
        data = report.to_dict()
        assert len(data["velocity_trend"]) == 4
        assert data["work_mix_trend"][0]["mix"]["FEATURE"] == 0
