"""
Sprint Metrics

Dashboard figures for the current sprint compared with archived sprints:
work distribution, velocity trend, summary metrics, current-sprint progress
and quick stats.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Container, Optional

from .calendar import HolidayCalendar, working_days_between
from .capacity import CapacityCalculator
from .logging import get_logger
from .models import SprintSnapshot, Task, TaskCategory

logger = get_logger(__name__)

CATEGORY_LABELS = {
    TaskCategory.FEATURE: "Features",
    TaskCategory.TECH_DEBT: "Tech Debt",
    TaskCategory.PROD_ISSUE: "Bug Fixes",
    TaskCategory.OTHER: "Support",
}

OVER_UTILIZATION = 90
UNDER_UTILIZATION = 70


def round_half_up(value: float, places: int = 2) -> float:
    """Round like a ledger does, 0.5 always away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _trend(change: float) -> str:
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "neutral"


def _percentage(part: float, whole: float, places: int = 1) -> float:
    if whole <= 0:
        return 0.0
    return round_half_up(part / whole * 100, places)


def _done(tasks: list[Task]) -> list[Task]:
    return [t for t in tasks if t.is_done]


@dataclass
class CategoryShare:
    label: str
    count: int
    percentage: float


@dataclass
class WorkDistribution:
    """Task counts per category label. Empty categories are left out."""
    categories: list[CategoryShare] = field(default_factory=list)
    total_tasks: int = 0

    def to_dict(self) -> dict:
        return {
            "labels": [c.label for c in self.categories],
            "values": [c.count for c in self.categories],
            "percentages": [c.percentage for c in self.categories],
            "total_tasks": self.total_tasks,
        }


@dataclass
class SprintVelocity:
    sprint_id: str
    sprint_name: str
    committed_points: float
    completed_points: float
    status: str

    def to_dict(self) -> dict:
        return {
            "sprint_id": self.sprint_id,
            "sprint_name": self.sprint_name,
            "committed_points": round(self.committed_points, 2),
            "completed_points": round(self.completed_points, 2),
            "status": self.status,
        }


@dataclass
class VelocityTrend:
    """Archived sprints oldest first, then the current sprint."""
    sprints: list[SprintVelocity] = field(default_factory=list)
    average_velocity: float = 0

    def to_dict(self) -> dict:
        return {
            "sprints": [s.to_dict() for s in self.sprints],
            "average_velocity": self.average_velocity,
        }


@dataclass
class VelocityMetric:
    current: float = 0
    average: float = 0
    percentage_change: float = 0
    trend: str = "neutral"


@dataclass
class SuccessRateMetric:
    current: float = 0
    percentage_change: float = 0
    trend: str = "neutral"


@dataclass
class CycleTimeMetric:
    """Days from creation to last update for DONE tasks. "up" is worse."""
    current: float = 0
    baseline: float = 0
    difference: float = 0
    trend: str = "neutral"


@dataclass
class UtilizationMetric:
    average: float = 0
    status: str = "under"  # "over", "optimal", "under"


@dataclass
class SummaryMetrics:
    velocity: VelocityMetric
    success_rate: SuccessRateMetric
    cycle_time: CycleTimeMetric
    utilization: UtilizationMetric

    def to_dict(self) -> dict:
        return {
            "velocity": vars(self.velocity).copy(),
            "success_rate": vars(self.success_rate).copy(),
            "cycle_time": vars(self.cycle_time).copy(),
            "utilization": vars(self.utilization).copy(),
        }


@dataclass
class SprintProgressMetric:
    percent_complete: float = 0
    days_elapsed: int = 0
    total_days: int = 0


@dataclass
class WorkRemainingMetric:
    hours: float = 0
    working_days_left: int = 0


@dataclass
class TasksCompletedMetric:
    completed: int = 0
    total: int = 0
    percent_complete: float = 0


@dataclass
class CurrentSprintMetrics:
    progress: SprintProgressMetric
    work_remaining: WorkRemainingMetric
    tasks_completed: TasksCompletedMetric
    utilization: UtilizationMetric

    def to_dict(self) -> dict:
        return {
            "progress": vars(self.progress).copy(),
            "work_remaining": vars(self.work_remaining).copy(),
            "tasks_completed": vars(self.tasks_completed).copy(),
            "utilization": vars(self.utilization).copy(),
        }


@dataclass
class QuickStats:
    sprint_name: str
    team_members: int
    start_date: str
    end_date: str
    assigned_hours: float
    capacity_hours: float

    def to_dict(self) -> dict:
        return vars(self).copy()


class SprintMetrics:
    """
    Computes dashboard metrics over sprint snapshots.

    Usage:
        metrics = SprintMetrics(today=date(2024, 1, 10))
        summary = metrics.summary_metrics(current_snapshot, archived_snapshots)
    """

    def __init__(
        self,
        today: Optional[date] = None,
        location: Optional[str] = None,
        velocity_history_size: int = 5
    ):
        self.today = today or date.today()
        self.location = location
        self.velocity_history_size = velocity_history_size
        self.capacity = CapacityCalculator()

    def calendar(self, snapshot: SprintSnapshot) -> HolidayCalendar:
        """Holidays of the snapshot plus the sprint's HOLIDAY events."""
        return HolidayCalendar.for_sprint(snapshot.sprint, snapshot.holidays, self.location)

    def work_distribution(self, tasks: list[Task]) -> WorkDistribution:
        """Task counts and percentages per category label."""
        total = len(tasks)
        categories = []
        for category, label in CATEGORY_LABELS.items():
            count = len([t for t in tasks if t.category == category])
            if count > 0:
                categories.append(CategoryShare(label, count, _percentage(count, total, 2)))

        logger.debug("work_distribution", tasks=total, categories=len(categories))
        return WorkDistribution(categories=categories, total_tasks=total)

    def _select_archived(self, archived: list[SprintSnapshot], limit: int) -> list[SprintSnapshot]:
        """The most recent `limit` archived sprints by end date, oldest first."""
        candidates = [s for s in archived if s.sprint.is_archived]
        candidates.sort(key=lambda s: s.sprint.end_date or date.min, reverse=True)
        return list(reversed(candidates[:limit]))

    def velocity_trend(
        self,
        current: SprintSnapshot,
        archived: list[SprintSnapshot],
        limit: Optional[int] = None
    ) -> VelocityTrend:
        """
        Committed and completed story points per sprint.

        The average counts archived sprints only.
        """
        limit = self.velocity_history_size if limit is None else limit
        snapshots = self._select_archived(archived, limit) + [current]

        sprints = []
        archived_completed = []
        for s in snapshots:
            tasks = s.sprint_tasks
            completed = sum(t.story_points for t in _done(tasks))
            sprints.append(SprintVelocity(
                sprint_id=s.sprint.id,
                sprint_name=s.sprint.display_name,
                committed_points=sum(t.story_points for t in tasks),
                completed_points=completed,
                status=s.sprint.status.value,
            ))
            if s.sprint.is_archived:
                archived_completed.append(completed)

        average = round_half_up(sum(archived_completed) / len(archived_completed), 2) if archived_completed else 0.0

        logger.info("velocity_trend", sprint=current.sprint.id, sprints=len(sprints), average=average)
        return VelocityTrend(sprints=sprints, average_velocity=average)

    def _velocity_metric(self, trend: VelocityTrend) -> VelocityMetric:
        if not trend.sprints:
            return VelocityMetric()

        current = trend.sprints[-1].completed_points
        metric = VelocityMetric(current=current, average=trend.average_velocity)

        if len(trend.sprints) > 1:
            previous = trend.sprints[-2].completed_points
            if previous > 0:
                metric.percentage_change = round_half_up((current - previous) / previous * 100, 1)
                metric.trend = _trend(metric.percentage_change)
        return metric

    def _success_rate_metric(self, current: SprintSnapshot, archived: list[SprintSnapshot]) -> SuccessRateMetric:
        tasks = current.sprint_tasks
        if not tasks:
            return SuccessRateMetric()

        rate = _percentage(len(_done(tasks)), len(tasks))
        metric = SuccessRateMetric(current=rate)

        previous = self._select_archived(archived, 1)
        if previous and previous[0].sprint_tasks:
            previous_tasks = previous[0].sprint_tasks
            previous_rate = len(_done(previous_tasks)) / len(previous_tasks) * 100
            metric.percentage_change = round_half_up(rate - previous_rate, 1)
            metric.trend = _trend(metric.percentage_change)
        return metric

    def _cycle_days(self, tasks: list[Task]) -> list[int]:
        return [
            (t.updated_at.date() - t.created_at.date()).days
            for t in _done(tasks)
            if t.created_at is not None and t.updated_at is not None
        ]

    def _cycle_time_metric(self, current: SprintSnapshot, archived: list[SprintSnapshot]) -> CycleTimeMetric:
        current_days = self._cycle_days(current.sprint_tasks)
        baseline_days = []
        for s in archived:
            if s.sprint.is_archived:
                baseline_days.extend(self._cycle_days(s.sprint_tasks))

        cycle_time = round_half_up(sum(current_days) / len(current_days), 1) if current_days else 0.0
        baseline = round_half_up(sum(baseline_days) / len(baseline_days), 1) if baseline_days else 0.0
        difference = round_half_up(cycle_time - baseline, 1)

        return CycleTimeMetric(current=cycle_time, baseline=baseline, difference=difference, trend=_trend(difference))

    def utilization_metric(
        self,
        snapshot: SprintSnapshot,
        holidays: Optional[Container[date]] = None
    ) -> UtilizationMetric:
        """Mean of assigned effective estimate over working-day capacity across members."""
        if not snapshot.members:
            return UtilizationMetric()

        holidays = holidays if holidays is not None else self.calendar(snapshot)
        total = 0.0
        for member in snapshot.members:
            capacity = self.capacity.sprint_capacity(member, snapshot.sprint, holidays)
            if capacity > 0:
                assigned = sum(t.effective_estimate for t in snapshot.tasks_for(member.id))
                total += assigned / capacity * 100

        average = round_half_up(total / len(snapshot.members), 1)
        if average > OVER_UTILIZATION:
            status = "over"
        elif average < UNDER_UTILIZATION:
            status = "under"
        else:
            status = "optimal"
        return UtilizationMetric(average=average, status=status)

    def summary_metrics(
        self,
        current: SprintSnapshot,
        archived: list[SprintSnapshot],
        holidays: Optional[Container[date]] = None
    ) -> SummaryMetrics:
        """Velocity, success rate, cycle time and utilization against archived sprints."""
        summary = SummaryMetrics(
            velocity=self._velocity_metric(self.velocity_trend(current, archived)),
            success_rate=self._success_rate_metric(current, archived),
            cycle_time=self._cycle_time_metric(current, archived),
            utilization=self.utilization_metric(current, holidays),
        )
        logger.info("summary_metrics", sprint=current.sprint.id)
        return summary

    def current_sprint_metrics(
        self,
        snapshot: SprintSnapshot,
        holidays: Optional[Container[date]] = None
    ) -> CurrentSprintMetrics:
        """Progress in working days, work remaining, tasks completed and utilization."""
        sprint = snapshot.sprint
        start = sprint.start_date
        end = sprint.require_end_date()
        holidays = holidays if holidays is not None else self.calendar(snapshot)
        today = self.today
        tasks = snapshot.sprint_tasks

        total_days = working_days_between(start, end, holidays)
        elapsed = 0 if today < start else working_days_between(start, min(today, end), holidays)
        progress = SprintProgressMetric(
            percent_complete=_percentage(elapsed, total_days),
            days_elapsed=elapsed,
            total_days=total_days,
        )

        # Today counts as a working day left; work is logged at the end of the day
        remaining_hours = sum(max(0.0, t.effective_estimate - t.time_spent) for t in tasks)
        days_left = 0 if today > end else working_days_between(max(today, start), end, holidays)
        work_remaining = WorkRemainingMetric(hours=round_half_up(remaining_hours, 1), working_days_left=days_left)

        completed = len(_done(tasks))
        tasks_completed = TasksCompletedMetric(
            completed=completed,
            total=len(tasks),
            percent_complete=_percentage(completed, len(tasks)),
        )

        metrics = CurrentSprintMetrics(
            progress=progress,
            work_remaining=work_remaining,
            tasks_completed=tasks_completed,
            utilization=self.utilization_metric(snapshot, holidays),
        )
        logger.info(
            "current_sprint_metrics",
            sprint=sprint.id,
            progress=progress.percent_complete,
            days_left=days_left,
        )
        return metrics

    def quick_stats(
        self,
        snapshot: SprintSnapshot,
        holidays: Optional[Container[date]] = None
    ) -> QuickStats:
        """Team size, formatted dates, assigned hours and capacity hours."""
        sprint = snapshot.sprint
        holidays = holidays if holidays is not None else self.calendar(snapshot)

        assigned = sum(t.effective_estimate for t in snapshot.sprint_tasks)
        capacity = sum(self.capacity.sprint_capacity(m, sprint, holidays) for m in snapshot.members)

        return QuickStats(
            sprint_name=sprint.display_name,
            team_members=len(snapshot.members),
            start_date=sprint.start_date.strftime("%b %d"),
            end_date=sprint.end_date.strftime("%b %d") if sprint.end_date else "",
            assigned_hours=round_half_up(assigned, 2),
            capacity_hours=round_half_up(capacity, 2),
        )
