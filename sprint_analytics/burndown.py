"""
Sprint Burndown

Reconstructs a day-by-day burndown from aggregate task data.

Only the total time spent per task is known, so each task's time is placed
on a single proxy date. This is an approximation: no work-log history is
invented.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from .calendar import iter_days
from .logging import get_logger
from .models import Sprint, Task, TeamMember

logger = get_logger(__name__)


@dataclass
class BurndownPoint:
    """One day of the burndown series."""
    day: date
    remaining_points: float
    ideal_remaining: float
    completed_points: float

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "remaining_points": round(self.remaining_points, 2),
            "ideal_remaining": round(self.ideal_remaining, 2),
            "completed_points": round(self.completed_points, 2),
        }


@dataclass
class VelocityFigures:
    """Velocity of the sprint being burned down."""
    current_sprint_velocity: float = 0
    committed_points: float = 0
    completed_points: float = 0
    completed_issues: int = 0
    total_issues: int = 0

    @property
    def completion_rate(self) -> float:
        if self.total_issues == 0:
            return 0
        return (self.completed_issues / self.total_issues) * 100

    def to_dict(self) -> dict:
        return {
            "current_sprint_velocity": round(self.current_sprint_velocity, 2),
            "committed_points": round(self.committed_points, 2),
            "completed_points": round(self.completed_points, 2),
            "completed_issues": self.completed_issues,
            "total_issues": self.total_issues,
            "completion_rate": round(self.completion_rate, 1),
        }


@dataclass
class SprintBurndown:
    """Burndown series with totals and velocity."""
    sprint_id: str
    sprint_name: str
    start_date: date
    end_date: date
    total_estimate: float = 0
    total_time_spent: float = 0
    ideal_capacity_per_day: float = 0
    points: list[BurndownPoint] = field(default_factory=list)
    velocity: VelocityFigures = field(default_factory=VelocityFigures)

    @property
    def remaining_estimate(self) -> float:
        return max(0.0, self.total_estimate - self.total_time_spent)

    def to_dict(self) -> dict:
        return {
            "sprint": {
                "id": self.sprint_id,
                "name": self.sprint_name,
                "start_date": self.start_date.isoformat(),
                "end_date": self.end_date.isoformat(),
            },
            "totals": {
                "total_points": round(self.total_estimate, 2),
                "remaining_points": round(self.remaining_estimate, 2),
                "completed_points": round(self.total_time_spent, 2),
                "ideal_capacity_per_day": round(self.ideal_capacity_per_day, 2),
            },
            "points": [p.to_dict() for p in self.points],
            "velocity": self.velocity.to_dict(),
        }


def _clamp(day: date, start: date, end: date) -> date:
    return min(max(day, start), end)


def proxy_date(task: Task, start: date, end: date) -> date:
    """
    The single date a task's time spent is attributed to.

    Last modified date, else due date, else start date, else sprint start,
    clamped into [start, end].
    """
    if task.updated_at is not None:
        candidate = task.updated_at.date()
    elif task.due_date is not None:
        candidate = task.due_date
    elif task.start_date is not None:
        candidate = task.start_date
    else:
        candidate = start
    return _clamp(candidate, start, end)


class BurndownEngine:
    """
    Builds a sprint burndown.

    Usage:
        engine = BurndownEngine(today=date(2024, 1, 10))
        burndown = engine.build(sprint, tasks, members)
        burndown.points[-1].completed_points
    """

    def __init__(self, today: Optional[date] = None):
        self.today = today or date.today()

    def time_spent_by_date(self, tasks: list[Task], start: date, end: date, total_time_spent: float) -> dict[date, float]:
        """Time spent per proxy date; any unattributed remainder lands on today."""
        burn_by_date = defaultdict(float)

        for task in tasks:
            if task.time_spent <= 0:
                continue
            burn_by_date[proxy_date(task, start, end)] += task.time_spent

        allocated = sum(burn_by_date.values())
        if total_time_spent > 0 and allocated < total_time_spent:
            burn_by_date[_clamp(self.today, start, end)] += total_time_spent - allocated

        return dict(burn_by_date)

    def build(self, sprint: Sprint, tasks: list[Task], members: list[TeamMember]) -> SprintBurndown:
        """Daily remaining, ideal and completed series from sprint start to end."""
        start = sprint.start_date
        end = sprint.require_end_date()
        tasks = [t for t in tasks if t.belongs_to(sprint.id)]

        total_estimate = sum(t.effective_estimate for t in tasks)
        total_time_spent = sum(t.time_spent for t in tasks)
        ideal_capacity_per_day = sum(m.daily_capacity for m in members)

        burn_by_date = self.time_spent_by_date(tasks, start, end, total_time_spent)

        points = []
        cumulative = 0.0
        for index, day in enumerate(iter_days(start, end)):
            cumulative = min(cumulative + burn_by_date.get(day, 0.0), total_time_spent)
            points.append(BurndownPoint(
                day=day,
                remaining_points=max(0.0, total_estimate - cumulative),
                ideal_remaining=max(0.0, total_estimate - ideal_capacity_per_day * index),
                completed_points=cumulative,
            ))

        # Final point carries the exact totals
        if points:
            points[-1].completed_points = total_time_spent
            points[-1].remaining_points = max(0.0, total_estimate - total_time_spent)

        velocity = VelocityFigures(
            current_sprint_velocity=total_time_spent,
            committed_points=total_estimate,
            completed_points=total_time_spent,
            completed_issues=len([t for t in tasks if t.is_done]),
            total_issues=len(tasks),
        )

        logger.debug(
            "burndown_built",
            sprint=sprint.id,
            days=len(points),
            total_estimate=total_estimate,
            total_time_spent=total_time_spent,
        )

        return SprintBurndown(
            sprint_id=sprint.id,
            sprint_name=sprint.display_name,
            start_date=start,
            end_date=end,
            total_estimate=total_estimate,
            total_time_spent=total_time_spent,
            ideal_capacity_per_day=ideal_capacity_per_day,
            points=points,
            velocity=velocity,
        )


# Convenience function
def build_burndown(
    sprint: Sprint,
    tasks: list[Task],
    members: list[TeamMember],
    today: Optional[date] = None
) -> SprintBurndown:
    """
    Quick function to build a burndown.

    Example:
        burndown = build_burndown(sprint, tasks, members)
        print(burndown.to_dict()["totals"])
    """
    return BurndownEngine(today).build(sprint, tasks, members)
