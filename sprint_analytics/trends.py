"""
Historical Trend Aggregator

Multi-sprint reporting over archived sprint snapshots: delivered hours,
category mix and per-role utilization.

Member capacity here is duration x daily capacity, with no leave or holiday
adjustment. It is coarser than the capacity module on purpose: trends
compare sprints with each other, not against exact commitments.
"""

import statistics
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from .logging import get_logger
from .models import Role, SprintSnapshot, TaskCategory

logger = get_logger(__name__)

MIX_CATEGORIES = (TaskCategory.FEATURE, TaskCategory.TECH_DEBT, TaskCategory.PROD_ISSUE)

# Second-half average must move more than this share to count as a trend
TREND_BAND = 0.10
CONFIDENCE_Z = 1.96


@dataclass
class VelocityPoint:
    sprint_id: str
    end_date: Optional[date]
    total_hours: float

    def to_dict(self) -> dict:
        return {
            "sprint_id": self.sprint_id,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "total_hours": round(self.total_hours, 2),
        }


def _velocity_direction(hours: list[float]) -> str:
    """Later half of the run against the earlier half; needs 4 sprints."""
    if len(hours) < 4:
        return "unknown"

    middle = len(hours) // 2
    earlier = statistics.fmean(hours[:middle])
    recent = statistics.fmean(hours[middle:])

    if recent > earlier * (1 + TREND_BAND):
        return "improving"
    if recent < earlier * (1 - TREND_BAND):
        return "declining"
    return "stable"


@dataclass
class VelocityStats:
    """Delivered hours across a run of sprints, oldest first."""
    average: float
    median: float
    std_dev: float
    slowest: Optional[VelocityPoint]
    fastest: Optional[VelocityPoint]
    trend: str  # "improving", "stable", "declining", "unknown"
    sprints_analyzed: int

    @classmethod
    def from_points(cls, points: list[VelocityPoint]) -> "VelocityStats":
        if not points:
            return cls(
                average=0.0, median=0.0, std_dev=0.0, slowest=None, fastest=None,
                trend="unknown", sprints_analyzed=0
            )

        hours = [p.total_hours for p in points]
        return cls(
            average=statistics.fmean(hours),
            median=statistics.median(hours),
            std_dev=statistics.pstdev(hours),
            slowest=min(points, key=lambda p: p.total_hours),
            fastest=max(points, key=lambda p: p.total_hours),
            trend=_velocity_direction(hours),
            sprints_analyzed=len(points),
        )

    @property
    def min(self) -> float:
        return self.slowest.total_hours if self.slowest else 0.0

    @property
    def max(self) -> float:
        return self.fastest.total_hours if self.fastest else 0.0

    @property
    def confidence_range(self) -> tuple[float, float]:
        """95% interval around the average, floored at zero hours."""
        margin = CONFIDENCE_Z * self.std_dev
        return (max(0.0, self.average - margin), self.average + margin)

    def to_dict(self) -> dict:
        low, high = self.confidence_range
        return {
            "average": round(self.average, 2),
            "median": round(self.median, 2),
            "std_dev": round(self.std_dev, 2),
            "min": round(self.min, 2),
            "max": round(self.max, 2),
            "slowest_sprint": self.slowest.sprint_id if self.slowest else None,
            "fastest_sprint": self.fastest.sprint_id if self.fastest else None,
            "trend": self.trend,
            "sprints_analyzed": self.sprints_analyzed,
            "confidence_range": [round(low, 2), round(high, 2)],
        }


@dataclass
class WorkMixPoint:
    """Share of effective estimate per category, in percent."""
    sprint_id: str
    end_date: Optional[date]
    mix: dict[TaskCategory, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "sprint_id": self.sprint_id,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "mix": {category.value: round(share, 2) for category, share in self.mix.items()},
        }


@dataclass
class RoleUtilization:
    role: Role
    assigned_hours: float
    total_capacity: float

    @property
    def utilization(self) -> float:
        if self.total_capacity <= 0:
            return 0
        return (self.assigned_hours / self.total_capacity) * 100

    def to_dict(self) -> dict:
        return {
            "role": self.role.value,
            "assigned_hours": round(self.assigned_hours, 2),
            "total_capacity": round(self.total_capacity, 2),
            "utilization": round(self.utilization, 1),
        }


@dataclass
class TrendReport:
    """Velocity, work mix and role utilization across sprints."""
    velocity_trend: list[VelocityPoint] = field(default_factory=list)
    work_mix_trend: list[WorkMixPoint] = field(default_factory=list)
    role_utilization: list[RoleUtilization] = field(default_factory=list)
    velocity_stats: Optional[VelocityStats] = None
    generated_at: datetime = field(default_factory=datetime.now)

    @property
    def sprints_analyzed(self) -> int:
        return len(self.velocity_trend)

    def to_dict(self) -> dict:
        return {
            "generated_at": self.generated_at.isoformat(),
            "sprints_analyzed": self.sprints_analyzed,
            "velocity_trend": [p.to_dict() for p in self.velocity_trend],
            "work_mix_trend": [p.to_dict() for p in self.work_mix_trend],
            "role_utilization": [r.to_dict() for r in self.role_utilization],
            "velocity_stats": self.velocity_stats.to_dict() if self.velocity_stats else None,
        }


class HistoricalTrendAggregator:
    """
    Aggregates trends across sprint snapshots, in the order given.

    Usage:
        aggregator = HistoricalTrendAggregator()
        report = aggregator.report(archived_snapshots)
    """

    def velocity_trend(self, snapshots: list[SprintSnapshot]) -> list[VelocityPoint]:
        """Total delivered hours (story points) per sprint."""
        return [
            VelocityPoint(
                sprint_id=s.sprint.id,
                end_date=s.sprint.end_date,
                total_hours=sum(t.story_points for t in s.sprint_tasks),
            )
            for s in snapshots
        ]

    def work_mix_trend(self, snapshots: list[SprintSnapshot]) -> list[WorkMixPoint]:
        """Percentage of effective estimate in each tracked category per sprint."""
        points = []
        for s in snapshots:
            tasks = s.sprint_tasks
            total = sum(t.effective_estimate for t in tasks)

            mix = {}
            for category in MIX_CATEGORIES:
                hours = sum(t.effective_estimate for t in tasks if t.category == category)
                mix[category] = (hours / total) * 100 if total > 0 else 0.0

            points.append(WorkMixPoint(sprint_id=s.sprint.id, end_date=s.sprint.end_date, mix=mix))
        return points

    def role_utilization(self, snapshots: list[SprintSnapshot]) -> list[RoleUtilization]:
        """Assigned hours over duration-based capacity, per role, across all sprints."""
        totals = {}

        for s in snapshots:
            for member in s.members:
                capacity = s.sprint.duration * member.daily_capacity
                assigned = sum(t.story_points for t in s.tasks_for(member.id))

                entry = totals.setdefault(member.role, RoleUtilization(member.role, 0.0, 0.0))
                entry.total_capacity += capacity
                entry.assigned_hours += assigned

        return [totals[role] for role in Role if role in totals]

    def report(self, snapshots: list[SprintSnapshot]) -> TrendReport:
        """Every trend for the given snapshots."""
        velocity = self.velocity_trend(snapshots)
        report = TrendReport(
            velocity_trend=velocity,
            work_mix_trend=self.work_mix_trend(snapshots),
            role_utilization=self.role_utilization(snapshots),
            velocity_stats=VelocityStats.from_points(velocity),
        )
        logger.info("trend_report_built", sprints=report.sprints_analyzed, roles=len(report.role_utilization))
        return report


# Convenience function
def build_trend_report(snapshots: list[SprintSnapshot]) -> TrendReport:
    """
    Quick function to aggregate trends.

    Example:
        report = build_trend_report(archived_snapshots)
        print(report.velocity_stats.trend)
    """
    return HistoricalTrendAggregator().report(snapshots)
