"""
Sprint Capacity Calculator

Compares each member's available capacity against their assigned work.

Two views share the same inputs but answer different questions:
- gap-based: is the work left achievable in the calendar days left?
- percentage-based: how loaded is the member across the whole sprint?
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Container, Optional

from .calendar import HolidayCalendar, is_working_day, working_days_between
from .logging import get_logger
from .models import Sprint, Task, TeamMember

logger = get_logger(__name__)

HOURS = Decimal("0.01")
RATIO = Decimal("0.0001")


class UtilizationStatus(Enum):
    """Gap-based utilization."""
    OVER_UTILIZED = "OVER_UTILIZED"
    PROPERLY_UTILIZED = "PROPERLY_UTILIZED"
    UNDER_UTILIZED = "UNDER_UTILIZED"


class CapacityStatus(Enum):
    """Percentage-based utilization."""
    OVERLOADED = "OVERLOADED"    # > 100%
    OK = "OK"                    # 70-100%
    UNDERUTILIZED = "UNDERUTILIZED"  # < 70%


@dataclass
class CapacityThresholds:
    """Configurable classification thresholds."""
    ideal_gap_threshold: float = 5.0
    overloaded_percentage: float = 100.0
    underutilized_percentage: float = 70.0


@dataclass
class MemberUtilization:
    """Remaining work against remaining capacity for one member."""
    member_id: str
    member_name: str
    remaining_work: float
    capacity: float
    gap: float
    status: UtilizationStatus
    days_remaining: int = 0

    def to_dict(self) -> dict:
        return {
            "member_id": self.member_id,
            "member_name": self.member_name,
            "remaining_work": round(self.remaining_work, 2),
            "capacity": round(self.capacity, 2),
            "gap": round(self.gap, 2),
            "status": self.status.value,
            "days_remaining": self.days_remaining,
        }


@dataclass
class CapacitySummary:
    """Assigned hours against total sprint capacity for one member."""
    member_id: str
    member_name: str
    total_capacity: float
    assigned_hours: float
    remaining_hours: float
    utilization_percentage: float
    status: CapacityStatus
    available_working_days: int = 0
    leave_days: int = 0

    def to_dict(self) -> dict:
        return {
            "member_id": self.member_id,
            "member_name": self.member_name,
            "total_capacity": round(self.total_capacity, 2),
            "assigned_hours": round(self.assigned_hours, 2),
            "remaining_hours": round(self.remaining_hours, 2),
            "utilization_percentage": round(self.utilization_percentage, 1),
            "status": self.status.value,
            "available_working_days": self.available_working_days,
            "leave_days": self.leave_days,
        }


@dataclass
class TeamCapacitySummary:
    """Percentage-based capacity for the whole sprint team."""
    members: list[CapacitySummary] = field(default_factory=list)
    calculated_at: datetime = field(default_factory=datetime.now)

    @property
    def team_size(self) -> int:
        return len(self.members)

    @property
    def total_capacity(self) -> float:
        return sum(m.total_capacity for m in self.members)

    @property
    def total_assigned(self) -> float:
        return sum(m.assigned_hours for m in self.members)

    @property
    def overloaded_count(self) -> int:
        return len([m for m in self.members if m.status == CapacityStatus.OVERLOADED])

    @property
    def ok_count(self) -> int:
        return len([m for m in self.members if m.status == CapacityStatus.OK])

    @property
    def underutilized_count(self) -> int:
        return len([m for m in self.members if m.status == CapacityStatus.UNDERUTILIZED])

    @property
    def average_utilization(self) -> float:
        if not self.members:
            return 0
        return sum(m.utilization_percentage for m in self.members) / len(self.members)

    def identify_overloaded(self, threshold: float = 100.0) -> list[CapacitySummary]:
        """Members whose utilization exceeds `threshold`, most loaded first."""
        overloaded = [m for m in self.members if m.utilization_percentage > threshold]
        return sorted(overloaded, key=lambda m: m.utilization_percentage, reverse=True)

    def get_available_capacity(self, n: int = 3) -> list[CapacitySummary]:
        """Members with the most unassigned hours."""
        return sorted(self.members, key=lambda m: m.remaining_hours, reverse=True)[:n]

    def to_dict(self) -> dict:
        return {
            "calculated_at": self.calculated_at.isoformat(),
            "summary": {
                "team_size": self.team_size,
                "total_capacity": round(self.total_capacity, 2),
                "total_assigned": round(self.total_assigned, 2),
                "overloaded": self.overloaded_count,
                "ok": self.ok_count,
                "underutilized": self.underutilized_count,
                "average_utilization": round(self.average_utilization, 1),
            },
            "members": [m.to_dict() for m in self.members]
        }


def _member_tasks(member: TeamMember, sprint: Sprint, tasks: list[Task]) -> list[Task]:
    return [t for t in tasks if t.belongs_to(sprint.id) and t.is_assigned_to(member.id)]


def _decimal(value) -> Decimal:
    return Decimal(str(value or 0))


class CapacityCalculator:
    """
    Computes member utilization for a sprint.

    Usage:
        calculator = CapacityCalculator(CapacityThresholds(ideal_gap_threshold=5))
        utilization = calculator.gap_utilization(member, sprint, tasks, today=date.today())
        summary = calculator.percentage_utilization(member, sprint, tasks, holidays)
    """

    def __init__(self, thresholds: Optional[CapacityThresholds] = None):
        self.thresholds = thresholds or CapacityThresholds()

    def classify_gap(self, gap: float, ideal_gap_threshold: Optional[float] = None) -> UtilizationStatus:
        """Strict comparison against +/- threshold; the boundary itself is PROPERLY_UTILIZED."""
        threshold = self.thresholds.ideal_gap_threshold if ideal_gap_threshold is None else ideal_gap_threshold
        gap, threshold = _decimal(gap), _decimal(threshold)

        if gap > threshold:
            return UtilizationStatus.OVER_UTILIZED
        if gap < -threshold:
            return UtilizationStatus.UNDER_UTILIZED
        return UtilizationStatus.PROPERLY_UTILIZED

    def classify_percentage(self, utilization: float) -> CapacityStatus:
        """Exactly 100% and exactly 70% are OK."""
        utilization = _decimal(utilization)

        if utilization > _decimal(self.thresholds.overloaded_percentage):
            return CapacityStatus.OVERLOADED
        if utilization < _decimal(self.thresholds.underutilized_percentage):
            return CapacityStatus.UNDERUTILIZED
        return CapacityStatus.OK

    def gap_utilization(
        self,
        member: TeamMember,
        sprint: Sprint,
        tasks: list[Task],
        today: Optional[date] = None,
        ideal_gap_threshold: Optional[float] = None
    ) -> MemberUtilization:
        """
        Gap-based utilization.

        Capacity is daily capacity times the plain calendar days left until
        the sprint end date. Remaining work counts only unfinished tasks.
        """
        today = today or date.today()
        end_date = sprint.require_end_date()

        days_remaining = max(0, (end_date - today).days)
        # Decimal arithmetic keeps fractional hours exact at the thresholds
        remaining_work = sum(
            (max(Decimal(0), _decimal(t.story_points) - _decimal(t.time_spent))
             for t in _member_tasks(member, sprint, tasks)
             if not t.is_done),
            Decimal(0),
        )
        capacity = _decimal(member.daily_capacity) * days_remaining
        gap = remaining_work - capacity

        status = self.classify_gap(gap, ideal_gap_threshold)
        logger.debug(
            "gap_utilization",
            member=member.id,
            remaining_work=float(remaining_work),
            capacity=float(capacity),
            gap=float(gap),
            status=status.value,
        )

        return MemberUtilization(
            member_id=member.id,
            member_name=member.display_name,
            remaining_work=float(remaining_work),
            capacity=float(capacity),
            gap=float(gap),
            status=status,
            days_remaining=days_remaining,
        )

    def percentage_utilization(
        self,
        member: TeamMember,
        sprint: Sprint,
        tasks: list[Task],
        holidays: Optional[Container[date]] = None
    ) -> CapacitySummary:
        """
        Percentage-based utilization.

        Available days are the sprint's working days minus the member's leave
        records inside the sprint (a raw count). Assigned hours are story
        points of every task assigned in the sprint, whatever their status.
        """
        holidays = holidays if holidays is not None else HolidayCalendar.for_sprint(sprint)
        end_date = sprint.require_end_date()

        total_sprint_days = working_days_between(sprint.start_date, end_date, holidays)
        leave_days = len(member.leave_days_in_range(sprint.start_date, end_date, sprint.id))
        available_days = max(0, total_sprint_days - leave_days)

        total_capacity = (_decimal(member.daily_capacity) * available_days).quantize(HOURS, ROUND_HALF_UP)
        assigned_hours = sum((_decimal(t.story_points) for t in _member_tasks(member, sprint, tasks)), Decimal(0))

        # Ratio to 4 places before scaling to a percentage
        utilization = Decimal(0)
        if total_capacity > 0:
            utilization = (assigned_hours / total_capacity).quantize(RATIO, ROUND_HALF_UP) * 100

        status = self.classify_percentage(utilization)
        logger.debug(
            "percentage_utilization",
            member=member.id,
            sprint_days=total_sprint_days,
            leave_days=leave_days,
            total_capacity=float(total_capacity),
            assigned=float(assigned_hours),
            status=status.value,
        )

        return CapacitySummary(
            member_id=member.id,
            member_name=member.display_name,
            total_capacity=float(total_capacity),
            assigned_hours=float(assigned_hours),
            remaining_hours=float(total_capacity - assigned_hours),
            utilization_percentage=float(utilization),
            status=status,
            available_working_days=available_days,
            leave_days=leave_days,
        )

    def sprint_capacity(
        self,
        member: TeamMember,
        sprint: Sprint,
        holidays: Optional[Container[date]] = None
    ) -> float:
        """
        Hours available over the sprint's working days.

        Only leave days that fall on working days reduce capacity.
        """
        holidays = holidays if holidays is not None else HolidayCalendar.for_sprint(sprint)
        end_date = sprint.require_end_date()

        working_days = working_days_between(sprint.start_date, end_date, holidays)
        working_leaves = len([
            leave for leave in member.leave_days_in_range(sprint.start_date, end_date, sprint.id)
            if is_working_day(leave.leave_date, holidays)
        ])
        available_days = max(0, working_days - working_leaves)

        return round(member.daily_capacity * available_days, 2)

    def team_gap_utilization(
        self,
        sprint: Sprint,
        members: list[TeamMember],
        tasks: list[Task],
        today: Optional[date] = None,
        ideal_gap_threshold: Optional[float] = None
    ) -> list[MemberUtilization]:
        """Gap-based utilization for every member, including those with no tasks."""
        utilizations = [
            self.gap_utilization(member, sprint, tasks, today, ideal_gap_threshold)
            for member in members
        ]
        logger.info("team_gap_utilization", sprint=sprint.id, members=len(utilizations))
        return utilizations

    def team_capacity(
        self,
        sprint: Sprint,
        members: list[TeamMember],
        tasks: list[Task],
        holidays: Optional[Container[date]] = None
    ) -> TeamCapacitySummary:
        """Percentage-based capacity for every member."""
        holidays = holidays if holidays is not None else HolidayCalendar.for_sprint(sprint)
        summaries = [
            self.percentage_utilization(member, sprint, tasks, holidays)
            for member in members
        ]
        summaries.sort(key=lambda m: m.utilization_percentage, reverse=True)
        logger.info("team_capacity", sprint=sprint.id, members=len(summaries))
        return TeamCapacitySummary(members=summaries)


# Convenience function
def calculate_team_capacity(
    sprint: Sprint,
    members: list[TeamMember],
    tasks: list[Task],
    holidays: Optional[Container[date]] = None,
    thresholds: Optional[CapacityThresholds] = None
) -> TeamCapacitySummary:
    """
    Quick function to compute percentage-based team capacity.

    Example:
        summary = calculate_team_capacity(sprint, members, tasks, calendar)
        for member in summary.identify_overloaded():
            ...
    """
    calculator = CapacityCalculator(thresholds)
    return calculator.team_capacity(sprint, members, tasks, holidays)
