"""
Sprint Analytics domain model

Plain snapshots of sprints, team members, tasks and holidays as supplied by
the surrounding CRUD layer. The engine reads these and never persists them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from .errors import IncompleteSnapshotError, NotFoundError, ValidationError


class SprintStatus(Enum):
    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class TaskStatus(Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"


class TaskPriority(Enum):
    LOWEST = "LOWEST"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TaskCategory(Enum):
    FEATURE = "FEATURE"
    TECH_DEBT = "TECH_DEBT"
    PROD_ISSUE = "PROD_ISSUE"
    OTHER = "OTHER"


class RiskFactor(Enum):
    """Schedule health of a single task."""
    ON_TRACK = "ON_TRACK"
    AT_RISK = "AT_RISK"
    OFF_TRACK = "OFF_TRACK"


class Role(Enum):
    BACKEND = "BACKEND"
    FRONTEND = "FRONTEND"
    QA = "QA"
    DEVOPS = "DEVOPS"
    MANAGER = "MANAGER"
    DESIGNER = "DESIGNER"


class EventType(Enum):
    DEPLOYMENT = "DEPLOYMENT"
    MEETING = "MEETING"
    HOLIDAY = "HOLIDAY"


class MeetingType(Enum):
    PLANNING = "PLANNING"
    GROOMING = "GROOMING"
    RETROSPECTIVE = "RETROSPECTIVE"


class HolidayType(Enum):
    PUBLIC = "PUBLIC"
    COMPANY = "COMPANY"


class LeaveType(Enum):
    PERSONAL = "PERSONAL"
    SICK = "SICK"
    OTHER = "OTHER"


def _require_non_negative(field_name: str, value: Optional[float]) -> None:
    if value is not None and value < 0:
        raise ValidationError(field_name, f"must be >= 0, got {value}")


@dataclass
class Holiday:
    """A public or company holiday, optionally restricted to locations."""
    holiday_date: date
    name: str = ""
    id: Optional[str] = None
    recurring: bool = False
    locations: Optional[list[str]] = None  # None = global
    holiday_type: HolidayType = HolidayType.PUBLIC

    @property
    def is_global(self) -> bool:
        return self.locations is None

    def applies_to(self, location: Optional[str]) -> bool:
        """Global holidays apply everywhere; others only to listed locations."""
        if not location or self.locations is None:
            return True
        return location in self.locations

    def falls_on(self, day: date) -> bool:
        """Check a date against this holiday, projecting recurring month/day."""
        if self.recurring:
            return (self.holiday_date.month, self.holiday_date.day) == (day.month, day.day)
        return self.holiday_date == day


@dataclass
class SprintEvent:
    """A dated event inside a sprint. HOLIDAY events count as non-working days."""
    id: str
    event_type: EventType
    name: str
    event_date: date
    event_subtype: Optional[MeetingType] = None
    event_time: Optional[time] = None
    duration_minutes: Optional[int] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class LeaveDay:
    """A single day of leave for a member, optionally flagged to one sprint."""
    member_id: str
    leave_date: date
    sprint_id: Optional[str] = None
    leave_type: LeaveType = LeaveType.PERSONAL


@dataclass
class TeamMember:
    """A team member with daily capacity in hours."""
    id: str
    daily_capacity: float
    name: str = ""
    role: Role = Role.BACKEND
    active: bool = True
    email: Optional[str] = None
    location: Optional[str] = None
    leave_days: list[LeaveDay] = field(default_factory=list)

    def __post_init__(self):
        if self.daily_capacity is None or self.daily_capacity <= 0:
            raise ValidationError("daily_capacity", f"must be > 0 for member {self.id}, got {self.daily_capacity}")

        # Ordered, one record per date
        unique = {}
        for leave in self.leave_days:
            unique.setdefault(leave.leave_date, leave)
        self.leave_days = [unique[d] for d in sorted(unique)]

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def leave_dates(self) -> list[date]:
        return [leave.leave_date for leave in self.leave_days]

    def leave_days_in_range(self, start: date, end: date, sprint_id: Optional[str] = None) -> list[LeaveDay]:
        """
        Leave records dated within [start, end].

        Records flagged to a different sprint are left out.
        """
        return [
            leave for leave in self.leave_days
            if start <= leave.leave_date <= end
            and (leave.sprint_id is None or sprint_id is None or leave.sprint_id == sprint_id)
        ]


@dataclass
class RiskAssessment:
    """
    Derived risk classification for a task.

    This is a recomputed cache, never a source of truth: computed_at marks
    when it was produced and each re-run overwrites it.
    """
    task_id: str
    risk_factor: RiskFactor
    reason: str
    computed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "task_id": self.task_id,
            "risk_factor": self.risk_factor.value,
            "reason": self.reason,
            "computed_at": self.computed_at.isoformat(),
        }


@dataclass
class Task:
    """A unit of sprint work with estimates in hours."""
    id: str
    story_points: float = 0.0
    time_spent: float = 0.0
    original_estimate: Optional[float] = None
    key: Optional[str] = None
    summary: str = ""
    sprint_id: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    category: TaskCategory = TaskCategory.OTHER
    priority: TaskPriority = TaskPriority.MEDIUM
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    assignee_ids: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    risk: Optional[RiskAssessment] = None

    def __post_init__(self):
        if self.story_points is None:
            self.story_points = 0.0
        if self.time_spent is None:
            self.time_spent = 0.0
        _require_non_negative("story_points", self.story_points)
        _require_non_negative("time_spent", self.time_spent)
        _require_non_negative("original_estimate", self.original_estimate)

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE

    @property
    def effective_estimate(self) -> float:
        """Original estimate when positive, otherwise story points."""
        if self.original_estimate is not None and self.original_estimate > 0:
            return self.original_estimate
        return self.story_points

    @property
    def display_key(self) -> str:
        return self.key or self.id

    def is_assigned_to(self, member_id: str) -> bool:
        return member_id in self.assignee_ids

    def belongs_to(self, sprint_id: str) -> bool:
        """Tasks without a sprint reference are taken as part of the snapshot's sprint."""
        return self.sprint_id is None or self.sprint_id == sprint_id


@dataclass
class Sprint:
    """A sprint of `duration` working days."""
    id: str
    start_date: date
    duration: int
    end_date: Optional[date] = None
    name: str = ""
    freeze_date: Optional[date] = None
    status: SprintStatus = SprintStatus.ACTIVE
    events: list[SprintEvent] = field(default_factory=list)
    member_ids: list[str] = field(default_factory=list)
    task_ids: list[str] = field(default_factory=list)

    def __post_init__(self):
        if self.start_date is None:
            raise ValidationError("start_date", f"is required for sprint {self.id}")
        if isinstance(self.duration, bool) or not isinstance(self.duration, int) or self.duration <= 0:
            raise ValidationError("duration", f"must be a positive number of working days, got {self.duration!r}")
        if self.end_date is not None and self.start_date > self.end_date:
            raise ValidationError(
                "end_date",
                f"{self.end_date.isoformat()} is before start date {self.start_date.isoformat()}"
            )
        self.events = sorted(self.events, key=lambda e: (e.event_date, e.event_time or time.min))

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def is_archived(self) -> bool:
        return self.status == SprintStatus.ARCHIVED

    @property
    def holiday_event_dates(self) -> list[date]:
        return [e.event_date for e in self.events if e.event_type == EventType.HOLIDAY]

    def require_end_date(self) -> date:
        if self.end_date is None:
            raise ValidationError("end_date", f"is required for sprint {self.id}")
        return self.end_date


@dataclass
class SprintSnapshot:
    """A sprint together with the members, tasks and holidays it refers to."""
    sprint: Sprint
    members: list[TeamMember] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    holidays: list[Holiday] = field(default_factory=list)

    def require_complete(self) -> "SprintSnapshot":
        """Fail when the sprint references members or tasks that are not in the snapshot."""
        member_ids = {m.id for m in self.members}
        task_ids = {t.id for t in self.tasks}

        missing_members = [mid for mid in self.sprint.member_ids if mid not in member_ids]
        missing_tasks = [tid for tid in self.sprint.task_ids if tid not in task_ids]

        if missing_members or missing_tasks:
            raise IncompleteSnapshotError(self.sprint.id, missing_members, missing_tasks)
        return self

    @property
    def sprint_tasks(self) -> list[Task]:
        return [t for t in self.tasks if t.belongs_to(self.sprint.id)]

    def tasks_for(self, member_id: str) -> list[Task]:
        return [t for t in self.sprint_tasks if t.is_assigned_to(member_id)]

    def member(self, member_id: str) -> TeamMember:
        for m in self.members:
            if m.id == member_id:
                return m
        raise NotFoundError("member", member_id)

    def task(self, task_id: str) -> Task:
        for t in self.tasks:
            if t.id == task_id:
                return t
        raise NotFoundError("task", task_id)
