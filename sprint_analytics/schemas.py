"""
Snapshot schemas

Pydantic models for the payloads collaborators hand to the engine. Keys may
be camelCase (as sent by the service layer) or snake_case. Parsing failures
surface as ValidationError naming the offending field path.
"""

from datetime import date, datetime, time
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .calendar import HolidayCalendar
from .errors import ValidationError
from .logging import get_logger
from .models import (
    EventType,
    Holiday,
    HolidayType,
    LeaveDay,
    LeaveType,
    MeetingType,
    Role,
    Sprint,
    SprintEvent,
    SprintSnapshot,
    SprintStatus,
    Task,
    TaskCategory,
    TaskPriority,
    TaskStatus,
    TeamMember,
)
from .sprint_dates import SprintDateCalculator

logger = get_logger(__name__)


class SnapshotModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HolidaySchema(SnapshotModel):
    holiday_date: date = Field(..., validation_alias=AliasChoices("date", "holidayDate", "holiday_date"))
    recurring: bool = False
    locations: Optional[list[str]] = None
    name: str = ""
    id: Optional[str] = None
    holiday_type: HolidayType = HolidayType.PUBLIC

    def to_domain(self) -> Holiday:
        return Holiday(
            holiday_date=self.holiday_date,
            name=self.name,
            id=self.id,
            recurring=self.recurring,
            locations=self.locations,
            holiday_type=self.holiday_type,
        )


class SprintEventSchema(SnapshotModel):
    id: str
    event_type: EventType
    name: str = ""
    event_date: date
    event_subtype: Optional[MeetingType] = None
    event_time: Optional[time] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None

    def to_domain(self) -> SprintEvent:
        return SprintEvent(**self.model_dump())


class LeaveDaySchema(SnapshotModel):
    leave_date: date
    sprint_id: Optional[str] = None
    leave_type: LeaveType = LeaveType.PERSONAL


class TeamMemberSchema(SnapshotModel):
    id: str
    name: str = ""
    role: Role = Role.BACKEND
    daily_capacity: float = Field(..., gt=0)
    active: bool = True
    email: Optional[str] = None
    location: Optional[str] = None
    leave_dates: list[date] = Field(default_factory=list)
    leave_days: list[LeaveDaySchema] = Field(default_factory=list)

    def to_domain(self) -> TeamMember:
        leaves = [LeaveDay(member_id=self.id, leave_date=d) for d in self.leave_dates]
        leaves.extend(
            LeaveDay(member_id=self.id, leave_date=l.leave_date, sprint_id=l.sprint_id, leave_type=l.leave_type)
            for l in self.leave_days
        )
        return TeamMember(
            id=self.id,
            daily_capacity=self.daily_capacity,
            name=self.name,
            role=self.role,
            active=self.active,
            email=self.email,
            location=self.location,
            leave_days=leaves,
        )


class TaskSchema(SnapshotModel):
    id: str
    key: Optional[str] = None
    summary: str = ""
    sprint_id: Optional[str] = None
    story_points: Optional[float] = Field(None, ge=0)
    original_estimate: Optional[float] = Field(None, ge=0)
    time_spent: Optional[float] = Field(None, ge=0)
    status: TaskStatus = TaskStatus.TODO
    category: Optional[TaskCategory] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    assignee_ids: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    last_modified: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("lastModified", "updatedAt", "last_modified", "updated_at")
    )

    def to_domain(self) -> Task:
        return Task(
            id=self.id,
            story_points=self.story_points or 0.0,
            time_spent=self.time_spent or 0.0,
            original_estimate=self.original_estimate,
            key=self.key,
            summary=self.summary,
            sprint_id=self.sprint_id,
            status=self.status,
            category=self.category or TaskCategory.OTHER,
            priority=self.priority,
            start_date=self.start_date,
            due_date=self.due_date,
            assignee_ids=list(self.assignee_ids),
            created_at=self.created_at,
            updated_at=self.last_modified,
        )


class SprintSchema(SnapshotModel):
    id: str
    name: str = ""
    start_date: date
    end_date: Optional[date] = None
    duration: int = Field(..., gt=0)
    freeze_date: Optional[date] = None
    status: SprintStatus = SprintStatus.ACTIVE
    events: list[SprintEventSchema] = Field(default_factory=list)
    member_ids: list[str] = Field(default_factory=list)
    task_ids: list[str] = Field(default_factory=list)

    def to_domain(self, calendar: Optional[HolidayCalendar] = None) -> Sprint:
        """Build the sprint, deriving end and freeze dates when absent."""
        events = [e.to_domain() for e in self.events]
        end_date = self.end_date
        freeze_date = self.freeze_date

        if end_date is None or freeze_date is None:
            calendar = calendar or HolidayCalendar()
            calculator = SprintDateCalculator(
                calendar.with_dates(e.event_date for e in events if e.event_type == EventType.HOLIDAY)
            )
            if end_date is None:
                end_date = calculator.end_date(self.start_date, self.duration)
                logger.debug("sprint_end_date_derived", sprint=self.id, end=end_date.isoformat())
            if freeze_date is None:
                freeze_date = calculator.freeze_date_from_start(self.start_date, self.duration)

        return Sprint(
            id=self.id,
            start_date=self.start_date,
            duration=self.duration,
            end_date=end_date,
            name=self.name,
            freeze_date=freeze_date,
            status=self.status,
            events=events,
            member_ids=list(self.member_ids),
            task_ids=list(self.task_ids),
        )


class SprintSnapshotSchema(SnapshotModel):
    sprint: SprintSchema
    members: list[TeamMemberSchema] = Field(default_factory=list)
    tasks: list[TaskSchema] = Field(default_factory=list)
    holidays: list[HolidaySchema] = Field(default_factory=list)

    def to_domain(self, location: Optional[str] = None) -> SprintSnapshot:
        holidays = [h.to_domain() for h in self.holidays]
        return SprintSnapshot(
            sprint=self.sprint.to_domain(HolidayCalendar(holidays, location)),
            members=[m.to_domain() for m in self.members],
            tasks=[t.to_domain() for t in self.tasks],
            holidays=holidays,
        )


def _field_path(location: tuple) -> str:
    return ".".join(str(part) for part in location) or "payload"


def _validate(schema: type[BaseModel], payload: Any) -> BaseModel:
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise ValidationError(_field_path(first["loc"]), first["msg"]) from e


def parse_holidays(payload: list[dict]) -> list[Holiday]:
    return [_validate(HolidaySchema, item).to_domain() for item in payload]


def parse_members(payload: list[dict]) -> list[TeamMember]:
    return [_validate(TeamMemberSchema, item).to_domain() for item in payload]


def parse_tasks(payload: list[dict]) -> list[Task]:
    return [_validate(TaskSchema, item).to_domain() for item in payload]


def parse_sprint(payload: dict, holidays: Optional[list[Holiday]] = None, location: Optional[str] = None) -> Sprint:
    return _validate(SprintSchema, payload).to_domain(HolidayCalendar(holidays, location))


def parse_snapshot(payload: dict, location: Optional[str] = None, require_complete: bool = False) -> SprintSnapshot:
    """
    Parse a full `{sprint, members, tasks, holidays}` payload.

    With `require_complete`, every member and task id the sprint references
    must be present.
    """
    snapshot = _validate(SprintSnapshotSchema, payload).to_domain(location)
    logger.debug(
        "snapshot_parsed",
        sprint=snapshot.sprint.id,
        members=len(snapshot.members),
        tasks=len(snapshot.tasks),
        holidays=len(snapshot.holidays),
    )
    if require_complete:
        snapshot.require_complete()
    return snapshot
