"""
Sprint date calculation: end date and code-freeze dates.
"""

from dataclasses import dataclass
from datetime import date
from typing import Container, Optional

from .calendar import HolidayCalendar, add_working_days, previous_working_day
from .errors import ValidationError
from .logging import get_logger

logger = get_logger(__name__)


@dataclass
class SprintDates:
    """Derived sprint dates. Both freeze variants are returned; callers pick one."""
    start_date: date
    duration: int
    end_date: date
    freeze_date_from_start: date
    freeze_date_from_end: date

    def to_dict(self) -> dict:
        return {
            "start_date": self.start_date.isoformat(),
            "duration": self.duration,
            "end_date": self.end_date.isoformat(),
            "freeze_date_from_start": self.freeze_date_from_start.isoformat(),
            "freeze_date_from_end": self.freeze_date_from_end.isoformat(),
        }


def _validate_duration(duration) -> int:
    if duration is None or isinstance(duration, bool) or not isinstance(duration, int):
        raise ValidationError("duration", f"must be a whole number of working days, got {duration!r}")
    if duration <= 0:
        raise ValidationError("duration", f"must be > 0, got {duration}")
    return duration


class SprintDateCalculator:
    """
    Derives sprint end and freeze dates over a holiday calendar.

    Usage:
        calculator = SprintDateCalculator(HolidayCalendar(holidays))
        dates = calculator.calculate(date(2024, 1, 1), duration=10)
    """

    def __init__(self, holidays: Optional[Container[date]] = None, freeze_days_before: int = 2):
        self.holidays = holidays if holidays is not None else HolidayCalendar()
        self.freeze_days_before = freeze_days_before

    def end_date(self, start_date: date, duration: int) -> date:
        """Last working day of a sprint of `duration` working days."""
        duration = _validate_duration(duration)
        return add_working_days(start_date, duration, self.holidays)

    def freeze_date_from_start(self, start_date: date, duration: int) -> date:
        """Freeze date counted forward: the (duration - 2)-th working day."""
        duration = _validate_duration(duration)
        return add_working_days(start_date, duration - 2, self.holidays)

    def freeze_date_from_end(self, end_date: date, days_before: Optional[int] = None) -> date:
        """Freeze date counted backward `days_before` working days from the end date."""
        if days_before is None:
            days_before = self.freeze_days_before
        if days_before < 0:
            raise ValidationError("days_before", f"must be >= 0, got {days_before}")

        freeze_date = end_date
        for _ in range(days_before):
            freeze_date = previous_working_day(freeze_date, self.holidays)

        return freeze_date

    def calculate(self, start_date: date, duration: int) -> SprintDates:
        """End date plus both freeze-date variants."""
        end = self.end_date(start_date, duration)
        dates = SprintDates(
            start_date=start_date,
            duration=duration,
            end_date=end,
            freeze_date_from_start=self.freeze_date_from_start(start_date, duration),
            freeze_date_from_end=self.freeze_date_from_end(end),
        )
        logger.debug(
            "sprint_dates_calculated",
            start=start_date.isoformat(),
            duration=duration,
            end=end.isoformat(),
        )
        return dates


def calculate_sprint_dates(
    start_date: date,
    duration: int,
    holidays: Optional[Container[date]] = None
) -> SprintDates:
    """
    Quick function to derive sprint dates.

    Example:
        dates = calculate_sprint_dates(date(2024, 1, 1), 10)
        dates.end_date  # date(2024, 1, 12)
    """
    return SprintDateCalculator(holidays).calculate(start_date, duration)
