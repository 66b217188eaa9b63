"""
Working-day calendar for sprint planning.

Weekends are never working days. Holidays come from explicit dates, from
recurring holidays whose month/day repeats every year, and from sprint
HOLIDAY events, optionally restricted to a location.
"""

from datetime import date, timedelta
from typing import Container, Iterable, Iterator, Optional

from .models import Holiday

ONE_DAY = timedelta(days=1)


def is_weekend(day: date) -> bool:
    """Saturday or Sunday."""
    return day.weekday() >= 5  # Monday = 0, Sunday = 6


def is_working_day(day: date, holidays: Container[date]) -> bool:
    """A day that is neither a weekend day nor in the holiday set."""
    return not is_weekend(day) and day not in holidays


def iter_days(start: date, end: date) -> Iterator[date]:
    """Every calendar day in [start, end]."""
    current = start
    while current <= end:
        yield current
        current += ONE_DAY


def working_days_between(start: date, end: date, holidays: Container[date]) -> int:
    """Inclusive count of working days in [start, end]."""
    return sum(1 for day in iter_days(start, end) if is_working_day(day, holidays))


def add_working_days(start: date, days: int, holidays: Container[date]) -> date:
    """
    Date of the `days`-th working day counting from `start`.

    `start` is first moved forward to a working day; that anchor is day 1.
    Returns `start` unchanged when `days` <= 0.
    """
    if days <= 0:
        return start

    result = start
    while not is_working_day(result, holidays):
        result += ONE_DAY

    added = 0
    while added < days - 1:
        result += ONE_DAY
        if is_working_day(result, holidays):
            added += 1

    return result


def next_working_day(day: date, holidays: Container[date]) -> date:
    """First working day strictly after `day`."""
    candidate = day + ONE_DAY
    while not is_working_day(candidate, holidays):
        candidate += ONE_DAY
    return candidate


def previous_working_day(day: date, holidays: Container[date]) -> date:
    """Last working day strictly before `day`."""
    candidate = day - ONE_DAY
    while not is_working_day(candidate, holidays):
        candidate -= ONE_DAY
    return candidate


def filter_by_location(holidays: Iterable[Holiday], location: Optional[str]) -> list[Holiday]:
    """Keep global holidays and holidays listing `location`."""
    return [h for h in holidays if h.applies_to(location)]


def _project(holiday: Holiday, year: int) -> Optional[date]:
    try:
        return holiday.holiday_date.replace(year=year)
    except ValueError:
        # 29 February has no counterpart in non-leap years
        return None


def build_holiday_set(
    holidays: Iterable[Holiday],
    start: date,
    end: date,
    location: Optional[str] = None
) -> frozenset[date]:
    """
    Effective holiday dates within [start, end].

    Explicit holidays inside the range plus every recurring holiday projected
    onto each year the range overlaps.
    """
    dates = set()

    for holiday in filter_by_location(holidays, location):
        if holiday.recurring:
            for year in range(start.year, end.year + 1):
                projected = _project(holiday, year)
                if projected and start <= projected <= end:
                    dates.add(projected)
        elif start <= holiday.holiday_date <= end:
            dates.add(holiday.holiday_date)

    return frozenset(dates)


def is_holiday(day: date, holidays: Iterable[Holiday], location: Optional[str] = None) -> bool:
    """Exact date match, or month/day match for recurring holidays."""
    return any(h.falls_on(day) for h in filter_by_location(holidays, location))


class HolidayCalendar:
    """
    Holiday lookup usable wherever a set of holiday dates is expected.

    Usage:
        calendar = HolidayCalendar(holidays, location="IN")
        is_working_day(day, calendar)
        add_working_days(start, 10, calendar)
    """

    def __init__(
        self,
        holidays: Optional[Iterable[Holiday]] = None,
        location: Optional[str] = None,
        extra_dates: Iterable[date] = ()
    ):
        self.location = location
        self.holidays = filter_by_location(holidays or [], location)
        self.extra_dates = frozenset(extra_dates)
        self._explicit = {h.holiday_date for h in self.holidays if not h.recurring} | self.extra_dates
        self._recurring = {
            (h.holiday_date.month, h.holiday_date.day) for h in self.holidays if h.recurring
        }

    def __contains__(self, day: object) -> bool:
        if not isinstance(day, date):
            return False
        return day in self._explicit or (day.month, day.day) in self._recurring

    def is_holiday(self, day: date) -> bool:
        return day in self

    def is_working_day(self, day: date) -> bool:
        return is_working_day(day, self)

    def holiday_set(self, start: date, end: date) -> frozenset[date]:
        """Holiday dates within [start, end], including extra dates."""
        in_range = {d for d in self.extra_dates if start <= d <= end}
        return build_holiday_set(self.holidays, start, end) | in_range

    def with_dates(self, extra_dates: Iterable[date]) -> "HolidayCalendar":
        """A copy that also treats `extra_dates` as holidays."""
        return HolidayCalendar(self.holidays, self.location, self.extra_dates | set(extra_dates))

    @classmethod
    def for_sprint(cls, sprint, holidays: Optional[Iterable[Holiday]] = None, location: Optional[str] = None):
        """Calendar including the sprint's HOLIDAY events."""
        return cls(holidays, location, sprint.holiday_event_dates)
