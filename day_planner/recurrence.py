"""Expansion of recurring events into concrete occurrence dates."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from dateutil.rrule import DAILY, weekday, rrule

from day_planner.config import DEFAULT_CONFIG, PlannerConfig
from day_planner.errors import InvalidEventError
from day_planner.schema import Daily, Event, OnDays


def sunday_index(day: date) -> int:
    """Weekday index with 0=Sunday .. 6=Saturday."""

    return (day.weekday() + 1) % 7


def _to_rrule_weekday(index: int) -> weekday:
    # dateutil counts Monday as 0.
    return weekday((index - 1) % 7)


def expand_occurrences(event: Event, today: date, horizon_days: int | None = None,
                       config: PlannerConfig = DEFAULT_CONFIG) -> rrule:
    """Occurrences of ``event`` within ``[today, today + horizon_days)``.

    The returned rule is lazy and can be iterated any number of times; every
    iteration yields the same datetimes (midnight of each occurrence date).
    """

    recurrence = event.recurrence
    if recurrence is None:
        raise InvalidEventError(f"event {event.id} is not recurring")

    horizon = config.horizon_days if horizon_days is None else horizon_days
    if horizon < 1:
        raise ValueError(f"horizon_days must be at least 1, got {horizon}")

    start = datetime.combine(today, datetime.min.time())
    until = start + timedelta(days=horizon - 1)
    if isinstance(recurrence, Daily):
        return rrule(DAILY, dtstart=start, until=until)
    days = tuple(_to_rrule_weekday(index) for index in sorted(recurrence.days))
    return rrule(DAILY, dtstart=start, until=until, byweekday=days)


def occurrence_dates(event: Event, today: date, horizon_days: int | None = None,
                     config: PlannerConfig = DEFAULT_CONFIG) -> list[date]:
    """Materialised list of occurrence dates, in ascending order."""

    return [moment.date() for moment in expand_occurrences(event, today, horizon_days, config)]


def occurs_on(event: Event, day: date) -> bool:
    """Whether ``event`` appears on the calendar on ``day``."""

    recurrence = event.recurrence
    if recurrence is None:
        return event.date == day
    if isinstance(recurrence, OnDays):
        return sunday_index(day) in recurrence.days
    return True
