"""Core data schema for planner events, layout output and reminders."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional, Union

from day_planner.errors import InvalidEventError, InvalidTimeError
from day_planner.time_coordinate import duration_minutes, format_time_of_day, parse_time_of_day

REMINDER_LEAD_OPTIONS = {
    0: "At event time",
    5: "5 minutes before",
    10: "10 minutes before",
    15: "15 minutes before",
    30: "30 minutes before",
}


@dataclass(frozen=True)
class Daily:
    """Recurs on every day of the week."""


@dataclass(frozen=True)
class OnDays:
    """Recurs on a fixed set of weekdays (0=Sunday .. 6=Saturday)."""

    days: frozenset[int]


Recurrence = Union[Daily, OnDays]


def _normalize_days(days) -> Optional[frozenset[int]]:
    if days is None:
        return None
    normalized = frozenset(int(day) for day in days)
    bad = sorted(day for day in normalized if not 0 <= day <= 6)
    if bad:
        raise InvalidEventError(f"recurrence days must be within 0..6, got {bad}")
    return normalized


@dataclass
class Event:
    """A calendar entry as supplied by the event store.

    Times are wall-clock local. ``date`` is set for one-off events and left
    empty for recurring ones. An ``end_time`` equal to the day start (05:00)
    means the event runs to the end of the logical day.
    Positions are whole minutes: seconds on a start are dropped and a
    sub-minute end rounds up to the next minute.
    """

    id: str
    title: str
    start_time: time
    end_time: time
    date: Optional[date] = None
    is_recurring: bool = False
    recurrence_days: Optional[frozenset[int]] = None
    category: Optional[str] = None
    status: str = "scheduled"

    def __post_init__(self) -> None:
        self.recurrence_days = _normalize_days(self.recurrence_days)
        try:
            duration_minutes(self.start_time, self.end_time)
        except InvalidTimeError as exc:
            raise InvalidEventError(f"event {self.id}: {exc}") from exc
        if not self.is_recurring and self.recurrence_days:
            raise InvalidEventError(f"event {self.id}: recurrence days given for a one-off event")

    @classmethod
    def from_strings(
        cls,
        id: str,
        start_time: str,
        end_time: str,
        title: str = "",
        date: Optional[str] = None,
        is_recurring: bool = False,
        recurrence_days=None,
        category: Optional[str] = None,
    ) -> "Event":
        """Build an event from ``HH:MM:SS`` and ``YYYY-MM-DD`` strings."""

        return cls(
            id=str(id),
            title=title or str(id),
            start_time=parse_time_of_day(start_time),
            end_time=parse_time_of_day(end_time),
            date=datetime.strptime(date, "%Y-%m-%d").date() if date else None,
            is_recurring=is_recurring,
            recurrence_days=recurrence_days,
            category=category,
        )

    @property
    def recurrence(self) -> Optional[Recurrence]:
        """Explicit recurrence variant; ``None`` for one-off events."""

        if not self.is_recurring:
            return None
        if not self.recurrence_days:
            return Daily()
        return OnDays(self.recurrence_days)

    @property
    def duration_minutes(self) -> int:
        return duration_minutes(self.start_time, self.end_time)

    def with_times(self, start_time: time, end_time: time) -> "Event":
        """Copy of this event moved to new times."""

        return Event(
            id=self.id,
            title=self.title,
            start_time=start_time,
            end_time=end_time,
            date=self.date,
            is_recurring=self.is_recurring,
            recurrence_days=self.recurrence_days,
            category=self.category,
            status=self.status,
        )


@dataclass
class EventPosition:
    """Pixel placement of one event for a single rendering pass."""

    event: Event
    top: float
    height: float
    column: int = 0
    total_columns: int = 1


@dataclass
class NotificationSettings:
    enabled: bool = True
    minutes_before: int = 0

    def __post_init__(self) -> None:
        if self.minutes_before < 0:
            raise ValueError(f"minutes_before must be non-negative, got {self.minutes_before}")

    @property
    def lead_label(self) -> str:
        return REMINDER_LEAD_OPTIONS.get(self.minutes_before, f"{self.minutes_before} minutes before")

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "minutesBefore": self.minutes_before}

    @classmethod
    def from_dict(cls, payload: dict) -> "NotificationSettings":
        return cls(
            enabled=bool(payload.get("enabled", True)),
            minutes_before=int(payload.get("minutesBefore", payload.get("minutes_before", 0))),
        )


@dataclass
class ReminderContent:
    """Notification payload handed to the backend."""

    title: str
    body: str
    data: dict = field(default_factory=dict)
    category: str = "event"
    sound: bool = True

    @property
    def event_id(self) -> Optional[str]:
        return self.data.get("eventId")


@dataclass
class ReminderRecord:
    """One reminder as reported by the notification backend."""

    notification_id: str
    event_id: Optional[str]
    trigger_instant: datetime
    content: Optional[ReminderContent] = None


def format_time(value: time) -> str:
    """12-hour display time, e.g. ``7:05 PM``."""

    hour = value.hour
    suffix = "PM" if hour >= 12 else "AM"
    display_hour = 12 if hour == 0 else hour - 12 if hour > 12 else hour
    return f"{display_hour}:{value.minute:02d} {suffix}"


def time_range_label(event: Event) -> str:
    label = f"{format_time(event.start_time)} - {format_time(event.end_time)}"
    if event.category:
        label += f" • {event.category}"
    return label


def event_to_dict(event: Event) -> dict:
    """Wire representation used by the CLI and the JSON adapter."""

    return {
        "id": event.id,
        "title": event.title,
        "start_time": format_time_of_day(event.start_time),
        "end_time": format_time_of_day(event.end_time),
        "date": event.date.isoformat() if event.date else None,
        "is_recurring": event.is_recurring,
        "recurrence_days": sorted(event.recurrence_days) if event.recurrence_days else [],
        "category": event.category,
    }
