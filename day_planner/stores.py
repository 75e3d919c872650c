"""Settings and event stores the planner core talks to."""

from __future__ import annotations

import json
import logging
from datetime import time
from pathlib import Path
from typing import Iterable, Protocol

from day_planner.errors import CommitRejectedError
from day_planner.layout import event_interval
from day_planner.recurrence import occurs_on
from day_planner.schema import Event, NotificationSettings

logger = logging.getLogger(__name__)

SETTINGS_KEY = "notification_settings"
ALL_WEEKDAYS = frozenset(range(7))


class SettingsStore(Protocol):
    def get(self) -> NotificationSettings: ...

    def set(self, settings: NotificationSettings) -> None: ...


class EventStore(Protocol):
    def list_events(self) -> list[Event]: ...

    def update_times(self, event_id: str, start_time: time, end_time: time) -> Event: ...

    def set_status(self, event_id: str, status: str) -> None: ...


class InMemorySettingsStore:
    def __init__(self, settings: NotificationSettings | None = None) -> None:
        self._settings = settings or NotificationSettings()

    def get(self) -> NotificationSettings:
        return NotificationSettings(self._settings.enabled, self._settings.minutes_before)

    def set(self, settings: NotificationSettings) -> None:
        self._settings = NotificationSettings(settings.enabled, settings.minutes_before)


class JsonSettingsStore:
    """Key-value JSON file holding the notification settings.

    A missing or unreadable file yields the default settings.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.error("Could not read settings file %s", self.path, exc_info=True)
            return {}
        return payload if isinstance(payload, dict) else {}

    def get(self) -> NotificationSettings:
        stored = self._read().get(SETTINGS_KEY)
        if not isinstance(stored, dict):
            return NotificationSettings()
        try:
            return NotificationSettings.from_dict(stored)
        except (TypeError, ValueError):
            logger.error("Ignoring malformed notification settings in %s", self.path, exc_info=True)
            return NotificationSettings()

    def set(self, settings: NotificationSettings) -> None:
        payload = self._read()
        payload[SETTINGS_KEY] = settings.to_dict()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def _weekdays(event: Event) -> frozenset[int]:
    return frozenset(event.recurrence_days) if event.recurrence_days else ALL_WEEKDAYS


def _share_a_day(a: Event, b: Event) -> bool:
    if not a.is_recurring and not b.is_recurring:
        return a.date is not None and a.date == b.date
    if not a.is_recurring:
        return a.date is not None and occurs_on(b, a.date)
    if not b.is_recurring:
        return b.date is not None and occurs_on(a, b.date)
    return bool(_weekdays(a) & _weekdays(b))


def _intervals_overlap(a: Event, b: Event) -> bool:
    a_start, a_end = event_interval(a)
    b_start, b_end = event_interval(b)
    return a_start < b_end and b_start < a_end


class InMemoryEventStore:
    """Dictionary-backed event store.

    With ``reject_conflicts`` set, moving an event onto a time already taken
    by another event on a shared day raises :class:`CommitRejectedError`.
    """

    def __init__(self, events: Iterable[Event] = (), reject_conflicts: bool = False) -> None:
        self._events: dict[str, Event] = {event.id: event for event in events}
        self.reject_conflicts = reject_conflicts

    def list_events(self) -> list[Event]:
        return list(self._events.values())

    def get(self, event_id: str) -> Event:
        try:
            return self._events[event_id]
        except KeyError as exc:
            raise KeyError(f"unknown event {event_id}") from exc

    def add(self, event: Event) -> None:
        self._events[event.id] = event

    def update_times(self, event_id: str, start_time: time, end_time: time) -> Event:
        if event_id not in self._events:
            raise CommitRejectedError(f"event {event_id} no longer exists")
        moved = self._events[event_id].with_times(start_time, end_time)
        if self.reject_conflicts:
            for other in self._events.values():
                if other.id != event_id and _share_a_day(moved, other) and _intervals_overlap(moved, other):
                    raise CommitRejectedError(f"event {event_id} would overlap event {other.id}")
        self._events[event_id] = moved
        return moved

    def set_status(self, event_id: str, status: str) -> None:
        self.get(event_id).status = status
