from datetime import date, datetime, time

import pytest

from day_planner.errors import CommitRejectedError
from day_planner.planner import DayPlanner
from day_planner.reminders import InMemoryNotificationBackend, ReminderScheduler
from day_planner.schema import Event, NotificationSettings
from day_planner.stores import InMemoryEventStore, InMemorySettingsStore

DAY = date(2026, 10, 19)


def build(reject_conflicts=False):
    store = InMemoryEventStore(
        [
            Event.from_strings("gym", "07:00:00", "07:30:00", title="Gym", date="2026-10-19"),
            Event.from_strings("call", "08:00:00", "08:30:00", title="Call", date="2026-10-19"),
        ],
        reject_conflicts=reject_conflicts,
    )
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(
        backend,
        settings_store=InMemorySettingsStore(NotificationSettings(minutes_before=10)),
        event_store=store,
        now=lambda: datetime(2026, 10, 19, 6, 0),
    )
    return store, backend, DayPlanner(store, scheduler)


def triggers(backend, event_id):
    return [record.trigger_instant for record in backend.list_all() if record.event_id == event_id]


def test_positions_for_day():
    _, _, planner = build()
    positions = planner.positions_for(DAY)
    assert [(position.event.id, position.top) for position in positions] == [("gym", 160), ("call", 240)]
    assert planner.positions_for(date(2026, 10, 20)) == []


def test_drop_persists_and_reschedules_reminder():
    store, backend, planner = build()
    planner.refresh_reminders(DAY)
    assert triggers(backend, "gym") == [datetime(2026, 10, 19, 6, 50)]

    position = planner.positions_for(DAY)[0]
    controller = planner.controller_for(position, DAY)
    controller.move(0, 37)
    controller.release(0, 37)

    assert store.get("gym").start_time == time(7, 30)
    assert store.get("gym").end_time == time(8, 0)
    assert controller.original_top == 200
    assert triggers(backend, "gym") == [datetime(2026, 10, 19, 7, 20)]
    assert triggers(backend, "call") == [datetime(2026, 10, 19, 7, 50)]


def test_rejected_drop_rolls_back_card():
    store, backend, planner = build(reject_conflicts=True)
    planner.refresh_reminders(DAY)
    position = planner.positions_for(DAY)[0]
    controller = planner.controller_for(position, DAY)
    controller.move(0, 80)
    with pytest.raises(CommitRejectedError):
        controller.release(0, 80)
    assert controller.top == 160
    assert store.get("gym").start_time == time(7, 0)
    assert triggers(backend, "gym") == [datetime(2026, 10, 19, 6, 50)]


def test_tap_opens_event_without_saving():
    store, _, planner = build()
    opened = []
    position = planner.positions_for(DAY)[0]
    controller = planner.controller_for(position, DAY, on_click=lambda: opened.append(position.event.id))
    controller.release(0, 1)
    assert opened == ["gym"]
    assert store.get("gym").start_time == time(7, 0)
