"""Demo script for day-planner."""

import logging
import sys
from datetime import date, datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from day_planner.adapters.csv_adapter import parse
from day_planner.planner import DayPlanner
from day_planner.reminders import InMemoryNotificationBackend, ReminderScheduler
from day_planner.stores import InMemoryEventStore, InMemorySettingsStore
from day_planner.schema import NotificationSettings


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    day = date(2026, 10, 19)
    now = datetime(2026, 10, 19, 8, 0)
    store = InMemoryEventStore(parse("examples/sample_events.csv"), reject_conflicts=True)
    scheduler = ReminderScheduler(
        InMemoryNotificationBackend(),
        settings_store=InMemorySettingsStore(NotificationSettings(minutes_before=10)),
        event_store=store,
        now=lambda: now,
    )
    planner = DayPlanner(store, scheduler)

    print("Reminders registered:", len(planner.refresh_reminders(day)))
    positions = planner.positions_for(day)
    for position in positions:
        print(
            f"{position.event.title:<16} top={position.top:6.1f} height={position.height:5.1f} "
            f"column={position.column + 1}/{position.total_columns}"
        )

    gym = next(position for position in positions if position.event.id == "gym")
    controller = planner.controller_for(gym, day)
    controller.press()
    controller.move(0, 37)
    controller.release(0, 37)
    moved = store.get("gym")
    print("Gym moved to", moved.start_time, "-", moved.end_time)
    print("Reminders scheduled:", scheduler.scheduled_count())


if __name__ == "__main__":
    main()
