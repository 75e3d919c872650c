"""Print a day's layout and the reminders a reschedule pass would register."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from day_planner.adapters import csv_adapter, json_adapter
from day_planner.layout import positions_for_date
from day_planner.reminders import InMemoryNotificationBackend, ReminderScheduler
from day_planner.schema import NotificationSettings, event_to_dict


def _load_events(path: Path):
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(str(path))
    if suffix == ".json":
        return json_adapter.parse(str(path))
    raise ValueError("Unsupported input format, expected .csv or .json")


def build_report(events: list, day: date, now: datetime, settings: NotificationSettings) -> dict:
    positions = positions_for_date(events, day)
    backend = InMemoryNotificationBackend()
    with ReminderScheduler(backend, now=lambda: now) as scheduler:
        scheduler.reschedule_all(events, settings, selected_date=day)

    return {
        "date": day.isoformat(),
        "layout": [
            {
                **event_to_dict(position.event),
                "top": position.top,
                "height": position.height,
                "column": position.column,
                "total_columns": position.total_columns,
            }
            for position in positions
        ],
        "reminders": [
            {"event_id": record.event_id, "trigger": record.trigger_instant.isoformat(timespec="minutes")}
            for record in sorted(backend.list_all(), key=lambda r: (r.trigger_instant, r.event_id or ""))
        ],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Lay out a day and preview its reminders")
    parser.add_argument("--data", required=True, help="Path to CSV/JSON events file")
    parser.add_argument("--date", default=None, help="Day to show (YYYY-MM-DD), defaults to today")
    parser.add_argument("--now", default=None, help="Reference time (ISO format), defaults to now")
    parser.add_argument("--minutes-before", type=int, default=0, help="Reminder lead time in minutes")
    parser.add_argument("--disabled", action="store_true", help="Preview with notifications disabled")
    parser.add_argument("--verbose", action="store_true", help="Log scheduling decisions to stderr")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    now = datetime.fromisoformat(args.now) if args.now else datetime.now()
    day = date.fromisoformat(args.date) if args.date else now.date()
    settings = NotificationSettings(enabled=not args.disabled, minutes_before=args.minutes_before)

    events = _load_events(Path(args.data))
    report = build_report(events, day, now, settings)
    print(json.dumps(report, indent=2))


if __name__ == "__main__":
    main()
