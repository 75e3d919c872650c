"""JSON adapter for planner events."""

from __future__ import annotations

import json

from day_planner.schema import Event

_REQUIRED_FIELDS = {"id", "start_time", "end_time"}


def _parse_item(item: dict, index: int) -> Event:
    if not isinstance(item, dict):
        raise ValueError(f"Item {index}: expected an object")
    missing = sorted(field for field in _REQUIRED_FIELDS if not item.get(field))
    if missing:
        raise ValueError(f"Item {index}: missing required fields {missing}")

    is_recurring = item.get("is_recurring", False)
    if not isinstance(is_recurring, bool):
        raise ValueError(f"Item {index}: is_recurring must be true or false")

    days = item.get("recurrence_days") or []
    if not isinstance(days, list) or not all(isinstance(day, int) and not isinstance(day, bool) for day in days):
        raise ValueError(f"Item {index}: recurrence_days must be a list of integers")

    if not is_recurring and not item.get("date"):
        raise ValueError(f"Item {index}: one-off events need a date")

    category_raw = item.get("category")
    try:
        return Event.from_strings(
            id=str(item["id"]).strip(),
            title=str(item.get("title") or "").strip(),
            start_time=str(item["start_time"]),
            end_time=str(item["end_time"]),
            date=item.get("date") or None,
            is_recurring=is_recurring,
            recurrence_days=days if is_recurring else None,
            category=str(category_raw).strip() if category_raw else None,
        )
    except ValueError as exc:
        raise ValueError(f"Item {index}: {exc}") from exc


def parse(file_path: str) -> list[Event]:
    """Parse JSON file into events."""

    with open(file_path, encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, list):
        raise ValueError("JSON payload must be a list of objects")

    return [_parse_item(item, i) for i, item in enumerate(payload, start=1)]
