"""CSV adapter for planner events."""

from __future__ import annotations

import csv
import re

from day_planner.schema import Event

_REQUIRED_FIELDS = {"id", "start_time", "end_time"}
_TRUE_VALUES = {"1", "true", "yes", "y"}
_FALSE_VALUES = {"", "0", "false", "no", "n"}


def _parse_flag(raw: str | None, row_number: int) -> bool:
    value = (raw or "").strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"Row {row_number}: invalid is_recurring '{raw}'")


def _parse_days(raw: str | None, row_number: int) -> list[int]:
    parts = [part for part in re.split(r"[;,\s]+", (raw or "").strip()) if part]
    try:
        return [int(part) for part in parts]
    except ValueError as exc:
        raise ValueError(f"Row {row_number}: invalid recurrence_days '{raw}'") from exc


def _parse_row(row: dict, row_number: int) -> Event:
    missing = sorted(field for field in _REQUIRED_FIELDS if not row.get(field))
    if missing:
        raise ValueError(f"Row {row_number}: missing required fields {missing}")

    is_recurring = _parse_flag(row.get("is_recurring"), row_number)
    days = _parse_days(row.get("recurrence_days"), row_number)
    date_raw = (row.get("date") or "").strip()
    if not is_recurring and not date_raw:
        raise ValueError(f"Row {row_number}: one-off events need a date")

    category_raw = row.get("category")
    try:
        return Event.from_strings(
            id=row["id"].strip(),
            title=(row.get("title") or "").strip(),
            start_time=row["start_time"],
            end_time=row["end_time"],
            date=date_raw or None,
            is_recurring=is_recurring,
            recurrence_days=days if is_recurring else None,
            category=category_raw.strip() if category_raw else None,
        )
    except ValueError as exc:
        raise ValueError(f"Row {row_number}: {exc}") from exc


def parse(file_path: str) -> list[Event]:
    """Parse CSV file into a list of events."""

    with open(file_path, newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            return []

        events: list[Event] = []
        for row_number, row in enumerate(reader, start=2):
            events.append(_parse_row(row, row_number))
        return events
