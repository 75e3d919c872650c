"""Logical-day time coordinates and pixel conversion.

The timeline starts at ``day_start_hour`` (05:00 by default) and runs for 24
hours, so 02:15 belongs to the same logical day as the preceding evening.
Positions on that timeline are "day offsets": whole minutes since the day
start, in ``[0, 1440)``. ``1440`` is accepted only where an interval *ends*
at the next day start. Seconds never move a start; an end with seconds
rounds up to the next minute.

Out-of-range inputs are rejected with :class:`InvalidTimeError`; nothing in
this module clamps.
"""

from __future__ import annotations

import re
from datetime import datetime, time

from day_planner.config import DEFAULT_CONFIG, PlannerConfig
from day_planner.errors import InvalidTimeError

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
MINUTES_PER_DAY = 24 * 60


def _check_clock(hour: int, minute: int) -> None:
    if not 0 <= hour <= 23:
        raise InvalidTimeError(f"hour must be within 0..23, got {hour}")
    if not 0 <= minute <= 59:
        raise InvalidTimeError(f"minute must be within 0..59, got {minute}")


def parse_time_of_day(value: str | time) -> time:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into a :class:`datetime.time`."""

    if isinstance(value, time):
        return value
    match = _TIME_PATTERN.match(str(value).strip())
    if not match:
        raise InvalidTimeError(f"malformed time of day '{value}', expected HH:MM[:SS]")
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    _check_clock(hour, minute)
    if not 0 <= second <= 59:
        raise InvalidTimeError(f"second must be within 0..59, got {second}")
    return time(hour, minute, second)


def format_time_of_day(value: time) -> str:
    """Render a time as the ``HH:MM:SS`` wire string."""

    return value.strftime("%H:%M:%S")


def to_day_offset(value: time, config: PlannerConfig = DEFAULT_CONFIG) -> int:
    """Minutes elapsed since the logical day start."""

    _check_clock(value.hour, value.minute)
    return ((value.hour - config.day_start_hour + 24) % 24) * 60 + value.minute


def end_offset(value: time, config: PlannerConfig = DEFAULT_CONFIG) -> int:
    """Day offset of an interval end, rounded up to the next whole minute.

    The day start itself maps to 1440, so an interval can end at midnight of
    the logical day. A sub-minute end such as 07:00:30 counts as 07:01.
    """

    offset = to_day_offset(value, config)
    if value.second or value.microsecond:
        return offset + 1
    return MINUTES_PER_DAY if offset == 0 else offset


def from_day_offset(offset: int, config: PlannerConfig = DEFAULT_CONFIG) -> time:
    """Inverse of :func:`to_day_offset`; 1440 wraps to the day start."""

    if isinstance(offset, float):
        if not offset.is_integer():
            raise InvalidTimeError(f"day offset must be a whole number of minutes, got {offset}")
        offset = int(offset)
    if not 0 <= offset <= MINUTES_PER_DAY:
        raise InvalidTimeError(f"day offset must be within 0..{MINUTES_PER_DAY}, got {offset}")
    hour = (config.day_start_hour + offset // 60) % 24
    return time(hour, offset % 60)


def duration_minutes(start: time, end: time, config: PlannerConfig = DEFAULT_CONFIG) -> int:
    """Length of ``[start, end)`` in minutes; end must come after start."""

    duration = end_offset(end, config) - to_day_offset(start, config)
    if duration <= 0:
        raise InvalidTimeError(
            f"end {format_time_of_day(end)} is not after start {format_time_of_day(start)}"
        )
    return duration


def to_pixels(offset_minutes: float, config: PlannerConfig = DEFAULT_CONFIG) -> float:
    return offset_minutes / 60 * config.pixels_per_hour


def to_offset(pixels: float, config: PlannerConfig = DEFAULT_CONFIG) -> float:
    return pixels / config.pixels_per_hour * 60


def format_hour(hour: int) -> str:
    """12-hour grid label for a wall-clock hour."""

    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour < 12:
        return f"{hour} AM"
    return f"{hour - 12} PM"


def hour_labels(config: PlannerConfig = DEFAULT_CONFIG) -> list[str]:
    """Labels for the 24 grid rows, starting at the logical day start."""

    return [format_hour((config.day_start_hour + row) % 24) for row in range(24)]


def slot_time(row: int, quarter: int, config: PlannerConfig = DEFAULT_CONFIG) -> time:
    """Start time of a tapped grid slot (``row`` hours after day start)."""

    slots_per_hour = 60 // config.snap_minutes
    if not 0 <= row <= 23:
        raise InvalidTimeError(f"grid row must be within 0..23, got {row}")
    if not 0 <= quarter < slots_per_hour:
        raise InvalidTimeError(f"slot index must be within 0..{slots_per_hour - 1}, got {quarter}")
    return from_day_offset(row * 60 + quarter * config.snap_minutes, config)


def now_indicator_top(now: datetime | time, config: PlannerConfig = DEFAULT_CONFIG) -> float:
    """Pixel position of the current-time line."""

    clock = now.time() if isinstance(now, datetime) else now
    return to_pixels(to_day_offset(clock, config), config)
