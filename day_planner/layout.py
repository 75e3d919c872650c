"""Side-by-side column layout for overlapping events on one logical day."""

from __future__ import annotations

import logging
from datetime import date
from typing import Hashable, Iterable

import numpy as np

from day_planner.config import DEFAULT_CONFIG, PlannerConfig
from day_planner.errors import InvalidEventError
from day_planner.recurrence import occurs_on
from day_planner.schema import Event, EventPosition
from day_planner.time_coordinate import end_offset, to_day_offset, to_pixels

logger = logging.getLogger(__name__)


def event_interval(event: Event, config: PlannerConfig = DEFAULT_CONFIG) -> tuple[int, int]:
    """Half-open ``[start, end)`` day-offset interval of an event."""

    start = to_day_offset(event.start_time, config)
    end = end_offset(event.end_time, config)
    if end <= start:
        raise InvalidEventError(f"event {event.id}: end must be after start")
    return start, end


def event_geometry(event: Event, config: PlannerConfig = DEFAULT_CONFIG) -> tuple[float, float]:
    """``(top, height)`` in pixels; height never drops below the minimum slot."""

    start, end = event_interval(event, config)
    height = max(to_pixels(end - start, config), to_pixels(config.min_display_minutes, config))
    return to_pixels(start, config), height


def assign_columns(intervals: list[tuple[Hashable, int, int]]) -> list[tuple[int, int]]:
    """Assign ``(column, total_columns)`` to each ``(key, start, end)`` interval.

    Intervals are swept in order of start, then shorter duration, then key.
    Each interval takes the lowest column that is free by its start. The
    column count reported for an interval is the number of columns used by
    its own cluster of transitively overlapping intervals. Zero-length
    intervals overlap nothing and always sit alone in column 0.
    """

    for key, start, end in intervals:
        if end < start:
            raise InvalidEventError(f"interval {key!r} ends before it starts")

    order = sorted(
        range(len(intervals)),
        key=lambda i: (intervals[i][1], intervals[i][2] - intervals[i][1], str(intervals[i][0]), i),
    )
    result: list[tuple[int, int]] = [(0, 1)] * len(intervals)

    column_free_at: list[int] = []
    swept: list[int] = []
    columns: list[int] = []
    for i in order:
        _, start, end = intervals[i]
        if end == start:
            continue
        for column, free_at in enumerate(column_free_at):
            if free_at <= start:
                break
        else:
            column = len(column_free_at)
            column_free_at.append(end)
        column_free_at[column] = end
        swept.append(i)
        columns.append(column)

    if not swept:
        return result

    starts = np.array([intervals[i][1] for i in swept])
    ends = np.array([intervals[i][2] for i in swept])
    reach = np.maximum.accumulate(ends)
    opens_cluster = np.ones(len(swept), dtype=bool)
    opens_cluster[1:] = starts[1:] >= reach[:-1]
    cluster_ids = np.cumsum(opens_cluster) - 1

    column_arr = np.array(columns)
    totals = np.zeros(int(cluster_ids[-1]) + 1, dtype=int)
    np.maximum.at(totals, cluster_ids, column_arr + 1)

    for i, column, cluster in zip(swept, columns, cluster_ids):
        result[i] = (column, int(totals[cluster]))
    return result


def layout_day(events: Iterable[Event], config: PlannerConfig = DEFAULT_CONFIG) -> list[EventPosition]:
    """Pixel positions and columns for one day's events, in input order."""

    events = list(events)
    if not events:
        return []

    intervals = [(event.id, *event_interval(event, config)) for event in events]
    placement = assign_columns(intervals)

    positions = []
    for event, (column, total) in zip(events, placement):
        top, height = event_geometry(event, config)
        positions.append(EventPosition(event=event, top=top, height=height, column=column, total_columns=total))
    logger.debug(
        "Laid out %d events using at most %d columns",
        len(positions),
        max(position.total_columns for position in positions),
    )
    return positions


def events_for_date(events: Iterable[Event], day: date) -> list[Event]:
    """Events that appear on the calendar on ``day``."""

    return [event for event in events if occurs_on(event, day)]


def positions_for_date(events: Iterable[Event], day: date,
                       config: PlannerConfig = DEFAULT_CONFIG) -> list[EventPosition]:
    return layout_day(events_for_date(events, day), config)
