"""Drag-to-reschedule controller for event cards on the vertical timeline."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import time
from enum import Enum
from typing import Callable, Optional

from day_planner.config import DEFAULT_CONFIG, PlannerConfig
from day_planner.errors import DragStateError
from day_planner.schema import Event
from day_planner.time_coordinate import (
    MINUTES_PER_DAY,
    from_day_offset,
    to_day_offset,
    to_offset,
    to_pixels,
)

logger = logging.getLogger(__name__)

DropCallback = Callable[[Event, time, time], None]


class DragState(Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTING = "committing"
    CANCELLED = "cancelled"


@dataclass
class DropResult:
    """Snapped outcome of a drag that changes the event's times."""

    new_start: time
    new_end: time
    snapped_offset: int
    snapped_top: float


def snap(minutes: float, step: int = DEFAULT_CONFIG.snap_minutes) -> int:
    """Round ``minutes`` to the nearest grid line, halves rounding up."""

    return int(math.floor(minutes / step + 0.5)) * step


def compute_drop(event: Event, original_top: float, delta_y: float,
                 config: PlannerConfig = DEFAULT_CONFIG) -> Optional[DropResult]:
    """New times for ``event`` dropped ``delta_y`` pixels from ``original_top``.

    The start snaps to the grid and is kept inside the logical day so the
    event keeps its whole duration. Returns ``None`` when the snapped start
    is the event's current start.
    """

    duration = event.duration_minutes
    snapped = snap(to_offset(original_top + delta_y, config), config.snap_minutes)
    latest = ((MINUTES_PER_DAY - duration) // config.snap_minutes) * config.snap_minutes
    snapped = min(max(snapped, 0), latest)

    if snapped == to_day_offset(event.start_time, config):
        return None
    return DropResult(
        new_start=from_day_offset(snapped, config),
        new_end=from_day_offset(snapped + duration, config),
        snapped_offset=snapped,
        snapped_top=to_pixels(snapped, config),
    )


class DragController:
    """Gesture state for one event card.

    Gesture deltas passed to :meth:`move` and :meth:`release` are totals
    since the gesture began. Only vertical movement counts. A release whose
    total displacement is within ``drag_threshold_px`` is a tap and opens the
    event instead of moving it.

    After a drop the controller waits in ``COMMITTING`` until the caller
    reports the save with :meth:`confirm` or a refusal with :meth:`rollback`.
    """

    def __init__(
        self,
        event: Event,
        original_top: float,
        on_drop: DropCallback,
        on_click: Callable[[], None],
        on_drag_start: Optional[Callable[[], None]] = None,
        on_drag_end: Optional[Callable[[], None]] = None,
        config: PlannerConfig = DEFAULT_CONFIG,
    ) -> None:
        self.event = event
        self.original_top = float(original_top)
        self.on_drop = on_drop
        self.on_click = on_click
        self.on_drag_start = on_drag_start
        self.on_drag_end = on_drag_end
        self.config = config
        self.state = DragState.IDLE
        self.visual_offset = 0.0
        self.pending: Optional[DropResult] = None

    @property
    def top(self) -> float:
        """Where the card is currently drawn."""

        return self.original_top + self.visual_offset

    @property
    def is_dragging(self) -> bool:
        return self.state is DragState.DRAGGING

    def _exceeds_threshold(self, dy: float) -> bool:
        return abs(dy) > self.config.drag_threshold_px

    def _require_free(self, action: str) -> None:
        if self.state is DragState.COMMITTING:
            raise DragStateError(f"cannot {action} event {self.event.id} while a drop is awaiting save")

    def _finish_drag(self) -> None:
        if self.state is DragState.DRAGGING and self.on_drag_end:
            self.on_drag_end()

    def press(self) -> None:
        """Start a gesture."""

        self._require_free("start a gesture on")
        self.state = DragState.IDLE
        self.visual_offset = 0.0

    def move(self, dx: float, dy: float) -> None:
        self._require_free("drag")
        if self.state is DragState.IDLE and self._exceeds_threshold(dy):
            self.state = DragState.DRAGGING
            logger.debug("Drag started on event %s", self.event.id)
            if self.on_drag_start:
                self.on_drag_start()
        if self.state is DragState.DRAGGING:
            self.visual_offset = float(dy)

    def release(self, dx: float, dy: float) -> Optional[DropResult]:
        """End the gesture; returns the drop when one was emitted."""

        self._require_free("release")
        if not self._exceeds_threshold(dy):
            if self.state is DragState.DRAGGING:
                self._finish_drag()
                self.state = DragState.CANCELLED
            self._reset()
            self.on_click()
            return None

        result = compute_drop(self.event, self.original_top, dy, self.config)
        self._finish_drag()
        if result is None:
            logger.debug("Drop of event %s landed on its current start", self.event.id)
            self._reset()
            return None

        self.visual_offset = result.snapped_top - self.original_top
        self.state = DragState.COMMITTING
        self.pending = result
        logger.info(
            "Event %s dropped at %s-%s",
            self.event.id,
            result.new_start.strftime("%H:%M"),
            result.new_end.strftime("%H:%M"),
        )
        try:
            self.on_drop(self.event, result.new_start, result.new_end)
        except Exception:
            if self.state is DragState.COMMITTING:
                self.rollback()
            raise
        return result

    def cancel(self) -> None:
        """Gesture interrupted by the system; nothing is committed."""

        self._require_free("cancel")
        self._finish_drag()
        self.state = DragState.CANCELLED
        self._reset()

    def confirm(self) -> None:
        """The pending drop was saved; it becomes the resting position."""

        if self.state is not DragState.COMMITTING or self.pending is None:
            raise DragStateError(f"no pending drop to confirm for event {self.event.id}")
        self.event = self.event.with_times(self.pending.new_start, self.pending.new_end)
        self.original_top = self.pending.snapped_top
        self._reset()

    def rollback(self) -> None:
        """The pending drop was refused; snap back to the original position."""

        if self.state is not DragState.COMMITTING:
            raise DragStateError(f"no pending drop to roll back for event {self.event.id}")
        logger.warning("Rolling back drop of event %s", self.event.id)
        self._reset()

    def sync_position(self, top: float) -> None:
        """Adopt a freshly rendered resting position while idle."""

        if self.state is DragState.IDLE:
            self.original_top = float(top)
            self.visual_offset = 0.0

    def _reset(self) -> None:
        self.state = DragState.IDLE
        self.visual_offset = 0.0
        self.pending = None
