"""Day view wiring: layout, drag commits and reminder upkeep."""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Callable, Optional

from day_planner.config import DEFAULT_CONFIG, PlannerConfig
from day_planner.drag import DragController
from day_planner.errors import CommitRejectedError
from day_planner.layout import positions_for_date
from day_planner.reminders import ReminderScheduler
from day_planner.schema import Event, EventPosition
from day_planner.stores import EventStore

logger = logging.getLogger(__name__)


class DayPlanner:
    """Connects a day's cards to the event store and the reminder scheduler."""

    def __init__(self, event_store: EventStore, scheduler: ReminderScheduler,
                 config: PlannerConfig = DEFAULT_CONFIG) -> None:
        self.event_store = event_store
        self.scheduler = scheduler
        self.config = config

    def positions_for(self, day: date) -> list[EventPosition]:
        return positions_for_date(self.event_store.list_events(), day, self.config)

    def controller_for(self, position: EventPosition, day: date,
                       on_click: Optional[Callable[[], None]] = None) -> DragController:
        """Drag controller whose drops are saved and rescheduled on ``day``."""

        controller: DragController

        def on_drop(event: Event, new_start: time, new_end: time) -> None:
            self.commit(controller, event, new_start, new_end, day)

        controller = DragController(
            event=position.event,
            original_top=position.top,
            on_drop=on_drop,
            on_click=on_click or (lambda: None),
            config=self.config,
        )
        return controller

    def commit(self, controller: DragController, event: Event, new_start: time, new_end: time,
               day: Optional[date] = None) -> Event:
        """Persist a drop, then replace that event's reminders.

        A refused save rolls the card back and re-raises the refusal.
        """

        try:
            saved = self.event_store.update_times(event.id, new_start, new_end)
        except CommitRejectedError:
            logger.warning("Save of event %s refused, reverting card", event.id)
            controller.rollback()
            raise
        controller.confirm()
        self.scheduler.reschedule_event(saved, selected_date=day)
        return saved

    def refresh_reminders(self, day: Optional[date] = None) -> list[str]:
        """Full reconciliation pass over every stored event."""

        return self.scheduler.reschedule_all(self.event_store.list_events(), selected_date=day)
