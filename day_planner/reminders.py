"""Local reminder scheduling for one-off and recurring events.

The notification backend is the only record of what is scheduled. Every
reconciliation pass cancels everything it reports and registers the full
desired set again, so the queue never keeps duplicate or stale reminders.
Passes must not overlap; a second pass started while one is running raises
:class:`ReschedulePassInProgressError`.
"""

from __future__ import annotations

import itertools
import logging
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional, Protocol

from day_planner.config import DEFAULT_CONFIG, PlannerConfig
from day_planner.errors import ReschedulePassInProgressError
from day_planner.recurrence import occurrence_dates
from day_planner.schema import (
    Event,
    NotificationSettings,
    ReminderContent,
    ReminderRecord,
    time_range_label,
)
from day_planner.stores import EventStore, SettingsStore

logger = logging.getLogger(__name__)

MARK_COMPLETE = "MARK_COMPLETE"
SNOOZE = "SNOOZE"

ActionCallback = Callable[[str, ReminderRecord], None]
ActionErrorCallback = Callable[[str, Exception], None]
# Calling the handle returned by a subscription removes that listener.
Unsubscribe = Callable[[], None]


class NotificationBackend(Protocol):
    def request_permission(self) -> bool: ...

    def register(self, content: ReminderContent, trigger_instant: datetime) -> str: ...

    def cancel(self, reminder_id: str) -> None: ...

    def list_all(self) -> list[ReminderRecord]: ...

    def on_delivered(self, callback: Callable[[ReminderRecord], None]) -> Unsubscribe: ...

    def on_user_action(self, callback: ActionCallback) -> Unsubscribe: ...


class InMemoryNotificationBackend:
    """Process-local stand-in for the device notification store."""

    def __init__(self, permission_granted: bool = True) -> None:
        self.permission_granted = permission_granted
        self._scheduled: dict[str, ReminderRecord] = {}
        self._ids = itertools.count(1)
        self._delivered_callbacks: list[Callable[[ReminderRecord], None]] = []
        self._action_callbacks: list[ActionCallback] = []

    def request_permission(self) -> bool:
        return self.permission_granted

    def register(self, content: ReminderContent, trigger_instant: datetime) -> str:
        if not self.permission_granted:
            raise PermissionError("notification permission not granted")
        reminder_id = f"reminder-{next(self._ids)}"
        self._scheduled[reminder_id] = ReminderRecord(
            notification_id=reminder_id,
            event_id=content.event_id,
            trigger_instant=trigger_instant,
            content=content,
        )
        return reminder_id

    def cancel(self, reminder_id: str) -> None:
        self._scheduled.pop(reminder_id, None)

    def list_all(self) -> list[ReminderRecord]:
        return list(self._scheduled.values())

    @staticmethod
    def _subscribe(listeners: list, callback) -> Unsubscribe:
        listeners.append(callback)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def on_delivered(self, callback: Callable[[ReminderRecord], None]) -> Unsubscribe:
        return self._subscribe(self._delivered_callbacks, callback)

    def on_user_action(self, callback: ActionCallback) -> Unsubscribe:
        return self._subscribe(self._action_callbacks, callback)

    @property
    def listener_count(self) -> int:
        return len(self._delivered_callbacks) + len(self._action_callbacks)

    def deliver(self, reminder_id: str) -> ReminderRecord:
        """Fire a scheduled reminder as the OS would at its trigger time."""

        record = self._scheduled.pop(reminder_id)
        for callback in list(self._delivered_callbacks):
            callback(record)
        return record

    def respond(self, action_id: str, record: ReminderRecord) -> None:
        """Simulate the user tapping an action button on a delivered reminder."""

        for callback in list(self._action_callbacks):
            callback(action_id, record)


def build_content(event: Event, occurrence_date: date) -> ReminderContent:
    return ReminderContent(
        title=event.title,
        body=time_range_label(event),
        data={
            "eventId": event.id,
            "eventDate": occurrence_date.isoformat(),
            "type": "event_reminder",
        },
    )


def trigger_instant(event: Event, occurrence_date: date, settings: NotificationSettings) -> datetime:
    """Wall-clock moment the reminder for one occurrence should fire."""

    return datetime.combine(occurrence_date, event.start_time) - timedelta(minutes=settings.minutes_before)


class ReminderScheduler:
    """Keeps the notification backend in line with events and settings."""

    def __init__(
        self,
        backend: NotificationBackend,
        settings_store: Optional[SettingsStore] = None,
        event_store: Optional[EventStore] = None,
        now: Callable[[], datetime] = datetime.now,
        config: PlannerConfig = DEFAULT_CONFIG,
        on_action_error: Optional[ActionErrorCallback] = None,
    ) -> None:
        self.backend = backend
        self.settings_store = settings_store
        self.event_store = event_store
        self.now = now
        self.config = config
        self.on_action_error = on_action_error
        self._permission: Optional[bool] = None
        self._pass_in_progress = False
        self._subscriptions: list[Unsubscribe] = [
            backend.on_delivered(self._log_delivery),
            backend.on_user_action(self.handle_action),
        ]

    def close(self) -> None:
        """Stop listening to the backend; safe to call more than once."""

        while self._subscriptions:
            self._subscriptions.pop()()

    def __enter__(self) -> "ReminderScheduler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _log_delivery(self, record: ReminderRecord) -> None:
        logger.info("Reminder %s delivered for %s", record.notification_id, record.event_id)

    def ensure_permission(self, retry_denied: bool = False) -> bool:
        """Ask the backend for permission, reusing the last answer.

        With ``retry_denied`` a previous denial is asked again, so a grant made
        later in the device settings takes effect.
        """

        if retry_denied and self._permission is False:
            self._permission = None
        if self._permission is None:
            try:
                self._permission = bool(self.backend.request_permission())
            except Exception:  # noqa: BLE001
                logger.error("Notification permission request failed", exc_info=True)
                self._permission = False
            if not self._permission:
                logger.warning("Notification permission denied; reminders will not be scheduled")
        return self._permission

    def current_settings(self) -> NotificationSettings:
        if self.settings_store is None:
            return NotificationSettings()
        return self.settings_store.get()

    def schedule_for_event(self, event: Event, occurrence_date: date,
                           settings: NotificationSettings) -> Optional[str]:
        """Register one reminder; returns ``None`` when it is skipped or fails."""

        if not settings.enabled:
            logger.debug("Notifications disabled, skipping %s", event.id)
            return None
        if not self.ensure_permission():
            return None

        trigger = trigger_instant(event, occurrence_date, settings)
        if trigger <= self.now():
            logger.debug("Skipping %s on %s: trigger %s already passed", event.id, occurrence_date, trigger)
            return None

        try:
            reminder_id = self.backend.register(build_content(event, occurrence_date), trigger)
        except Exception:  # noqa: BLE001
            logger.error("Could not schedule reminder for %s on %s", event.id, occurrence_date, exc_info=True)
            return None
        logger.info("Scheduled reminder %s for %s at %s", reminder_id, event.id, trigger.isoformat())
        return reminder_id

    def schedule_recurring(self, event: Event, settings: NotificationSettings,
                           today: Optional[date] = None) -> list[str]:
        """Register reminders for every occurrence within the lookahead horizon."""

        if not settings.enabled:
            return []
        start = today or self.now().date()
        reminder_ids = []
        for occurrence in occurrence_dates(event, start, config=self.config):
            reminder_id = self.schedule_for_event(event, occurrence, settings)
            if reminder_id is not None:
                reminder_ids.append(reminder_id)
        logger.debug("Scheduled %d recurring reminders for %s", len(reminder_ids), event.id)
        return reminder_ids

    def schedule_event(self, event: Event, settings: NotificationSettings,
                       selected_date: Optional[date] = None) -> list[str]:
        """Register reminders for any event, recurring or not."""

        if event.is_recurring:
            return self.schedule_recurring(event, settings)
        occurrence = event.date or selected_date or self.now().date()
        reminder_id = self.schedule_for_event(event, occurrence, settings)
        return [] if reminder_id is None else [reminder_id]

    def _cancel_records(self, records: Iterable[ReminderRecord]) -> int:
        cancelled = 0
        for record in records:
            try:
                self.backend.cancel(record.notification_id)
            except Exception:  # noqa: BLE001
                logger.error("Could not cancel reminder %s", record.notification_id, exc_info=True)
                continue
            cancelled += 1
        return cancelled

    def cancel_for_event(self, event_id: str) -> int:
        """Cancel every scheduled reminder for ``event_id``; returns how many."""

        try:
            records = self.backend.list_all()
        except Exception:  # noqa: BLE001
            logger.error("Could not list scheduled reminders", exc_info=True)
            return 0
        return self._cancel_records(record for record in records if record.event_id == event_id)

    def reschedule_all(self, events: Iterable[Event], settings: Optional[NotificationSettings] = None,
                       selected_date: Optional[date] = None) -> list[str]:
        """Clear the queue, then register reminders for every event."""

        if self._pass_in_progress:
            raise ReschedulePassInProgressError("a reschedule pass is already running")
        self._pass_in_progress = True
        try:
            return self._reschedule_all(list(events), settings, selected_date)
        finally:
            self._pass_in_progress = False

    def _reschedule_all(self, events: list[Event], settings: Optional[NotificationSettings],
                        selected_date: Optional[date]) -> list[str]:
        settings = settings or self.current_settings()
        try:
            existing = self.backend.list_all()
        except Exception:  # noqa: BLE001
            # Rebuilding on top of an unknown queue could duplicate reminders.
            logger.error("Could not list scheduled reminders; reschedule aborted", exc_info=True)
            return []
        cancelled = self._cancel_records(existing)
        logger.info("Cancelled %d reminders before rescheduling %d events", cancelled, len(events))

        if not settings.enabled:
            logger.info("Notifications disabled, queue left empty")
            return []
        if not self.ensure_permission(retry_denied=True):
            return []

        reminder_ids: list[str] = []
        for event in events:
            reminder_ids.extend(self.schedule_event(event, settings, selected_date))
        logger.info("Reschedule pass registered %d reminders", len(reminder_ids))
        return reminder_ids

    def reschedule_event(self, event: Event, settings: Optional[NotificationSettings] = None,
                         selected_date: Optional[date] = None) -> list[str]:
        """Replace the reminders of a single edited event."""

        self.cancel_for_event(event.id)
        return self.schedule_event(event, settings or self.current_settings(), selected_date)

    def update_settings(self, settings: NotificationSettings, events: Iterable[Event],
                        selected_date: Optional[date] = None) -> list[str]:
        """Persist new settings and reconcile the queue against them."""

        if self.settings_store is not None:
            self.settings_store.set(settings)
        return self.reschedule_all(events, settings, selected_date)

    def scheduled_count(self) -> int:
        try:
            return len(self.backend.list_all())
        except Exception:  # noqa: BLE001
            logger.error("Could not list scheduled reminders", exc_info=True)
            return 0

    def snooze(self, record: ReminderRecord) -> Optional[str]:
        """Re-register a delivered reminder ``snooze_minutes`` from now."""

        if record.content is None:
            logger.warning("Cannot snooze reminder %s without content", record.notification_id)
            return None
        trigger = self.now() + timedelta(minutes=self.config.snooze_minutes)
        try:
            reminder_id = self.backend.register(record.content, trigger)
        except Exception:  # noqa: BLE001
            logger.error("Could not snooze reminder %s", record.notification_id, exc_info=True)
            return None
        logger.info("Snoozed %s until %s as %s", record.event_id, trigger.isoformat(), reminder_id)
        return reminder_id

    def handle_action(self, action_id: str, record: ReminderRecord) -> Optional[str]:
        """React to an action button pressed on a delivered reminder.

        Runs inside the backend's listener dispatch, so event store failures
        are logged and passed to ``on_action_error`` rather than raised.
        """

        if not record.event_id:
            return None
        if action_id == MARK_COMPLETE:
            if self.event_store is None:
                logger.warning("No event store to mark %s complete", record.event_id)
                return None
            try:
                self.event_store.set_status(record.event_id, "completed")
            except Exception as exc:  # noqa: BLE001
                logger.error("Could not mark %s complete", record.event_id, exc_info=True)
                if self.on_action_error is not None:
                    self.on_action_error(record.event_id, exc)
            return None
        if action_id == SNOOZE:
            return self.snooze(record)
        logger.debug("Ignoring unknown reminder action %s", action_id)
        return None
