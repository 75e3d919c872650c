from datetime import date, datetime, time

import pytest

from day_planner.errors import ReschedulePassInProgressError
from day_planner.reminders import (
    MARK_COMPLETE,
    SNOOZE,
    InMemoryNotificationBackend,
    ReminderScheduler,
    build_content,
    trigger_instant,
)
from day_planner.schema import Event, NotificationSettings
from day_planner.stores import InMemoryEventStore, InMemorySettingsStore

TODAY = date(2026, 10, 19)


def clock(hour, minute=0):
    moment = datetime.combine(TODAY, time(hour, minute))
    return lambda: moment


def meeting(event_id="standup", start="09:00:00", end="09:30:00", **kwargs):
    kwargs.setdefault("date", "2026-10-19")
    return Event.from_strings(event_id, start, end, title=event_id.title(), category="work", **kwargs)


def gym():
    return Event.from_strings("gym", "07:00:00", "07:30:00", is_recurring=True, recurrence_days=[1, 3, 5])


def pairs(backend):
    return sorted((record.event_id, record.trigger_instant) for record in backend.list_all())


def test_past_trigger_is_skipped():
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(backend, now=clock(8, 55))
    settings = NotificationSettings(enabled=True, minutes_before=10)
    assert scheduler.schedule_for_event(meeting(), TODAY, settings) is None
    assert backend.list_all() == []


def test_trigger_exactly_now_is_skipped():
    scheduler = ReminderScheduler(InMemoryNotificationBackend(), now=clock(8, 50))
    settings = NotificationSettings(minutes_before=10)
    assert scheduler.schedule_for_event(meeting(), TODAY, settings) is None


def test_future_reminder_is_registered():
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(backend, now=clock(8, 0))
    reminder_id = scheduler.schedule_for_event(meeting(), TODAY, NotificationSettings(minutes_before=10))
    (record,) = backend.list_all()
    assert record.notification_id == reminder_id
    assert record.event_id == "standup"
    assert record.trigger_instant == datetime(2026, 10, 19, 8, 50)
    assert record.content.body == "9:00 AM - 9:30 AM • work"
    assert record.content.data == {"eventId": "standup", "eventDate": "2026-10-19", "type": "event_reminder"}


def test_disabled_settings_skip():
    scheduler = ReminderScheduler(InMemoryNotificationBackend(), now=clock(8, 0))
    assert scheduler.schedule_for_event(meeting(), TODAY, NotificationSettings(enabled=False)) is None


def test_permission_denied_is_silent_and_asked_again_per_pass():
    class CountingBackend(InMemoryNotificationBackend):
        asked = 0

        def request_permission(self):
            self.asked += 1
            return False

    backend = CountingBackend()
    scheduler = ReminderScheduler(backend, now=clock(8, 0))
    settings = NotificationSettings()
    assert scheduler.schedule_for_event(meeting(), TODAY, settings) is None
    assert scheduler.reschedule_all([meeting(), gym()], settings) == []
    assert backend.asked == 2
    assert backend.list_all() == []


def test_permission_granted_later_is_picked_up_by_next_pass():
    backend = InMemoryNotificationBackend(permission_granted=False)
    scheduler = ReminderScheduler(backend, now=clock(8, 0))
    assert scheduler.reschedule_all([meeting()], NotificationSettings()) == []
    backend.permission_granted = True
    assert len(scheduler.reschedule_all([meeting()], NotificationSettings())) == 1
    assert pairs(backend) == [("standup", datetime(2026, 10, 19, 9, 0))]


def test_recurring_returns_only_registered_ids():
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(backend, now=clock(8, 0))
    ids = scheduler.schedule_recurring(gym(), NotificationSettings())
    # Monday's 07:00 occurrence has already passed.
    assert len(ids) == 12
    assert None not in ids
    assert all(record.trigger_instant.date() > TODAY for record in backend.list_all())


def test_cancel_for_event_is_idempotent():
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(backend, now=clock(6, 0))
    settings = NotificationSettings()
    scheduler.schedule_recurring(gym(), settings)
    scheduler.schedule_for_event(meeting(), TODAY, settings)
    assert scheduler.cancel_for_event("gym") == 13
    assert scheduler.cancel_for_event("gym") == 0
    assert scheduler.cancel_for_event("missing") == 0
    assert [record.event_id for record in backend.list_all()] == ["standup"]


def test_reschedule_all_is_idempotent():
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(backend, now=clock(6, 0))
    events = [meeting(), gym(), meeting("lunch", "12:00:00", "13:00:00")]
    settings = NotificationSettings(minutes_before=5)
    scheduler.reschedule_all(events, settings)
    first = pairs(backend)
    scheduler.reschedule_all(events, settings)
    second = pairs(backend)
    assert first == second
    assert len(second) == len(set(second)) == 15


def test_reschedule_all_drops_stale_reminders():
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(backend, now=clock(6, 0))
    settings = NotificationSettings()
    scheduler.schedule_for_event(meeting("deleted"), TODAY, settings)
    scheduler.reschedule_all([meeting()], settings)
    assert [record.event_id for record in backend.list_all()] == ["standup"]


def test_reschedule_all_with_notifications_disabled_empties_queue():
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(backend, now=clock(6, 0))
    scheduler.reschedule_all([meeting(), gym()], NotificationSettings())
    assert scheduler.scheduled_count() > 0
    assert scheduler.reschedule_all([meeting(), gym()], NotificationSettings(enabled=False)) == []
    assert scheduler.scheduled_count() == 0


def test_reschedule_reads_settings_store_when_not_given():
    backend = InMemoryNotificationBackend()
    store = InMemorySettingsStore(NotificationSettings(minutes_before=30))
    scheduler = ReminderScheduler(backend, settings_store=store, now=clock(6, 0))
    scheduler.reschedule_all([meeting()])
    assert pairs(backend) == [("standup", datetime(2026, 10, 19, 8, 30))]


def test_undated_one_off_uses_selected_date():
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(backend, now=clock(6, 0))
    undated = Event(
        id="floating",
        title="Floating",
        start_time=time(9, 0),
        end_time=time(10, 0),
    )
    scheduler.reschedule_all([undated], NotificationSettings(), selected_date=date(2026, 10, 21))
    assert pairs(backend) == [("floating", datetime(2026, 10, 21, 9, 0))]


def test_registration_failure_does_not_abort_pass():
    class FlakyBackend(InMemoryNotificationBackend):
        def register(self, content, trigger):
            if content.event_id == "broken":
                raise PermissionError("revoked")
            return super().register(content, trigger)

    backend = FlakyBackend()
    scheduler = ReminderScheduler(backend, now=clock(6, 0))
    events = [meeting("broken"), meeting("standup"), meeting("review", "10:00:00", "11:00:00")]
    ids = scheduler.reschedule_all(events, NotificationSettings())
    assert len(ids) == 2
    assert {record.event_id for record in backend.list_all()} == {"standup", "review"}


def test_cancel_failure_does_not_abort_pass():
    class StickyBackend(InMemoryNotificationBackend):
        def cancel(self, reminder_id):
            if reminder_id == "reminder-1":
                raise RuntimeError("backend busy")
            super().cancel(reminder_id)

    backend = StickyBackend()
    scheduler = ReminderScheduler(backend, now=clock(6, 0))
    settings = NotificationSettings()
    scheduler.schedule_for_event(meeting("first"), TODAY, settings)
    scheduler.schedule_for_event(meeting("second"), TODAY, settings)
    scheduler.reschedule_all([meeting("third")], settings)
    assert sorted(record.event_id for record in backend.list_all()) == ["first", "third"]


def test_listing_failure_aborts_pass_without_registering():
    class BlindBackend(InMemoryNotificationBackend):
        def list_all(self):
            raise RuntimeError("unavailable")

    backend = BlindBackend()
    scheduler = ReminderScheduler(backend, now=clock(6, 0))
    assert scheduler.reschedule_all([meeting()], NotificationSettings()) == []
    assert backend._scheduled == {}
    assert scheduler.cancel_for_event("standup") == 0


def test_overlapping_passes_are_refused():
    class ReentrantStore(InMemorySettingsStore):
        scheduler = None

        def get(self):
            self.scheduler.reschedule_all([])
            return super().get()

    store = ReentrantStore()
    scheduler = ReminderScheduler(InMemoryNotificationBackend(), settings_store=store, now=clock(6, 0))
    store.scheduler = scheduler
    with pytest.raises(ReschedulePassInProgressError):
        scheduler.reschedule_all([meeting()])
    assert scheduler.reschedule_all([meeting()], NotificationSettings()) != []


def test_update_settings_persists_and_reschedules():
    backend = InMemoryNotificationBackend()
    store = InMemorySettingsStore()
    scheduler = ReminderScheduler(backend, settings_store=store, now=clock(6, 0))
    scheduler.update_settings(NotificationSettings(minutes_before=15), [meeting()])
    assert store.get().minutes_before == 15
    assert pairs(backend) == [("standup", datetime(2026, 10, 19, 8, 45))]


def test_snooze_registers_copy_five_minutes_later():
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(backend, now=clock(8, 0))
    scheduler.reschedule_all([meeting(), meeting("review", "10:00:00", "11:00:00")], NotificationSettings())
    delivered = backend.deliver(backend.list_all()[0].notification_id)
    backend.respond(SNOOZE, delivered)
    snoozed = [record for record in backend.list_all() if record.trigger_instant == datetime(2026, 10, 19, 8, 5)]
    assert len(snoozed) == 1
    assert snoozed[0].content == delivered.content
    assert scheduler.scheduled_count() == 2


def test_mark_complete_updates_store_only():
    backend = InMemoryNotificationBackend()
    events = InMemoryEventStore([meeting()])
    scheduler = ReminderScheduler(backend, event_store=events, now=clock(8, 0))
    scheduler.reschedule_all([meeting(), gym()], NotificationSettings())
    before = pairs(backend)
    record = next(record for record in backend.list_all() if record.event_id == "standup")
    backend.respond(MARK_COMPLETE, record)
    assert events.get("standup").status == "completed"
    assert pairs(backend) == before


def test_trigger_instant_and_content_helpers():
    event = meeting()
    assert trigger_instant(event, TODAY, NotificationSettings(minutes_before=0)) == datetime(2026, 10, 19, 9, 0)
    content = build_content(event, TODAY)
    assert content.title == "Standup"
    assert content.category == "event"


def test_replaced_scheduler_stops_handling_actions():
    backend = InMemoryNotificationBackend()
    first = ReminderScheduler(backend, now=clock(8, 0))
    first.close()
    first.close()
    second = ReminderScheduler(backend, now=clock(8, 0))
    assert backend.listener_count == 2
    second.reschedule_all([meeting()], NotificationSettings())
    delivered = backend.deliver(backend.list_all()[0].notification_id)
    backend.respond(SNOOZE, delivered)
    assert pairs(backend) == [("standup", datetime(2026, 10, 19, 8, 5))]


def test_scheduler_context_manager_unsubscribes():
    backend = InMemoryNotificationBackend()
    with ReminderScheduler(backend, now=clock(8, 0)):
        assert backend.listener_count == 2
    assert backend.listener_count == 0


def test_mark_complete_failure_goes_to_error_hook():
    class FailingStore(InMemoryEventStore):
        def set_status(self, event_id, status):
            raise OSError("disk full")

    errors = []
    seen = []
    backend = InMemoryNotificationBackend()
    scheduler = ReminderScheduler(
        backend,
        event_store=FailingStore([meeting()]),
        now=clock(8, 0),
        on_action_error=lambda event_id, exc: errors.append((event_id, exc)),
    )
    backend.on_user_action(lambda action_id, record: seen.append(action_id))
    scheduler.reschedule_all([meeting()], NotificationSettings())
    backend.respond(MARK_COMPLETE, backend.list_all()[0])
    assert [(event_id, str(exc)) for event_id, exc in errors] == [("standup", "disk full")]
    assert seen == [MARK_COMPLETE]
