import asyncio
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from calendar_reminders.models.event import ScheduledEvent
from calendar_reminders.models.notification import NotificationPermission
from calendar_reminders.providers.runtime import InMemoryPreferenceStore
from tests.fakes import FakeSink, FakeVisibility

MINUTE = 60


def event_in(timers, minutes, event_id=1, title="Standup", description=None):
    return ScheduledEvent(
        id=event_id,
        title=title,
        description=description,
        start_time=timers.now() + timedelta(minutes=minutes),
    )


# initialization

def test_unsupported_environment_is_denied(make_scheduler):
    scheduler = make_scheduler(sink=FakeSink(supported=False, permission="granted"))

    assert scheduler.state.permission == NotificationPermission.DENIED
    assert scheduler.state.is_supported is False


def test_supported_environment_reads_live_permission(make_scheduler):
    scheduler = make_scheduler(sink=FakeSink(permission="default"))

    assert scheduler.state.permission == NotificationPermission.DEFAULT
    assert scheduler.state.is_supported is True


def test_stale_stored_permission_is_corrected(make_scheduler):
    store = InMemoryPreferenceStore({"notificationPermission": "default"})
    make_scheduler(sink=FakeSink(permission="granted"), preferences=store)

    assert store.get("notificationPermission") == "granted"


def test_missing_stored_permission_is_left_alone(make_scheduler, preferences):
    make_scheduler(sink=FakeSink(permission="granted"))

    assert preferences.get("notificationPermission") is None


# requestPermission

def test_request_permission_prompts_once_when_default(make_scheduler, preferences):
    sink = FakeSink(permission="default", prompt_result="granted")
    scheduler = make_scheduler(sink=sink)

    result = asyncio.run(scheduler.request_permission())

    assert result == NotificationPermission.GRANTED
    assert sink.prompts == 1
    assert scheduler.state.permission == NotificationPermission.GRANTED
    assert preferences.get("notificationPermission") == "granted"

    # Decided now; no second prompt
    assert asyncio.run(scheduler.request_permission()) == NotificationPermission.GRANTED
    assert sink.prompts == 1


def test_request_permission_does_not_prompt_when_granted_or_denied(make_scheduler):
    for permission in ("granted", "denied"):
        sink = FakeSink(permission=permission)
        scheduler = make_scheduler(sink=sink)

        assert asyncio.run(scheduler.request_permission()) == NotificationPermission(permission)
        assert sink.prompts == 0


def test_request_permission_unsupported_resolves_denied(make_scheduler):
    sink = FakeSink(supported=False)
    scheduler = make_scheduler(sink=sink)

    assert asyncio.run(scheduler.request_permission()) == NotificationPermission.DENIED
    assert sink.prompts == 0


def test_request_permission_failure_resolves_denied_without_persisting(make_scheduler, preferences):
    sink = FakeSink(permission="default", prompt_error=RuntimeError("prompt blocked"))
    scheduler = make_scheduler(sink=sink)

    assert asyncio.run(scheduler.request_permission()) == NotificationPermission.DENIED
    assert preferences.get("notificationPermission") is None
    assert scheduler.state.permission == NotificationPermission.DEFAULT


def test_request_permission_unknown_value_is_denied(make_scheduler, preferences):
    scheduler = make_scheduler(sink=FakeSink(permission="default", prompt_result="maybe"))

    assert asyncio.run(scheduler.request_permission()) == NotificationPermission.DENIED
    assert preferences.get("notificationPermission") is None


# schedule

def test_reminder_fires_lead_time_before_start(make_scheduler, sink, timers):
    scheduler = make_scheduler()
    scheduler.schedule([event_in(timers, 15, description="Room 4")])

    timers.advance(5 * MINUTE - 1)
    assert sink.shown == []

    timers.advance(1)
    assert len(sink.shown) == 1
    notification = sink.shown[0]
    assert notification.title == "Upcoming Event: Standup"
    assert notification.body == "Starting in 10 minutes: Room 4"
    assert notification.tag == "1"
    assert scheduler.pending_event_ids == []


def test_body_without_description(make_scheduler, sink, timers):
    scheduler = make_scheduler()
    scheduler.schedule([event_in(timers, 30)])

    timers.advance(20 * MINUTE)

    assert sink.shown[0].body == "Starting in 10 minutes"


def test_past_and_too_soon_events_are_dropped(make_scheduler, sink, timers, metrics):
    scheduler = make_scheduler()
    scheduler.schedule([
        event_in(timers, -1, event_id=1),
        event_in(timers, 10, event_id=2),
        event_in(timers, 5, event_id=3),
    ])

    assert scheduler.pending_event_ids == []
    timers.advance(60 * MINUTE)
    assert sink.shown == []
    assert metrics.get_metrics()["counters"]["reminders_skipped_total"] == 3


def test_naive_start_time_is_local(make_scheduler, timers):
    scheduler = make_scheduler()
    local_start = (timers.now() + timedelta(minutes=40)).astimezone().replace(tzinfo=None)
    scheduler.schedule([ScheduledEvent(id=9, title="Local", start_time=local_start)])

    assert timers.delays() == [30 * MINUTE]


def test_naive_start_time_uses_page_timezone(make_scheduler, timers):
    # 09:30 in New York is 14:30 UTC; the clock reads 09:00 UTC
    scheduler = make_scheduler(local_tz=ZoneInfo("America/New_York"))
    scheduler.schedule([ScheduledEvent(id=9, title="Remote", start_time=datetime(2024, 1, 15, 9, 30))])

    assert timers.delays() == [(5 * 60 + 20) * MINUTE]


def test_fixed_offset_page_timezone(make_scheduler, timers):
    scheduler = make_scheduler(local_tz=timezone(timedelta(hours=2)))
    scheduler.schedule([ScheduledEvent(id=9, title="East", start_time=datetime(2024, 1, 15, 11, 40))])

    assert timers.delays() == [30 * MINUTE]


def test_aware_start_time_ignores_page_timezone(make_scheduler, timers):
    scheduler = make_scheduler(local_tz=ZoneInfo("America/New_York"))
    scheduler.schedule([event_in(timers, 40)])

    assert timers.delays() == [30 * MINUTE]


def test_second_schedule_replaces_first_batch(make_scheduler, sink, timers):
    scheduler = make_scheduler()
    scheduler.schedule([event_in(timers, 15, event_id=1, title="Old")])
    scheduler.schedule([event_in(timers, 20, event_id=2, title="New")])

    assert scheduler.pending_event_ids == [2]
    timers.advance(60 * MINUTE)

    assert [n.title for n in sink.shown] == ["Upcoming Event: New"]


def test_duplicate_id_in_batch_keeps_last(make_scheduler, sink, timers):
    scheduler = make_scheduler()
    scheduler.schedule([
        event_in(timers, 15, event_id=1, title="First"),
        event_in(timers, 25, event_id=1, title="Second"),
    ])

    timers.advance(60 * MINUTE)

    assert [n.title for n in sink.shown] == ["Upcoming Event: Second"]


def test_schedule_without_permission_arms_nothing(make_scheduler, timers):
    for sink in (FakeSink(permission="default"), FakeSink(permission="denied"), FakeSink(supported=False)):
        scheduler = make_scheduler(sink=sink)
        scheduler.schedule([event_in(timers, 30)])

        assert scheduler.pending_event_ids == []
        timers.advance(60 * MINUTE)
        assert sink.shown == []


def test_schedule_after_permission_loss_still_clears(make_scheduler, sink, timers):
    scheduler = make_scheduler()
    scheduler.schedule([event_in(timers, 30)])
    scheduler._state = scheduler.state.model_copy(update={"permission": NotificationPermission.DENIED})

    scheduler.schedule([event_in(timers, 40, event_id=2)])

    assert scheduler.pending_event_ids == []
    assert timers.active == 0


# visibility

def test_hidden_surface_queues_until_visible(make_scheduler, sink, timers, visibility):
    scheduler = make_scheduler()
    scheduler.schedule([event_in(timers, 15, event_id=1), event_in(timers, 16, event_id=2)])

    visibility.change(False)
    timers.advance(7 * MINUTE)

    assert sink.shown == []
    assert [q.event_id for q in scheduler.queued] == [1, 2]

    visibility.change(True)

    assert [n.tag for n in sink.shown] == ["1", "2"]
    assert scheduler.queued == []

    # Queue drained once; another change dispatches nothing new
    visibility.change(False)
    visibility.change(True)
    assert len(sink.shown) == 2


def test_initially_hidden_surface_queues(make_scheduler, sink, timers):
    visibility = FakeVisibility(visible=False)
    scheduler = make_scheduler(visibility=visibility)
    scheduler.schedule([event_in(timers, 15)])

    timers.advance(5 * MINUTE)
    assert sink.shown == []

    visibility.change(True)
    assert len(sink.shown) == 1


def test_reentrant_visibility_change_does_not_double_dispatch(make_scheduler, timers, visibility):
    sink = FakeSink(permission="granted")
    scheduler = make_scheduler(sink=sink)
    original_show = sink.show

    def show_and_toggle(title, *, body, tag):
        # The page flips visibility again while the drain is running
        visibility.change(True)
        return original_show(title, body=body, tag=tag)

    sink.show = show_and_toggle
    scheduler.schedule([event_in(timers, 15, event_id=1), event_in(timers, 15, event_id=2)])
    visibility.change(False)
    timers.advance(5 * MINUTE)

    visibility.change(True)

    assert [n.tag for n in sink.shown] == ["1", "2"]


def test_schedule_keeps_queued_notifications(make_scheduler, sink, timers, visibility):
    scheduler = make_scheduler()
    scheduler.schedule([event_in(timers, 15)])
    visibility.change(False)
    timers.advance(5 * MINUTE)

    scheduler.schedule([])
    visibility.change(True)

    assert len(sink.shown) == 1


# dispatchNotification

def test_dispatch_requires_permission(make_scheduler):
    sink = FakeSink(permission="default")
    scheduler = make_scheduler(sink=sink)

    scheduler.dispatch_notification("Title", "Body", 3)

    assert sink.shown == []


def test_dispatch_auto_closes_after_display_window(make_scheduler, sink, timers):
    scheduler = make_scheduler()
    scheduler.dispatch_notification("Title", "Body", 3)
    notification = sink.shown[0]

    timers.advance(9)
    assert notification.close_count == 0
    timers.advance(1)
    assert notification.close_count == 1


def test_click_focuses_and_navigates_to_calendar(make_scheduler, sink, window):
    window.path = "/account"
    scheduler = make_scheduler()
    scheduler.dispatch_notification("Title", "Body", 3)

    sink.shown[0].on_click()

    assert window.focused == 1
    assert window.navigations == ["/calendar"]
    assert sink.shown[0].close_count == 1


def test_click_on_calendar_page_does_not_navigate(make_scheduler, sink, window):
    scheduler = make_scheduler()
    scheduler.dispatch_notification("Title", "Body", 3)

    sink.shown[0].on_click()

    assert window.focused == 1
    assert window.navigations == []


def test_show_failure_is_swallowed(make_scheduler, timers, metrics):
    sink = FakeSink(permission="granted", show_error=RuntimeError("refused"))
    scheduler = make_scheduler(sink=sink)
    scheduler.schedule([event_in(timers, 15, event_id=1), event_in(timers, 20, event_id=2)])

    timers.advance(30 * MINUTE)

    assert scheduler.pending_event_ids == []
    assert metrics.get_metrics()["counters"]["notifications_failed_total"] == 2


# cancellation

def test_clear_all_timers_prevents_dispatch(make_scheduler, sink, timers, visibility):
    scheduler = make_scheduler()
    scheduler.schedule([event_in(timers, 15, event_id=1), event_in(timers, 40, event_id=2)])
    visibility.change(False)
    timers.advance(10 * MINUTE)

    scheduler.clear_all_timers()
    timers.advance(60 * MINUTE)
    visibility.change(True)

    assert sink.shown == []
    assert scheduler.queued == []


def test_teardown_prevents_dispatch(make_scheduler, sink, timers, visibility):
    scheduler = make_scheduler()
    scheduler.schedule([event_in(timers, 15)])

    scheduler.close()
    timers.advance(60 * MINUTE)

    assert sink.shown == []
    assert visibility.callbacks == []


def test_teardown_cancels_auto_close(make_scheduler, sink, timers):
    with make_scheduler() as scheduler:
        scheduler.dispatch_notification("Title", "Body", 3)

    timers.advance(60)

    assert sink.shown[0].close_count == 0
    assert timers.active == 0


def test_schedule_after_teardown_arms_nothing(make_scheduler, sink, timers):
    scheduler = make_scheduler()
    scheduler.close()

    scheduler.schedule([event_in(timers, 15)])

    assert scheduler.pending_event_ids == []
    assert timers.active == 0
    timers.advance(60 * MINUTE)
    assert sink.shown == []


def test_dispatch_after_teardown_shows_nothing(make_scheduler, sink, timers):
    scheduler = make_scheduler()
    scheduler.close()

    scheduler.dispatch_notification("Title", "Body", 3)

    assert sink.shown == []
    assert timers.active == 0
