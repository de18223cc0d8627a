"""Reminder Scheduler Service.

Arms one timer per upcoming event so an "Upcoming Event" notification fires
a fixed lead time before the event starts. Reminders that fire while the
surface is hidden are queued and flushed when it becomes visible again.
"""
import logging
from datetime import datetime, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Set

from calendar_reminders.models.event import ScheduledEvent
from calendar_reminders.models.notification import (
    NotificationPermission,
    NotificationPermissionState,
    QueuedNotification,
)
from calendar_reminders.providers.base_provider import (
    Clock,
    HostWindow,
    NotificationHandle,
    NotificationSink,
    PreferenceStore,
    TimerService,
    VisibilitySource,
)
from calendar_reminders.utils.metrics import MetricsCollector, metrics_collector

logger = logging.getLogger(__name__)

REMINDER_LEAD = timedelta(minutes=10)
NOTIFICATION_DISPLAY_SECONDS = 10
PERMISSION_PREFERENCE_KEY = "notificationPermission"
DEFAULT_CALENDAR_PATH = "/calendar"


def _as_aware(value: datetime, local_tz: Optional[tzinfo] = None) -> datetime:
    # Naive datetimes are wall-clock time in local_tz, or the process zone without one
    if value.tzinfo is not None:
        return value
    return value.replace(tzinfo=local_tz) if local_tz is not None else value.astimezone()


class ReminderScheduler:
    """Visibility-aware reminder scheduling for one host surface."""

    def __init__(
        self,
        sink: NotificationSink,
        visibility: VisibilitySource,
        window: HostWindow,
        clock: Clock,
        timers: TimerService,
        preferences: PreferenceStore,
        *,
        calendar_path: str = DEFAULT_CALENDAR_PATH,
        preference_key: str = PERMISSION_PREFERENCE_KEY,
        metrics: Optional[MetricsCollector] = None,
        local_tz: Optional[tzinfo] = None,
    ):
        self._sink = sink
        self._visibility = visibility
        self._window = window
        self._clock = clock
        self._timers = timers
        self._preferences = preferences
        self._calendar_path = calendar_path
        self._preference_key = preference_key
        self._metrics = metrics or metrics_collector
        self._local_tz = local_tz

        self._pending: Dict[int, Any] = {}
        self._queue: List[QueuedNotification] = []
        self._close_timers: Set[Any] = set()
        self._closed = False

        self._state = self._initial_state()
        self._visible = self._visibility.is_visible()
        self._unsubscribe = self._visibility.subscribe(self._handle_visibility_change)

    def _initial_state(self) -> NotificationPermissionState:
        if not self._sink.is_supported():
            return NotificationPermissionState(
                permission=NotificationPermission.DENIED,
                is_supported=False,
            )

        live = self._sink.current_permission()
        try:
            permission = NotificationPermission(live)
        except ValueError:
            logger.warning(f"Unknown notification permission {live!r}, treating as denied")
            permission = NotificationPermission.DENIED

        # The live permission wins over whatever was stored last time
        stored = self._preferences.get(self._preference_key)
        if stored and stored != permission.value:
            self._persist_permission(permission)

        return NotificationPermissionState(permission=permission, is_supported=True)

    def _persist_permission(self, permission: NotificationPermission) -> None:
        try:
            self._preferences.set(self._preference_key, permission.value)
        except OSError as e:
            logger.warning(f"Failed to persist notification permission: {e}")

    @property
    def state(self) -> NotificationPermissionState:
        return self._state.model_copy()

    @property
    def pending_event_ids(self) -> List[int]:
        return list(self._pending)

    @property
    def queued(self) -> List[QueuedNotification]:
        return list(self._queue)

    @property
    def is_visible(self) -> bool:
        return self._visible

    async def request_permission(self) -> NotificationPermission:
        """
        Ask the user for notification permission.

        Only prompts while the permission is still "default"; a decided
        permission is returned as is. Never raises.

        Returns:
            The resulting permission
        """
        if not self._state.is_supported:
            return NotificationPermission.DENIED

        if self._state.permission != NotificationPermission.DEFAULT:
            return self._state.permission

        self._metrics.permission_requested()
        try:
            permission = NotificationPermission(await self._sink.request_permission())
        except Exception:
            logger.exception("Failed to request notification permission")
            return NotificationPermission.DENIED

        self._persist_permission(permission)
        self._state = self._state.model_copy(update={"permission": permission})
        logger.info(f"Notification permission resolved to {permission.value}")
        return permission

    def schedule(self, events: Iterable[ScheduledEvent]) -> None:
        """
        Replace all pending reminders with reminders for the given events.

        Events starting within the lead time (or already started) get no
        reminder.
        """
        self._cancel_pending()

        if self._closed:
            logger.debug("Ignoring schedule() on a closed scheduler")
            return

        if not self._state.can_notify:
            return

        now = self._clock.now()
        for event in events:
            delay = (_as_aware(event.start_time, self._local_tz) - now - REMINDER_LEAD).total_seconds()
            if delay <= 0:
                self._metrics.reminder_skipped()
                continue

            previous = self._pending.pop(event.id, None)
            if previous is not None:
                self._timers.cancel(previous)

            self._pending[event.id] = self._timers.after(delay, self._make_fire_callback(event))
            self._metrics.reminder_scheduled()

        logger.debug(f"Armed {len(self._pending)} reminder(s)")

    def _make_fire_callback(self, event: ScheduledEvent):
        def fire():
            self._pending.pop(event.id, None)
            self._fire(event)
        return fire

    def _fire(self, event: ScheduledEvent) -> None:
        lead_minutes = int(REMINDER_LEAD.total_seconds() // 60)
        title = f"Upcoming Event: {event.title}"
        body = f"Starting in {lead_minutes} minutes"
        if event.description:
            body = f"{body}: {event.description}"

        if not self._visible:
            self._queue.append(QueuedNotification(event_id=event.id, title=title, body=body))
            self._metrics.reminder_queued()
            return

        self.dispatch_notification(title, body, event.id)

    def dispatch_notification(self, title: str, body: str, event_id: int) -> None:
        """Show a notification now; failures are logged and dropped."""
        if self._closed or not self._state.can_notify:
            return

        try:
            notification = self._sink.show(title, body=body, tag=str(event_id))
            notification.on_click = self._make_click_handler(notification)
            self._arm_auto_close(notification)
        except Exception:
            self._metrics.notification_failed()
            logger.exception(f"Failed to create notification for event {event_id}")
            return

        self._metrics.notification_dispatched()

    def _make_click_handler(self, notification: NotificationHandle):
        def on_click():
            self._window.focus()
            if self._window.current_path() != self._calendar_path:
                self._window.navigate(self._calendar_path)
            notification.close()
        return on_click

    def _arm_auto_close(self, notification: NotificationHandle) -> None:
        handle = None

        def auto_close():
            self._close_timers.discard(handle)
            notification.close()

        handle = self._timers.after(NOTIFICATION_DISPLAY_SECONDS, auto_close)
        self._close_timers.add(handle)

    def _handle_visibility_change(self) -> None:
        self._visible = self._visibility.is_visible()
        if not self._visible or not self._queue:
            return

        # Swap the queue out before dispatching so a re-entrant change sees it empty
        queued, self._queue = self._queue, []
        for item in queued:
            self.dispatch_notification(item.title, item.body, item.event_id)

    def _cancel_pending(self) -> None:
        for handle in self._pending.values():
            self._timers.cancel(handle)
        self._pending.clear()

    def clear_all_timers(self) -> None:
        """Cancel pending reminders and drop queued, unshown notifications."""
        self._cancel_pending()
        self._queue = []

    def close(self) -> None:
        """Tear down: nothing fires after this returns."""
        if self._closed:
            return
        self._closed = True
        self.clear_all_timers()
        for handle in list(self._close_timers):
            self._timers.cancel(handle)
        self._close_timers.clear()
        self._unsubscribe()

    def __enter__(self) -> "ReminderScheduler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
