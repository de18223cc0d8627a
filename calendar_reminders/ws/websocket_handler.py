"""
WebSocket Handler for Reminder Sessions.

Each connected calendar page gets its own ReminderScheduler. The page
reports visibility, location and permission; the session relays
notifications back and tears the scheduler down on disconnect.
"""

import asyncio
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from fastapi import WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from calendar_reminders.config import Settings, get_settings
from calendar_reminders.models.event import ScheduledEvent
from calendar_reminders.models.notification import NotificationPermission
from calendar_reminders.providers.base_provider import Clock, PreferenceStore, TimerService
from calendar_reminders.providers.runtime import AsyncioTimerService, JsonFilePreferenceStore, SystemClock
from calendar_reminders.services.events_client import EventsClient, EventsClientError
from calendar_reminders.services.reminder_scheduler import PERMISSION_PREFERENCE_KEY, ReminderScheduler
from calendar_reminders.utils.date_ranges import visible_range
from calendar_reminders.utils.logger import get_logger
from calendar_reminders.utils.metrics import metrics_collector
from calendar_reminders.ws.browser_surface import BrowserSurface

session_logger = get_logger("reminder-sessions", get_settings().log_level)

EventsClientFactory = Callable[[Optional[str]], EventsClient]


def default_events_client(token: Optional[str]) -> EventsClient:
    settings = get_settings()
    return EventsClient(settings.calendar_api_url, token=token, timeout=settings.backend_timeout)


class ReminderSession:
    """Reminder scheduling for one WebSocket connection."""

    def __init__(
        self,
        websocket: WebSocket,
        client_id: str,
        *,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        timers: Optional[TimerService] = None,
        preferences: Optional[PreferenceStore] = None,
        events_client_factory: EventsClientFactory = default_events_client,
    ):
        self.websocket = websocket
        self.client_id = client_id
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.timers = timers or AsyncioTimerService()
        self.preferences = preferences or JsonFilePreferenceStore(self.settings.preference_store_path)
        self.events_client_factory = events_client_factory
        self.log = session_logger.bind(client_id=client_id)

        self.surface: Optional[BrowserSurface] = None
        self.scheduler: Optional[ReminderScheduler] = None
        self.token: Optional[str] = None

        self._outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
        self._tasks: set = set()
        self._last_events: List[ScheduledEvent] = []

    def send(self, message: Dict[str, Any]) -> None:
        """Queue a message for the page; safe to call from timer callbacks."""
        self._outbox.put_nowait(message)

    async def _writer(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self.websocket.send_json(message)
            except Exception:
                # Peer is gone; the reader loop ends the session
                self.log.exception("Failed to send message", message_type=message.get("type"))
                return

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def send_state(self) -> None:
        state = self.scheduler.state
        self.send({
            "type": "state",
            "permission": state.permission.value,
            "isSupported": state.is_supported,
        })

    def send_error(self, code: str, message: str) -> None:
        self.send({"type": "error", "code": code, "message": message})

    async def run(self) -> None:
        """Serve the connection until the page goes away."""
        await self.websocket.accept()

        try:
            hello = await self.websocket.receive_json()
        except WebSocketDisconnect:
            self.log.warning("Connection closed before hello")
            return
        except (KeyError, TypeError, ValueError):
            hello = None

        if not isinstance(hello, dict) or hello.get("type") != "hello":
            self.log.warning("First message was not hello")
            await self.websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        self.token = hello.get("token")
        self.surface = BrowserSurface.from_hello(self.send, hello)
        self.scheduler = ReminderScheduler(
            self.surface,
            self.surface,
            self.surface,
            self.clock,
            self.timers,
            self.preferences,
            calendar_path=self.settings.calendar_path,
            preference_key=f"{self.client_id}:{PERMISSION_PREFERENCE_KEY}",
            local_tz=self.surface.tzinfo,
        )
        metrics_collector.session_opened()
        self.log.info(
            "Reminder session opened",
            permission=self.scheduler.state.permission.value,
            supported=self.scheduler.state.is_supported,
            timezone=str(self.surface.tzinfo) if self.surface.tzinfo else None,
        )

        writer = asyncio.create_task(self._writer())
        try:
            self.send_state()
            if self.scheduler.state.is_supported and self.scheduler.state.permission == NotificationPermission.DEFAULT:
                self._spawn(self.request_permission())

            while True:
                try:
                    message = await self.websocket.receive_json()
                except (KeyError, TypeError, ValueError):
                    # Binary frames have no text; invalid JSON fails to parse
                    self.send_error("INVALID_MESSAGE", "Messages must be JSON objects")
                    continue
                await self.handle_message(message)
        except WebSocketDisconnect:
            self.log.info("Reminder session closed")
        finally:
            self.scheduler.close()
            metrics_collector.session_closed()
            self.surface.detach()
            pending = [*self._tasks, writer]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    async def handle_message(self, message: Any) -> None:
        if not isinstance(message, dict):
            self.send_error("INVALID_MESSAGE", "Messages must be JSON objects")
            return

        message_type = message.get("type")

        if self.surface.handle_message(message):
            return

        if message_type == "permission.request":
            self._spawn(self.request_permission())
        elif message_type == "schedule":
            self.schedule_payload(message.get("events"))
        elif message_type == "refresh":
            self._spawn(self.refresh(message))
        elif message_type == "clear":
            self._last_events = []
            self.scheduler.clear_all_timers()
            self.send_scheduled()
        else:
            self.send_error("UNKNOWN_MESSAGE", f"Unknown message type: {message_type}")

    async def request_permission(self) -> None:
        before = self.scheduler.state.permission
        await self.scheduler.request_permission()
        self.send_state()
        if self.scheduler.state.permission != before and self._last_events:
            # A fresh grant arms reminders for the batch already on screen
            self.schedule(self._last_events)

    def schedule_payload(self, payload: Any) -> None:
        if not isinstance(payload, list):
            self.send_error("INVALID_EVENTS", "events must be a list")
            return
        try:
            events = [ScheduledEvent.model_validate(item) for item in payload]
        except ValidationError as e:
            self.send_error("INVALID_EVENTS", str(e))
            return
        self.schedule(events)

    def schedule(self, events: List[ScheduledEvent]) -> None:
        self._last_events = list(events)
        self.scheduler.schedule(self._last_events)
        self.send_scheduled()

    def send_scheduled(self) -> None:
        self.send({"type": "scheduled", "pending": self.scheduler.pending_event_ids})

    async def refresh(self, message: Dict[str, Any]) -> None:
        """Fetch the events of the page's current view and schedule them."""
        try:
            anchor = datetime.fromisoformat(str(message.get("anchor")).replace("Z", "+00:00"))
            start, end = visible_range(str(message.get("view", "month")), anchor)
        except ValueError as e:
            self.send_error("INVALID_RANGE", str(e))
            return

        tag_id = message.get("tagId")
        started = time.perf_counter()
        try:
            async with self.events_client_factory(self.token) as client:
                records = await client.get_events_in_range(start, end, tag_id=tag_id)
        except EventsClientError as e:
            self.log.error("Failed to fetch events", code=e.code)
            self.send_error(e.code, e.message)
            return
        except ValidationError as e:
            self.log.error("Backend returned malformed events")
            self.send_error("INVALID_RESPONSE", str(e))
            return
        finally:
            metrics_collector.observe("events_fetch", time.perf_counter() - started)

        self.schedule([record.to_scheduled() for record in records])
