"""
Browser Surface.

A connected calendar page acting as the scheduler's notification sink,
visibility source and host window. Outgoing instructions are handed to a
send callable; incoming page reports are applied with handle_message().
"""

import asyncio
import logging
from datetime import timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from calendar_reminders.models.notification import NotificationPermission
from calendar_reminders.providers.base_provider import (
    HostWindow,
    NotificationHandle,
    NotificationSink,
    VisibilitySource,
)

logger = logging.getLogger(__name__)

SendMessage = Callable[[Dict[str, Any]], None]


def resolve_timezone(name: Optional[str], offset: Optional[int] = None) -> Optional[tzinfo]:
    """
    Resolve the page's timezone from its hello report.

    Args:
        name: IANA zone name such as "America/New_York"
        offset: Minutes to add to local time to get UTC, as returned by
            Date.getTimezoneOffset() (300 for UTC-5); used when name is absent
            or unknown

    Returns:
        tzinfo for naive event times, or None when the page sent neither
    """
    if name:
        try:
            return ZoneInfo(str(name))
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown page timezone {name!r}")

    if isinstance(offset, (int, float)) and not isinstance(offset, bool):
        try:
            return timezone(-timedelta(minutes=offset))
        except ValueError:
            logger.warning(f"Page timezone offset out of range: {offset}")

    return None


class PermissionRequestError(Exception):
    """The page reported that its permission prompt failed."""


class BrowserNotification(NotificationHandle):
    """Notification rendered by the page, addressed by tag."""

    def __init__(self, surface: "BrowserSurface", tag: str):
        self.surface = surface
        self.tag = tag
        self.on_click = None
        self.closed = False

    def click(self) -> None:
        if self.on_click is not None:
            self.on_click()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.surface._forget(self)
        self.surface.send({"type": "notification.close", "tag": self.tag})


class BrowserSurface(NotificationSink, VisibilitySource, HostWindow):
    """Page state mirrored from the client's reports."""

    def __init__(self, send: SendMessage, *, supported: bool = False,
                 permission: str = NotificationPermission.DEFAULT.value,
                 visible: bool = True, pathname: str = "/",
                 timezone_name: Optional[str] = None, timezone_offset: Optional[int] = None):
        self.send = send
        self.supported = supported
        self.permission = permission
        self.visible = visible
        self.pathname = pathname
        self.tzinfo = resolve_timezone(timezone_name, timezone_offset)

        self._notifications: Dict[str, BrowserNotification] = {}
        self._subscribers: List[Callable[[], None]] = []
        self._permission_future: Optional[asyncio.Future] = None

    @classmethod
    def from_hello(cls, send: SendMessage, hello: Dict[str, Any]) -> "BrowserSurface":
        """Build a surface from the page's initial "hello" report."""
        return cls(
            send,
            supported=bool(hello.get("supported", False)),
            permission=str(hello.get("permission") or NotificationPermission.DEFAULT.value),
            visible=hello.get("visibility", "visible") == "visible",
            pathname=str(hello.get("pathname") or "/"),
            timezone_name=hello.get("timezone"),
            timezone_offset=hello.get("timezoneOffset"),
        )

    # NotificationSink

    def is_supported(self) -> bool:
        return self.supported

    def current_permission(self) -> str:
        return self.permission

    async def request_permission(self) -> str:
        if self._permission_future is None or self._permission_future.done():
            self._permission_future = asyncio.get_running_loop().create_future()
            self.send({"type": "permission.prompt"})
        return await asyncio.shield(self._permission_future)

    def show(self, title: str, *, body: str, tag: str) -> BrowserNotification:
        notification = BrowserNotification(self, tag)
        # Same tag replaces the earlier notification on the page
        self._notifications[tag] = notification
        self.send({"type": "notification.show", "tag": tag, "title": title, "body": body})
        return notification

    def _forget(self, notification: BrowserNotification) -> None:
        if self._notifications.get(notification.tag) is notification:
            del self._notifications[notification.tag]

    @property
    def open_notifications(self) -> Dict[str, BrowserNotification]:
        return dict(self._notifications)

    # VisibilitySource

    def is_visible(self) -> bool:
        return self.visible

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # HostWindow

    def focus(self) -> None:
        self.send({"type": "window.focus"})

    def current_path(self) -> str:
        return self.pathname

    def navigate(self, path: str) -> None:
        self.pathname = path
        self.send({"type": "window.navigate", "path": path})

    # Incoming page reports

    def handle_message(self, message: Dict[str, Any]) -> bool:
        """
        Apply a page report.

        Returns:
            True if the message type belongs to the surface
        """
        message_type = message.get("type")

        if message_type == "visibility":
            self.visible = message.get("state") == "visible"
            for callback in list(self._subscribers):
                callback()
        elif message_type == "location":
            self.pathname = str(message.get("pathname") or "/")
        elif message_type == "permission.result":
            self.permission = str(message.get("permission"))
            self._resolve_permission(result=self.permission)
        elif message_type == "permission.error":
            self._resolve_permission(error=PermissionRequestError(message.get("message", "Permission prompt failed")))
        elif message_type == "notification.click":
            notification = self._notifications.get(str(message.get("tag")))
            if notification is None:
                logger.debug(f"Click for unknown notification tag {message.get('tag')}")
            else:
                notification.click()
        else:
            return False

        return True

    def _resolve_permission(self, result: Optional[str] = None, error: Optional[Exception] = None) -> None:
        future = self._permission_future
        if future is None or future.done():
            logger.debug("Permission report received without a pending prompt")
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def detach(self) -> None:
        """Fail any pending prompt and drop subscribers once the page is gone."""
        if self._permission_future is not None and not self._permission_future.done():
            self._permission_future.set_exception(ConnectionError("Page disconnected"))
        self._subscribers.clear()
        self._notifications.clear()
