"""
Host Collaborators.

Abstract interfaces the reminder scheduler depends on. Concrete hosts (the
asyncio runtime, a connected browser page, test doubles) implement these.
"""

import abc
from datetime import datetime
from typing import Any, Callable, Optional

from calendar_reminders.models.notification import NotificationPermission


class Clock(abc.ABC):
    """Source of the current instant."""

    @abc.abstractmethod
    def now(self) -> datetime:
        """Return the current time as a timezone-aware datetime."""
        pass


class TimerService(abc.ABC):
    """Delayed, one-shot callback scheduling."""

    @abc.abstractmethod
    def after(self, delay: float, callback: Callable[[], None]) -> Any:
        """
        Arrange for callback to run once after a delay.

        Args:
            delay: Delay in seconds
            callback: Zero-argument callable

        Returns:
            Opaque handle accepted by cancel()
        """
        pass

    @abc.abstractmethod
    def cancel(self, handle: Any) -> None:
        """Cancel a timer; cancelling a fired or cancelled timer is a no-op."""
        pass


class NotificationHandle(abc.ABC):
    """A notification currently shown by a sink."""

    on_click: Optional[Callable[[], None]] = None

    @abc.abstractmethod
    def close(self) -> None:
        """Dismiss the notification."""
        pass


class NotificationSink(abc.ABC):
    """Capability to show user-visible notifications."""

    @abc.abstractmethod
    def is_supported(self) -> bool:
        pass

    @abc.abstractmethod
    def current_permission(self) -> NotificationPermission:
        pass

    @abc.abstractmethod
    async def request_permission(self) -> NotificationPermission:
        """Prompt the user; may raise if the prompt itself fails."""
        pass

    @abc.abstractmethod
    def show(self, title: str, *, body: str, tag: str) -> NotificationHandle:
        """
        Show a notification.

        Notifications sharing a tag replace each other instead of stacking.
        May raise if the host refuses to create it.
        """
        pass


class VisibilitySource(abc.ABC):
    """Whether the consuming surface is currently observable."""

    @abc.abstractmethod
    def is_visible(self) -> bool:
        pass

    @abc.abstractmethod
    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a visibility-change callback.

        Returns:
            Callable that removes the subscription
        """
        pass


class HostWindow(abc.ABC):
    """The page hosting the calendar."""

    @abc.abstractmethod
    def focus(self) -> None:
        pass

    @abc.abstractmethod
    def current_path(self) -> str:
        pass

    @abc.abstractmethod
    def navigate(self, path: str) -> None:
        pass


class PreferenceStore(abc.ABC):
    """Persisted key/value preferences; a cache, never authoritative."""

    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abc.abstractmethod
    def set(self, key: str, value: str) -> None:
        pass
