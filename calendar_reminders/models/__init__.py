"""Data models."""
from calendar_reminders.models.event import (
    CreateEventRequest,
    EventForm,
    EventRecord,
    ScheduledEvent,
    Tag,
)
from calendar_reminders.models.notification import (
    NotificationPermission,
    NotificationPermissionState,
    QueuedNotification,
)
from calendar_reminders.models.recurrence import (
    DEFAULT_OCCURRENCE_COUNT,
    EndCondition,
    Frequency,
    RecurrenceDescriptor,
    RecurrenceRuleTransport,
)

__all__ = [
    "CreateEventRequest",
    "DEFAULT_OCCURRENCE_COUNT",
    "EndCondition",
    "EventForm",
    "EventRecord",
    "Frequency",
    "NotificationPermission",
    "NotificationPermissionState",
    "QueuedNotification",
    "RecurrenceDescriptor",
    "RecurrenceRuleTransport",
    "ScheduledEvent",
    "Tag",
]
