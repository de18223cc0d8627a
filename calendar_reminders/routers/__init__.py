"""API routers."""
from calendar_reminders.routers import events, recurrence, reminders

__all__ = ["events", "recurrence", "reminders"]
