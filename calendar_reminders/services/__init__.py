"""Reminder scheduling, recurrence codec and backend access."""
from calendar_reminders.services.recurrence_codec import decode, encode
from calendar_reminders.services.reminder_scheduler import ReminderScheduler

__all__ = ["ReminderScheduler", "decode", "encode"]
