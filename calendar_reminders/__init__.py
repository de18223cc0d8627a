"""Recurrence rules and upcoming-event reminders for the calendar application."""

__version__ = "1.0.0"
