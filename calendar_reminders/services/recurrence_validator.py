"""Recurrence Validator."""
from datetime import datetime
from typing import Any, Dict, Optional

from calendar_reminders.models.event import EventForm
from calendar_reminders.models.recurrence import EndCondition, Frequency, RecurrenceDescriptor
from calendar_reminders.services.recurrence_codec import frequency_tokens


def _new_result() -> Dict[str, Any]:
    return {
        "valid": True,
        "errors": {},
        "warnings": []
    }


def _parse_datetime(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None


def _naive(value: datetime) -> datetime:
    # Form values are local wall-clock times; compare without offsets
    return value.replace(tzinfo=None)


class RecurrenceValidator:
    """Validate recurrence settings entered in the event form."""

    @staticmethod
    def validate_recurrence(descriptor: RecurrenceDescriptor, start: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Validate a recurrence descriptor.

        Args:
            descriptor: Recurrence fields from the form
            start: Event start, used to check the repeat end date

        Returns:
            Dict with "valid", "errors" (field -> message) and "warnings"
        """
        result = _new_result()

        if descriptor.frequency == Frequency.NONE:
            if descriptor.end_condition != EndCondition.NEVER:
                result["warnings"].append("End condition is ignored for events that do not repeat")
            return result

        if descriptor.end_condition == EndCondition.ON_DATE:
            if not descriptor.end_date:
                result["errors"]["repeatEndDate"] = "End date is required when repeat end type is date"
            else:
                end_date = _parse_datetime(descriptor.end_date)
                if end_date is None:
                    result["errors"]["repeatEndDate"] = f"Invalid repeat end date: {descriptor.end_date}"
                elif start is not None and _naive(end_date) <= _naive(start):
                    result["errors"]["repeatEndDate"] = "Repeat end date must be after start date"

        if descriptor.end_condition == EndCondition.AFTER_COUNT and descriptor.occurrence_count <= 0:
            result["errors"]["repeatCount"] = "Repeat count must be a positive number"

        result["valid"] = not result["errors"]
        return result

    @staticmethod
    def validate_event_form(form: EventForm) -> Dict[str, Any]:
        """
        Validate the whole event form, recurrence included.

        Args:
            form: Event form state

        Returns:
            Dict with validation result
        """
        result = _new_result()
        errors = result["errors"]

        if not form.title.strip():
            errors["title"] = "Title is required"
        if not form.description.strip():
            errors["description"] = "Description is required"
        if not form.start_date_time:
            errors["startDateTime"] = "Start date and time is required"
        if not form.end_date_time:
            errors["endDateTime"] = "End date and time is required"

        start = _parse_datetime(form.start_date_time) if form.start_date_time else None
        end = _parse_datetime(form.end_date_time) if form.end_date_time else None

        if form.start_date_time and start is None:
            errors["startDateTime"] = f"Invalid start date and time: {form.start_date_time}"
        if form.end_date_time and end is None:
            errors["endDateTime"] = f"Invalid end date and time: {form.end_date_time}"
        if start is not None and end is not None and _naive(end) <= _naive(start):
            errors["endDateTime"] = "End must be after start"

        recurrence = RecurrenceValidator.validate_recurrence(form.recurrence, start)
        errors.update(recurrence["errors"])
        result["warnings"].extend(recurrence["warnings"])

        result["valid"] = not errors
        return result

    @staticmethod
    def validate_rule(rule: Optional[str]) -> Dict[str, Any]:
        """
        Check a stored rule string for tokens the form cannot represent.

        Rules are always decodable, so only warnings are reported.
        """
        result = _new_result()
        if not rule:
            return result

        matches = frequency_tokens(rule)
        if not matches:
            result["warnings"].append(f"Unrecognised recurrence rule '{rule}' will be treated as not repeating")
        elif len(matches) > 1:
            result["warnings"].append(
                f"Recurrence rule '{rule}' contains several frequencies; using {matches[0].value}"
            )

        return result
