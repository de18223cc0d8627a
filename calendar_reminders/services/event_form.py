"""Conversion between the event form and backend event payloads."""
import logging

from calendar_reminders.models.event import CreateEventRequest, EventForm, EventRecord
from calendar_reminders.services.recurrence_codec import decode_transport, encode
from calendar_reminders.services.recurrence_validator import RecurrenceValidator

logger = logging.getLogger(__name__)


def build_event_request(form: EventForm) -> CreateEventRequest:
    """Build the create/update body for a submitted form."""
    recurrence = encode(form.recurrence)
    return CreateEventRequest(
        title=form.title,
        description=form.description,
        start_date_time=form.start_date_time,
        end_date_time=form.end_date_time,
        recurrence_rule=recurrence.rule,
        recurrence_end_date=recurrence.end_date,
        recurrence_count=recurrence.count,
        tag_ids=list(form.tag_ids) or None,
    )


def form_from_event(record: EventRecord) -> EventForm:
    """Populate the form for editing an existing event."""
    for warning in RecurrenceValidator.validate_rule(record.recurrence_rule)["warnings"]:
        logger.warning(f"Event {record.id}: {warning}")

    return EventForm(
        title=record.title,
        description=record.description or "",
        start_date_time=record.start_date_time.isoformat(),
        end_date_time=record.end_date_time.isoformat(),
        recurrence=decode_transport(record.recurrence()),
        tag_ids=[tag.id for tag in record.tags],
    )
