"""Recurrence router: codec and form validation over HTTP."""
from typing import Any, Dict

from fastapi import APIRouter

from calendar_reminders.models.event import EventForm
from calendar_reminders.models.recurrence import RecurrenceDescriptor, RecurrenceRuleTransport
from calendar_reminders.services.recurrence_codec import decode_transport, encode
from calendar_reminders.services.recurrence_validator import RecurrenceValidator

router = APIRouter(prefix="/recurrence", tags=["Recurrence"])  # main.py adds /api


@router.post("/decode", response_model=RecurrenceDescriptor, response_model_by_alias=True)
async def decode_recurrence(transport: RecurrenceRuleTransport):
    """Turn backend recurrence fields into form fields."""
    return decode_transport(transport)


@router.post("/encode")
async def encode_recurrence(descriptor: RecurrenceDescriptor) -> Dict[str, Any]:
    """Turn form fields into backend recurrence fields; absent fields are omitted."""
    return encode(descriptor).to_wire()


@router.post("/validate")
async def validate_event_form(form: EventForm) -> Dict[str, Any]:
    """Validate an event form, including its recurrence settings."""
    return RecurrenceValidator.validate_event_form(form)
