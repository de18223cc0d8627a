"""Events router: form submissions relayed to the calendar backend."""
from datetime import datetime
from typing import AsyncIterator, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status

from calendar_reminders.config import get_settings
from calendar_reminders.models.event import EventForm, EventRecord
from calendar_reminders.services.event_form import build_event_request, form_from_event
from calendar_reminders.services.events_client import EventsClient, EventsClientError
from calendar_reminders.services.recurrence_validator import RecurrenceValidator

router = APIRouter(prefix="/events", tags=["Events"])  # main.py adds /api

SCOPE_PATTERN = "^(instance|series)$"

# Backend failures that are not the caller's fault
_GATEWAY_STATUS = {
    "UNAVAILABLE": status.HTTP_503_SERVICE_UNAVAILABLE,
    "INVALID_RESPONSE": status.HTTP_502_BAD_GATEWAY,
    "BACKEND_ERROR": status.HTTP_502_BAD_GATEWAY,
}


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the page's bearer token so it can be forwarded untouched."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    return token.strip() if scheme.lower() == "bearer" and token.strip() else None


async def get_events_client(token: Optional[str] = Depends(bearer_token)) -> AsyncIterator[EventsClient]:
    """Dependency yielding a backend client for the duration of one request."""
    settings = get_settings()
    async with EventsClient(settings.calendar_api_url, token=token, timeout=settings.backend_timeout) as client:
        yield client


def _backend_error(error: EventsClientError) -> HTTPException:
    code = _GATEWAY_STATUS.get(error.code, error.status_code or status.HTTP_502_BAD_GATEWAY)
    return HTTPException(status_code=code, detail={"code": error.code, "message": error.message})


def _validated(form: EventForm) -> EventForm:
    result = RecurrenceValidator.validate_event_form(form)
    if not result["valid"]:
        raise HTTPException(status_code=422, detail=result)
    return form


@router.get("", response_model=List[EventRecord], response_model_by_alias=True)
async def list_events(
    start: Optional[datetime] = Query(None, description="Range start (ISO local date-time)"),
    end: Optional[datetime] = Query(None, description="Range end (ISO local date-time)"),
    tag_id: Optional[int] = Query(None, alias="tagId", description="Only events with this tag"),
    client: EventsClient = Depends(get_events_client),
):
    """List events, for a range when both start and end are given."""
    if (start is None) != (end is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="start and end must be given together",
        )

    try:
        if start is not None:
            return await client.get_events_in_range(start, end, tag_id=tag_id)
        return await client.get_events()
    except EventsClientError as e:
        raise _backend_error(e) from e


@router.post("/form", response_model=EventForm, response_model_by_alias=True)
async def edit_form(record: EventRecord):
    """Populate the edit form for an event the page already has."""
    return form_from_event(record)


@router.post("", response_model=EventRecord, response_model_by_alias=True,
             status_code=status.HTTP_201_CREATED)
async def create_event(
    form: EventForm,
    client: EventsClient = Depends(get_events_client),
):
    """Validate a submitted form and create the event on the backend."""
    try:
        return await client.create_event(build_event_request(_validated(form)))
    except EventsClientError as e:
        raise _backend_error(e) from e


@router.put("/{event_id}", response_model=EventRecord, response_model_by_alias=True)
async def update_event(
    event_id: int,
    form: EventForm,
    scope: str = Query("instance", pattern=SCOPE_PATTERN, description="instance or series"),
    client: EventsClient = Depends(get_events_client),
):
    """Update one occurrence or the whole series from a submitted form."""
    try:
        return await client.update_event(event_id, build_event_request(_validated(form)), scope=scope)
    except EventsClientError as e:
        raise _backend_error(e) from e


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: int,
    scope: str = Query("instance", pattern=SCOPE_PATTERN, description="instance or series"),
    client: EventsClient = Depends(get_events_client),
):
    """Delete one occurrence or the whole series."""
    try:
        await client.delete_event(event_id, scope=scope)
    except EventsClientError as e:
        raise _backend_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
