"""Event models for the calendar backend and the reminder scheduler."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from calendar_reminders.models.recurrence import RecurrenceDescriptor, RecurrenceRuleTransport


class Tag(BaseModel):
    """Label attached to events."""
    id: int
    name: str


class ScheduledEvent(BaseModel):
    """Minimal event view needed to time a reminder."""
    id: int
    title: str
    description: Optional[str] = None
    start_time: datetime = Field(alias="startDateTime")  # naive values are wall-clock time in the page's timezone

    class Config:
        populate_by_name = True


class EventRecord(BaseModel):
    """Event as returned by the calendar backend."""
    id: int
    title: str
    description: Optional[str] = None
    start_date_time: datetime = Field(alias="startDateTime")
    end_date_time: datetime = Field(alias="endDateTime")
    user_email: Optional[str] = Field(default=None, alias="userEmail")

    # Recurrence fields
    recurrence_rule: Optional[str] = Field(default=None, alias="recurrenceRule")
    recurrence_end_date: Optional[str] = Field(default=None, alias="recurrenceEndDate")
    recurrence_count: Optional[int] = Field(default=None, alias="recurrenceCount")
    parent_event_id: Optional[int] = Field(default=None, alias="parentEventId")
    original_start_date_time: Optional[datetime] = Field(default=None, alias="originalStartDateTime")
    excluded_dates: Optional[str] = Field(default=None, alias="excludedDates")

    tags: List[Tag] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    def to_scheduled(self) -> ScheduledEvent:
        return ScheduledEvent(
            id=self.id,
            title=self.title,
            description=self.description,
            start_time=self.start_date_time,
        )

    def recurrence(self) -> RecurrenceRuleTransport:
        return RecurrenceRuleTransport(
            rule=self.recurrence_rule,
            end_date=self.recurrence_end_date,
            count=self.recurrence_count,
        )


class CreateEventRequest(BaseModel):
    """Body for creating or updating an event on the backend."""
    title: str
    description: str
    start_date_time: str = Field(alias="startDateTime")
    end_date_time: str = Field(alias="endDateTime")
    recurrence_rule: Optional[str] = Field(default=None, alias="recurrenceRule")
    recurrence_end_date: Optional[str] = Field(default=None, alias="recurrenceEndDate")
    recurrence_count: Optional[int] = Field(default=None, alias="recurrenceCount")
    tag_ids: Optional[List[int]] = Field(default=None, alias="tagIds")

    class Config:
        populate_by_name = True

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class EventForm(BaseModel):
    """State of the create/edit event form."""
    title: str = ""
    description: str = ""
    start_date_time: str = Field(default="", alias="startDateTime")  # datetime-local input value
    end_date_time: str = Field(default="", alias="endDateTime")
    recurrence: RecurrenceDescriptor = Field(default_factory=RecurrenceDescriptor)
    tag_ids: List[int] = Field(default_factory=list, alias="tagIds")

    class Config:
        populate_by_name = True
