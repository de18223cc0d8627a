"""Recurrence models shared by the event form and the backend transport."""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Frequency(str, Enum):
    """How often an event repeats."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class EndCondition(str, Enum):
    """When a repeating event stops."""
    NEVER = "never"
    ON_DATE = "date"
    AFTER_COUNT = "count"


DEFAULT_OCCURRENCE_COUNT = 10


class RecurrenceDescriptor(BaseModel):
    """Recurrence as edited in the event form."""
    frequency: Frequency = Field(default=Frequency.NONE, alias="repeatType")
    end_condition: EndCondition = Field(default=EndCondition.NEVER, alias="repeatEndType")
    end_date: str = Field(default="", alias="repeatEndDate")  # YYYY-MM-DD, only for ON_DATE
    occurrence_count: int = Field(default=DEFAULT_OCCURRENCE_COUNT, alias="repeatCount")  # only for AFTER_COUNT

    class Config:
        populate_by_name = True


class RecurrenceRuleTransport(BaseModel):
    """Recurrence fields as exchanged with the calendar backend."""
    rule: Optional[str] = Field(default=None, alias="recurrenceRule")  # FREQ=DAILY etc.
    end_date: Optional[str] = Field(default=None, alias="recurrenceEndDate")  # <date>T23:59:59
    count: Optional[int] = Field(default=None, alias="recurrenceCount")

    class Config:
        populate_by_name = True

    def to_wire(self) -> dict:
        """Serialise with backend field names, dropping absent fields."""
        return self.model_dump(by_alias=True, exclude_none=True)
