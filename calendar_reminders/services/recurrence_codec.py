"""Recurrence Codec.

Translates between the event form's recurrence fields and the rule string
plus end-condition fields stored by the calendar backend.
"""
from typing import Any, List, Optional

from calendar_reminders.models.recurrence import (
    DEFAULT_OCCURRENCE_COUNT,
    EndCondition,
    Frequency,
    RecurrenceDescriptor,
    RecurrenceRuleTransport,
)

# Tested in this order when parsing; the first match wins.
FREQUENCY_TOKENS = {
    Frequency.DAILY: "FREQ=DAILY",
    Frequency.WEEKLY: "FREQ=WEEKLY",
    Frequency.MONTHLY: "FREQ=MONTHLY",
}

END_OF_DAY = "T23:59:59"


def _positive_count(count: Any) -> Optional[int]:
    if count is None or isinstance(count, bool):
        return None
    try:
        value = int(count)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def frequency_tokens(rule: Optional[str]) -> List[Frequency]:
    """Return every frequency whose token appears in the rule string."""
    if not rule:
        return []
    return [frequency for frequency, token in FREQUENCY_TOKENS.items() if token in rule]


def decode(rule: Optional[str] = None, end_date: Optional[str] = None, count: Any = None) -> RecurrenceDescriptor:
    """
    Parse backend recurrence fields into form fields.

    Never raises: unrecognised input falls back to a non-repeating,
    never-ending descriptor.

    Args:
        rule: Rule string such as "FREQ=WEEKLY"
        end_date: Backend end timestamp, e.g. "2024-01-30T23:59:59"
        count: Backend occurrence count

    Returns:
        RecurrenceDescriptor for the event form
    """
    if not rule:
        return RecurrenceDescriptor()

    matches = frequency_tokens(rule)
    frequency = matches[0] if matches else Frequency.NONE

    # An end date takes priority over a count when both are present
    if end_date:
        return RecurrenceDescriptor(
            frequency=frequency,
            end_condition=EndCondition.ON_DATE,
            end_date=str(end_date).split("T")[0],
        )

    occurrences = _positive_count(count)
    if occurrences is not None:
        return RecurrenceDescriptor(
            frequency=frequency,
            end_condition=EndCondition.AFTER_COUNT,
            occurrence_count=occurrences,
        )

    return RecurrenceDescriptor(frequency=frequency)


def decode_transport(transport: RecurrenceRuleTransport) -> RecurrenceDescriptor:
    """Decode a transport object."""
    return decode(transport.rule, transport.end_date, transport.count)


def encode(descriptor: RecurrenceDescriptor) -> RecurrenceRuleTransport:
    """
    Build backend recurrence fields from form fields.

    The rule is left unset (not "") for non-repeating events, and at most
    one of end date / count is populated.
    """
    rule = FREQUENCY_TOKENS.get(descriptor.frequency)

    end_date = None
    if descriptor.end_condition == EndCondition.ON_DATE and descriptor.end_date:
        end_date = f"{descriptor.end_date}{END_OF_DAY}"

    count = None
    if descriptor.end_condition == EndCondition.AFTER_COUNT:
        count = descriptor.occurrence_count

    return RecurrenceRuleTransport(rule=rule, end_date=end_date, count=count)


__all__ = [
    "DEFAULT_OCCURRENCE_COUNT",
    "END_OF_DAY",
    "FREQUENCY_TOKENS",
    "decode",
    "decode_transport",
    "encode",
    "frequency_tokens",
]
