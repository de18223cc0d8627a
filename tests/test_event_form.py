from calendar_reminders.models.event import EventForm, EventRecord
from calendar_reminders.models.recurrence import EndCondition, Frequency, RecurrenceDescriptor
from calendar_reminders.services.event_form import build_event_request, form_from_event

RECORD = {
    "id": 7,
    "title": "Gym",
    "description": "Leg day",
    "startDateTime": "2024-01-15T18:00:00",
    "endDateTime": "2024-01-15T19:00:00",
    "userEmail": "ada@example.com",
    "recurrenceRule": "FREQ=WEEKLY",
    "recurrenceEndDate": "2024-03-31T23:59:59",
    "tags": [{"id": 2, "name": "health"}, {"id": 5, "name": "routine"}],
}


def test_build_request_for_repeating_event():
    form = EventForm(
        title="Gym",
        description="Leg day",
        start_date_time="2024-01-15T18:00",
        end_date_time="2024-01-15T19:00",
        recurrence=RecurrenceDescriptor(
            frequency=Frequency.WEEKLY, end_condition=EndCondition.AFTER_COUNT, occurrence_count=8
        ),
        tag_ids=[2],
    )

    assert build_event_request(form).to_wire() == {
        "title": "Gym",
        "description": "Leg day",
        "startDateTime": "2024-01-15T18:00",
        "endDateTime": "2024-01-15T19:00",
        "recurrenceRule": "FREQ=WEEKLY",
        "recurrenceCount": 8,
        "tagIds": [2],
    }


def test_build_request_omits_empty_tags_and_recurrence():
    wire = build_event_request(EventForm(title="One-off", description="x")).to_wire()

    assert "tagIds" not in wire
    assert "recurrenceRule" not in wire
    assert "recurrenceEndDate" not in wire
    assert "recurrenceCount" not in wire


def test_form_from_event():
    form = form_from_event(EventRecord.model_validate(RECORD))

    assert form.title == "Gym"
    assert form.start_date_time == "2024-01-15T18:00:00"
    assert form.tag_ids == [2, 5]
    assert form.recurrence.model_dump() == RecurrenceDescriptor(
        frequency=Frequency.WEEKLY, end_condition=EndCondition.ON_DATE, end_date="2024-03-31"
    ).model_dump()


def test_edit_round_trip_preserves_recurrence():
    record = EventRecord.model_validate(RECORD)

    request = build_event_request(form_from_event(record))

    assert request.recurrence_rule == "FREQ=WEEKLY"
    assert request.recurrence_end_date == "2024-03-31T23:59:59"
    assert request.recurrence_count is None
    assert request.tag_ids == [2, 5]


def test_record_projects_to_scheduled_event():
    scheduled = EventRecord.model_validate(RECORD).to_scheduled()

    assert scheduled.id == 7
    assert scheduled.description == "Leg day"
    assert scheduled.start_time.hour == 18
