"""Fetch windows for the calendar's month, week and day views."""
from datetime import datetime, time, timedelta
from typing import Tuple

VIEWS = ("month", "week", "day")

MONTH_GRID_DAYS = 42  # six rows of seven days


def _midnight(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo)


def _end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time(23, 59, 59, 999000), tzinfo=value.tzinfo)


def visible_range(view: str, anchor: datetime) -> Tuple[datetime, datetime]:
    """
    Return the (start, end) window of events shown for a view.

    Weeks start on Monday. The month grid always covers 42 days starting on
    the Monday on or before the 1st; its end is midnight of the last day.
    """
    if view == "month":
        first = _midnight(anchor.replace(day=1))
        start = first - timedelta(days=first.weekday())
        return start, start + timedelta(days=MONTH_GRID_DAYS - 1)

    if view == "week":
        start = _midnight(anchor) - timedelta(days=anchor.weekday())
        return start, _end_of_day(start + timedelta(days=6))

    if view == "day":
        return _midnight(anchor), _end_of_day(anchor)

    raise ValueError(f"view must be one of {', '.join(VIEWS)}, got: {view}")
