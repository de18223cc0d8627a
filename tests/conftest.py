import os
import tempfile
from pathlib import Path

import pytest

# Keep session preference files out of the working tree
os.environ.setdefault(
    "PREFERENCE_STORE_PATH",
    str(Path(tempfile.gettempdir()) / "calendar-reminders-test-preferences.json"),
)

from calendar_reminders.providers.runtime import InMemoryPreferenceStore  # noqa: E402
from calendar_reminders.services.reminder_scheduler import ReminderScheduler  # noqa: E402
from calendar_reminders.utils.metrics import MetricsCollector  # noqa: E402
from tests.fakes import FakeSink, FakeTimers, FakeVisibility, FakeWindow  # noqa: E402


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def sink():
    return FakeSink(permission="granted")


@pytest.fixture
def visibility():
    return FakeVisibility()


@pytest.fixture
def window():
    return FakeWindow()


@pytest.fixture
def preferences():
    return InMemoryPreferenceStore()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def make_scheduler(sink, visibility, window, timers, preferences, metrics):
    created = []

    def factory(**overrides):
        scheduler = ReminderScheduler(
            overrides.get("sink", sink),
            overrides.get("visibility", visibility),
            window,
            timers,
            timers,
            overrides.get("preferences", preferences),
            metrics=metrics,
            local_tz=overrides.get("local_tz"),
        )
        created.append(scheduler)
        return scheduler

    yield factory

    for scheduler in created:
        scheduler.close()
