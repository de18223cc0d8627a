"""
Metrics Collection for the reminder service.

Counts scheduled, queued and dispatched reminders across all sessions,
tracks how many pages are connected and how long backend fetches take.
"""

import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict

COUNTERS = (
    "reminders_scheduled_total",
    "reminders_skipped_total",
    "reminders_queued_total",
    "notifications_dispatched_total",
    "notifications_failed_total",
    "permission_requests_total",
    "sessions_opened_total",
)


class MetricsCollector:
    """Thread-safe counters, a session gauge and fetch timings."""

    def __init__(self):
        self.counters = dict.fromkeys(COUNTERS, 0)
        self.timings = defaultdict(lambda: {"count": 0, "total_seconds": 0.0})
        self.active_sessions = 0
        self.lock = threading.Lock()

    def increment_counter(self, name: str, value: int = 1):
        with self.lock:
            self.counters[name] = self.counters.get(name, 0) + value

    def observe(self, name: str, seconds: float):
        """Add one duration sample to a named timing."""
        with self.lock:
            timing = self.timings[name]
            timing["count"] += 1
            timing["total_seconds"] += seconds

    def get_metrics(self) -> Dict[str, Any]:
        """Snapshot of every metric."""
        with self.lock:
            return {
                "counters": dict(self.counters),
                "active_sessions": self.active_sessions,
                "timings": {name: dict(timing) for name, timing in self.timings.items()},
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }

    def reminder_scheduled(self):
        self.increment_counter("reminders_scheduled_total")

    def reminder_skipped(self):
        self.increment_counter("reminders_skipped_total")

    def reminder_queued(self):
        self.increment_counter("reminders_queued_total")

    def notification_dispatched(self):
        self.increment_counter("notifications_dispatched_total")

    def notification_failed(self):
        self.increment_counter("notifications_failed_total")

    def permission_requested(self):
        self.increment_counter("permission_requests_total")

    def session_opened(self):
        with self.lock:
            self.counters["sessions_opened_total"] += 1
            self.active_sessions += 1

    def session_closed(self):
        with self.lock:
            self.active_sessions = max(0, self.active_sessions - 1)


# Global metrics instance
metrics_collector = MetricsCollector()
