"""Reminder router: per-page WebSocket sessions and counters."""
from typing import Any, Dict

from fastapi import APIRouter, WebSocket

from calendar_reminders.utils.metrics import metrics_collector
from calendar_reminders.ws.websocket_handler import ReminderSession

router = APIRouter(tags=["Reminders"])


@router.websocket("/ws/reminders/{client_id}")
async def reminder_socket(websocket: WebSocket, client_id: str):
    """Drive reminders for one connected calendar page."""
    await ReminderSession(websocket, client_id).run()


@router.get("/metrics")
async def get_metrics() -> Dict[str, Any]:
    """Reminder counters across all sessions."""
    return metrics_collector.get_metrics()
