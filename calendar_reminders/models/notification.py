"""Notification permission and queue models."""
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class NotificationPermission(str, Enum):
    """Permission values reported by the host surface."""
    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"


class NotificationPermissionState(BaseModel):
    """Permission snapshot held by a reminder scheduler."""
    permission: NotificationPermission = NotificationPermission.DEFAULT
    is_supported: bool = Field(default=False, alias="isSupported")

    class Config:
        populate_by_name = True

    @property
    def can_notify(self) -> bool:
        return self.is_supported and self.permission == NotificationPermission.GRANTED


@dataclass
class QueuedNotification:
    """Reminder that fired while the surface was hidden."""
    event_id: int
    title: str
    body: str
