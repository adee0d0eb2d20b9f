"""Notification schemas."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, field_validator

from telemed.core.timewindow import ensure_utc


class NotificationType(str, Enum):
    """Kinds of in-app notifications."""

    APPOINTMENT = "APPOINTMENT"
    MESSAGE = "MESSAGE"
    REMINDER = "REMINDER"
    SYSTEM = "SYSTEM"


class NotificationEvent(BaseModel):
    """Event emitted by the booking core for the notification dispatcher."""

    event: str
    user_id: UUID
    title: str
    message: str
    notification_type: NotificationType = NotificationType.APPOINTMENT
    appointment_id: UUID | None = None


class NotificationRecord(BaseModel):
    """Schema for an inbox entry."""

    id: UUID
    title: str
    message: str
    notification_type: NotificationType
    appointment_id: UUID | None = None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at")
    @classmethod
    def normalise_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class MarkReadResponse(BaseModel):
    """Result of marking notifications as read."""

    updated: int
