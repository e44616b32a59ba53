"""Notification records and the expiry notice stream."""

from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from coursegate.core.db import MongoModel
from coursegate.utils import now


class NoticeUrgency(StrEnum):
    MEDIUM = "medium"  # Expires within 7 days
    HIGH = "high"  # Expires within 1 day


class NotificationType(StrEnum):
    COURSE_EXPIRY_WARNING = "course_expiry_warning"
    COURSE_EXPIRY_URGENT = "course_expiry_urgent"


class ExpiryNotice(BaseModel):
    """One upcoming expiry, handed from the scheduler to the notification sink."""

    identity_id: UUID
    identity_contact: str  # email
    name: str = ""
    course_id: UUID
    expires_at: datetime
    days_remaining: int
    urgency: NoticeUrgency


class Notification(MongoModel):
    """Stored user notification.

    Indexed on (recipient_id, created_at).
    """

    recipient_id: UUID
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    priority: NoticeUrgency = NoticeUrgency.MEDIUM
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime = Field(default_factory=now)


class NotificationView(BaseModel):
    """Notification (API representation)."""

    id: UUID = Field(..., description="Notification ID")
    type: NotificationType = Field(..., description="Notification type")
    title: str = Field(..., description="Short title")
    message: str = Field(..., description="Message body")
    priority: NoticeUrgency = Field(..., description="Priority")
    is_read: bool = Field(..., description="Whether the notification was read")
    created_at: datetime = Field(..., description="Creation time")

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationView":
        return cls(
            id=notification.id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            priority=notification.priority,
            is_read=notification.is_read,
            created_at=notification.created_at,
        )
