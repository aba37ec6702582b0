"""
Notification, Audit and Message Schemas
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.modules.notifications.models import AuditAction, NotificationType


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: NotificationType
    title: str
    body: str
    read: bool
    data: dict[str, Any] | None = None
    created_at: datetime


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    action: AuditAction
    actor_id: str | None
    session_id: str
    details: dict[str, Any] | None = None
    created_at: datetime


class MessageCreate(BaseModel):
    """Direct message request."""

    receiver_id: str = Field(..., min_length=1)
    subject: str | None = Field(None, max_length=200)
    body: str = Field(..., min_length=1, max_length=5000)
    opportunity_id: str | None = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender_id: str
    receiver_id: str
    opportunity_id: str | None = None
    subject: str | None = None
    body: str
    read: bool
    created_at: datetime
