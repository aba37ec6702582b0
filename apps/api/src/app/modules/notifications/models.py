"""
Notification, Audit and Message Models

The audit log is append-only: rows are inserted alongside every session
transition and only removed when the owning account is erased.
"""

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel


class NotificationType(str, Enum):
    """Kinds of user-facing notifications."""

    SIGNUP_CONFIRMED = "SIGNUP_CONFIRMED"
    VERIFICATION_UPDATE = "VERIFICATION_UPDATE"
    VERIFICATION_SUBMITTED = "VERIFICATION_SUBMITTED"
    OPPORTUNITY_CANCELLED = "OPPORTUNITY_CANCELLED"
    NEW_MESSAGE = "NEW_MESSAGE"
    CLASSROOM_UPDATE = "CLASSROOM_UPDATE"


class AuditAction(str, Enum):
    """Actions recorded against a service session."""

    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"
    SUBMIT_VERIFICATION = "SUBMIT_VERIFICATION"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    OVERRIDE = "OVERRIDE"


class Notification(BaseModel):
    """A notification shown to one user."""

    __tablename__ = "notifications"

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[NotificationType] = mapped_column(
        ENUM(NotificationType, name="notification_type", create_type=True),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)


class AuditLog(BaseModel):
    """One state-changing action on a service session."""

    __tablename__ = "audit_logs"

    action: Mapped[AuditAction] = mapped_column(
        ENUM(AuditAction, name="audit_action", create_type=True),
        nullable=False,
    )
    actor_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    session_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("service_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    details: Mapped[dict | None] = mapped_column(JSONB, nullable=True)


class Message(BaseModel):
    """A direct message between two users."""

    __tablename__ = "messages"

    sender_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    receiver_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    opportunity_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("opportunities.id", ondelete="SET NULL"),
        nullable=True,
    )
    subject: Mapped[str | None] = mapped_column(String(200), nullable=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
