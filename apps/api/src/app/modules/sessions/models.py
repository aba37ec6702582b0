"""
Service Session Models

Attendance and verification record for one student in one opportunity.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel

if TYPE_CHECKING:
    from app.modules.opportunities.models import Opportunity
    from app.modules.users.models import User


class SessionStatus(str, Enum):
    """Attendance progress of a session."""

    COMMITTED = "COMMITTED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class VerificationStatus(str, Enum):
    """Verification outcome, tracked independently of attendance."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ServiceSession(BaseModel):
    """
    One student's participation in one opportunity.

    Created eagerly at signup with the opportunity's nominal hours. The
    student drives ``status`` through check-in and check-out; staff drive
    ``verification_status`` (and the terminal VERIFIED/REJECTED status).
    """

    __tablename__ = "service_sessions"
    __table_args__ = (
        UniqueConstraint("user_id", "opportunity_id", name="uq_session_user_opportunity"),
    )

    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    opportunity_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("opportunities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[SessionStatus] = mapped_column(
        ENUM(SessionStatus, name="session_status", create_type=True),
        nullable=False,
        default=SessionStatus.COMMITTED,
        index=True,
    )
    verification_status: Mapped[VerificationStatus] = mapped_column(
        ENUM(VerificationStatus, name="verification_status", create_type=True),
        nullable=False,
        default=VerificationStatus.PENDING,
        index=True,
    )

    # Attendance
    check_in_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    check_out_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    total_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Signature submitted by a student who attended without checking in
    supervisor_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    signature_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Verification
    verified_by: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    opportunity: Mapped["Opportunity"] = relationship("Opportunity", lazy="selectin")
    user: Mapped["User"] = relationship(
        "User",
        foreign_keys=[user_id],
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return (
            f"<ServiceSession(id={self.id}, status={self.status.value}, "
            f"verification={self.verification_status.value})>"
        )
