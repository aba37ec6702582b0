"""
Signup Models

A student's enrollment in an opportunity.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, ForeignKey, Identity, UniqueConstraint
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel

if TYPE_CHECKING:
    from app.modules.opportunities.models import Opportunity
    from app.modules.users.models import User


class SignupStatus(str, Enum):
    """Enrollment state of a signup."""

    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELLED = "CANCELLED"


class Signup(BaseModel):
    """
    Enrollment of one student in one opportunity.

    The (user, opportunity) pair is unique: re-signing up after a
    cancellation reuses the row. ``queue_position`` is assigned by the
    database on insert and orders waitlisted rows that share a creation
    timestamp.
    """

    __tablename__ = "signups"
    __table_args__ = (
        UniqueConstraint("user_id", "opportunity_id", name="uq_signup_user_opportunity"),
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
    status: Mapped[SignupStatus] = mapped_column(
        ENUM(SignupStatus, name="signup_status", create_type=True),
        nullable=False,
        default=SignupStatus.CONFIRMED,
        index=True,
    )
    queue_position: Mapped[int] = mapped_column(
        BigInteger,
        Identity(always=False),
        nullable=False,
    )

    opportunity: Mapped["Opportunity"] = relationship("Opportunity", lazy="selectin")
    user: Mapped["User"] = relationship("User", lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<Signup(id={self.id}, user_id={self.user_id}, "
            f"opportunity_id={self.opportunity_id}, status={self.status.value})>"
        )
