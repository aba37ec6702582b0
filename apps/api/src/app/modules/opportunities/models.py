"""
Opportunity Models

Volunteer postings and students' saved/skipped marks on them.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel

if TYPE_CHECKING:
    from app.modules.organizations.models import Organization


class OpportunityStatus(str, Enum):
    """Lifecycle of a posting. CANCELLED and COMPLETED are terminal."""

    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class SavedStatus(str, Enum):
    """How a student marked an opportunity while browsing."""

    SAVED = "SAVED"
    SKIPPED = "SKIPPED"
    DISCARDED = "DISCARDED"


class Opportunity(BaseModel):
    """
    A volunteer event posted by an organization.

    ``duration_hours`` is the nominal credit a student receives if no
    check-in/check-out is recorded. ``capacity`` bounds the number of
    CONFIRMED signups.
    """

    __tablename__ = "opportunities"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_opportunity_capacity_positive"),
        CheckConstraint("duration_hours > 0", name="ck_opportunity_duration_positive"),
    )

    organization_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)

    # Location
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Schedule
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    start_time: Mapped[str | None] = mapped_column(String(10), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(10), nullable=True)
    duration_hours: Mapped[float] = mapped_column(Float, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurring_pattern: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Requirements
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    age_requirement: Mapped[int | None] = mapped_column(Integer, nullable=True)
    grade_requirement: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[OpportunityStatus] = mapped_column(
        ENUM(OpportunityStatus, name="opportunity_status", create_type=True),
        nullable=False,
        default=OpportunityStatus.ACTIVE,
        index=True,
    )

    # Set by the reminder job once confirmed volunteers have been emailed
    reminder_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    organization: Mapped["Organization"] = relationship(
        "Organization",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Opportunity(id={self.id}, title={self.title}, status={self.status.value})>"


class SavedOpportunity(BaseModel):
    """A student's SAVED/SKIPPED/DISCARDED mark on an opportunity."""

    __tablename__ = "saved_opportunities"
    __table_args__ = (
        UniqueConstraint("user_id", "opportunity_id", name="uq_saved_user_opportunity"),
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
    status: Mapped[SavedStatus] = mapped_column(
        ENUM(SavedStatus, name="saved_status", create_type=True),
        nullable=False,
        default=SavedStatus.SAVED,
    )

    opportunity: Mapped["Opportunity"] = relationship("Opportunity", lazy="selectin")
