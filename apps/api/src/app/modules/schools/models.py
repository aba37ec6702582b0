"""
School Models

Schools, their classrooms and student groups, and the list of
organizations a school has approved for service hours.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.modules.shared import BaseModel

if TYPE_CHECKING:
    from app.modules.organizations.models import Organization


class ApprovalStatus(str, Enum):
    """Status of an organization on a school's approved list."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class School(BaseModel):
    """
    A school.

    Its coordinates (or its geocoded address) are the reference point when
    ranking opportunities by distance for the school's students.
    """

    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
    )
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Hours a student needs to complete the school's service requirement
    required_hours: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=40.0,
    )

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name={self.name})>"


class Classroom(BaseModel):
    """A classroom inside a school, joined by students through an invite code."""

    __tablename__ = "classrooms"

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    teacher_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    invite_code: Mapped[str] = mapped_column(
        String(8),
        unique=True,
        index=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Classroom(id={self.id}, name={self.name}, school_id={self.school_id})>"


class SchoolOrganization(BaseModel):
    """Approval of one organization by one school."""

    __tablename__ = "school_organizations"
    __table_args__ = (
        UniqueConstraint("school_id", "organization_id", name="uq_school_organization"),
    )

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[ApprovalStatus] = mapped_column(
        ENUM(ApprovalStatus, name="approval_status", create_type=True),
        nullable=False,
        default=ApprovalStatus.PENDING,
    )

    organization: Mapped["Organization"] = relationship("Organization", lazy="selectin")


class StudentGroup(BaseModel):
    """A named group of students within a school."""

    __tablename__ = "student_groups"

    school_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class StudentGroupMember(BaseModel):
    """Membership of a student in a group."""

    __tablename__ = "student_group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_member"),)

    group_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("student_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
