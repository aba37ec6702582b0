"""
User Models

Database models for accounts and the role context used for authorization.
"""

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.modules.shared import BaseModel


class UserRole(str, Enum):
    """User roles in the system."""

    STUDENT = "STUDENT"
    ORG_ADMIN = "ORG_ADMIN"
    SCHOOL_ADMIN = "SCHOOL_ADMIN"
    TEACHER = "TEACHER"


STAFF_ROLES = frozenset({UserRole.ORG_ADMIN, UserRole.SCHOOL_ADMIN, UserRole.TEACHER})
SCHOOL_STAFF_ROLES = frozenset({UserRole.SCHOOL_ADMIN, UserRole.TEACHER})


class User(BaseModel):
    """
    User account.

    A user belongs to at most one organization (ORG_ADMIN), one school
    (SCHOOL_ADMIN, TEACHER, STUDENT) and one classroom (TEACHER, STUDENT).
    These links form the role context every authorization check reads.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    role: Mapped[UserRole] = mapped_column(
        ENUM(UserRole, name="user_role", create_type=True),
        nullable=False,
        default=UserRole.STUDENT,
    )

    # Role context
    # ON DELETE SET NULL: deleting a school or classroom detaches its members
    school_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    organization_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    classroom_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("classrooms.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
        index=True,
    )

    # Student profile
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    grade: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Preferences
    email_notifications: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"
