"""
User Repository

Database operations for user accounts.
"""

import logging
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.notifications.models import AuditLog, Message, Notification
from app.modules.opportunities.models import SavedOpportunity
from app.modules.schools.models import (
    Classroom,
    School,
    SchoolOrganization,
    StudentGroup,
    StudentGroupMember,
)
from app.modules.sessions.models import ServiceSession
from app.modules.signups.models import Signup
from app.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        name: str,
        role: UserRole,
        school_id: str | None = None,
        organization_id: str | None = None,
        age: int | None = None,
        grade: int | None = None,
    ) -> User:
        """
        Create a new user record.

        Args:
            db: Database session
            email: User's email address (unique)
            password_hash: Hashed password
            name: Display name
            role: User's role
            school_id: School for school staff
            organization_id: Organization for ORG_ADMIN users
            age: Student age (optional)
            grade: Student grade (optional)

        Returns:
            Created User instance
        """
        user = User(
            email=email,
            password_hash=password_hash,
            name=name,
            role=role,
            school_id=school_id,
            organization_id=organization_id,
            age=age,
            grade=grade,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str | UUID) -> User | None:
        """Get a user by ID."""
        result = await db.execute(select(User).where(User.id == str(user_id)))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Get a user by email address (case-insensitive)."""
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """Check if an email address is already registered."""
        user = await UserRepository.get_by_email(db, email)
        return user is not None

    @staticmethod
    async def list_school_staff(db: AsyncSession, school_id: str) -> list[User]:
        """School admins and teachers of a school."""
        result = await db.execute(
            select(User).where(
                User.school_id == school_id,
                User.role.in_([UserRole.SCHOOL_ADMIN, UserRole.TEACHER]),
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_org_admins(db: AsyncSession, organization_id: str) -> list[User]:
        """Admins of an organization."""
        result = await db.execute(
            select(User).where(
                User.organization_id == organization_id,
                User.role == UserRole.ORG_ADMIN,
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_students(
        db: AsyncSession,
        *,
        school_id: str,
        classroom_id: str | None = None,
    ) -> list[User]:
        """Students of a school, optionally narrowed to one classroom."""
        query = select(User).where(User.school_id == school_id, User.role == UserRole.STUDENT)
        if classroom_id:
            query = query.where(User.classroom_id == classroom_id)
        result = await db.execute(query.order_by(User.name.asc()))
        return list(result.scalars().all())

    @staticmethod
    async def delete_owned_records(db: AsyncSession, user_id: str) -> None:
        """
        Delete everything that belongs to a user, leaving the user row.

        Audit entries the user authored on other students' sessions are
        removed as well, so no row keeps pointing at the account.
        """
        session_ids = select(ServiceSession.id).where(ServiceSession.user_id == user_id)

        await db.execute(delete(Notification).where(Notification.user_id == user_id))
        await db.execute(
            delete(Message).where(
                or_(Message.sender_id == user_id, Message.receiver_id == user_id)
            )
        )
        await db.execute(delete(SavedOpportunity).where(SavedOpportunity.user_id == user_id))
        await db.execute(delete(Signup).where(Signup.user_id == user_id))
        await db.execute(delete(AuditLog).where(AuditLog.session_id.in_(session_ids)))
        await db.execute(delete(ServiceSession).where(ServiceSession.user_id == user_id))
        await db.execute(delete(AuditLog).where(AuditLog.actor_id == user_id))
        await db.execute(delete(StudentGroupMember).where(StudentGroupMember.user_id == user_id))
        await db.execute(
            update(Classroom).where(Classroom.teacher_id == user_id).values(teacher_id=None)
        )
        await db.flush()

    @staticmethod
    async def delete_school_tree(db: AsyncSession, school_id: str) -> None:
        """
        Delete a school with its classrooms, groups and organization approvals.

        Members are detached from the school, not deleted.
        """
        group_ids = select(StudentGroup.id).where(StudentGroup.school_id == school_id)

        await db.execute(
            update(User)
            .where(User.school_id == school_id)
            .values(school_id=None, classroom_id=None)
        )
        await db.execute(delete(StudentGroupMember).where(StudentGroupMember.group_id.in_(group_ids)))
        await db.execute(delete(StudentGroup).where(StudentGroup.school_id == school_id))
        await db.execute(delete(Classroom).where(Classroom.school_id == school_id))
        await db.execute(delete(SchoolOrganization).where(SchoolOrganization.school_id == school_id))
        await db.execute(delete(School).where(School.id == school_id))
        await db.flush()

    @staticmethod
    async def delete(db: AsyncSession, user_id: str) -> None:
        await db.execute(delete(User).where(User.id == user_id))
        await db.flush()
