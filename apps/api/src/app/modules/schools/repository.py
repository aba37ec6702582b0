"""
School Repository

Database operations for schools, classrooms, approved organizations and
student groups. Methods flush but never commit.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.schools.models import (
    ApprovalStatus,
    Classroom,
    School,
    SchoolOrganization,
    StudentGroup,
    StudentGroupMember,
)

logger = logging.getLogger(__name__)


class SchoolRepository:
    """Repository for school database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        address: str | None = None,
        postal_code: str | None = None,
        required_hours: float | None = None,
    ) -> School:
        """
        Create a new school record.

        Args:
            db: Database session
            name: School name
            address: Street address, used for distance ranking
            postal_code: Postal code, used when no address is known
            required_hours: Service hours a student must complete

        Returns:
            Created School instance
        """
        school = School(name=name, address=address, postal_code=postal_code)
        if required_hours is not None:
            school.required_hours = required_hours

        db.add(school)
        await db.flush()
        await db.refresh(school)

        logger.info(f"Created school: {school.id} - {school.name}")
        return school

    @staticmethod
    async def get_by_id(db: AsyncSession, school_id: str) -> School | None:
        """Get a school by ID."""
        result = await db.execute(select(School).where(School.id == school_id))
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Classrooms
    # ------------------------------------------------------------------

    @staticmethod
    async def create_classroom(
        db: AsyncSession,
        *,
        school_id: str,
        name: str,
        invite_code: str,
        teacher_id: str | None = None,
    ) -> Classroom:
        classroom = Classroom(
            school_id=school_id,
            name=name,
            invite_code=invite_code,
            teacher_id=teacher_id,
        )
        db.add(classroom)
        await db.flush()
        await db.refresh(classroom)
        return classroom

    @staticmethod
    async def get_classroom(db: AsyncSession, classroom_id: str) -> Classroom | None:
        result = await db.execute(select(Classroom).where(Classroom.id == classroom_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_classroom_by_invite_code(db: AsyncSession, invite_code: str) -> Classroom | None:
        """Invite codes are stored lower-case."""
        result = await db.execute(
            select(Classroom).where(Classroom.invite_code == invite_code.strip().lower())
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_classrooms(
        db: AsyncSession,
        school_id: str,
        *,
        teacher_id: str | None = None,
    ) -> list[Classroom]:
        query = select(Classroom).where(Classroom.school_id == school_id)
        if teacher_id:
            query = query.where(Classroom.teacher_id == teacher_id)
        result = await db.execute(query.order_by(Classroom.name.asc()))
        return list(result.scalars().all())

    @staticmethod
    async def get_school_organization(
        db: AsyncSession,
        school_id: str,
        organization_id: str,
    ) -> SchoolOrganization | None:
        result = await db.execute(
            select(SchoolOrganization).where(
                SchoolOrganization.school_id == school_id,
                SchoolOrganization.organization_id == organization_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def set_organization_status(
        db: AsyncSession,
        *,
        school_id: str,
        organization_id: str,
        status: ApprovalStatus,
    ) -> SchoolOrganization:
        """Create or update a school's decision on an organization."""
        link = await SchoolRepository.get_school_organization(db, school_id, organization_id)
        if link is None:
            link = SchoolOrganization(
                school_id=school_id,
                organization_id=organization_id,
                status=status,
            )
            db.add(link)
        else:
            link.status = status

        await db.flush()
        await db.refresh(link)
        return link

    @staticmethod
    async def list_school_organizations(
        db: AsyncSession,
        school_id: str,
        status: ApprovalStatus | None = None,
    ) -> list[SchoolOrganization]:
        query = select(SchoolOrganization).where(SchoolOrganization.school_id == school_id)
        if status:
            query = query.where(SchoolOrganization.status == status)
        result = await db.execute(query.order_by(SchoolOrganization.created_at.asc()))
        return list(result.scalars().all())

    @staticmethod
    async def approved_organization_ids(db: AsyncSession, school_id: str) -> set[str]:
        """Ids of the organizations a school has APPROVED."""
        result = await db.execute(
            select(SchoolOrganization.organization_id).where(
                SchoolOrganization.school_id == school_id,
                SchoolOrganization.status == ApprovalStatus.APPROVED,
            )
        )
        return set(result.scalars().all())

    # ------------------------------------------------------------------
    # Student groups
    # ------------------------------------------------------------------

    @staticmethod
    async def create_group(
        db: AsyncSession,
        *,
        school_id: str,
        name: str,
        description: str | None = None,
    ) -> StudentGroup:
        group = StudentGroup(school_id=school_id, name=name, description=description)
        db.add(group)
        await db.flush()
        await db.refresh(group)
        return group

    @staticmethod
    async def get_group(db: AsyncSession, group_id: str) -> StudentGroup | None:
        result = await db.execute(select(StudentGroup).where(StudentGroup.id == group_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def list_groups(db: AsyncSession, school_id: str) -> list[StudentGroup]:
        result = await db.execute(
            select(StudentGroup)
            .where(StudentGroup.school_id == school_id)
            .order_by(StudentGroup.name.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_group_member_ids(db: AsyncSession, group_id: str) -> list[str]:
        result = await db.execute(
            select(StudentGroupMember.user_id).where(StudentGroupMember.group_id == group_id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_group_members(
        db: AsyncSession,
        group_id: str,
        user_ids: list[str],
    ) -> int:
        """Add students to a group, skipping existing members. Returns how many were added."""
        existing = set(await SchoolRepository.list_group_member_ids(db, group_id))
        added = 0
        for user_id in user_ids:
            if user_id in existing:
                continue
            db.add(StudentGroupMember(group_id=group_id, user_id=user_id))
            existing.add(user_id)
            added += 1
        await db.flush()
        return added
