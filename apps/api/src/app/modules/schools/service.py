"""
School Service

Business logic for school staff: rosters and progress, the approved
organization list, student groups, and classrooms with invite codes.

School staff (SCHOOL_ADMIN, TEACHER) act only on their own school.
Teachers see only their own classroom's students.
"""

import logging
import secrets

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import email
from app.core.auth import CurrentUser
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.core.side_effects import dispatch
from app.modules.notifications.models import NotificationType
from app.modules.notifications.service import notify
from app.modules.organizations.repository import OrganizationRepository
from app.modules.schools.models import (
    ApprovalStatus,
    Classroom,
    School,
    SchoolOrganization,
    StudentGroup,
)
from app.modules.schools.repository import SchoolRepository
from app.modules.schools.schemas import (
    ClassroomSummaryResponse,
    ProgressStatus,
    SchoolStatsResponse,
    StudentGroupResponse,
    StudentProgressResponse,
)
from app.modules.sessions import repository as session_repository
from app.modules.shared import round_hours
from app.modules.users.models import User, UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Students below this share of the requirement are at risk
AT_RISK_THRESHOLD = 0.5

INVITE_CODE_ATTEMPTS = 10


# ============================================================================
# Helpers
# ============================================================================


def generate_invite_code() -> str:
    """8 lower-case hex characters."""
    return secrets.token_hex(4)


def progress_status(approved_hours: float, required_hours: float) -> ProgressStatus:
    if approved_hours >= required_hours:
        return ProgressStatus.COMPLETED
    if approved_hours < required_hours * AT_RISK_THRESHOLD:
        return ProgressStatus.AT_RISK
    return ProgressStatus.ON_TRACK


def percent_complete(approved_hours: float, required_hours: float) -> int:
    if required_hours <= 0:
        return 100
    return min(100, round(approved_hours / required_hours * 100))


def _ensure_own_school(user: CurrentUser, school_id: str) -> None:
    if user.school_id is None or user.school_id != school_id:
        logger.warning(f"User {user.id} attempted to access school {school_id}")
        raise ForbiddenError("Not your school.")


def _require_school(user: CurrentUser) -> str:
    if not user.school_id:
        raise ValidationError("Not associated with a school.", error_code="NO_SCHOOL")
    return user.school_id


async def _get_school(db: AsyncSession, school_id: str) -> School:
    school = await SchoolRepository.get_by_id(db, school_id)
    if school is None:
        raise NotFoundError("School", school_id)
    return school


async def _progress_for(
    db: AsyncSession,
    students: list[User],
    required_hours: float,
) -> list[StudentProgressResponse]:
    hours = await session_repository.approved_hours_by_user(db, [s.id for s in students])
    result = []
    for student in students:
        approved = round_hours(hours.get(student.id, 0.0))
        status = progress_status(approved, required_hours)
        result.append(
            StudentProgressResponse(
                id=student.id,
                name=student.name,
                email=student.email,
                grade=student.grade,
                classroom_id=student.classroom_id,
                approved_hours=approved,
                required_hours=required_hours,
                percent_complete=percent_complete(approved, required_hours),
                completed=status == ProgressStatus.COMPLETED,
                status=status,
            )
        )
    return result


# ============================================================================
# Roster and stats
# ============================================================================


async def get_school(db: AsyncSession, school_id: str) -> School:
    return await _get_school(db, school_id)


async def list_students(
    db: AsyncSession,
    user: CurrentUser,
    school_id: str,
) -> list[StudentProgressResponse]:
    """Students of the school with their approved hours. Teachers see their classroom."""
    _ensure_own_school(user, school_id)
    school = await _get_school(db, school_id)

    if user.role == UserRole.TEACHER:
        if not user.classroom_id:
            return []
        students = await UserRepository.list_students(
            db, school_id=school.id, classroom_id=user.classroom_id
        )
    else:
        students = await UserRepository.list_students(db, school_id=school.id)

    return await _progress_for(db, students, school.required_hours)


async def get_stats(db: AsyncSession, user: CurrentUser, school_id: str) -> SchoolStatsResponse:
    """
    School-wide progress.

    A student has completed the goal at approved hours >= required hours and
    is at risk below half of it.
    """
    _ensure_own_school(user, school_id)
    school = await _get_school(db, school_id)

    students = await UserRepository.list_students(db, school_id=school.id)
    progress = await _progress_for(db, students, school.required_hours)

    total_students = len(progress)
    completed = sum(1 for p in progress if p.status == ProgressStatus.COMPLETED)
    at_risk = sum(1 for p in progress if p.status == ProgressStatus.AT_RISK)

    return SchoolStatsResponse(
        total_students=total_students,
        total_school_hours=round_hours(sum(p.approved_hours for p in progress)),
        students_completed_goal=completed,
        students_at_risk=at_risk,
        completion_percentage=round(completed / total_students * 100) if total_students else 0,
        required_hours=school.required_hours,
    )


# ============================================================================
# Approved organizations
# ============================================================================


async def set_organization_status(
    db: AsyncSession,
    user: CurrentUser,
    school_id: str,
    organization_id: str,
    status: ApprovalStatus,
    background_tasks: BackgroundTasks | None = None,
) -> SchoolOrganization:
    """
    Record the school's decision on an organization.

    Approved organizations rank first when the school's students browse.
    Approval notifies and emails the organization's admins.

    Raises:
        ForbiddenError: If the actor is not an admin of this school
        NotFoundError: If the school or organization does not exist
    """
    _ensure_own_school(user, school_id)
    school = await _get_school(db, school_id)

    organization = await OrganizationRepository.get_by_id(db, organization_id)
    if organization is None:
        raise NotFoundError("Organization", organization_id)

    link = await SchoolRepository.set_organization_status(
        db,
        school_id=school.id,
        organization_id=organization.id,
        status=status,
    )

    admins: list[User] = []
    if status == ApprovalStatus.APPROVED:
        admins = await UserRepository.list_org_admins(db, organization.id)
        for admin in admins:
            await notify(
                db,
                user_id=admin.id,
                type=NotificationType.CLASSROOM_UPDATE,
                title="Organization Approved",
                body=f"{school.name} approved {organization.name}.",
                data={"school_id": school.id},
            )

    await db.commit()
    await db.refresh(link)

    if background_tasks is not None:
        for admin in admins:
            if admin.email_notifications:
                dispatch(
                    background_tasks,
                    f"organization approved email to {admin.id}",
                    email.send_organization_approved,
                    admin.email,
                    school.name,
                )

    logger.info(
        f"School {school.id} set organization {organization.id} to {status.value} by {user.id}"
    )
    return link


async def list_organizations(
    db: AsyncSession,
    user: CurrentUser,
    school_id: str,
    status: ApprovalStatus | None = None,
) -> list[SchoolOrganization]:
    _ensure_own_school(user, school_id)
    return await SchoolRepository.list_school_organizations(db, school_id, status)


# ============================================================================
# Student groups
# ============================================================================


async def list_groups(
    db: AsyncSession,
    user: CurrentUser,
    school_id: str,
) -> list[StudentGroupResponse]:
    _ensure_own_school(user, school_id)
    groups = await SchoolRepository.list_groups(db, school_id)
    result = []
    for group in groups:
        member_ids = await SchoolRepository.list_group_member_ids(db, group.id)
        response = StudentGroupResponse.model_validate(group)
        result.append(response.model_copy(update={"member_count": len(member_ids)}))
    return result


async def create_group(
    db: AsyncSession,
    user: CurrentUser,
    school_id: str,
    *,
    name: str,
    description: str | None = None,
) -> StudentGroup:
    _ensure_own_school(user, school_id)
    group = await SchoolRepository.create_group(
        db, school_id=school_id, name=name.strip(), description=description
    )
    await db.commit()
    await db.refresh(group)
    logger.info(f"Group {group.id} created in school {school_id} by {user.id}")
    return group


async def _get_school_group(db: AsyncSession, school_id: str, group_id: str) -> StudentGroup:
    group = await SchoolRepository.get_group(db, group_id)
    if group is None or group.school_id != school_id:
        raise NotFoundError("Group", group_id)
    return group


async def add_group_students(
    db: AsyncSession,
    user: CurrentUser,
    school_id: str,
    group_id: str,
    student_ids: list[str],
) -> int:
    """
    Add students to a group.

    Raises:
        NotFoundError: If the group is not in the school
        ValidationError: If any id is not a student of the school
    """
    _ensure_own_school(user, school_id)
    group = await _get_school_group(db, school_id, group_id)

    students = await UserRepository.list_students(db, school_id=school_id)
    school_student_ids = {s.id for s in students}
    outsiders = [sid for sid in student_ids if sid not in school_student_ids]
    if outsiders:
        raise ValidationError(f"Not students of this school: {', '.join(outsiders)}")

    added = await SchoolRepository.add_group_members(db, group.id, student_ids)
    await db.commit()
    return added


async def list_group_students(
    db: AsyncSession,
    user: CurrentUser,
    school_id: str,
    group_id: str,
) -> list[StudentProgressResponse]:
    _ensure_own_school(user, school_id)
    school = await _get_school(db, school_id)
    group = await _get_school_group(db, school_id, group_id)

    member_ids = set(await SchoolRepository.list_group_member_ids(db, group.id))
    students = [
        s for s in await UserRepository.list_students(db, school_id=school_id) if s.id in member_ids
    ]
    return await _progress_for(db, students, school.required_hours)


# ============================================================================
# Classrooms
# ============================================================================


async def create_classroom(
    db: AsyncSession,
    user: CurrentUser,
    *,
    name: str,
    teacher_id: str | None = None,
) -> Classroom:
    """
    Create a classroom in the actor's school with a fresh invite code.

    A teacher who creates a classroom becomes its teacher. A school admin
    may name one of the school's teachers.

    Raises:
        ValidationError: If the actor has no school or ``teacher_id`` is not a teacher of it
        ConflictError: If the teacher already has a classroom
    """
    school_id = _require_school(user)

    if user.role == UserRole.TEACHER:
        teacher_id = user.id

    teacher: User | None = None
    if teacher_id:
        teacher = await UserRepository.get_by_id(db, teacher_id)
        if teacher is None or teacher.role != UserRole.TEACHER or teacher.school_id != school_id:
            raise ValidationError("Teacher must be a teacher at this school.")
        if teacher.classroom_id:
            raise ConflictError(
                "Teacher already has a classroom.", error_code="TEACHER_HAS_CLASSROOM"
            )

    invite_code = None
    for _ in range(INVITE_CODE_ATTEMPTS):
        candidate = generate_invite_code()
        if await SchoolRepository.get_classroom_by_invite_code(db, candidate) is None:
            invite_code = candidate
            break
    if invite_code is None:
        raise ConflictError("Could not allocate an invite code, try again.")

    classroom = await SchoolRepository.create_classroom(
        db,
        school_id=school_id,
        name=name.strip(),
        invite_code=invite_code,
        teacher_id=teacher.id if teacher else None,
    )
    if teacher is not None:
        teacher.classroom_id = classroom.id

    await db.commit()
    await db.refresh(classroom)

    logger.info(f"Classroom {classroom.id} created in school {school_id} by {user.id}")
    return classroom


async def list_classrooms(db: AsyncSession, user: CurrentUser) -> list[ClassroomSummaryResponse]:
    """Classrooms of the actor's school with roster figures. Teachers see their own."""
    school_id = _require_school(user)
    school = await _get_school(db, school_id)

    teacher_id = user.id if user.role == UserRole.TEACHER else None
    classrooms = await SchoolRepository.list_classrooms(db, school_id, teacher_id=teacher_id)

    students = await UserRepository.list_students(db, school_id=school_id)
    progress = await _progress_for(db, students, school.required_hours)

    result = []
    for classroom in classrooms:
        members = [p for p in progress if p.classroom_id == classroom.id]
        completed = sum(1 for p in members if p.status == ProgressStatus.COMPLETED)
        summary = ClassroomSummaryResponse.model_validate(classroom)
        result.append(
            summary.model_copy(
                update={
                    "student_count": len(members),
                    "total_hours": round_hours(sum(p.approved_hours for p in members)),
                    "completed_count": completed,
                    "at_risk_count": sum(1 for p in members if p.status == ProgressStatus.AT_RISK),
                    "completion_percentage": (
                        round(completed / len(members) * 100) if members else 0
                    ),
                }
            )
        )
    return result


async def join_classroom(db: AsyncSession, user: CurrentUser, invite_code: str) -> Classroom:
    """
    Join a classroom by invite code. The student joins its school too.

    Raises:
        ConflictError: If the student is already in a classroom
        NotFoundError: If no classroom has this code
    """
    student = await UserRepository.get_by_id(db, user.id)
    if student is None:
        raise NotFoundError("User", user.id)
    if student.classroom_id:
        raise ConflictError(
            "Already enrolled in a classroom. Leave your current classroom first.",
            error_code="ALREADY_IN_CLASSROOM",
        )

    classroom = await SchoolRepository.get_classroom_by_invite_code(db, invite_code)
    if classroom is None:
        raise NotFoundError("Classroom")

    student.classroom_id = classroom.id
    student.school_id = classroom.school_id
    await db.commit()

    logger.info(f"Student {user.id} joined classroom {classroom.id}")
    return classroom


async def leave_classroom(
    db: AsyncSession,
    user: CurrentUser,
    background_tasks: BackgroundTasks | None = None,
) -> None:
    """
    Leave the current classroom and its school. The teacher is emailed.

    Approved hours stay on record.

    Raises:
        ValidationError: If the student is not in a classroom
    """
    student = await UserRepository.get_by_id(db, user.id)
    if student is None or not student.classroom_id:
        raise ValidationError("Not in a classroom.", error_code="NOT_IN_CLASSROOM")

    classroom = await SchoolRepository.get_classroom(db, student.classroom_id)
    teacher = None
    if classroom is not None and classroom.teacher_id:
        teacher = await UserRepository.get_by_id(db, classroom.teacher_id)

    student.classroom_id = None
    student.school_id = None

    if teacher is not None:
        await notify(
            db,
            user_id=teacher.id,
            type=NotificationType.CLASSROOM_UPDATE,
            title="Student Left Classroom",
            body=f"{student.name} has left {classroom.name}.",
            data={"classroom_id": classroom.id, "student_id": student.id},
        )

    await db.commit()

    if background_tasks is not None and teacher is not None:
        dispatch(
            background_tasks,
            f"student left classroom email to {teacher.id}",
            email.send_student_left_classroom,
            teacher.email,
            student.name,
            classroom.name,
        )

    logger.info(f"Student {user.id} left classroom {classroom.id if classroom else None}")
