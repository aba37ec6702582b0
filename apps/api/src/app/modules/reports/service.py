"""
Reports Service

Read-only summaries over service sessions. Every total is summed first
and rounded once, half up to two decimals.
"""

import csv
import io
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser
from app.core.config import settings
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.modules.schools.repository import SchoolRepository
from app.modules.schools.service import percent_complete
from app.modules.sessions import repository as session_repository
from app.modules.sessions.models import ServiceSession, SessionStatus, VerificationStatus
from app.modules.shared import round_hours
from app.modules.users.models import SCHOOL_STAFF_ROLES, UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

CSV_HEADER = ["Date", "Student", "Opportunity", "Organization", "Hours", "Status"]


@dataclass
class StudentTotals:
    approved: float
    pending: float
    committed: float
    activities_completed: int


def _sum_hours(sessions: Iterable[ServiceSession]) -> float:
    return round_hours(sum(s.total_hours or 0 for s in sessions))


def student_totals(sessions: list[ServiceSession]) -> StudentTotals:
    """
    Split a student's sessions into approved, pending and committed hours.

    Pending means attended (or signed for) but not yet decided; committed
    means signed up and not yet attended.
    """
    approved = [s for s in sessions if s.verification_status == VerificationStatus.APPROVED]
    pending = [
        s
        for s in sessions
        if s.verification_status == VerificationStatus.PENDING
        and (s.status != SessionStatus.COMMITTED or s.submitted_at is not None)
    ]
    committed = [
        s
        for s in sessions
        if s.status == SessionStatus.COMMITTED
        and s.verification_status == VerificationStatus.PENDING
        and s.submitted_at is None
    ]
    return StudentTotals(
        approved=_sum_hours(approved),
        pending=_sum_hours(pending),
        committed=_sum_hours(committed),
        activities_completed=len(approved),
    )


async def _required_hours_for(db: AsyncSession, school_id: str | None) -> float:
    if school_id:
        school = await SchoolRepository.get_by_id(db, school_id)
        if school is not None:
            return school.required_hours
    return settings.default_required_hours


async def student_report(db: AsyncSession, user: CurrentUser, student_id: str | None = None) -> dict:
    """
    Hour totals for the caller, or for one of a school staff member's students.

    Raises:
        ForbiddenError: If the caller may not see that student
        NotFoundError: If the student does not exist
    """
    target_id = student_id or user.id
    if target_id != user.id:
        if user.role not in SCHOOL_STAFF_ROLES:
            raise ForbiddenError("Cannot view this report.")
        student = await UserRepository.get_by_id(db, target_id)
        if student is None or student.role != UserRole.STUDENT:
            raise NotFoundError("Student", target_id)
        if student.school_id is None or student.school_id != user.school_id:
            logger.warning(f"User {user.id} denied report for student {target_id}")
            raise ForbiddenError("Cannot view this report.")
        if user.role == UserRole.TEACHER and student.classroom_id != user.classroom_id:
            raise ForbiddenError("Cannot view this report.")
        school_id = student.school_id
    else:
        school_id = user.school_id

    sessions = await session_repository.list_by_user(db, target_id)
    totals = student_totals(sessions)
    required = await _required_hours_for(db, school_id)

    return {
        "student_id": target_id,
        "total_approved_hours": totals.approved,
        "total_pending_hours": totals.pending,
        "total_committed_hours": totals.committed,
        "required_hours": required,
        "remaining_hours": round_hours(max(0.0, required - totals.approved)),
        "activities_completed": totals.activities_completed,
        "sessions": sessions,
    }


async def organization_report(db: AsyncSession, user: CurrentUser) -> dict:
    """Volunteer totals for the caller's organization."""
    if not user.organization_id:
        raise ValidationError("Not associated with an organization.", error_code="NO_ORGANIZATION")

    sessions = await session_repository.list_for_organization(db, user.organization_id)
    approved = [s for s in sessions if s.verification_status == VerificationStatus.APPROVED]

    return {
        "organization_id": user.organization_id,
        "total_volunteers": len({s.user_id for s in sessions}),
        "total_sessions": len(sessions),
        "approved_sessions": len(approved),
        "total_approved_hours": _sum_hours(approved),
        "sessions": sessions,
    }


async def school_report(db: AsyncSession, user: CurrentUser) -> dict:
    """Compliance of the caller's students against the school's requirement."""
    if not user.school_id:
        raise ValidationError("Not associated with a school.", error_code="NO_SCHOOL")
    school = await SchoolRepository.get_by_id(db, user.school_id)
    if school is None:
        raise NotFoundError("School", user.school_id)

    if user.role == UserRole.TEACHER:
        students = (
            await UserRepository.list_students(
                db, school_id=school.id, classroom_id=user.classroom_id
            )
            if user.classroom_id
            else []
        )
    else:
        students = await UserRepository.list_students(db, school_id=school.id)

    hours = await session_repository.approved_hours_by_user(db, [s.id for s in students])
    rows = []
    for student in students:
        approved = round_hours(hours.get(student.id, 0.0))
        rows.append(
            {
                "student_id": student.id,
                "name": student.name,
                "email": student.email,
                "grade": student.grade,
                "approved_hours": approved,
                "required_hours": school.required_hours,
                "completed": approved >= school.required_hours,
                "percent_complete": percent_complete(approved, school.required_hours),
            }
        )

    return {
        "school_id": school.id,
        "school_name": school.name,
        "required_hours": school.required_hours,
        "total_students": len(rows),
        "students_completed": sum(1 for r in rows if r["completed"]),
        "students": rows,
    }


async def _sessions_for_export(db: AsyncSession, user: CurrentUser) -> list[ServiceSession]:
    if user.role == UserRole.STUDENT:
        return await session_repository.list_by_user(
            db, user.id, verification_status=VerificationStatus.APPROVED
        )
    if user.role == UserRole.ORG_ADMIN:
        if not user.organization_id:
            raise ValidationError(
                "Not associated with an organization.", error_code="NO_ORGANIZATION"
            )
        return await session_repository.list_for_organization(
            db, user.organization_id, verification_status=VerificationStatus.APPROVED
        )

    if not user.school_id:
        raise ValidationError("Not associated with a school.", error_code="NO_SCHOOL")
    if user.role == UserRole.TEACHER and not user.classroom_id:
        return []
    return await session_repository.list_for_school(
        db,
        user.school_id,
        classroom_id=user.classroom_id if user.role == UserRole.TEACHER else None,
        verification_status=VerificationStatus.APPROVED,
    )


def render_csv(sessions: list[ServiceSession]) -> str:
    """Approved sessions as CSV, every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for s in sessions:
        day = s.check_in_time or s.opportunity.date
        organization = s.opportunity.organization
        writer.writerow(
            [
                day.date().isoformat() if day else "",
                s.user.name if s.user else "",
                s.opportunity.title,
                organization.name if organization else "",
                round_hours(s.total_hours),
                s.verification_status.value,
            ]
        )
    return buffer.getvalue()


async def export_csv(db: AsyncSession, user: CurrentUser) -> tuple[str, str]:
    """
    Approved hours in the caller's scope as CSV.

    Returns:
        Filename and CSV content
    """
    sessions = await _sessions_for_export(db, user)
    filename = "my-service-hours.csv" if user.role == UserRole.STUDENT else "service-hours.csv"
    logger.info(f"User {user.id} exported {len(sessions)} sessions")
    return filename, render_csv(sessions)
