"""
Service Session Service

Student-driven attendance transitions (check-in, check-out, signature
submission) and the session listings for each role. Staff verification
lives in the verification module.

Every transition runs in one transaction: lock the session row, check
ownership, apply the state machine edge, append the audit entry, commit.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.modules.notifications.models import AuditAction, NotificationType
from app.modules.notifications.service import notify_many, record_audit
from app.modules.sessions import repository, state_machine
from app.modules.sessions.models import ServiceSession, SessionStatus, VerificationStatus
from app.modules.shared import utcnow
from app.modules.users.models import UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


async def _get_own_session_for_update(
    db: AsyncSession,
    user: CurrentUser,
    session_id: str,
) -> ServiceSession:
    session = await repository.get_by_id(db, session_id, for_update=True)
    if session is None:
        raise NotFoundError("Session", session_id)
    if session.user_id != user.id:
        logger.warning(f"User {user.id} attempted to modify session {session_id} they do not own")
        raise ForbiddenError("Not your session.")
    return session


async def check_in(db: AsyncSession, user: CurrentUser, session_id: str) -> ServiceSession:
    """
    Check a student in to their committed session.

    Raises:
        NotFoundError: If the session does not exist
        ForbiddenError: If the session belongs to another student
        InvalidTransitionError: If the session is not COMMITTED
    """
    session = await _get_own_session_for_update(db, user, session_id)

    now = utcnow()
    state_machine.check_in(session, now)
    await record_audit(
        db,
        action=AuditAction.CHECK_IN,
        session_id=session.id,
        actor_id=user.id,
        details={"time": now.isoformat()},
    )
    await db.commit()
    await db.refresh(session)

    logger.info(f"Session {session.id} checked in by {user.id}")
    return session


async def check_out(db: AsyncSession, user: CurrentUser, session_id: str) -> ServiceSession:
    """
    Check a student out and compute the hours they served.

    Raises:
        NotFoundError: If the session does not exist
        ForbiddenError: If the session belongs to another student
        InvalidTransitionError: If the session is not CHECKED_IN
    """
    session = await _get_own_session_for_update(db, user, session_id)

    now = utcnow()
    total_hours = state_machine.check_out(session, now)
    await record_audit(
        db,
        action=AuditAction.CHECK_OUT,
        session_id=session.id,
        actor_id=user.id,
        details={"time": now.isoformat(), "totalHours": total_hours},
    )
    await db.commit()
    await db.refresh(session)

    logger.info(f"Session {session.id} checked out by {user.id}: {total_hours}h")
    return session


async def submit_verification(
    db: AsyncSession,
    user: CurrentUser,
    session_id: str,
    *,
    supervisor_name: str,
    signature_data: str,
) -> ServiceSession:
    """
    Submit a supervisor signature for a session the student attended
    without checking in.

    The session moves to CHECKED_OUT with its nominal hours and waits for
    verification. School staff are notified.

    Raises:
        NotFoundError: If the session does not exist
        ForbiddenError: If the session belongs to another student
        ValidationError: If the signature is missing or the opportunity has not happened yet
        InvalidTransitionError: If the session is not COMMITTED
    """
    if not supervisor_name or not supervisor_name.strip():
        raise ValidationError("Supervisor name is required.")
    if not signature_data or not signature_data.strip():
        raise ValidationError("Signature is required.")

    session = await _get_own_session_for_update(db, user, session_id)

    now = utcnow()
    if session.opportunity.date > now:
        raise ValidationError("Cannot submit verification before the opportunity date.")

    state_machine.submit_verification(
        session,
        supervisor_name=supervisor_name.strip(),
        signature_data=signature_data,
        now=now,
    )
    await record_audit(
        db,
        action=AuditAction.SUBMIT_VERIFICATION,
        session_id=session.id,
        actor_id=user.id,
        details={"totalHours": session.total_hours, "supervisorName": session.supervisor_name},
    )

    if user.school_id:
        staff = await UserRepository.list_school_staff(db, user.school_id)
        await notify_many(
            db,
            user_ids=[member.id for member in staff],
            type=NotificationType.VERIFICATION_SUBMITTED,
            title="Verification Submitted",
            body=(
                f'{user.name or user.email} submitted {session.total_hours}h for '
                f'"{session.opportunity.title}" for review.'
            ),
            data={"session_id": session.id},
        )

    await db.commit()
    await db.refresh(session)

    logger.info(f"Verification submitted for session {session.id} by {user.id}")
    return session


async def list_my_sessions(
    db: AsyncSession,
    user: CurrentUser,
    *,
    status: SessionStatus | None = None,
    verification_status: VerificationStatus | None = None,
) -> list[ServiceSession]:
    return await repository.list_by_user(
        db, user.id, status=status, verification_status=verification_status
    )


async def list_organization_sessions(
    db: AsyncSession,
    user: CurrentUser,
    *,
    verification_status: VerificationStatus | None = None,
) -> list[ServiceSession]:
    """Sessions for the opportunities of the actor's organization."""
    if not user.organization_id:
        raise ValidationError("Not associated with an organization.", error_code="NO_ORGANIZATION")
    return await repository.list_for_organization(
        db, user.organization_id, verification_status=verification_status
    )


async def list_school_sessions(
    db: AsyncSession,
    user: CurrentUser,
    *,
    classroom_id: str | None = None,
    student_id: str | None = None,
    verification_status: VerificationStatus | None = None,
) -> list[ServiceSession]:
    """
    Sessions of the students in the actor's school.

    Teachers only ever see their own classroom, whatever filter they pass.
    """
    if not user.school_id:
        raise ValidationError("Not associated with a school.", error_code="NO_SCHOOL")

    if user.role == UserRole.TEACHER:
        if not user.classroom_id:
            return []
        classroom_id = user.classroom_id

    return await repository.list_for_school(
        db,
        user.school_id,
        classroom_id=classroom_id,
        student_id=student_id,
        verification_status=verification_status,
    )
