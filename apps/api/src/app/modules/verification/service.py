"""
Verification Service

Staff decisions on a session's hours: approve, reject, and school-side
removal of hours (override). Each decision locks the session row, checks
the actor against the verification policy, applies the state machine
edge, appends an audit entry and notifies the student, all in one
transaction. Emails go out after the response.
"""

import logging

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import email
from app.core.auth import CurrentUser
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.core.side_effects import dispatch
from app.modules.notifications import repository as notification_repository
from app.modules.notifications.models import AuditAction, AuditLog, NotificationType
from app.modules.notifications.service import notify, record_audit
from app.modules.sessions import repository as session_repository
from app.modules.sessions import state_machine
from app.modules.sessions.models import ServiceSession
from app.modules.shared import utcnow
from app.modules.verification.policy import SessionScope, can_override, can_verify

logger = logging.getLogger(__name__)


async def _get_session_for_update(db: AsyncSession, session_id: str) -> ServiceSession:
    session = await session_repository.get_by_id(db, session_id, for_update=True)
    if session is None:
        raise NotFoundError("Session", session_id)
    return session


def _ensure_can_verify(user: CurrentUser, session: ServiceSession) -> None:
    if not can_verify(user, SessionScope.of(session)):
        logger.warning(
            f"User {user.id} ({user.role.value}) denied verification of session {session.id}"
        )
        raise ForbiddenError("You are not allowed to verify this session.")


def _email_student(
    background_tasks: BackgroundTasks | None,
    session: ServiceSession,
    description: str,
    func,
    *args,
) -> None:
    student = session.user
    if background_tasks is None or student is None or not student.email_notifications:
        return
    dispatch(background_tasks, f"{description} email to {student.id}", func, student.email, *args)


async def approve_hours(
    db: AsyncSession,
    user: CurrentUser,
    session_id: str,
    approved_hours: float | None = None,
    background_tasks: BackgroundTasks | None = None,
) -> ServiceSession:
    """
    Approve a session's hours, optionally correcting the amount.

    Raises:
        NotFoundError: If the session does not exist
        ForbiddenError: If the actor may not verify this session
        ConflictError: If the hours are already approved
    """
    session = await _get_session_for_update(db, session_id)
    _ensure_can_verify(user, session)

    hours, original_hours = state_machine.approve(
        session,
        actor_id=user.id,
        approved_hours=approved_hours,
        now=utcnow(),
    )
    await record_audit(
        db,
        action=AuditAction.APPROVE,
        session_id=session.id,
        actor_id=user.id,
        details={"approvedHours": hours, "originalHours": original_hours},
    )

    opportunity = session.opportunity
    await notify(
        db,
        user_id=session.user_id,
        type=NotificationType.VERIFICATION_UPDATE,
        title="Hours Approved",
        body=f'Your {hours} hours for "{opportunity.title}" have been approved.',
        data={"session_id": session.id},
    )

    await db.commit()
    await db.refresh(session)

    organization_name = (
        opportunity.organization.name if opportunity.organization else "The organization"
    )
    _email_student(
        background_tasks,
        session,
        "hours approved",
        email.send_hours_approved,
        organization_name,
        hours,
        opportunity.title,
    )

    logger.info(f"Session {session.id} approved by {user.id}: {hours}h (was {original_hours}h)")
    return session


async def reject_hours(
    db: AsyncSession,
    user: CurrentUser,
    session_id: str,
    reason: str | None,
) -> ServiceSession:
    """
    Reject a session's hours with a reason.

    Raises:
        ValidationError: If no reason is given (checked before anything is read)
        NotFoundError: If the session does not exist
        ForbiddenError: If the actor may not verify this session
    """
    if not reason or not reason.strip():
        raise ValidationError("Rejection reason is required.")
    reason = reason.strip()

    session = await _get_session_for_update(db, session_id)
    _ensure_can_verify(user, session)

    state_machine.reject(session, actor_id=user.id, reason=reason, now=utcnow())
    await record_audit(
        db,
        action=AuditAction.REJECT,
        session_id=session.id,
        actor_id=user.id,
        details={"reason": reason},
    )
    await notify(
        db,
        user_id=session.user_id,
        type=NotificationType.VERIFICATION_UPDATE,
        title="Hours Rejected",
        body=f'Your hours for "{session.opportunity.title}" were rejected: {reason}',
        data={"session_id": session.id},
    )

    await db.commit()
    await db.refresh(session)

    logger.info(f"Session {session.id} rejected by {user.id}")
    return session


async def remove_hours(
    db: AsyncSession,
    user: CurrentUser,
    school_id: str,
    session_id: str,
    reason: str | None = None,
    background_tasks: BackgroundTasks | None = None,
) -> tuple[ServiceSession, float]:
    """
    Remove a student's hours on behalf of their school, whatever the
    session's verification state.

    Returns:
        The session and the hours it carried before removal

    Raises:
        ForbiddenError: If the actor is not staff of ``school_id`` or may not
            override this session
        NotFoundError: If the session does not exist
    """
    if user.school_id is None or user.school_id != school_id:
        logger.warning(f"User {user.id} attempted to remove hours for school {school_id}")
        raise ForbiddenError("You can only remove hours for your own school.")

    session = await _get_session_for_update(db, session_id)
    if not can_override(user, SessionScope.of(session)):
        logger.warning(f"User {user.id} ({user.role.value}) denied override of session {session.id}")
        raise ForbiddenError("You are not allowed to remove hours for this student.")

    reason = reason.strip() if reason and reason.strip() else None
    removed_hours = session.total_hours
    previous_status = state_machine.override(session, actor_id=user.id, reason=reason, now=utcnow())

    await record_audit(
        db,
        action=AuditAction.OVERRIDE,
        session_id=session.id,
        actor_id=user.id,
        details={
            "reason": session.rejection_reason,
            "previousStatus": previous_status.value,
            "removedHours": removed_hours,
        },
    )
    opportunity = session.opportunity
    await notify(
        db,
        user_id=session.user_id,
        type=NotificationType.VERIFICATION_UPDATE,
        title="Hours Removed",
        body=(
            f'Your {removed_hours} hours for "{opportunity.title}" were removed by school staff: '
            f"{session.rejection_reason}"
        ),
        data={"session_id": session.id},
    )

    await db.commit()
    await db.refresh(session)

    _email_student(
        background_tasks,
        session,
        "hours removed",
        email.send_hours_removed,
        removed_hours,
        opportunity.title,
        session.rejection_reason,
    )

    logger.info(
        f"Session {session.id} hours removed by {user.id}: {removed_hours}h "
        f"(was {previous_status.value})"
    )
    return session, removed_hours


async def list_pending(db: AsyncSession, user: CurrentUser) -> list[ServiceSession]:
    """Checked-out sessions of the actor's organization awaiting a decision."""
    if not user.organization_id:
        raise ValidationError("Not associated with an organization.", error_code="NO_ORGANIZATION")
    return await session_repository.list_pending_for_organization(db, user.organization_id)


async def get_audit_trail(db: AsyncSession, user: CurrentUser, session_id: str) -> list[AuditLog]:
    """
    Audit entries of one session, oldest first.

    Visible to the student who owns the session and to staff who may verify it.

    Raises:
        NotFoundError: If the session does not exist
        ForbiddenError: If the actor may not see it
    """
    session = await session_repository.get_by_id(db, session_id)
    if session is None:
        raise NotFoundError("Session", session_id)
    if session.user_id != user.id and not can_verify(user, SessionScope.of(session)):
        raise ForbiddenError("You are not allowed to view this audit trail.")
    return await notification_repository.list_audit_entries(db, session.id)
