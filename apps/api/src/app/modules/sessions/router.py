"""
Service Sessions Router

Endpoints:
- POST /sessions/{id}/checkin - Student checks in
- POST /sessions/{id}/checkout - Student checks out
- POST /sessions/{id}/submit-verification - Student submits a supervisor signature
- GET /sessions/my - Student's own sessions
- GET /sessions/organization - Sessions for the ORG_ADMIN's organization
- GET /sessions/school - Sessions of the school's students (teachers: own classroom)
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, require_roles
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.modules.sessions import service
from app.modules.sessions.models import SessionStatus, VerificationStatus
from app.modules.sessions.schemas import (
    SessionResponse,
    StaffSessionResponse,
    SubmitVerificationRequest,
)
from app.modules.users.models import SCHOOL_STAFF_ROLES, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{session_id}/checkin", response_model=SessionResponse)
async def check_in(
    session_id: str,
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """
    Check in to a committed session.

    Raises:
        HTTPException 400: If the session is not COMMITTED
        HTTPException 403: If the session belongs to another student
        HTTPException 404: If the session does not exist
    """
    try:
        session = await service.check_in(db, user, session_id)
        return SessionResponse.model_validate(session)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error checking in session {session_id}: {e}")
        raise internal_server_error() from e


@router.post("/{session_id}/checkout", response_model=SessionResponse)
async def check_out(
    session_id: str,
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """
    Check out of a session. The served hours are computed from the
    check-in and check-out times.

    Raises:
        HTTPException 400: If the session is not CHECKED_IN
        HTTPException 403: If the session belongs to another student
        HTTPException 404: If the session does not exist
    """
    try:
        session = await service.check_out(db, user, session_id)
        return SessionResponse.model_validate(session)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error checking out session {session_id}: {e}")
        raise internal_server_error() from e


@router.post("/{session_id}/submit-verification", response_model=SessionResponse)
async def submit_verification(
    session_id: str,
    data: SubmitVerificationRequest,
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Submit a supervisor signature for a session attended without check-in."""
    try:
        session = await service.submit_verification(
            db,
            user,
            session_id,
            supervisor_name=data.supervisor_name,
            signature_data=data.signature_data,
        )
        return SessionResponse.model_validate(session)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error submitting verification for session {session_id}: {e}")
        raise internal_server_error() from e


@router.get("/my", response_model=list[SessionResponse])
async def list_my_sessions(
    status: SessionStatus | None = Query(None),
    verification_status: VerificationStatus | None = Query(None),
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> list[SessionResponse]:
    sessions = await service.list_my_sessions(
        db, user, status=status, verification_status=verification_status
    )
    return [SessionResponse.model_validate(s) for s in sessions]


@router.get("/organization", response_model=list[StaffSessionResponse])
async def list_organization_sessions(
    verification_status: VerificationStatus | None = Query(None),
    user: CurrentUser = Depends(require_roles(UserRole.ORG_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> list[StaffSessionResponse]:
    """Sessions for all opportunities of the caller's organization."""
    try:
        sessions = await service.list_organization_sessions(
            db, user, verification_status=verification_status
        )
        return [StaffSessionResponse.model_validate(s) for s in sessions]
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get("/school", response_model=list[StaffSessionResponse])
async def list_school_sessions(
    classroom_id: str | None = Query(None),
    student_id: str | None = Query(None),
    verification_status: VerificationStatus | None = Query(None),
    user: CurrentUser = Depends(require_roles(*SCHOOL_STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> list[StaffSessionResponse]:
    """Sessions of the caller's school; teachers are limited to their classroom."""
    try:
        sessions = await service.list_school_sessions(
            db,
            user,
            classroom_id=classroom_id,
            student_id=student_id,
            verification_status=verification_status,
        )
        return [StaffSessionResponse.model_validate(s) for s in sessions]
    except ServiceError as e:
        raise to_http_exception(e) from e
