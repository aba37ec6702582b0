"""
Verification Router

Endpoints:
- POST /verification/{session_id}/approve - Approve hours (org admin, school admin, teacher)
- POST /verification/{session_id}/reject - Reject hours with a reason
- GET /verification/pending - Sessions awaiting the organization's decision

Hours removal by school staff is exposed as POST /schools/{id}/remove-hours.

Security:
- Each decision is authorized against the session's organization, school
  and classroom, not only the caller's role
- Decisions are rate limited per staff member
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, require_roles
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.core.rate_limit import enforce_user_rate_limit
from app.modules.sessions.schemas import SessionResponse, StaffSessionResponse
from app.modules.users.models import STAFF_ROLES, UserRole
from app.modules.verification import service
from app.modules.verification.schemas import ApproveRequest, RejectRequest

logger = logging.getLogger(__name__)

router = APIRouter()

VERIFICATION_RATE_LIMIT = 60
VERIFICATION_RATE_WINDOW_SECONDS = 60


@router.get("/pending", response_model=list[StaffSessionResponse])
async def list_pending(
    user: CurrentUser = Depends(require_roles(UserRole.ORG_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> list[StaffSessionResponse]:
    """Checked-out sessions awaiting verification, most recent check-out first."""
    try:
        sessions = await service.list_pending(db, user)
        return [StaffSessionResponse.model_validate(s) for s in sessions]
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post(
    "/{session_id}/approve",
    response_model=SessionResponse,
    responses={
        403: {"description": "Session is outside the caller's organization, school or classroom"},
        404: {"description": "Session not found"},
        409: {"description": "Hours already approved"},
    },
)
async def approve_hours(
    session_id: str,
    background_tasks: BackgroundTasks,
    data: ApproveRequest | None = None,
    user: CurrentUser = Depends(require_roles(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """
    Approve a session's hours.

    ``approved_hours`` replaces the recorded duration when given. Sessions
    previously rejected may be approved.
    """
    await enforce_user_rate_limit(
        user, "verification", VERIFICATION_RATE_LIMIT, VERIFICATION_RATE_WINDOW_SECONDS
    )

    try:
        session = await service.approve_hours(
            db,
            user,
            session_id,
            approved_hours=data.approved_hours if data else None,
            background_tasks=background_tasks,
        )
        return SessionResponse.model_validate(session)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error approving session {session_id}: {e}")
        raise internal_server_error() from e


@router.post(
    "/{session_id}/reject",
    response_model=SessionResponse,
    responses={
        400: {"description": "Rejection reason missing"},
        403: {"description": "Session is outside the caller's organization, school or classroom"},
        404: {"description": "Session not found"},
    },
)
async def reject_hours(
    session_id: str,
    data: RejectRequest,
    user: CurrentUser = Depends(require_roles(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    """Reject a session's hours. A reason is required and shown to the student."""
    await enforce_user_rate_limit(
        user, "verification", VERIFICATION_RATE_LIMIT, VERIFICATION_RATE_WINDOW_SECONDS
    )

    try:
        session = await service.reject_hours(db, user, session_id, data.reason)
        return SessionResponse.model_validate(session)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error rejecting session {session_id}: {e}")
        raise internal_server_error() from e
