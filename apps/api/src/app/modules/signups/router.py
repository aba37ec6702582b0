"""
Signups Router

Endpoints:
- POST /signups - Student signs up for an opportunity (CONFIRMED or WAITLISTED)
- GET /signups/my - Student's signups
- POST /signups/{id}/cancel - Owner or organization admin cancels a signup

Security:
- Signups are rate limited per student
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user, require_roles
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.core.rate_limit import enforce_user_rate_limit
from app.modules.signups import service
from app.modules.signups.schemas import MySignupResponse, SignupCreate, SignupResponse
from app.modules.users.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()

SIGNUP_RATE_LIMIT = 20
SIGNUP_RATE_WINDOW_SECONDS = 60


@router.post(
    "",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Opportunity is not active"},
        404: {"description": "Opportunity not found"},
        409: {"description": "Already signed up"},
        429: {"description": "Too many signup attempts"},
    },
)
async def sign_up(
    data: SignupCreate,
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> SignupResponse:
    """
    Sign up for an opportunity.

    The signup is CONFIRMED while the opportunity has free capacity and
    WAITLISTED once it is full. Re-signing up after a cancellation reuses
    the earlier signup and resets its service session.
    """
    await enforce_user_rate_limit(user, "signup", SIGNUP_RATE_LIMIT, SIGNUP_RATE_WINDOW_SECONDS)

    try:
        signup = await service.sign_up(db, user, data.opportunity_id)
        return SignupResponse.model_validate(signup)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error signing up {user.id} for {data.opportunity_id}: {e}")
        raise internal_server_error() from e


@router.get("/my", response_model=list[MySignupResponse])
async def list_my_signups(
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> list[MySignupResponse]:
    signups = await service.list_my_signups(db, user)
    return [MySignupResponse.model_validate(s) for s in signups]


@router.post("/{signup_id}/cancel", response_model=SignupResponse)
async def cancel_signup(
    signup_id: str,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> SignupResponse:
    """
    Cancel a signup.

    Cancelling a confirmed signup promotes the earliest waitlisted student,
    who is notified and emailed.

    Raises:
        HTTPException 400: If the signup is already cancelled
        HTTPException 403: If the caller is neither the student nor an admin of the organization
        HTTPException 404: If the signup does not exist
    """
    try:
        signup = await service.cancel_signup(db, user, signup_id, background_tasks)
        return SignupResponse.model_validate(signup)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error cancelling signup {signup_id}: {e}")
        raise internal_server_error() from e
