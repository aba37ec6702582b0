"""
Signup/Waitlist Service

Business logic for enrolling students in opportunities.

Capacity rule: a signup is CONFIRMED if the opportunity has fewer CONFIRMED
signups than its capacity, WAITLISTED otherwise. The count and the write
that depends on it happen in one transaction while the opportunity row is
locked, so two concurrent signups can never both take the last spot.

Lock order is always opportunity row first, then signup and session rows.
"""

import logging

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import email
from app.core.auth import CurrentUser
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ServiceError,
)
from app.core.side_effects import dispatch
from app.modules.notifications.models import NotificationType
from app.modules.notifications.service import notify
from app.modules.opportunities import repository as opportunity_repository
from app.modules.opportunities.models import Opportunity, OpportunityStatus
from app.modules.sessions import repository as session_repository
from app.modules.sessions import state_machine
from app.modules.shared import round_hours
from app.modules.signups import repository
from app.modules.signups.models import Signup, SignupStatus
from app.modules.users.models import UserRole

logger = logging.getLogger(__name__)


# ============================================================================
# Custom Exceptions
# ============================================================================


class OpportunityInactiveError(ServiceError):
    """Raised when signing up for an opportunity that is not ACTIVE."""

    def __init__(self, status: OpportunityStatus):
        super().__init__(
            message=f"Opportunity is not active (status: {status.value}).",
            error_code="OPPORTUNITY_INACTIVE",
            status_code=400,
        )


class AlreadySignedUpError(ConflictError):
    """Raised when the student already holds a live signup for the opportunity."""

    def __init__(self):
        super().__init__(
            message="You are already signed up for this opportunity.",
            error_code="ALREADY_SIGNED_UP",
        )


# ============================================================================
# Signup
# ============================================================================


async def sign_up(
    db: AsyncSession,
    user: CurrentUser,
    opportunity_id: str,
) -> Signup:
    """
    Sign a student up for an opportunity.

    Creates the signup CONFIRMED or WAITLISTED by the capacity rule and
    makes sure the student's service session exists in COMMITTED state with
    the nominal hours. A previously CANCELLED signup is reused, and its
    session is reset, discarding earlier attendance and verification.

    Raises:
        NotFoundError: If the opportunity does not exist
        OpportunityInactiveError: If the opportunity is not ACTIVE
        AlreadySignedUpError: If a CONFIRMED or WAITLISTED signup exists
    """
    opportunity = await opportunity_repository.get_for_update(db, opportunity_id)
    if opportunity is None:
        raise NotFoundError("Opportunity", opportunity_id)
    if opportunity.status != OpportunityStatus.ACTIVE:
        raise OpportunityInactiveError(opportunity.status)

    signup = await repository.get_by_user_and_opportunity(
        db, user.id, opportunity.id, for_update=True
    )
    if signup is not None and signup.status != SignupStatus.CANCELLED:
        raise AlreadySignedUpError()

    confirmed_count = await repository.count_confirmed(db, opportunity.id)
    status = (
        SignupStatus.CONFIRMED if confirmed_count < opportunity.capacity else SignupStatus.WAITLISTED
    )

    if signup is None:
        signup = await repository.create(
            db,
            user_id=user.id,
            opportunity_id=opportunity.id,
            status=status,
        )
    else:
        logger.info(f"Re-signup of {user.id} for opportunity {opportunity.id}")
        signup.status = status

    nominal_hours = round_hours(opportunity.duration_hours)
    session = await session_repository.get_by_user_and_opportunity(
        db, user.id, opportunity.id, for_update=True
    )
    if session is None:
        await session_repository.create(
            db,
            user_id=user.id,
            opportunity_id=opportunity.id,
            total_hours=nominal_hours,
        )
    else:
        state_machine.reset_to_committed(session, nominal_hours)

    confirmed = status == SignupStatus.CONFIRMED
    await notify(
        db,
        user_id=user.id,
        type=NotificationType.SIGNUP_CONFIRMED,
        title="Signup Confirmed" if confirmed else "Added to Waitlist",
        body=(
            f'You\'re signed up for "{opportunity.title}"'
            if confirmed
            else f'You\'ve been waitlisted for "{opportunity.title}"'
        ),
        data={"opportunity_id": opportunity.id, "signup_id": signup.id},
    )

    await db.commit()
    await db.refresh(signup)

    logger.info(
        f"Signup {signup.id}: user {user.id} -> opportunity {opportunity.id} "
        f"{status.value} ({confirmed_count}/{opportunity.capacity} confirmed before)"
    )
    return signup


# ============================================================================
# Cancellation and waitlist promotion
# ============================================================================


async def fill_open_spots(
    db: AsyncSession,
    opportunity: Opportunity,
    background_tasks: BackgroundTasks | None = None,
) -> list[Signup]:
    """
    Promote waitlisted signups, oldest first, until capacity is reached.

    Must be called inside a transaction that holds the opportunity row lock.
    Does not commit.

    Returns:
        The promoted signups
    """
    promoted: list[Signup] = []
    if opportunity.status != OpportunityStatus.ACTIVE:
        return promoted

    confirmed_count = await repository.count_confirmed(db, opportunity.id)
    while confirmed_count < opportunity.capacity:
        next_signup = await repository.first_waitlisted(db, opportunity.id)
        if next_signup is None:
            break

        next_signup.status = SignupStatus.CONFIRMED
        await db.flush()
        confirmed_count += 1
        promoted.append(next_signup)

        await notify(
            db,
            user_id=next_signup.user_id,
            type=NotificationType.SIGNUP_CONFIRMED,
            title="Spot Available!",
            body=f'A spot opened up for "{opportunity.title}". You\'re now confirmed!',
            data={"opportunity_id": opportunity.id, "signup_id": next_signup.id},
        )

        student = next_signup.user
        if background_tasks is not None and student is not None and student.email_notifications:
            dispatch(
                background_tasks,
                f"spot available email to {student.id}",
                email.send_spot_available,
                student.email,
                opportunity.title,
            )

        logger.info(
            f"Promoted signup {next_signup.id} from waitlist for opportunity {opportunity.id}"
        )

    return promoted


async def cancel_signup(
    db: AsyncSession,
    user: CurrentUser,
    signup_id: str,
    background_tasks: BackgroundTasks | None = None,
) -> Signup:
    """
    Cancel a signup and, if it held a confirmed spot, promote the waitlist.

    The owning student or an ORG_ADMIN of the opportunity's organization may
    cancel. The service session is left untouched.

    Raises:
        NotFoundError: If the signup does not exist
        ForbiddenError: If the actor may not cancel this signup
        InvalidTransitionError: If the signup is already CANCELLED
    """
    signup = await repository.get_by_id(db, signup_id)
    if signup is None:
        raise NotFoundError("Signup", signup_id)

    opportunity = await opportunity_repository.get_for_update(db, signup.opportunity_id)
    if opportunity is None:
        raise NotFoundError("Opportunity", signup.opportunity_id)

    is_owner = signup.user_id == user.id
    is_org_admin = (
        user.role == UserRole.ORG_ADMIN
        and user.organization_id is not None
        and user.organization_id == opportunity.organization_id
    )
    if not (is_owner or is_org_admin):
        logger.warning(f"User {user.id} attempted to cancel signup {signup_id}")
        raise ForbiddenError("Cannot cancel this signup.")

    # Re-read under lock now that the opportunity is held
    signup = await repository.get_by_id(db, signup_id, for_update=True)
    if signup is None:
        raise NotFoundError("Signup", signup_id)
    if signup.status == SignupStatus.CANCELLED:
        raise InvalidTransitionError(
            SignupStatus.CANCELLED.value,
            SignupStatus.CANCELLED.value,
            "Signup is already cancelled.",
        )

    held_spot = signup.status == SignupStatus.CONFIRMED
    signup.status = SignupStatus.CANCELLED
    await db.flush()

    if held_spot:
        await fill_open_spots(db, opportunity, background_tasks)

    await db.commit()
    await db.refresh(signup)

    logger.info(f"Signup {signup.id} cancelled by {user.id}")
    return signup


async def list_my_signups(db: AsyncSession, user: CurrentUser) -> list[Signup]:
    """The student's signups, newest first."""
    return await repository.list_by_user(db, user.id)
