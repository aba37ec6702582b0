"""
Service Session Repository

Database operations for service sessions. Functions flush but never commit.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.opportunities.models import Opportunity
from app.modules.users.models import User

from .models import ServiceSession, SessionStatus, VerificationStatus


async def create(
    db: AsyncSession,
    *,
    user_id: str,
    opportunity_id: str,
    total_hours: float,
) -> ServiceSession:
    """Create a COMMITTED session pre-filled with the nominal hours."""
    session = ServiceSession(
        user_id=user_id,
        opportunity_id=opportunity_id,
        status=SessionStatus.COMMITTED,
        verification_status=VerificationStatus.PENDING,
        total_hours=total_hours,
    )
    db.add(session)
    await db.flush()
    await db.refresh(session)
    return session


async def get_by_id(
    db: AsyncSession,
    session_id: str,
    *,
    for_update: bool = False,
) -> ServiceSession | None:
    """
    Load a session.

    With ``for_update`` the row is locked and re-read, so a transition's
    precondition is always checked against the committed state.
    """
    query = select(ServiceSession).where(ServiceSession.id == session_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_by_user_and_opportunity(
    db: AsyncSession,
    user_id: str,
    opportunity_id: str,
    *,
    for_update: bool = False,
) -> ServiceSession | None:
    query = select(ServiceSession).where(
        ServiceSession.user_id == user_id,
        ServiceSession.opportunity_id == opportunity_id,
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_by_user(
    db: AsyncSession,
    user_id: str,
    *,
    status: SessionStatus | None = None,
    verification_status: VerificationStatus | None = None,
) -> list[ServiceSession]:
    query = select(ServiceSession).where(ServiceSession.user_id == user_id)
    if status:
        query = query.where(ServiceSession.status == status)
    if verification_status:
        query = query.where(ServiceSession.verification_status == verification_status)
    result = await db.execute(query.order_by(ServiceSession.created_at.desc()))
    return list(result.scalars().all())


async def list_for_organization(
    db: AsyncSession,
    organization_id: str,
    *,
    verification_status: VerificationStatus | None = None,
) -> list[ServiceSession]:
    query = (
        select(ServiceSession)
        .join(Opportunity, ServiceSession.opportunity_id == Opportunity.id)
        .where(Opportunity.organization_id == organization_id)
    )
    if verification_status:
        query = query.where(ServiceSession.verification_status == verification_status)
    result = await db.execute(query.order_by(ServiceSession.created_at.desc()))
    return list(result.scalars().all())


async def list_pending_for_organization(
    db: AsyncSession,
    organization_id: str,
) -> list[ServiceSession]:
    """Checked-out sessions awaiting verification, latest check-out first."""
    result = await db.execute(
        select(ServiceSession)
        .join(Opportunity, ServiceSession.opportunity_id == Opportunity.id)
        .where(
            Opportunity.organization_id == organization_id,
            ServiceSession.verification_status == VerificationStatus.PENDING,
            ServiceSession.status == SessionStatus.CHECKED_OUT,
        )
        .order_by(ServiceSession.check_out_time.desc().nulls_last())
    )
    return list(result.scalars().all())


async def list_for_school(
    db: AsyncSession,
    school_id: str,
    *,
    classroom_id: str | None = None,
    student_id: str | None = None,
    verification_status: VerificationStatus | None = None,
) -> list[ServiceSession]:
    """Sessions of a school's students, optionally narrowed."""
    query = (
        select(ServiceSession)
        .join(User, ServiceSession.user_id == User.id)
        .where(User.school_id == school_id)
    )
    if classroom_id:
        query = query.where(User.classroom_id == classroom_id)
    if student_id:
        query = query.where(ServiceSession.user_id == student_id)
    if verification_status:
        query = query.where(ServiceSession.verification_status == verification_status)
    result = await db.execute(query.order_by(ServiceSession.created_at.desc()))
    return list(result.scalars().all())


async def approved_hours_by_user(db: AsyncSession, user_ids: list[str]) -> dict[str, float]:
    """Sum of APPROVED hours keyed by user id. Users with none are absent."""
    if not user_ids:
        return {}
    result = await db.execute(
        select(ServiceSession.user_id, func.sum(ServiceSession.total_hours))
        .where(
            ServiceSession.user_id.in_(user_ids),
            ServiceSession.verification_status == VerificationStatus.APPROVED,
        )
        .group_by(ServiceSession.user_id)
    )
    return {user_id: float(total or 0) for user_id, total in result.all()}
