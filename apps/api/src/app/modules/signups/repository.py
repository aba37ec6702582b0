"""
Signup Repository

Database operations for signups. Functions flush but never commit; the
signup service owns the transaction and takes the opportunity row lock
before calling anything here that reads capacity.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Signup, SignupStatus


async def create(
    db: AsyncSession,
    *,
    user_id: str,
    opportunity_id: str,
    status: SignupStatus,
) -> Signup:
    """Insert a new signup row."""
    signup = Signup(user_id=user_id, opportunity_id=opportunity_id, status=status)
    db.add(signup)
    await db.flush()
    await db.refresh(signup)
    return signup


async def get_by_id(db: AsyncSession, signup_id: str, *, for_update: bool = False) -> Signup | None:
    query = select(Signup).where(Signup.id == signup_id)
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
) -> Signup | None:
    query = select(Signup).where(
        Signup.user_id == user_id,
        Signup.opportunity_id == opportunity_id,
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def count_confirmed(db: AsyncSession, opportunity_id: str) -> int:
    """Number of CONFIRMED signups for an opportunity."""
    result = await db.execute(
        select(func.count(Signup.id)).where(
            Signup.opportunity_id == opportunity_id,
            Signup.status == SignupStatus.CONFIRMED,
        )
    )
    return int(result.scalar_one())


async def confirmed_counts(db: AsyncSession, opportunity_ids: list[str]) -> dict[str, int]:
    """CONFIRMED signup counts keyed by opportunity id."""
    if not opportunity_ids:
        return {}
    result = await db.execute(
        select(Signup.opportunity_id, func.count(Signup.id))
        .where(
            Signup.opportunity_id.in_(opportunity_ids),
            Signup.status == SignupStatus.CONFIRMED,
        )
        .group_by(Signup.opportunity_id)
    )
    return {opportunity_id: int(count) for opportunity_id, count in result.all()}


async def first_waitlisted(db: AsyncSession, opportunity_id: str) -> Signup | None:
    """
    The waitlisted signup to promote next.

    Strictly the earliest created; rows created in the same instant are
    ordered by insertion (queue_position).
    """
    result = await db.execute(
        select(Signup)
        .where(
            Signup.opportunity_id == opportunity_id,
            Signup.status == SignupStatus.WAITLISTED,
        )
        .order_by(Signup.created_at.asc(), Signup.queue_position.asc())
        .limit(1)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_by_user(db: AsyncSession, user_id: str) -> list[Signup]:
    result = await db.execute(
        select(Signup).where(Signup.user_id == user_id).order_by(Signup.created_at.desc())
    )
    return list(result.scalars().all())


async def list_by_status(
    db: AsyncSession,
    opportunity_id: str,
    statuses: list[SignupStatus],
) -> list[Signup]:
    """Signups for an opportunity in any of ``statuses``, oldest first."""
    result = await db.execute(
        select(Signup)
        .where(
            Signup.opportunity_id == opportunity_id,
            Signup.status.in_(statuses),
        )
        .order_by(Signup.created_at.asc(), Signup.queue_position.asc())
    )
    return list(result.scalars().all())
