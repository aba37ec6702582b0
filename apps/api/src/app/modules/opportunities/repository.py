"""
Opportunity Repository

Database operations for opportunities and saved opportunities.
Functions flush but never commit; services own the transaction.
"""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Opportunity, OpportunityStatus, SavedOpportunity, SavedStatus


async def create(db: AsyncSession, *, organization_id: str, **fields: Any) -> Opportunity:
    """Create an opportunity for an organization."""
    opportunity = Opportunity(organization_id=organization_id, **fields)
    db.add(opportunity)
    await db.flush()
    await db.refresh(opportunity)
    return opportunity


async def get_by_id(db: AsyncSession, opportunity_id: str) -> Opportunity | None:
    result = await db.execute(select(Opportunity).where(Opportunity.id == opportunity_id))
    return result.scalar_one_or_none()


async def get_for_update(db: AsyncSession, opportunity_id: str) -> Opportunity | None:
    """
    Load an opportunity and lock its row until the transaction ends.

    Every signup, cancellation and capacity change for an opportunity takes
    this lock first, which serializes the confirmed-count check with the
    write that depends on it.
    """
    result = await db.execute(
        select(Opportunity)
        .where(Opportunity.id == opportunity_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def search(
    db: AsyncSession,
    *,
    status: OpportunityStatus = OpportunityStatus.ACTIVE,
    search: str | None = None,
    on_date: datetime | None = None,
    tag: str | None = None,
    organization_id: str | None = None,
) -> list[Opportunity]:
    """
    Browse opportunities, ordered by date.

    Args:
        status: Opportunity status to list (default ACTIVE)
        search: Case-insensitive text matched against title, description and location
        on_date: Only opportunities on this calendar day
        tag: Only opportunities carrying this tag
        organization_id: Only opportunities from this organization
    """
    query = select(Opportunity).where(Opportunity.status == status)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Opportunity.title.ilike(pattern),
                Opportunity.description.ilike(pattern),
                Opportunity.location.ilike(pattern),
            )
        )
    if on_date:
        day_start = on_date.replace(hour=0, minute=0, second=0, microsecond=0)
        query = query.where(
            Opportunity.date >= day_start,
            Opportunity.date < day_start + timedelta(days=1),
        )
    if tag:
        query = query.where(Opportunity.tags.contains([tag]))
    if organization_id:
        query = query.where(Opportunity.organization_id == organization_id)

    result = await db.execute(query.order_by(Opportunity.date.asc(), Opportunity.created_at.asc()))
    return list(result.scalars().all())


async def list_needing_reminder(
    db: AsyncSession,
    window_start: datetime,
    window_end: datetime,
) -> list[Opportunity]:
    """Active opportunities in the window whose volunteers have not been reminded."""
    result = await db.execute(
        select(Opportunity).where(
            Opportunity.status == OpportunityStatus.ACTIVE,
            Opportunity.date >= window_start,
            Opportunity.date < window_end,
            Opportunity.reminder_sent_at.is_(None),
        )
    )
    return list(result.scalars().all())


async def list_active_before(db: AsyncSession, cutoff: datetime) -> list[Opportunity]:
    """Active opportunities dated before ``cutoff``."""
    result = await db.execute(
        select(Opportunity).where(
            Opportunity.status == OpportunityStatus.ACTIVE,
            Opportunity.date < cutoff,
        )
    )
    return list(result.scalars().all())


async def get_saved(
    db: AsyncSession,
    user_id: str,
    opportunity_id: str,
) -> SavedOpportunity | None:
    result = await db.execute(
        select(SavedOpportunity).where(
            SavedOpportunity.user_id == user_id,
            SavedOpportunity.opportunity_id == opportunity_id,
        )
    )
    return result.scalar_one_or_none()


async def get_saved_by_id(db: AsyncSession, saved_id: str) -> SavedOpportunity | None:
    return await db.get(SavedOpportunity, saved_id)


async def create_saved(
    db: AsyncSession,
    *,
    user_id: str,
    opportunity_id: str,
    status: SavedStatus,
) -> SavedOpportunity:
    saved = SavedOpportunity(user_id=user_id, opportunity_id=opportunity_id, status=status)
    db.add(saved)
    await db.flush()
    return saved


async def list_saved(
    db: AsyncSession,
    user_id: str,
    status: SavedStatus | None = None,
) -> list[SavedOpportunity]:
    query = select(SavedOpportunity).where(SavedOpportunity.user_id == user_id)
    if status:
        query = query.where(SavedOpportunity.status == status)
    result = await db.execute(query.order_by(SavedOpportunity.created_at.desc()))
    return list(result.scalars().all())


async def delete_saved(db: AsyncSession, saved_id: str) -> None:
    await db.execute(delete(SavedOpportunity).where(SavedOpportunity.id == saved_id))
