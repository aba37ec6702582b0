"""
Opportunity Service

Business logic for opportunity postings: create, edit, cancel, browse
with school-aware ranking, and students' saved marks.

Coordinates for distance ranking are filled in after the response by a
background geocode of the opportunity's address. A failed lookup leaves
the coordinates empty; the opportunity then ranks last in its tier.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import email
from app.core.auth import CurrentUser
from app.core.database import async_session_maker
from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.core.geocode import Coordinates, Geocoder, get_geocoder
from app.core.side_effects import dispatch
from app.modules.notifications.models import NotificationType
from app.modules.notifications.service import notify
from app.modules.opportunities import repository
from app.modules.opportunities.models import (
    Opportunity,
    OpportunityStatus,
    SavedOpportunity,
    SavedStatus,
)
from app.modules.opportunities.ranking import rank_for_school
from app.modules.opportunities.schemas import OpportunityCreate, OpportunityUpdate
from app.modules.schools.repository import SchoolRepository
from app.modules.signups import repository as signup_repository
from app.modules.signups.models import SignupStatus
from app.modules.signups.service import OpportunityInactiveError, fill_open_spots

logger = logging.getLogger(__name__)

# Columns an update may change but never clear
REQUIRED_FIELDS = frozenset(
    {"title", "tags", "date", "duration_hours", "capacity", "is_recurring"}
)


@dataclass
class OpportunityListing:
    """An opportunity with the figures computed for one response."""

    opportunity: Opportunity
    confirmed_count: int = 0
    approved_org: bool | None = None
    distance_km: float | None = None

    @property
    def spots_left(self) -> int:
        return max(self.opportunity.capacity - self.confirmed_count, 0)


# ============================================================================
# Geocoding
# ============================================================================


def _geocode_query(opportunity: Opportunity) -> str | None:
    return opportunity.address or opportunity.location


async def geocode_opportunity(opportunity_id: str, address: str) -> None:
    """
    Look up an opportunity's address and store its coordinates.

    Runs after the request in its own database session.
    """
    coords = await get_geocoder().geocode(address)
    if coords is None:
        logger.info(f"No coordinates found for opportunity {opportunity_id}")
        return

    async with async_session_maker() as db:
        opportunity = await repository.get_by_id(db, opportunity_id)
        if opportunity is None:
            return
        # Skip if the address changed while the lookup was in flight
        if _geocode_query(opportunity) != address:
            return
        opportunity.latitude = coords.lat
        opportunity.longitude = coords.lng
        await db.commit()

    logger.info(f"Geocoded opportunity {opportunity_id}: ({coords.lat}, {coords.lng})")


def _schedule_geocode(background_tasks: BackgroundTasks | None, opportunity: Opportunity) -> None:
    address = _geocode_query(opportunity)
    if background_tasks is None or not address:
        return
    if opportunity.latitude is not None and opportunity.longitude is not None:
        return
    dispatch(
        background_tasks,
        f"geocode opportunity {opportunity.id}",
        geocode_opportunity,
        opportunity.id,
        address,
    )


# ============================================================================
# Create / update / cancel
# ============================================================================


def _require_organization(user: CurrentUser) -> str:
    if not user.organization_id:
        raise ValidationError(
            "User is not associated with an organization.", error_code="NO_ORGANIZATION"
        )
    return user.organization_id


async def _get_owned_for_update(
    db: AsyncSession,
    user: CurrentUser,
    opportunity_id: str,
) -> Opportunity:
    organization_id = _require_organization(user)
    opportunity = await repository.get_for_update(db, opportunity_id)
    if opportunity is None:
        raise NotFoundError("Opportunity", opportunity_id)
    if opportunity.organization_id != organization_id:
        logger.warning(f"User {user.id} attempted to modify opportunity {opportunity_id}")
        raise ForbiddenError("This opportunity belongs to another organization.")
    return opportunity


async def create_opportunity(
    db: AsyncSession,
    user: CurrentUser,
    data: OpportunityCreate,
    background_tasks: BackgroundTasks | None = None,
) -> Opportunity:
    """
    Post a new opportunity for the actor's organization.

    Raises:
        ValidationError: If the actor has no organization
    """
    organization_id = _require_organization(user)

    opportunity = await repository.create(
        db,
        organization_id=organization_id,
        **data.model_dump(),
    )
    await db.commit()
    await db.refresh(opportunity)

    _schedule_geocode(background_tasks, opportunity)

    logger.info(f"Opportunity {opportunity.id} created by {user.id}")
    return opportunity


async def update_opportunity(
    db: AsyncSession,
    user: CurrentUser,
    opportunity_id: str,
    data: OpportunityUpdate,
    background_tasks: BackgroundTasks | None = None,
) -> Opportunity:
    """
    Edit an ACTIVE opportunity of the actor's organization.

    Raising capacity promotes waitlisted signups into the new spots.
    Capacity cannot drop below the number of confirmed signups.

    Raises:
        NotFoundError: If the opportunity does not exist
        ForbiddenError: If it belongs to another organization
        OpportunityInactiveError: If it is CANCELLED or COMPLETED
        ConflictError: If the new capacity is below the confirmed count
    """
    opportunity = await _get_owned_for_update(db, user, opportunity_id)
    if opportunity.status != OpportunityStatus.ACTIVE:
        raise OpportunityInactiveError(opportunity.status)

    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field not in REQUIRED_FIELDS
    }

    if "capacity" in changes:
        confirmed_count = await signup_repository.count_confirmed(db, opportunity.id)
        if changes["capacity"] < confirmed_count:
            raise ConflictError(
                f"Capacity cannot be lower than the {confirmed_count} confirmed signups.",
                error_code="CAPACITY_BELOW_CONFIRMED",
            )

    address_changed = ("address" in changes and changes["address"] != opportunity.address) or (
        "location" in changes and changes["location"] != opportunity.location
    )
    coordinates_given = "latitude" in changes or "longitude" in changes

    for field, value in changes.items():
        setattr(opportunity, field, value)

    if address_changed and not coordinates_given:
        opportunity.latitude = None
        opportunity.longitude = None

    await db.flush()
    await fill_open_spots(db, opportunity, background_tasks)

    await db.commit()
    await db.refresh(opportunity)

    if address_changed and not coordinates_given:
        _schedule_geocode(background_tasks, opportunity)

    logger.info(f"Opportunity {opportunity.id} updated by {user.id}: {sorted(changes)}")
    return opportunity


async def cancel_opportunity(
    db: AsyncSession,
    user: CurrentUser,
    opportunity_id: str,
    background_tasks: BackgroundTasks | None = None,
) -> Opportunity:
    """
    Cancel an opportunity. Terminal.

    Students holding a CONFIRMED or WAITLISTED signup are notified and,
    if they opted in, emailed. Signups and sessions are left as they are.

    Raises:
        NotFoundError: If the opportunity does not exist
        ForbiddenError: If it belongs to another organization
        InvalidTransitionError: If it is not ACTIVE
    """
    opportunity = await _get_owned_for_update(db, user, opportunity_id)
    if opportunity.status != OpportunityStatus.ACTIVE:
        raise InvalidTransitionError(
            opportunity.status.value,
            OpportunityStatus.CANCELLED.value,
            f"Cannot cancel an opportunity that is {opportunity.status.value}.",
        )

    opportunity.status = OpportunityStatus.CANCELLED

    holders = await signup_repository.list_by_status(
        db, opportunity.id, [SignupStatus.CONFIRMED, SignupStatus.WAITLISTED]
    )
    for signup in holders:
        await notify(
            db,
            user_id=signup.user_id,
            type=NotificationType.OPPORTUNITY_CANCELLED,
            title="Opportunity Cancelled",
            body=f'"{opportunity.title}" has been cancelled by the organization.',
            data={"opportunity_id": opportunity.id},
        )
        student = signup.user
        if background_tasks is not None and student is not None and student.email_notifications:
            dispatch(
                background_tasks,
                f"opportunity cancelled email to {student.id}",
                email.send_opportunity_cancelled,
                student.email,
                opportunity.title,
            )

    await db.commit()
    await db.refresh(opportunity)

    logger.info(
        f"Opportunity {opportunity.id} cancelled by {user.id}; {len(holders)} students notified"
    )
    return opportunity


# ============================================================================
# Read
# ============================================================================


async def get_opportunity(db: AsyncSession, opportunity_id: str) -> OpportunityListing:
    opportunity = await repository.get_by_id(db, opportunity_id)
    if opportunity is None:
        raise NotFoundError("Opportunity", opportunity_id)
    confirmed_count = await signup_repository.count_confirmed(db, opportunity.id)
    return OpportunityListing(opportunity=opportunity, confirmed_count=confirmed_count)


async def _school_origin(
    db: AsyncSession,
    geocoder: Geocoder,
    school_id: str,
) -> tuple[set[str], Coordinates | None]:
    school = await SchoolRepository.get_by_id(db, school_id)
    if school is None:
        raise NotFoundError("School", school_id)

    approved = await SchoolRepository.approved_organization_ids(db, school.id)

    if school.latitude is not None and school.longitude is not None:
        return approved, Coordinates(lat=school.latitude, lng=school.longitude)

    origin = await geocoder.geocode(school.address or school.postal_code)
    if origin is None:
        logger.info(f"School {school.id} has no usable location; ranking by approval only")
    return approved, origin


async def browse_opportunities(
    db: AsyncSession,
    geocoder: Geocoder,
    *,
    status: OpportunityStatus = OpportunityStatus.ACTIVE,
    search: str | None = None,
    on_date: datetime | None = None,
    tag: str | None = None,
    organization_id: str | None = None,
    school_id: str | None = None,
) -> list[OpportunityListing]:
    """
    Browse opportunities.

    Without ``school_id`` results are in date order. With it, opportunities
    from organizations the school approved come first, each tier ordered by
    distance from the school.

    Raises:
        NotFoundError: If ``school_id`` names no school
    """
    opportunities = await repository.search(
        db,
        status=status,
        search=search,
        on_date=on_date,
        tag=tag,
        organization_id=organization_id,
    )
    counts = await signup_repository.confirmed_counts(db, [o.id for o in opportunities])

    if not school_id:
        return [
            OpportunityListing(opportunity=o, confirmed_count=counts.get(o.id, 0))
            for o in opportunities
        ]

    approved, origin = await _school_origin(db, geocoder, school_id)
    ranked = rank_for_school(opportunities, approved, origin)
    return [
        OpportunityListing(
            opportunity=item.opportunity,
            confirmed_count=counts.get(item.opportunity.id, 0),
            approved_org=item.approved_org,
            distance_km=None if math.isinf(item.distance_km) else round(item.distance_km, 2),
        )
        for item in ranked
    ]


# ============================================================================
# Saved opportunities
# ============================================================================


async def save_opportunity(
    db: AsyncSession,
    user: CurrentUser,
    opportunity_id: str,
    status: SavedStatus,
) -> SavedOpportunity:
    """Mark an opportunity SAVED, SKIPPED or DISCARDED, replacing any earlier mark."""
    opportunity = await repository.get_by_id(db, opportunity_id)
    if opportunity is None:
        raise NotFoundError("Opportunity", opportunity_id)

    saved = await repository.get_saved(db, user.id, opportunity_id)
    if saved is None:
        saved = await repository.create_saved(
            db, user_id=user.id, opportunity_id=opportunity_id, status=status
        )
    else:
        saved.status = status

    await db.commit()
    await db.refresh(saved)
    return saved


async def list_saved(
    db: AsyncSession,
    user: CurrentUser,
    status: SavedStatus | None = None,
) -> list[SavedOpportunity]:
    return await repository.list_saved(db, user.id, status)


async def delete_saved(db: AsyncSession, user: CurrentUser, saved_id: str) -> None:
    """
    Remove one of the actor's saved marks.

    Raises:
        NotFoundError: If it does not exist or belongs to someone else
    """
    saved = await repository.get_saved_by_id(db, saved_id)
    if saved is None or saved.user_id != user.id:
        raise NotFoundError("Saved opportunity", saved_id)

    await repository.delete_saved(db, saved.id)
    await db.commit()
