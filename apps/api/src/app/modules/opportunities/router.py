"""
Opportunities Router

Endpoints:
- GET /opportunities - Browse (public); ``school_id`` ranks for a school
- GET /opportunities/{id} - Opportunity detail (public)
- POST /opportunities - Create (ORG_ADMIN)
- PUT /opportunities/{id} - Edit an active opportunity (owning ORG_ADMIN)
- POST /opportunities/{id}/cancel - Cancel and notify signup holders (owning ORG_ADMIN)
"""

import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, require_roles
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.core.geocode import Geocoder, get_geocoder
from app.modules.opportunities import service
from app.modules.opportunities.models import Opportunity, OpportunityStatus
from app.modules.opportunities.schemas import (
    OpportunityCreate,
    OpportunityResponse,
    OpportunityUpdate,
)
from app.modules.opportunities.service import OpportunityListing
from app.modules.users.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(listing: OpportunityListing) -> OpportunityResponse:
    response = OpportunityResponse.model_validate(listing.opportunity)
    return response.model_copy(
        update={
            "confirmed_count": listing.confirmed_count,
            "spots_left": listing.spots_left,
            "approved_org": listing.approved_org,
            "distance_km": listing.distance_km,
        }
    )


def _fresh_response(opportunity: Opportunity) -> OpportunityResponse:
    return _to_response(OpportunityListing(opportunity=opportunity))


@router.get("", response_model=list[OpportunityResponse])
async def browse_opportunities(
    search: str | None = Query(None, max_length=200),
    on_date: datetime | None = Query(None, alias="date"),
    tag: str | None = Query(None, max_length=50),
    organization_id: str | None = Query(None),
    school_id: str | None = Query(None),
    opportunity_status: OpportunityStatus = Query(OpportunityStatus.ACTIVE, alias="status"),
    db: AsyncSession = Depends(get_db),
    geocoder: Geocoder = Depends(get_geocoder),
) -> list[OpportunityResponse]:
    """
    Browse opportunities in date order.

    With ``school_id``, opportunities from organizations the school approved
    come first, each group ordered by distance from the school.
    """
    try:
        listings = await service.browse_opportunities(
            db,
            geocoder,
            status=opportunity_status,
            search=search,
            on_date=on_date,
            tag=tag,
            organization_id=organization_id,
            school_id=school_id,
        )
        return [_to_response(listing) for listing in listings]
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error browsing opportunities: {e}")
        raise internal_server_error() from e


@router.get("/{opportunity_id}", response_model=OpportunityResponse)
async def get_opportunity(
    opportunity_id: str,
    db: AsyncSession = Depends(get_db),
) -> OpportunityResponse:
    try:
        listing = await service.get_opportunity(db, opportunity_id)
        return _to_response(listing)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post("", response_model=OpportunityResponse, status_code=status.HTTP_201_CREATED)
async def create_opportunity(
    data: OpportunityCreate,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(require_roles(UserRole.ORG_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> OpportunityResponse:
    """Post an opportunity for the caller's organization."""
    try:
        opportunity = await service.create_opportunity(db, user, data, background_tasks)
        return _fresh_response(opportunity)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error creating opportunity: {e}")
        raise internal_server_error() from e


@router.put("/{opportunity_id}", response_model=OpportunityResponse)
async def update_opportunity(
    opportunity_id: str,
    data: OpportunityUpdate,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(require_roles(UserRole.ORG_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> OpportunityResponse:
    """
    Edit an active opportunity.

    Raises:
        HTTPException 400: If the opportunity is not active
        HTTPException 403: If it belongs to another organization
        HTTPException 409: If capacity would drop below confirmed signups
    """
    try:
        opportunity = await service.update_opportunity(
            db, user, opportunity_id, data, background_tasks
        )
        listing = await service.get_opportunity(db, opportunity.id)
        return _to_response(listing)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error updating opportunity {opportunity_id}: {e}")
        raise internal_server_error() from e


@router.post("/{opportunity_id}/cancel", response_model=OpportunityResponse)
async def cancel_opportunity(
    opportunity_id: str,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(require_roles(UserRole.ORG_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> OpportunityResponse:
    """Cancel an opportunity. Students holding a spot or waitlist place are notified."""
    try:
        opportunity = await service.cancel_opportunity(db, user, opportunity_id, background_tasks)
        return _fresh_response(opportunity)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error cancelling opportunity {opportunity_id}: {e}")
        raise internal_server_error() from e
