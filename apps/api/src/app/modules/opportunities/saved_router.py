"""
Saved Opportunities Router

Endpoints:
- GET /saved - Student's saved/skipped/discarded marks
- POST /saved - Mark an opportunity
- DELETE /saved/{id} - Remove a mark
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, require_roles
from app.core.database import get_db
from app.core.exceptions import ServiceError, to_http_exception
from app.modules.opportunities import service
from app.modules.opportunities.models import SavedStatus
from app.modules.opportunities.schemas import SavedOpportunityCreate, SavedOpportunityResponse
from app.modules.users.models import UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[SavedOpportunityResponse])
async def list_saved(
    saved_status: SavedStatus | None = Query(None, alias="status"),
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> list[SavedOpportunityResponse]:
    saved = await service.list_saved(db, user, saved_status)
    return [SavedOpportunityResponse.model_validate(s) for s in saved]


@router.post("", response_model=SavedOpportunityResponse, status_code=status.HTTP_201_CREATED)
async def save_opportunity(
    data: SavedOpportunityCreate,
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> SavedOpportunityResponse:
    try:
        saved = await service.save_opportunity(db, user, data.opportunity_id, data.status)
        return SavedOpportunityResponse.model_validate(saved)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.delete("/{saved_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_saved(
    saved_id: str,
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_saved(db, user, saved_id)
    except ServiceError as e:
        raise to_http_exception(e) from e
