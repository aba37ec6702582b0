"""
Users Router

Endpoints:
- GET /users/me/preferences - The caller's editable profile fields
- PUT /users/me/preferences - Update them
- DELETE /users/me - Delete the caller's account
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.modules.users import service
from app.modules.users.schemas import PreferencesResponse, PreferencesUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/me/preferences", response_model=PreferencesResponse)
async def get_preferences(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PreferencesResponse:
    try:
        account = await service.get_preferences(db, user)
        return PreferencesResponse.model_validate(account)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.put("/me/preferences", response_model=PreferencesResponse)
async def update_preferences(
    data: PreferencesUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PreferencesResponse:
    try:
        account = await service.update_preferences(db, user, data)
        return PreferencesResponse.model_validate(account)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error updating preferences: {e}")
        raise internal_server_error() from e


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete the caller's account.

    Raises:
        HTTPException 500: If deletion failed; the account is left intact
    """
    try:
        await service.delete_account(db, user)
    except ServiceError as e:
        raise to_http_exception(e) from e
