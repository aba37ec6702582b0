"""
Notifications Router

Endpoints:
- GET /notifications - Latest 50 notifications for the caller
- PUT /notifications/{id}/read - Mark one as read
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.modules.notifications import service
from app.modules.notifications.schemas import NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[NotificationResponse]:
    """List the caller's most recent notifications, newest first."""
    notifications = await service.list_notifications(db, user)
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> NotificationResponse:
    """Mark one of the caller's notifications as read."""
    try:
        notification = await service.mark_notification_read(db, user, notification_id)
        return NotificationResponse.model_validate(notification)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error marking notification {notification_id} read: {e}")
        raise internal_server_error() from e
