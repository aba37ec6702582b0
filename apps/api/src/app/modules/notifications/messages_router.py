"""
Messages Router

Endpoints:
- GET /messages?folder=inbox|sent - List direct messages
- POST /messages - Send a message (notifies the receiver)
- PUT /messages/{id}/read - Mark a received message as read
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.modules.notifications import service
from app.modules.notifications.schemas import MessageCreate, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=list[MessageResponse])
async def list_messages(
    folder: str = Query("inbox"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[MessageResponse]:
    try:
        messages = await service.list_messages(db, user, folder)
        return [MessageResponse.model_validate(m) for m in messages]
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    data: MessageCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Send a direct message to another user."""
    try:
        message = await service.send_message(
            db,
            user,
            receiver_id=data.receiver_id,
            subject=data.subject,
            body=data.body,
            opportunity_id=data.opportunity_id,
        )
        return MessageResponse.model_validate(message)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error sending message: {e}")
        raise internal_server_error() from e


@router.put("/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    try:
        message = await service.mark_message_read(db, user, message_id)
        return MessageResponse.model_validate(message)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error marking message {message_id} read: {e}")
        raise internal_server_error() from e
