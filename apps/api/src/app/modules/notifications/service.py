"""
Notification/Audit Sink Service

Two very different write paths live here:

1. Audit entries (``record_audit``) are part of the state transition that
   produced them. They are written in the caller's transaction and a
   failure aborts the transition.

2. Notifications (``notify``) are a best-effort side channel. Each one is
   written inside a SAVEPOINT; if that fails the savepoint is rolled back,
   the failure is logged, and the surrounding transition carries on.

Reading and marking notifications and direct messages are ordinary
request/response operations.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser
from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.modules.notifications import repository
from app.modules.notifications.models import (
    AuditAction,
    AuditLog,
    Message,
    Notification,
    NotificationType,
)
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


async def record_audit(
    db: AsyncSession,
    *,
    action: AuditAction,
    session_id: str,
    actor_id: str | None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """Append an audit entry inside the caller's transaction."""
    entry = await repository.create_audit_entry(
        db,
        action=action,
        session_id=session_id,
        actor_id=actor_id,
        details=details,
    )
    logger.debug(f"Audit {action.value} on session {session_id} by {actor_id}")
    return entry


async def notify(
    db: AsyncSession,
    *,
    user_id: str,
    type: NotificationType,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> Notification | None:
    """
    Create a notification without risking the caller's transaction.

    Returns:
        The notification, or None if it could not be written.
    """
    try:
        async with db.begin_nested():
            return await repository.create_notification(
                db,
                user_id=user_id,
                type=type,
                title=title,
                body=body,
                data=data,
            )
    except Exception:
        logger.exception(f"Failed to create {type.value} notification for user {user_id}")
        return None


async def notify_many(
    db: AsyncSession,
    *,
    user_ids: list[str],
    type: NotificationType,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> int:
    """Notify several users. Returns how many notifications were written."""
    written = 0
    for user_id in user_ids:
        notification = await notify(db, user_id=user_id, type=type, title=title, body=body, data=data)
        if notification is not None:
            written += 1
    return written


async def list_notifications(db: AsyncSession, user: CurrentUser) -> list[Notification]:
    return await repository.list_notifications(db, user.id)


async def mark_notification_read(
    db: AsyncSession,
    user: CurrentUser,
    notification_id: str,
) -> Notification:
    """
    Mark one of the actor's notifications as read.

    Raises:
        NotFoundError: If the notification does not exist or belongs to someone else
    """
    notification = await repository.get_notification(db, notification_id)
    if notification is None or notification.user_id != user.id:
        raise NotFoundError("Notification", notification_id)

    notification.read = True
    await db.commit()
    await db.refresh(notification)
    return notification


async def send_message(
    db: AsyncSession,
    sender: CurrentUser,
    *,
    receiver_id: str,
    body: str,
    subject: str | None = None,
    opportunity_id: str | None = None,
) -> Message:
    """
    Send a direct message and notify the receiver.

    Raises:
        ValidationError: If the body is blank or the sender messages themself
        NotFoundError: If the receiver does not exist
    """
    if not body or not body.strip():
        raise ValidationError("Message body is required.")
    if receiver_id == sender.id:
        raise ValidationError("You cannot send a message to yourself.")

    receiver = await UserRepository.get_by_id(db, receiver_id)
    if receiver is None:
        raise NotFoundError("Recipient", receiver_id)

    message = await repository.create_message(
        db,
        sender_id=sender.id,
        receiver_id=receiver_id,
        subject=subject,
        body=body.strip(),
        opportunity_id=opportunity_id,
    )
    await notify(
        db,
        user_id=receiver_id,
        type=NotificationType.NEW_MESSAGE,
        title="New Message",
        body=subject or "You have a new message",
        data={"message_id": message.id, "sender_id": sender.id},
    )
    await db.commit()
    await db.refresh(message)

    logger.info(f"Message {message.id} sent from {sender.id} to {receiver_id}")
    return message


async def list_messages(db: AsyncSession, user: CurrentUser, folder: str) -> list[Message]:
    if folder not in ("inbox", "sent"):
        raise ValidationError("folder must be 'inbox' or 'sent'.")
    return await repository.list_messages(db, user.id, folder)


async def mark_message_read(db: AsyncSession, user: CurrentUser, message_id: str) -> Message:
    """
    Mark a received message as read.

    Raises:
        NotFoundError: If the message does not exist
        ForbiddenError: If the actor is not the receiver
    """
    message = await repository.get_message(db, message_id)
    if message is None:
        raise NotFoundError("Message", message_id)
    if message.receiver_id != user.id:
        raise ForbiddenError("Cannot modify this message.")

    message.read = True
    await db.commit()
    await db.refresh(message)
    return message
