"""
Notification, Audit and Message Repository

Database operations for the notification/audit sink. Functions flush but
never commit; the calling service owns the transaction.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import AuditAction, AuditLog, Message, Notification, NotificationType

NOTIFICATION_LIST_LIMIT = 50


async def create_notification(
    db: AsyncSession,
    *,
    user_id: str,
    type: NotificationType,
    title: str,
    body: str,
    data: dict[str, Any] | None = None,
) -> Notification:
    """Insert a notification row."""
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        body=body,
        read=False,
        data=data,
    )
    db.add(notification)
    await db.flush()
    return notification


async def list_notifications(
    db: AsyncSession,
    user_id: str,
    limit: int = NOTIFICATION_LIST_LIMIT,
) -> list[Notification]:
    """Most recent notifications for a user."""
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_notification(db: AsyncSession, notification_id: str) -> Notification | None:
    return await db.get(Notification, notification_id)


async def create_audit_entry(
    db: AsyncSession,
    *,
    action: AuditAction,
    session_id: str,
    actor_id: str | None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """Append an audit entry. Audit rows are never updated."""
    entry = AuditLog(
        action=action,
        session_id=session_id,
        actor_id=actor_id,
        details=details,
    )
    db.add(entry)
    await db.flush()
    return entry


async def list_audit_entries(db: AsyncSession, session_id: str) -> list[AuditLog]:
    """Audit trail for one session, oldest first."""
    result = await db.execute(
        select(AuditLog)
        .where(AuditLog.session_id == session_id)
        .order_by(AuditLog.created_at.asc())
    )
    return list(result.scalars().all())


async def create_message(
    db: AsyncSession,
    *,
    sender_id: str,
    receiver_id: str,
    body: str,
    subject: str | None = None,
    opportunity_id: str | None = None,
) -> Message:
    message = Message(
        sender_id=sender_id,
        receiver_id=receiver_id,
        subject=subject,
        body=body,
        opportunity_id=opportunity_id,
        read=False,
    )
    db.add(message)
    await db.flush()
    return message


async def list_messages(db: AsyncSession, user_id: str, folder: str = "inbox") -> list[Message]:
    """Received (``inbox``) or sent (``sent``) messages, newest first."""
    column = Message.sender_id if folder == "sent" else Message.receiver_id
    result = await db.execute(
        select(Message).where(column == user_id).order_by(Message.created_at.desc())
    )
    return list(result.scalars().all())


async def get_message(db: AsyncSession, message_id: str) -> Message | None:
    return await db.get(Message, message_id)
