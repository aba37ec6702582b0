"""
User Service

Preferences and account deletion.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser
from app.core.exceptions import InternalError, NotFoundError
from app.modules.users.models import User, UserRole
from app.modules.users.repository import UserRepository
from app.modules.users.schemas import PreferencesUpdate

logger = logging.getLogger(__name__)


async def _get_account(db: AsyncSession, user_id: str) -> User:
    account = await UserRepository.get_by_id(db, user_id)
    if account is None:
        raise NotFoundError("User", user_id)
    return account


async def get_preferences(db: AsyncSession, user: CurrentUser) -> User:
    return await _get_account(db, user.id)


async def update_preferences(db: AsyncSession, user: CurrentUser, data: PreferencesUpdate) -> User:
    """Apply the provided fields to the caller's account."""
    account = await _get_account(db, user.id)

    updates = data.model_dump(exclude_unset=True)
    # name and email_notifications are NOT NULL columns
    for field in ("name", "email_notifications"):
        if updates.get(field) is None:
            updates.pop(field, None)
    if "name" in updates:
        updates["name"] = updates["name"].strip()

    for field, value in updates.items():
        setattr(account, field, value)

    await db.commit()
    await db.refresh(account)

    logger.info(f"User {user.id} updated preferences: {sorted(updates)}")
    return account


async def delete_account(db: AsyncSession, user: CurrentUser) -> None:
    """
    Delete the caller's account and everything it owns in one transaction.

    A school admin takes their school with them; its students and teachers
    are detached and keep their own accounts.

    Raises:
        NotFoundError: If the account no longer exists
        InternalError: If any step fails; nothing is deleted in that case
    """
    account = await _get_account(db, user.id)
    school_id = account.school_id if account.role == UserRole.SCHOOL_ADMIN else None

    try:
        await UserRepository.delete_owned_records(db, account.id)
        if school_id:
            await UserRepository.delete_school_tree(db, school_id)
        await UserRepository.delete(db, account.id)
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.exception(f"Failed to delete account {user.id}: {e}")
        raise InternalError("Failed to delete account.") from e

    logger.info(
        f"Deleted account {user.id} ({user.role.value})"
        + (f" with school {school_id}" if school_id else "")
    )
