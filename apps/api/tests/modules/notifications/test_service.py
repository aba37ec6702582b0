"""
Unit tests for the notification/audit sink.

These tests cover:
- Best-effort notifications that never break the caller
- Audit entries written in the caller's transaction
- Notification ownership and direct messages
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.modules.notifications.models import AuditAction, NotificationType
from app.modules.notifications.service import (
    list_messages,
    mark_message_read,
    mark_notification_read,
    notify,
    notify_many,
    record_audit,
    send_message,
)
from app.modules.users.models import UserRole
from tests.factories import make_actor, make_student

SERVICE = "app.modules.notifications.service"


class TestNotify:
    @pytest.mark.asyncio
    async def test_written_inside_savepoint(self, mock_db):
        notification = MagicMock(id="n-1")

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.create_notification = AsyncMock(return_value=notification)

            result = await notify(
                mock_db,
                user_id="user-1",
                type=NotificationType.SIGNUP_CONFIRMED,
                title="Signup Confirmed",
                body="You're in",
            )

        assert result is notification
        mock_db.begin_nested.assert_called_once()

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, mock_db, caplog):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.create_notification = AsyncMock(
                side_effect=IntegrityError("INSERT", {}, Exception("fk violation"))
            )

            result = await notify(
                mock_db,
                user_id="ghost",
                type=NotificationType.NEW_MESSAGE,
                title="New Message",
                body="Hello",
            )

        assert result is None
        assert "Failed to create NEW_MESSAGE notification for user ghost" in caplog.text
        # The savepoint unwinds; the outer transaction is left alone
        mock_db.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_notify_many_counts_successes(self, mock_db):
        async def create_notification(db, *, user_id, **kwargs):
            if user_id == "broken":
                raise RuntimeError("write failed")
            return MagicMock(user_id=user_id)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.create_notification = AsyncMock(side_effect=create_notification)

            written = await notify_many(
                mock_db,
                user_ids=["a", "broken", "b"],
                type=NotificationType.VERIFICATION_SUBMITTED,
                title="Hours Submitted",
                body="Review needed",
            )

        assert written == 2


class TestRecordAudit:
    @pytest.mark.asyncio
    async def test_failure_propagates(self, mock_db):
        """An audit entry is part of the transition, so its failure is the caller's."""
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.create_audit_entry = AsyncMock(side_effect=RuntimeError("disk full"))

            with pytest.raises(RuntimeError):
                await record_audit(
                    mock_db,
                    action=AuditAction.APPROVE,
                    session_id="session-1",
                    actor_id="staff-1",
                )

    @pytest.mark.asyncio
    async def test_passes_details_through(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.create_audit_entry = AsyncMock(return_value="entry")

            result = await record_audit(
                mock_db,
                action=AuditAction.CHECK_OUT,
                session_id="session-1",
                actor_id="student-1",
                details={"totalHours": 2.25},
            )

        assert result == "entry"
        mock_repo.create_audit_entry.assert_awaited_once_with(
            mock_db,
            action=AuditAction.CHECK_OUT,
            session_id="session-1",
            actor_id="student-1",
            details={"totalHours": 2.25},
        )


class TestMarkNotificationRead:
    @pytest.mark.asyncio
    async def test_someone_elses_notification_is_not_found(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_notification = AsyncMock(return_value=MagicMock(user_id="other"))

            with pytest.raises(NotFoundError):
                await mark_notification_read(mock_db, make_actor(UserRole.STUDENT), "n-1")

        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_marks_read(self, mock_db):
        actor = make_actor(UserRole.STUDENT)
        notification = MagicMock(user_id=actor.id, read=False)

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_notification = AsyncMock(return_value=notification)

            result = await mark_notification_read(mock_db, actor, "n-1")

        assert result.read is True
        mock_db.commit.assert_awaited_once()


class TestMessages:
    @pytest.mark.asyncio
    async def test_send_message_notifies_receiver(self, mock_db):
        sender = make_actor(UserRole.ORG_ADMIN)
        receiver = make_student()
        message = MagicMock(id="m-1")

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.notify", new_callable=AsyncMock) as mock_notify,
        ):
            mock_users.get_by_id = AsyncMock(return_value=receiver)
            mock_repo.create_message = AsyncMock(return_value=message)

            result = await send_message(
                mock_db, sender, receiver_id=receiver.id, body="  See you Saturday  "
            )

        assert result is message
        assert mock_repo.create_message.await_args.kwargs["body"] == "See you Saturday"
        kwargs = mock_notify.await_args.kwargs
        assert kwargs["user_id"] == receiver.id
        assert kwargs["type"] == NotificationType.NEW_MESSAGE
        assert kwargs["body"] == "You have a new message"

    @pytest.mark.asyncio
    async def test_cannot_message_self(self, mock_db):
        sender = make_actor(UserRole.STUDENT)

        with pytest.raises(ValidationError):
            await send_message(mock_db, sender, receiver_id=sender.id, body="hi")

    @pytest.mark.asyncio
    async def test_unknown_receiver(self, mock_db):
        with patch(f"{SERVICE}.UserRepository") as mock_users:
            mock_users.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError):
                await send_message(
                    mock_db, make_actor(UserRole.STUDENT), receiver_id="ghost", body="hi"
                )

    @pytest.mark.asyncio
    async def test_unknown_folder(self, mock_db):
        with pytest.raises(ValidationError):
            await list_messages(mock_db, make_actor(UserRole.STUDENT), "archive")

    @pytest.mark.asyncio
    async def test_only_receiver_marks_read(self, mock_db):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_message = AsyncMock(return_value=MagicMock(receiver_id="someone"))

            with pytest.raises(ForbiddenError):
                await mark_message_read(mock_db, make_actor(UserRole.STUDENT), "m-1")
