"""
Unit tests for the session service layer.

These tests cover:
- Check-in and check-out with ownership checks and audit entries
- Signature submission and staff notification
- Role-scoped session listings
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.exceptions import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from app.modules.notifications.models import AuditAction, NotificationType
from app.modules.sessions.models import SessionStatus, VerificationStatus
from app.modules.sessions.service import (
    check_in,
    check_out,
    list_organization_sessions,
    list_school_sessions,
    submit_verification,
)
from app.modules.users.models import UserRole
from tests.factories import NOW, make_actor, make_opportunity, make_session, make_student

SERVICE = "app.modules.sessions.service"


@pytest.fixture
def student():
    return make_student(school_id="school-1", classroom_id="class-1")


@pytest.fixture
def actor(student):
    return make_actor(
        UserRole.STUDENT,
        id=student.id,
        name=student.name,
        school_id=student.school_id,
        classroom_id=student.classroom_id,
    )


class TestCheckIn:
    @pytest.mark.asyncio
    async def test_check_in_success(self, mock_db, student, actor):
        session = make_session(student=student)

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.record_audit", new_callable=AsyncMock) as mock_audit,
            patch(f"{SERVICE}.utcnow", return_value=NOW),
        ):
            mock_repo.get_by_id = AsyncMock(return_value=session)

            result = await check_in(mock_db, actor, session.id)

        assert result.status == SessionStatus.CHECKED_IN
        assert result.check_in_time == NOW
        mock_repo.get_by_id.assert_awaited_once_with(mock_db, session.id, for_update=True)
        mock_audit.assert_awaited_once()
        assert mock_audit.await_args.kwargs["action"] == AuditAction.CHECK_IN
        assert mock_audit.await_args.kwargs["details"] == {"time": NOW.isoformat()}
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_check_in_not_found(self, mock_db, actor):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=None)

            with pytest.raises(NotFoundError):
                await check_in(mock_db, actor, "missing")

        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_check_in_someone_elses_session(self, mock_db, actor):
        session = make_session()

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock(return_value=session)

            with pytest.raises(ForbiddenError):
                await check_in(mock_db, actor, session.id)

        assert session.status == SessionStatus.COMMITTED
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_second_check_in_rejected_without_audit(self, mock_db, student, actor):
        session = make_session(student=student, status=SessionStatus.CHECKED_IN, check_in_time=NOW)

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.record_audit", new_callable=AsyncMock) as mock_audit,
        ):
            mock_repo.get_by_id = AsyncMock(return_value=session)

            with pytest.raises(InvalidTransitionError):
                await check_in(mock_db, actor, session.id)

        mock_audit.assert_not_awaited()
        mock_db.commit.assert_not_awaited()


class TestCheckOut:
    @pytest.mark.asyncio
    async def test_check_out_records_hours(self, mock_db, student, actor):
        session = make_session(student=student, status=SessionStatus.CHECKED_IN, check_in_time=NOW)
        checkout_time = NOW + timedelta(hours=2, minutes=15)

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.record_audit", new_callable=AsyncMock) as mock_audit,
            patch(f"{SERVICE}.utcnow", return_value=checkout_time),
        ):
            mock_repo.get_by_id = AsyncMock(return_value=session)

            result = await check_out(mock_db, actor, session.id)

        assert result.total_hours == 2.25
        assert result.status == SessionStatus.CHECKED_OUT
        details = mock_audit.await_args.kwargs["details"]
        assert details["totalHours"] == 2.25
        assert mock_audit.await_args.kwargs["action"] == AuditAction.CHECK_OUT


class TestSubmitVerification:
    @pytest.mark.asyncio
    async def test_blank_signature_rejected_before_lookup(self, mock_db, actor):
        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_by_id = AsyncMock()

            with pytest.raises(ValidationError):
                await submit_verification(
                    mock_db, actor, "session-1", supervisor_name="Pat", signature_data="  "
                )

            mock_repo.get_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_future_opportunity_rejected(self, mock_db, student, actor):
        opportunity = make_opportunity(date=NOW + timedelta(days=2))
        session = make_session(student=student, opportunity=opportunity)

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.utcnow", return_value=NOW),
        ):
            mock_repo.get_by_id = AsyncMock(return_value=session)

            with pytest.raises(ValidationError):
                await submit_verification(
                    mock_db, actor, session.id, supervisor_name="Pat", signature_data="sig"
                )

        assert session.status == SessionStatus.COMMITTED

    @pytest.mark.asyncio
    async def test_submit_notifies_school_staff(self, mock_db, student, actor):
        session = make_session(student=student, total_hours=3.0)
        staff = [MagicMock(id="admin-1"), MagicMock(id="teacher-1")]

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.record_audit", new_callable=AsyncMock) as mock_audit,
            patch(f"{SERVICE}.notify_many", new_callable=AsyncMock) as mock_notify,
            patch(f"{SERVICE}.UserRepository") as mock_users,
            patch(f"{SERVICE}.utcnow", return_value=NOW),
        ):
            mock_repo.get_by_id = AsyncMock(return_value=session)
            mock_users.list_school_staff = AsyncMock(return_value=staff)

            result = await submit_verification(
                mock_db, actor, session.id, supervisor_name=" Pat Lee ", signature_data="sig"
            )

        assert result.status == SessionStatus.CHECKED_OUT
        assert result.verification_status == VerificationStatus.PENDING
        assert result.supervisor_name == "Pat Lee"
        assert mock_audit.await_args.kwargs["action"] == AuditAction.SUBMIT_VERIFICATION
        mock_users.list_school_staff.assert_awaited_once_with(mock_db, "school-1")
        kwargs = mock_notify.await_args.kwargs
        assert kwargs["user_ids"] == ["admin-1", "teacher-1"]
        assert kwargs["type"] == NotificationType.VERIFICATION_SUBMITTED
        mock_db.commit.assert_awaited_once()


class TestListings:
    @pytest.mark.asyncio
    async def test_organization_listing_requires_organization(self, mock_db):
        actor = make_actor(UserRole.ORG_ADMIN)

        with pytest.raises(ValidationError) as exc_info:
            await list_organization_sessions(mock_db, actor)

        assert exc_info.value.error_code == "NO_ORGANIZATION"

    @pytest.mark.asyncio
    async def test_teacher_without_classroom_sees_nothing(self, mock_db):
        actor = make_actor(UserRole.TEACHER, school_id="school-1")

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.list_for_school = AsyncMock()

            result = await list_school_sessions(mock_db, actor)

        assert result == []
        mock_repo.list_for_school.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_teacher_is_limited_to_own_classroom(self, mock_db):
        actor = make_actor(UserRole.TEACHER, school_id="school-1", classroom_id="class-1")

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.list_for_school = AsyncMock(return_value=[])

            await list_school_sessions(mock_db, actor, classroom_id="class-2")

        assert mock_repo.list_for_school.await_args.kwargs["classroom_id"] == "class-1"
