"""
Unit tests for account registration.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import NotFoundError
from app.modules.auth.schemas import RegisterRequest
from app.modules.auth.service import EmailAlreadyRegisteredError, register_user
from app.modules.users.models import UserRole

SERVICE = "app.modules.auth.service"


@pytest.fixture
def repos():
    with (
        patch(f"{SERVICE}.UserRepository") as mock_users,
        patch(f"{SERVICE}.OrganizationRepository") as mock_orgs,
        patch(f"{SERVICE}.SchoolRepository") as mock_schools,
        patch(f"{SERVICE}.hash_password", return_value="hashed"),
    ):
        mock_users.email_exists = AsyncMock(return_value=False)
        mock_users.create = AsyncMock(
            side_effect=lambda db, **kw: MagicMock(id="user-1", **kw)
        )
        yield mock_users, mock_orgs, mock_schools


class TestRegisterUser:
    @pytest.mark.asyncio
    async def test_student(self, mock_db, repos):
        mock_users, mock_orgs, mock_schools = repos
        data = RegisterRequest(
            email="Sam@Example.com", password="password123", name=" Sam ", age=15, grade=10
        )

        await register_user(mock_db, data)

        kwargs = mock_users.create.await_args.kwargs
        assert kwargs["email"] == "sam@example.com"
        assert kwargs["password_hash"] == "hashed"
        assert kwargs["name"] == "Sam"
        assert kwargs["role"] == UserRole.STUDENT
        assert kwargs["school_id"] is None
        mock_users.email_exists.assert_awaited_once_with(mock_db, "sam@example.com")
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_email(self, mock_db, repos):
        mock_users, _, _ = repos
        mock_users.email_exists.return_value = True
        data = RegisterRequest(email="sam@example.com", password="password123", name="Sam")

        with pytest.raises(EmailAlreadyRegisteredError) as exc_info:
            await register_user(mock_db, data)

        assert exc_info.value.error_code == "EMAIL_EXISTS"
        assert exc_info.value.status_code == 409
        mock_users.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_org_admin_creates_organization(self, mock_db, repos):
        mock_users, mock_orgs, _ = repos
        mock_orgs.create = AsyncMock(return_value=MagicMock(id="org-1"))
        data = RegisterRequest(
            email="lead@foodbank.org",
            password="password123",
            name="Lee",
            role=UserRole.ORG_ADMIN,
            organization_name="Food Bank",
        )

        await register_user(mock_db, data)

        assert mock_orgs.create.await_args.kwargs["name"] == "Food Bank"
        assert mock_orgs.create.await_args.kwargs["contact_email"] == "lead@foodbank.org"
        assert mock_users.create.await_args.kwargs["organization_id"] == "org-1"

    @pytest.mark.asyncio
    async def test_school_admin_creates_school(self, mock_db, repos):
        mock_users, _, mock_schools = repos
        mock_schools.create = AsyncMock(return_value=MagicMock(id="school-1"))
        data = RegisterRequest(
            email="principal@school.edu",
            password="password123",
            name="Pat",
            role=UserRole.SCHOOL_ADMIN,
            school_name="Central High",
            school_postal_code="10001",
        )

        await register_user(mock_db, data)

        mock_schools.create.assert_awaited_once_with(
            mock_db, name="Central High", address=None, postal_code="10001"
        )
        assert mock_users.create.await_args.kwargs["school_id"] == "school-1"

    @pytest.mark.asyncio
    async def test_teacher_with_unknown_school(self, mock_db, repos):
        mock_users, _, mock_schools = repos
        mock_schools.get_by_id = AsyncMock(return_value=None)
        data = RegisterRequest(
            email="teacher@school.edu",
            password="password123",
            name="Tay",
            role=UserRole.TEACHER,
            school_id="missing",
        )

        with pytest.raises(NotFoundError):
            await register_user(mock_db, data)

        mock_users.create.assert_not_awaited()


class TestRegisterRequest:
    @pytest.mark.parametrize(
        "role",
        [UserRole.ORG_ADMIN, UserRole.SCHOOL_ADMIN, UserRole.TEACHER],
    )
    def test_staff_roles_need_their_context(self, role):
        with pytest.raises(PydanticValidationError):
            RegisterRequest(email="x@example.com", password="password123", name="X", role=role)

    def test_short_password(self):
        with pytest.raises(PydanticValidationError):
            RegisterRequest(email="x@example.com", password="short", name="X")
