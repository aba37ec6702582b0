"""
Unit tests for the opportunity service layer.

These tests cover:
- Capacity edits and waitlist promotion
- Address edits and background geocoding
- Cancellation notices
- Browse ranking for a school
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import BackgroundTasks

from app.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    ValidationError,
)
from app.core.geocode import Coordinates
from app.modules.notifications.models import NotificationType
from app.modules.opportunities.models import OpportunityStatus
from app.modules.opportunities.schemas import OpportunityUpdate
from app.modules.opportunities.service import (
    browse_opportunities,
    cancel_opportunity,
    update_opportunity,
)
from app.modules.signups.models import SignupStatus
from app.modules.signups.service import OpportunityInactiveError
from app.modules.users.models import UserRole
from tests.factories import make_actor, make_opportunity, make_signup, make_student

SERVICE = "app.modules.opportunities.service"


@pytest.fixture
def opportunity():
    return make_opportunity(
        capacity=5,
        address="10 Main St",
        latitude=40.0,
        longitude=-74.0,
    )


@pytest.fixture
def org_admin(opportunity):
    return make_actor(UserRole.ORG_ADMIN, organization_id=opportunity.organization_id)


class TestUpdateOpportunity:
    @pytest.mark.asyncio
    async def test_capacity_below_confirmed_conflicts(self, mock_db, opportunity, org_admin):
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.signup_repository") as mock_signups,
        ):
            mock_repo.get_for_update = AsyncMock(return_value=opportunity)
            mock_signups.count_confirmed = AsyncMock(return_value=4)

            with pytest.raises(ConflictError) as exc_info:
                await update_opportunity(
                    mock_db, org_admin, opportunity.id, OpportunityUpdate(capacity=3)
                )

        assert exc_info.value.error_code == "CAPACITY_BELOW_CONFIRMED"
        assert opportunity.capacity == 5
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_raising_capacity_promotes_waitlist(self, mock_db, opportunity, org_admin):
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.signup_repository") as mock_signups,
            patch(f"{SERVICE}.fill_open_spots", new_callable=AsyncMock) as mock_fill,
        ):
            mock_repo.get_for_update = AsyncMock(return_value=opportunity)
            mock_signups.count_confirmed = AsyncMock(return_value=5)

            result = await update_opportunity(
                mock_db, org_admin, opportunity.id, OpportunityUpdate(capacity=8)
            )

        assert result.capacity == 8
        mock_fill.assert_awaited_once_with(mock_db, opportunity, None)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_null_required_field_is_ignored(self, mock_db, opportunity, org_admin):
        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.fill_open_spots", new_callable=AsyncMock),
        ):
            mock_repo.get_for_update = AsyncMock(return_value=opportunity)

            result = await update_opportunity(
                mock_db,
                org_admin,
                opportunity.id,
                OpportunityUpdate(title=None, description=None),
            )

        assert result.title == "Food Drive"
        assert result.description is None

    @pytest.mark.asyncio
    async def test_address_change_clears_coordinates_and_geocodes(
        self, mock_db, opportunity, org_admin
    ):
        background_tasks = BackgroundTasks()

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.fill_open_spots", new_callable=AsyncMock),
        ):
            mock_repo.get_for_update = AsyncMock(return_value=opportunity)

            result = await update_opportunity(
                mock_db,
                org_admin,
                opportunity.id,
                OpportunityUpdate(address="200 Broadway"),
                background_tasks,
            )

        assert result.latitude is None
        assert result.longitude is None
        assert len(background_tasks.tasks) == 1
        assert background_tasks.tasks[0].args[-1] == "200 Broadway"

    @pytest.mark.asyncio
    async def test_other_organization_forbidden(self, mock_db, opportunity):
        intruder = make_actor(UserRole.ORG_ADMIN, organization_id="another-org")

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_for_update = AsyncMock(return_value=opportunity)

            with pytest.raises(ForbiddenError):
                await update_opportunity(
                    mock_db, intruder, opportunity.id, OpportunityUpdate(capacity=1)
                )

    @pytest.mark.asyncio
    async def test_cancelled_opportunity_is_frozen(self, mock_db, opportunity, org_admin):
        opportunity.status = OpportunityStatus.CANCELLED

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_for_update = AsyncMock(return_value=opportunity)

            with pytest.raises(OpportunityInactiveError):
                await update_opportunity(
                    mock_db, org_admin, opportunity.id, OpportunityUpdate(title="New")
                )

    @pytest.mark.asyncio
    async def test_admin_without_organization(self, mock_db):
        with pytest.raises(ValidationError) as exc_info:
            await update_opportunity(
                mock_db, make_actor(UserRole.ORG_ADMIN), "opp-1", OpportunityUpdate(capacity=1)
            )

        assert exc_info.value.error_code == "NO_ORGANIZATION"


class TestCancelOpportunity:
    @pytest.mark.asyncio
    async def test_notifies_every_holder(self, mock_db, opportunity, org_admin):
        confirmed = make_signup(opportunity=opportunity, status=SignupStatus.CONFIRMED)
        waitlisted = make_signup(
            opportunity=opportunity,
            student=make_student(email_notifications=False),
            status=SignupStatus.WAITLISTED,
        )
        background_tasks = BackgroundTasks()

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.signup_repository") as mock_signups,
            patch(f"{SERVICE}.notify", new_callable=AsyncMock) as mock_notify,
        ):
            mock_repo.get_for_update = AsyncMock(return_value=opportunity)
            mock_signups.list_by_status = AsyncMock(return_value=[confirmed, waitlisted])

            result = await cancel_opportunity(mock_db, org_admin, opportunity.id, background_tasks)

        assert result.status == OpportunityStatus.CANCELLED
        assert mock_notify.await_count == 2
        notified = {call.kwargs["user_id"] for call in mock_notify.await_args_list}
        assert notified == {confirmed.user_id, waitlisted.user_id}
        assert mock_notify.await_args.kwargs["type"] == NotificationType.OPPORTUNITY_CANCELLED
        # Only the student who opted in is emailed
        assert len(background_tasks.tasks) == 1
        # Signups are left as they are
        assert confirmed.status == SignupStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_cancel_twice(self, mock_db, opportunity, org_admin):
        opportunity.status = OpportunityStatus.CANCELLED

        with patch(f"{SERVICE}.repository") as mock_repo:
            mock_repo.get_for_update = AsyncMock(return_value=opportunity)

            with pytest.raises(InvalidTransitionError):
                await cancel_opportunity(mock_db, org_admin, opportunity.id)


class TestBrowseOpportunities:
    @pytest.mark.asyncio
    async def test_school_ranking_with_geocoded_school(self, mock_db):
        near = make_opportunity(title="near", latitude=40.72, longitude=-74.0)
        approved_far = make_opportunity(title="approved far", latitude=42.0, longitude=-74.0)
        school = MagicMock(id="school-1", latitude=None, longitude=None, address="1 School Rd")
        geocoder = MagicMock()
        geocoder.geocode = AsyncMock(return_value=Coordinates(lat=40.7128, lng=-74.0060))

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.signup_repository") as mock_signups,
            patch(f"{SERVICE}.SchoolRepository") as mock_schools,
        ):
            mock_repo.search = AsyncMock(return_value=[near, approved_far])
            mock_signups.confirmed_counts = AsyncMock(return_value={near.id: 4})
            mock_schools.get_by_id = AsyncMock(return_value=school)
            mock_schools.approved_organization_ids = AsyncMock(
                return_value={approved_far.organization_id}
            )

            listings = await browse_opportunities(mock_db, geocoder, school_id="school-1")

        assert [item.opportunity.title for item in listings] == ["approved far", "near"]
        assert listings[0].approved_org is True
        assert listings[1].spots_left == 6
        assert listings[1].distance_km == pytest.approx(0.95, abs=0.02)
        geocoder.geocode.assert_awaited_once_with("1 School Rd")

    @pytest.mark.asyncio
    async def test_without_school_keeps_date_order(self, mock_db):
        first = make_opportunity(title="first")
        second = make_opportunity(title="second")
        geocoder = MagicMock()
        geocoder.geocode = AsyncMock()

        with (
            patch(f"{SERVICE}.repository") as mock_repo,
            patch(f"{SERVICE}.signup_repository") as mock_signups,
        ):
            mock_repo.search = AsyncMock(return_value=[first, second])
            mock_signups.confirmed_counts = AsyncMock(return_value={})

            listings = await browse_opportunities(mock_db, geocoder)

        assert [item.opportunity.title for item in listings] == ["first", "second"]
        assert listings[0].approved_org is None
        assert listings[0].distance_km is None
        geocoder.geocode.assert_not_awaited()
