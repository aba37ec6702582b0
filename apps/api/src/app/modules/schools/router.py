"""
Schools Router

Endpoints (school staff of the school in the path):
- GET /schools/{id} - School profile
- GET /schools/{id}/students - Roster with approved hours
- GET /schools/{id}/stats - School-wide progress
- GET /schools/{id}/organizations - Organization approval list
- POST /schools/{id}/organizations/{org_id}/approve - Approve an organization (admin)
- POST /schools/{id}/organizations/{org_id}/reject - Reject an organization (admin)
- GET /schools/{id}/groups - Student groups
- POST /schools/{id}/groups - Create a group
- GET /schools/{id}/groups/{group_id}/students - Group roster
- POST /schools/{id}/groups/{group_id}/students - Add students to a group
- POST /schools/{id}/remove-hours - Remove a student's hours
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, require_roles
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.core.rate_limit import enforce_user_rate_limit
from app.modules.schools import service
from app.modules.schools.models import ApprovalStatus
from app.modules.schools.schemas import (
    AddGroupStudentsRequest,
    AddGroupStudentsResponse,
    RemoveHoursResponse,
    SchoolOrganizationResponse,
    SchoolResponse,
    SchoolStatsResponse,
    StudentGroupCreate,
    StudentGroupResponse,
    StudentProgressResponse,
)
from app.modules.users.models import SCHOOL_STAFF_ROLES, UserRole
from app.modules.verification import service as verification_service
from app.modules.verification.router import (
    VERIFICATION_RATE_LIMIT,
    VERIFICATION_RATE_WINDOW_SECONDS,
)
from app.modules.verification.schemas import RemoveHoursRequest

logger = logging.getLogger(__name__)

router = APIRouter()

school_staff = require_roles(*SCHOOL_STAFF_ROLES)
school_admin = require_roles(UserRole.SCHOOL_ADMIN)


@router.get("/{school_id}", response_model=SchoolResponse)
async def get_school(
    school_id: str,
    db: AsyncSession = Depends(get_db),
) -> SchoolResponse:
    try:
        school = await service.get_school(db, school_id)
        return SchoolResponse.model_validate(school)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get("/{school_id}/students", response_model=list[StudentProgressResponse])
async def list_students(
    school_id: str,
    user: CurrentUser = Depends(school_staff),
    db: AsyncSession = Depends(get_db),
) -> list[StudentProgressResponse]:
    try:
        return await service.list_students(db, user, school_id)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get("/{school_id}/stats", response_model=SchoolStatsResponse)
async def get_stats(
    school_id: str,
    user: CurrentUser = Depends(school_staff),
    db: AsyncSession = Depends(get_db),
) -> SchoolStatsResponse:
    try:
        return await service.get_stats(db, user, school_id)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get("/{school_id}/organizations", response_model=list[SchoolOrganizationResponse])
async def list_organizations(
    school_id: str,
    approval_status: ApprovalStatus | None = Query(None, alias="status"),
    user: CurrentUser = Depends(school_staff),
    db: AsyncSession = Depends(get_db),
) -> list[SchoolOrganizationResponse]:
    try:
        links = await service.list_organizations(db, user, school_id, approval_status)
        return [SchoolOrganizationResponse.model_validate(link) for link in links]
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post(
    "/{school_id}/organizations/{organization_id}/approve",
    response_model=SchoolOrganizationResponse,
)
async def approve_organization(
    school_id: str,
    organization_id: str,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(school_admin),
    db: AsyncSession = Depends(get_db),
) -> SchoolOrganizationResponse:
    """Approve an organization. Its opportunities rank first for the school's students."""
    try:
        link = await service.set_organization_status(
            db, user, school_id, organization_id, ApprovalStatus.APPROVED, background_tasks
        )
        return SchoolOrganizationResponse.model_validate(link)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error approving organization {organization_id}: {e}")
        raise internal_server_error() from e


@router.post(
    "/{school_id}/organizations/{organization_id}/reject",
    response_model=SchoolOrganizationResponse,
)
async def reject_organization(
    school_id: str,
    organization_id: str,
    user: CurrentUser = Depends(school_admin),
    db: AsyncSession = Depends(get_db),
) -> SchoolOrganizationResponse:
    try:
        link = await service.set_organization_status(
            db, user, school_id, organization_id, ApprovalStatus.REJECTED
        )
        return SchoolOrganizationResponse.model_validate(link)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error rejecting organization {organization_id}: {e}")
        raise internal_server_error() from e


@router.get("/{school_id}/groups", response_model=list[StudentGroupResponse])
async def list_groups(
    school_id: str,
    user: CurrentUser = Depends(school_staff),
    db: AsyncSession = Depends(get_db),
) -> list[StudentGroupResponse]:
    try:
        return await service.list_groups(db, user, school_id)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post(
    "/{school_id}/groups",
    response_model=StudentGroupResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_group(
    school_id: str,
    data: StudentGroupCreate,
    user: CurrentUser = Depends(school_staff),
    db: AsyncSession = Depends(get_db),
) -> StudentGroupResponse:
    try:
        group = await service.create_group(
            db, user, school_id, name=data.name, description=data.description
        )
        return StudentGroupResponse.model_validate(group)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get(
    "/{school_id}/groups/{group_id}/students",
    response_model=list[StudentProgressResponse],
)
async def list_group_students(
    school_id: str,
    group_id: str,
    user: CurrentUser = Depends(school_staff),
    db: AsyncSession = Depends(get_db),
) -> list[StudentProgressResponse]:
    try:
        return await service.list_group_students(db, user, school_id, group_id)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post(
    "/{school_id}/groups/{group_id}/students",
    response_model=AddGroupStudentsResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_group_students(
    school_id: str,
    group_id: str,
    data: AddGroupStudentsRequest,
    user: CurrentUser = Depends(school_staff),
    db: AsyncSession = Depends(get_db),
) -> AddGroupStudentsResponse:
    try:
        added = await service.add_group_students(db, user, school_id, group_id, data.student_ids)
        return AddGroupStudentsResponse(added=added)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post(
    "/{school_id}/remove-hours",
    response_model=RemoveHoursResponse,
    responses={
        403: {"description": "Student is outside the caller's school or classroom"},
        404: {"description": "Session not found"},
    },
)
async def remove_hours(
    school_id: str,
    data: RemoveHoursRequest,
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(school_staff),
    db: AsyncSession = Depends(get_db),
) -> RemoveHoursResponse:
    """
    Remove a student's hours, including hours already approved.

    The session ends REJECTED with the given reason, or a default one.
    The student is notified and, unless they opted out, emailed.
    """
    await enforce_user_rate_limit(
        user, "verification", VERIFICATION_RATE_LIMIT, VERIFICATION_RATE_WINDOW_SECONDS
    )

    try:
        session, removed_hours = await verification_service.remove_hours(
            db,
            user,
            school_id,
            data.session_id,
            reason=data.reason,
            background_tasks=background_tasks,
        )
        return RemoveHoursResponse(
            session_id=session.id,
            removed_hours=removed_hours,
            reason=session.rejection_reason,
        )
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error removing hours for session {data.session_id}: {e}")
        raise internal_server_error() from e
