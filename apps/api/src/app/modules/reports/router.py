"""
Reports Router

Endpoints:
- GET /reports/student - Hour totals for the caller (or a school staff member's student)
- GET /reports/organization - Volunteer totals for the caller's organization
- GET /reports/school - Compliance of the caller's students
- GET /reports/export/csv - Approved hours in the caller's scope as CSV
- GET /reports/audit/{session_id} - Audit trail of one session
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, get_current_user, require_roles
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.modules.notifications.schemas import AuditEntryResponse
from app.modules.reports import service
from app.modules.reports.schemas import (
    OrganizationReportResponse,
    SchoolReportResponse,
    StudentReportResponse,
)
from app.modules.users.models import SCHOOL_STAFF_ROLES, UserRole
from app.modules.verification import service as verification_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/student", response_model=StudentReportResponse)
async def student_report(
    student_id: str | None = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> StudentReportResponse:
    try:
        report = await service.student_report(db, user, student_id)
        return StudentReportResponse.model_validate(report, from_attributes=True)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get("/organization", response_model=OrganizationReportResponse)
async def organization_report(
    user: CurrentUser = Depends(require_roles(UserRole.ORG_ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> OrganizationReportResponse:
    try:
        report = await service.organization_report(db, user)
        return OrganizationReportResponse.model_validate(report, from_attributes=True)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get("/school", response_model=SchoolReportResponse)
async def school_report(
    user: CurrentUser = Depends(require_roles(*SCHOOL_STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> SchoolReportResponse:
    try:
        report = await service.school_report(db, user)
        return SchoolReportResponse.model_validate(report, from_attributes=True)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.get("/export/csv")
async def export_csv(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse:
    try:
        filename, content = await service.export_csv(db, user)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error exporting CSV: {e}")
        raise internal_server_error() from e

    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/audit/{session_id}", response_model=list[AuditEntryResponse])
async def audit_trail(
    session_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[AuditEntryResponse]:
    """
    Audit trail of one session, oldest first.

    Raises:
        HTTPException 403: If the caller is neither the student nor staff who may verify it
        HTTPException 404: If the session does not exist
    """
    try:
        entries = await verification_service.get_audit_trail(db, user, session_id)
        return [AuditEntryResponse.model_validate(e) for e in entries]
    except ServiceError as e:
        raise to_http_exception(e) from e
