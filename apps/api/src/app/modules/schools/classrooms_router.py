"""
Classrooms Router

Endpoints:
- POST /classrooms - Create a classroom with an invite code (school admin, teacher)
- GET /classrooms - Classrooms of the caller's school with roster figures
- POST /classrooms/join - Student joins by invite code
- POST /classrooms/leave - Student leaves their classroom
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import CurrentUser, require_roles
from app.core.database import get_db
from app.core.exceptions import ServiceError, internal_server_error, to_http_exception
from app.modules.schools import service
from app.modules.schools.schemas import (
    ClassroomCreate,
    ClassroomResponse,
    ClassroomSummaryResponse,
    JoinClassroomRequest,
    JoinClassroomResponse,
)
from app.modules.users.models import SCHOOL_STAFF_ROLES, UserRole

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ClassroomResponse, status_code=status.HTTP_201_CREATED)
async def create_classroom(
    data: ClassroomCreate,
    user: CurrentUser = Depends(require_roles(*SCHOOL_STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> ClassroomResponse:
    try:
        classroom = await service.create_classroom(
            db, user, name=data.name, teacher_id=data.teacher_id
        )
        return ClassroomResponse.model_validate(classroom)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error creating classroom: {e}")
        raise internal_server_error() from e


@router.get("", response_model=list[ClassroomSummaryResponse])
async def list_classrooms(
    user: CurrentUser = Depends(require_roles(*SCHOOL_STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
) -> list[ClassroomSummaryResponse]:
    try:
        return await service.list_classrooms(db, user)
    except ServiceError as e:
        raise to_http_exception(e) from e


@router.post("/join", response_model=JoinClassroomResponse)
async def join_classroom(
    data: JoinClassroomRequest,
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> JoinClassroomResponse:
    """
    Join a classroom using its invite code.

    Raises:
        HTTPException 404: If the code matches no classroom
        HTTPException 409: If the student is already in a classroom
    """
    try:
        classroom = await service.join_classroom(db, user, data.invite_code)
        return JoinClassroomResponse(
            message="Joined classroom successfully",
            classroom_id=classroom.id,
            classroom_name=classroom.name,
            school_id=classroom.school_id,
        )
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error joining classroom: {e}")
        raise internal_server_error() from e


@router.post("/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_classroom(
    background_tasks: BackgroundTasks,
    user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.leave_classroom(db, user, background_tasks)
    except ServiceError as e:
        raise to_http_exception(e) from e
    except Exception as e:
        logger.exception(f"Error leaving classroom: {e}")
        raise internal_server_error() from e
