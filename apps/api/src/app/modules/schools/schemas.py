"""
School and Classroom Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from app.modules.opportunities.schemas import OrganizationSummary
from app.modules.schools.models import ApprovalStatus


class ProgressStatus(str, Enum):
    """Where a student stands against the school's required hours."""

    COMPLETED = "COMPLETED"
    ON_TRACK = "ON_TRACK"
    AT_RISK = "AT_RISK"


class SchoolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: str | None = None
    postal_code: str | None = None
    required_hours: float


# ============================================================================
# Students and stats
# ============================================================================


class StudentProgressResponse(BaseModel):
    """A student on a school roster with their approved hours."""

    id: str
    name: str
    email: str
    grade: int | None = None
    classroom_id: str | None = None
    approved_hours: float
    required_hours: float
    percent_complete: int
    completed: bool
    status: ProgressStatus


class SchoolStatsResponse(BaseModel):
    total_students: int
    total_school_hours: float
    students_completed_goal: int
    students_at_risk: int
    completion_percentage: int
    required_hours: float


# ============================================================================
# Approved organizations
# ============================================================================


class SchoolOrganizationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    organization_id: str
    status: ApprovalStatus
    updated_at: datetime
    organization: OrganizationSummary | None = None


class RemoveHoursResponse(BaseModel):
    session_id: str
    removed_hours: float
    reason: str


# ============================================================================
# Groups
# ============================================================================


class StudentGroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=1000)


class StudentGroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    name: str
    description: str | None = None
    created_at: datetime
    member_count: int = 0


class AddGroupStudentsRequest(BaseModel):
    student_ids: list[str] = Field(..., min_length=1)


class AddGroupStudentsResponse(BaseModel):
    added: int


# ============================================================================
# Classrooms
# ============================================================================


class ClassroomCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    # School admins may hand the classroom to one of their teachers
    teacher_id: str | None = None


class ClassroomResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    school_id: str
    teacher_id: str | None = None
    name: str
    invite_code: str
    created_at: datetime


class ClassroomSummaryResponse(ClassroomResponse):
    """Classroom with roster figures."""

    student_count: int = 0
    total_hours: float = 0.0
    completed_count: int = 0
    at_risk_count: int = 0
    completion_percentage: int = 0


class JoinClassroomRequest(BaseModel):
    invite_code: str = Field(..., min_length=8, max_length=8, pattern=r"^[0-9a-fA-F]{8}$")


class JoinClassroomResponse(BaseModel):
    message: str
    classroom_id: str
    classroom_name: str
    school_id: str
