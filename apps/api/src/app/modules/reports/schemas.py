"""
Report Schemas
"""

from pydantic import BaseModel

from app.modules.sessions.schemas import SessionResponse, StaffSessionResponse


class StudentReportResponse(BaseModel):
    """A student's hour totals, rounded to two decimals."""

    student_id: str
    total_approved_hours: float
    total_pending_hours: float
    total_committed_hours: float
    required_hours: float
    remaining_hours: float
    activities_completed: int
    sessions: list[SessionResponse]


class OrganizationReportResponse(BaseModel):
    organization_id: str
    total_volunteers: int
    total_sessions: int
    approved_sessions: int
    total_approved_hours: float
    sessions: list[StaffSessionResponse]


class SchoolReportStudent(BaseModel):
    student_id: str
    name: str
    email: str
    grade: int | None = None
    approved_hours: float
    required_hours: float
    completed: bool
    percent_complete: int


class SchoolReportResponse(BaseModel):
    school_id: str
    school_name: str
    required_hours: float
    total_students: int
    students_completed: int
    students: list[SchoolReportStudent]
