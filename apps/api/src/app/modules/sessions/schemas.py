"""
Service Session Schemas
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.modules.opportunities.schemas import OpportunitySummary
from app.modules.sessions.models import SessionStatus, VerificationStatus


class StudentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    classroom_id: str | None = None


class SessionResponse(BaseModel):
    """A student's service session for one opportunity."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    opportunity_id: str
    status: SessionStatus
    verification_status: VerificationStatus
    check_in_time: datetime | None = None
    check_out_time: datetime | None = None
    total_hours: float
    supervisor_name: str | None = None
    submitted_at: datetime | None = None
    verified_by: str | None = None
    verified_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime
    opportunity: OpportunitySummary | None = None


class StaffSessionResponse(SessionResponse):
    """Session as seen by verifying staff, with the student attached."""

    user: StudentSummary | None = None


class SubmitVerificationRequest(BaseModel):
    """Supervisor sign-off for a session attended without check-in."""

    supervisor_name: str = Field(..., min_length=1, max_length=200)
    signature_data: str = Field(..., min_length=1, description="Drawn signature as a data URL")
