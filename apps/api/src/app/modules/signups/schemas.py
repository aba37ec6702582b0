"""
Signup Schemas
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.modules.opportunities.schemas import OpportunitySummary
from app.modules.signups.models import SignupStatus


class SignupCreate(BaseModel):
    """Request body for POST /signups."""

    opportunity_id: str = Field(..., min_length=1)


class SignupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    opportunity_id: str
    status: SignupStatus
    created_at: datetime
    updated_at: datetime


class MySignupResponse(SignupResponse):
    """A student's signup with the opportunity it belongs to."""

    opportunity: OpportunitySummary | None = None
