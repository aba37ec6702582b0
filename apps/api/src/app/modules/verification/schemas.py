"""
Verification Schemas
"""

from pydantic import BaseModel, Field


class ApproveRequest(BaseModel):
    """Optional correction of the hours being approved."""

    approved_hours: float | None = Field(None, ge=0)


class RejectRequest(BaseModel):
    # Blank reasons are rejected by the service with VALIDATION_ERROR
    reason: str | None = Field(None, max_length=1000)


class RemoveHoursRequest(BaseModel):
    """Request body for POST /schools/{id}/remove-hours."""

    session_id: str = Field(..., min_length=1)
    reason: str | None = Field(None, max_length=1000)
