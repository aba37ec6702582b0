"""
Opportunity Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.modules.opportunities.models import OpportunityStatus, SavedStatus


class OrganizationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


class OpportunitySummary(BaseModel):
    """Compact opportunity embedded in signup and session responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    title: str
    date: datetime
    location: str | None = None
    duration_hours: float
    status: OpportunityStatus
    organization: OrganizationSummary | None = None


class OpportunityCreate(BaseModel):
    """Request body for POST /opportunities."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    tags: list[str] = Field(default_factory=list)
    location: str | None = Field(None, max_length=255)
    address: str | None = Field(None, max_length=500)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    date: datetime
    start_time: str | None = Field(None, max_length=10)
    end_time: str | None = Field(None, max_length=10)
    duration_hours: float = Field(..., gt=0, le=24)
    capacity: int = Field(..., gt=0)
    age_requirement: int | None = Field(None, ge=0)
    grade_requirement: int | None = Field(None, ge=0)
    is_recurring: bool = False
    recurring_pattern: str | None = Field(None, max_length=100)

    @model_validator(mode="after")
    def validate_coordinates(self) -> "OpportunityCreate":
        """Latitude and longitude come as a pair."""
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class OpportunityUpdate(BaseModel):
    """Request body for PUT /opportunities/{id}. Only provided fields change."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    tags: list[str] | None = None
    location: str | None = Field(None, max_length=255)
    address: str | None = Field(None, max_length=500)
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    date: datetime | None = None
    start_time: str | None = Field(None, max_length=10)
    end_time: str | None = Field(None, max_length=10)
    duration_hours: float | None = Field(None, gt=0, le=24)
    capacity: int | None = Field(None, gt=0)
    age_requirement: int | None = Field(None, ge=0)
    grade_requirement: int | None = Field(None, ge=0)
    is_recurring: bool | None = None
    recurring_pattern: str | None = Field(None, max_length=100)


class OpportunityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    organization_id: str
    title: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    location: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    date: datetime
    start_time: str | None = None
    end_time: str | None = None
    duration_hours: float
    capacity: int
    age_requirement: int | None = None
    grade_requirement: int | None = None
    is_recurring: bool
    recurring_pattern: str | None = None
    status: OpportunityStatus
    created_at: datetime
    organization: OrganizationSummary | None = None

    # Filled in by the service, not read from the row
    confirmed_count: int = 0
    spots_left: int = 0
    approved_org: bool | None = None
    distance_km: float | None = None


class SavedOpportunityCreate(BaseModel):
    opportunity_id: str = Field(..., min_length=1)
    status: SavedStatus = SavedStatus.SAVED


class SavedOpportunityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    opportunity_id: str
    status: SavedStatus
    created_at: datetime
    opportunity: OpportunitySummary | None = None
