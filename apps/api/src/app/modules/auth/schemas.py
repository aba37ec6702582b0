"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from app.modules.users.models import UserRole


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class RegisterRequest(BaseModel):
    """
    Registration request schema.

    Organization admins register their organization and school admins their
    school in the same request. Teachers join an existing school.
    """

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=200)
    role: UserRole = UserRole.STUDENT

    # Students
    age: int | None = Field(None, ge=5, le=120)
    grade: int | None = Field(None, ge=1, le=12)

    # Organization admins
    organization_name: str | None = Field(None, max_length=200)
    organization_description: str | None = Field(None, max_length=2000)
    organization_website: str | None = Field(None, max_length=500)
    organization_address: str | None = Field(None, max_length=500)

    # School admins
    school_name: str | None = Field(None, max_length=200)
    school_address: str | None = Field(None, max_length=500)
    school_postal_code: str | None = Field(None, max_length=20)

    # Teachers
    school_id: str | None = None

    @model_validator(mode="after")
    def validate_role_fields(self) -> "RegisterRequest":
        """Each staff role brings the context it belongs to."""
        if self.role == UserRole.ORG_ADMIN and not self.organization_name:
            raise ValueError("organization_name is required for organization admins")
        if self.role == UserRole.SCHOOL_ADMIN and not self.school_name:
            raise ValueError("school_name is required for school admins")
        if self.role == UserRole.TEACHER and not self.school_id:
            raise ValueError("school_id is required for teachers")
        return self


class TokenResponse(BaseModel):
    """Token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """The authenticated user's profile."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    role: UserRole
    school_id: str | None = None
    organization_id: str | None = None
    classroom_id: str | None = None
    age: int | None = None
    grade: int | None = None
    email_notifications: bool
    is_active: bool
    created_at: datetime


class LoginResponse(TokenResponse):
    """Login response schema."""

    user: UserResponse
