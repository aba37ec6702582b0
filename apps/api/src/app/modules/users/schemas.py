"""User account schemas."""

from pydantic import BaseModel, ConfigDict, Field


class PreferencesUpdate(BaseModel):
    """Fields a user may change on their own account. Omitted fields are kept."""

    name: str | None = Field(None, min_length=1, max_length=200)
    age: int | None = Field(None, ge=5, le=120)
    grade: int | None = Field(None, ge=1, le=12)
    email_notifications: bool | None = None


class PreferencesResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    age: int | None = None
    grade: int | None = None
    email_notifications: bool
