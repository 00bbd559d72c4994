"""Authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Public view of a user; the password hash is never included."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserEnvelope(BaseModel):
    user: UserResponse
