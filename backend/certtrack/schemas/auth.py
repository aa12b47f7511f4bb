"""Identity session and account schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from certtrack.schemas.base import BaseSchema

MIN_PASSWORD_LENGTH = 6


class SessionUser(BaseModel):
    """User as reported by the identity provider."""

    id: UUID
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def full_name(self) -> str | None:
        return self.user_metadata.get("full_name")


class AuthSession(BaseModel):
    """Signed-in session: bearer token plus the user it belongs to."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    user: SessionUser


class UserAttributes(BaseModel):
    """Partial update for the signed-in account. Unset fields are not sent."""

    email: str | None = None
    password: str | None = None
    data: dict[str, Any] | None = None


class SignUpRequest(BaseSchema):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    full_name: str = Field(..., min_length=1, max_length=255)
