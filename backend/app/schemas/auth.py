"""Request/response schemas for the magic link auth endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    name: str | None = Field(default=None, max_length=255)


class EmailRequest(BaseModel):
    """Request body for POST /auth/login and /auth/resend-verification."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class LinkSentResponse(BaseModel):
    """Acknowledgement that a magic link was sent.

    Attributes:
        email: Normalized address the link went to.
        name: Display name on record.
        message: Human-readable confirmation.
    """

    email: str
    name: str | None
    message: str


class UserResponse(BaseModel):
    """Public view of a user account."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str | None
    verified: bool
    created_at: datetime | None


class SessionResponse(BaseModel):
    """Payload returned after a magic link is verified."""

    user: UserResponse
    message: str
