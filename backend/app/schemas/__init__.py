"""Pydantic request/response schemas for API endpoints."""

from app.schemas.auth import (
    EmailRequest,
    LinkSentResponse,
    SessionResponse,
    SignupRequest,
    UserResponse,
)

__all__ = [
    "EmailRequest",
    "LinkSentResponse",
    "SessionResponse",
    "SignupRequest",
    "UserResponse",
]
