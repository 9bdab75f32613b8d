"""Response envelope models.

Success responses are {"data": ...}; errors are
{"error": {"code", "message", "details"}}.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Success envelope.

    Usage:
        @me_router.get("/me")
        async def get_me(user: CurrentUser) -> DataResponse[UserResponse]:
            return DataResponse(data=UserResponse.model_validate(user))
    """

    data: T


class ErrorDetail(BaseModel):
    """Error body.

    Attributes:
        code: Machine-readable error code (e.g., "INVALID_OR_EXPIRED_TOKEN").
        message: Human-readable error message.
        details: Optional list of field-level errors (request validation).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Error envelope rendered by the exception handlers in app.main."""

    error: ErrorDetail
