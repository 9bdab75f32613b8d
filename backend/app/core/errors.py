"""API error classes.

Every failure the auth service can surface to a caller, with its HTTP
status and machine-readable code. app.main renders them in the
{"error": {...}} envelope.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, query param errors, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class InvalidInputError(ValidationError):
    """Malformed email or missing token (400).

    Raised by the service layer so that non-HTTP callers get the same
    validation as requests that went through the Pydantic models.
    """


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid session credential is provided. The message is
    intentionally the same for missing, malformed and expired credentials.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class AccountNotFoundError(NotFoundError):
    """No account matches the requested email (404)."""

    def __init__(self, message: str = "No account found with this email") -> None:
        super().__init__(message)


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class AccountExistsError(ConflictError):
    """Signup attempted for an email that already has a verified account (409)."""

    def __init__(self) -> None:
        super().__init__(
            code="ACCOUNT_EXISTS",
            message="Account already exists and verified",
        )


class AlreadyVerifiedError(APIError):
    """Resend requested for an account that is already verified (400)."""

    def __init__(self) -> None:
        super().__init__(
            code="ALREADY_VERIFIED",
            message="Account is already verified",
            status_code=400,
        )


class InvalidOrExpiredTokenError(APIError):
    """Magic link token is wrong, already used, or expired (400).

    Security: the three causes share one message so the endpoint cannot
    be used as an oracle for which tokens exist.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_OR_EXPIRED_TOKEN",
            message="Invalid or expired verification link",
            status_code=400,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions and dependency failures.
    Never expose stack traces or dependency details to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
