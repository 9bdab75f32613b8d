"""Tests for API error classes: HTTP status codes and error codes."""

import pytest

from app.core.errors import (
    AccountExistsError,
    AccountNotFoundError,
    AlreadyVerifiedError,
    APIError,
    ConflictError,
    InternalError,
    InvalidInputError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)


class TestAPIError:
    def test_api_error_has_required_attributes(self):
        error = APIError(
            code="TEST_ERROR",
            message="Test message",
            status_code=418,
            details=[{"field": "test"}],
        )
        assert error.code == "TEST_ERROR"
        assert error.message == "Test message"
        assert error.status_code == 418
        assert error.details == [{"field": "test"}]

    def test_api_error_defaults(self):
        error = APIError(code="TEST", message="Test")
        assert error.status_code == 500
        assert error.details is None
        assert str(error) == "Test"


@pytest.mark.parametrize(
    ("error", "status_code", "code", "message"),
    [
        (
            InvalidInputError("Valid email is required"),
            400,
            "VALIDATION_ERROR",
            "Valid email is required",
        ),
        (
            AccountNotFoundError(),
            404,
            "NOT_FOUND",
            "No account found with this email",
        ),
        (
            AccountExistsError(),
            409,
            "ACCOUNT_EXISTS",
            "Account already exists and verified",
        ),
        (
            AlreadyVerifiedError(),
            400,
            "ALREADY_VERIFIED",
            "Account is already verified",
        ),
        (
            InvalidOrExpiredTokenError(),
            400,
            "INVALID_OR_EXPIRED_TOKEN",
            "Invalid or expired verification link",
        ),
        (UnauthorizedError(), 401, "UNAUTHORIZED", "Authentication required"),
        (InternalError(), 500, "INTERNAL_ERROR", "An unexpected error occurred"),
    ],
)
def test_domain_error_mapping(error, status_code, code, message):
    assert error.status_code == status_code
    assert error.code == code
    assert error.message == message


class TestHierarchy:
    def test_invalid_input_is_validation_error(self):
        assert isinstance(InvalidInputError("x"), ValidationError)

    def test_account_not_found_is_not_found(self):
        assert isinstance(AccountNotFoundError(), NotFoundError)

    def test_account_not_found_custom_message(self):
        error = AccountNotFoundError("No verified account found with this email")
        assert error.message == "No verified account found with this email"

    def test_account_exists_is_conflict(self):
        assert isinstance(AccountExistsError(), ConflictError)

    def test_account_not_found_default_message_and_status(self):
        error = AccountNotFoundError()
        assert error.message == "No account found with this email"
        assert error.code == "NOT_FOUND"
        assert error.status_code == 404
