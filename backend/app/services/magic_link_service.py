"""Magic link lifecycle: issue, deliver, consume, and mint a session.

Token state machine per user:

    (none) --issue--> ACTIVE --consume--> USED (digest cleared)
                        |  \\--issue again--> ACTIVE (previous token dead)
                        \\--expiry/reaper--> (none)

Issuance always overwrites, so each user holds at most one active token.
Consumption is delegated to UserRepository.consume_active_token(), a single
atomic conditional write; a consumed token has no path back to ACTIVE.

Dependency failures (RepositoryError, NotificationError) are logged here
with their cause and surfaced to callers as a generic InternalError.
"""

import contextlib
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from email_validator import EmailNotValidError, validate_email

from app.core.auth import SessionIssuer
from app.core.email import NotificationError, Notifier, build_login_url
from app.core.errors import (
    AccountExistsError,
    AccountNotFoundError,
    AlreadyVerifiedError,
    InternalError,
    InvalidInputError,
    InvalidOrExpiredTokenError,
    UnauthorizedError,
)
from app.models.user import User
from app.repositories.base import RepositoryError, UserRepository
from app.services.token_generator import TokenGenerator, hash_token

logger = structlog.get_logger()

DEFAULT_TOKEN_TTL = timedelta(minutes=15)

_INVALID_EMAIL_MSG = "Valid email is required"
_MISSING_TOKEN_MSG = "Verification token is required"
_SIGNUP_FAILED_MSG = "Failed to create account. Please try again."
_LINK_FAILED_MSG = "Failed to send login link. Please try again."
_RESEND_FAILED_MSG = "Failed to send verification link. Please try again."
_VERIFY_FAILED_MSG = "Verification failed. Please try again."
_PROFILE_FAILED_MSG = "Failed to load user. Please try again."


@dataclass(frozen=True)
class LinkRequestResult:
    """Outcome of a signup, login, or resend request.

    Attributes:
        email: Normalized email the link was sent to.
        name: Display name on record (may be None).
    """

    email: str
    name: str | None


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a successful verification.

    Attributes:
        user: The user after consumption (verified, token cleared).
        credential: Freshly minted session credential.
    """

    user: User
    credential: str


def normalize_email(email: str | None) -> str:
    """Validate syntax and lowercase an email address.

    Raises:
        InvalidInputError: If the email is missing or malformed.
    """
    if not email or not email.strip():
        raise InvalidInputError(_INVALID_EMAIL_MSG)
    try:
        validated = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as exc:
        raise InvalidInputError(_INVALID_EMAIL_MSG) from exc
    return validated.normalized.lower()


def _clean_name(name: str | None) -> str | None:
    if name is None:
        return None
    return name.strip() or None


@contextlib.contextmanager
def _dependency_boundary(operation: str, client_message: str) -> Iterator[None]:
    """Map storage and delivery failures to a generic InternalError."""
    try:
        yield
    except RepositoryError as exc:
        logger.error(
            "auth_dependency_failure",
            operation=operation,
            dependency="repository",
            error=str(exc),
            cause=repr(exc.__cause__),
        )
        raise InternalError(client_message) from exc
    except NotificationError as exc:
        logger.error(
            "auth_dependency_failure",
            operation=operation,
            dependency="notifier",
            error=str(exc),
            cause=repr(exc.__cause__),
        )
        raise InternalError(client_message) from exc


class MagicLinkService:
    """Orchestrates signup, login, resend, verification and session lookup.

    All collaborators are injected so tests can substitute in-memory
    fakes and a controllable clock.

    Args:
        repository: User persistence.
        notifier: Login link delivery.
        session_issuer: Mints/validates session credentials.
        link_base_url: Prefix for magic links (``<base>/verify?token=...``).
        token_generator: Source of plain tokens.
        token_ttl: Magic link lifetime.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        repository: UserRepository,
        notifier: Notifier,
        session_issuer: SessionIssuer,
        *,
        link_base_url: str,
        token_generator: TokenGenerator | None = None,
        token_ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._notifier = notifier
        self._session_issuer = session_issuer
        self._link_base_url = link_base_url
        self._token_generator = token_generator or TokenGenerator()
        self._token_ttl = token_ttl
        self._clock = clock or (lambda: datetime.now(UTC))

    # ------------------------------------------------------------------
    # Link requests
    # ------------------------------------------------------------------

    async def request_signup(
        self, email: str, name: str | None = None
    ) -> LinkRequestResult:
        """Create (or reuse) an unverified account and send a sign-up link.

        An existing verified account is rejected without any mutation, so
        re-signup cannot be used to take over an account.

        Raises:
            InvalidInputError: Malformed email.
            AccountExistsError: Email belongs to a verified account.
            InternalError: Storage or email delivery failed.
        """
        normalized = normalize_email(email)
        display_name = _clean_name(name)

        with _dependency_boundary("signup", _SIGNUP_FAILED_MSG):
            user = await self._repository.get_by_email(normalized)
            if user is not None and user.verified:
                raise AccountExistsError()

            if user is None:
                user = await self._repository.create(
                    email=normalized, name=display_name
                )
                logger.info("signup_user_created", user_id=str(user.id))

            # Keep the stored name unless a new one was supplied
            return await self._issue_and_send(
                user, name=display_name or user.name
            )

    async def request_login(self, email: str) -> LinkRequestResult:
        """Send a login link to an existing verified account.

        Raises:
            InvalidInputError: Malformed email.
            AccountNotFoundError: No verified account with this email.
            InternalError: Storage or email delivery failed.
        """
        normalized = normalize_email(email)

        with _dependency_boundary("login", _LINK_FAILED_MSG):
            user = await self._repository.get_by_email(normalized)
            if user is None or not user.verified:
                raise AccountNotFoundError("No verified account found with this email")
            return await self._issue_and_send(user)

    async def request_resend(self, email: str) -> LinkRequestResult:
        """Send a fresh link to a pending (unverified) signup.

        Raises:
            InvalidInputError: Malformed email.
            AccountNotFoundError: No account with this email.
            AlreadyVerifiedError: The account is already verified.
            InternalError: Storage or email delivery failed.
        """
        normalized = normalize_email(email)

        with _dependency_boundary("resend", _RESEND_FAILED_MSG):
            user = await self._repository.get_by_email(normalized)
            if user is None:
                raise AccountNotFoundError()
            if user.verified:
                raise AlreadyVerifiedError()
            return await self._issue_and_send(user)

    async def _issue_and_send(
        self, user: User, *, name: str | None = None
    ) -> LinkRequestResult:
        """Overwrite the user's token, persist it, then deliver the link.

        The write completes before the notifier is called, so any link a
        user receives is already valid in the store.
        """
        token = self._token_generator.generate()
        fields: dict[str, str | datetime | bool | None] = {
            "magic_link_token": hash_token(token),
            "magic_link_expires": self._clock() + self._token_ttl,
            "magic_link_used": False,
        }
        if name is not None and name != user.name:
            fields["name"] = name

        updated = await self._repository.update(user.id, **fields)
        if updated is None:
            raise RepositoryError(f"User {user.id} disappeared during token issue")

        url = build_login_url(self._link_base_url, token)
        await self._notifier.send_login_link(updated.email, updated.name, url)

        logger.info("magic_link_issued", user_id=str(updated.id))
        return LinkRequestResult(email=updated.email, name=updated.name)

    # ------------------------------------------------------------------
    # Verification and sessions
    # ------------------------------------------------------------------

    async def verify(self, token: str | None) -> VerificationResult:
        """Consume a magic link token and mint a session credential.

        Security: wrong, already-used and expired tokens all raise the same
        InvalidOrExpiredTokenError; the single repository call cannot tell
        them apart either.

        Raises:
            InvalidInputError: Token missing or empty.
            InvalidOrExpiredTokenError: No active token matched.
            InternalError: Storage failed.
        """
        if not token or not token.strip():
            raise InvalidInputError(_MISSING_TOKEN_MSG)

        with _dependency_boundary("verify", _VERIFY_FAILED_MSG):
            user = await self._repository.consume_active_token(
                hash_token(token), now=self._clock()
            )

        if user is None:
            logger.info("magic_link_rejected")
            raise InvalidOrExpiredTokenError()

        credential = self._session_issuer.mint(user.id, user.email)
        logger.info("magic_link_verified", user_id=str(user.id))
        return VerificationResult(user=user, credential=credential)

    async def current_user(self, credential: str | None) -> User:
        """Resolve a session credential to the current user record.

        The credential itself is validated statelessly; the user is then
        re-fetched so deleted accounts stop authenticating immediately.

        Raises:
            UnauthorizedError: Credential invalid/expired or user gone.
            InternalError: Storage failed.
        """
        claims = self._session_issuer.validate(credential)

        with _dependency_boundary("current_user", _PROFILE_FAILED_MSG):
            user = await self._repository.get_by_id(claims.user_id)

        if user is None:
            raise UnauthorizedError()
        return user
