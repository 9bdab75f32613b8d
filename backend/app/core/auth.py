"""Session credential issuance, validation, and cookie management.

Pipeline:
- SessionIssuer.mint: signed HS256 JWT after a magic link is consumed
- SessionIssuer.validate: signature + exp/aud/iss/iat checks, no DB access
- set_auth_cookie / clear_auth_cookie: httpOnly, SameSite=Strict transport
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Response

from app.core.config import settings
from app.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)

_ALGORITHM = "HS256"

# Session validity window (independent of the 15-minute link lifetime)
DEFAULT_SESSION_TTL = timedelta(days=7)


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried by a valid session credential.

    Attributes:
        user_id: UUID from the sub claim.
        email: Email the user verified with.
    """

    user_id: uuid.UUID
    email: str


class SessionIssuer:
    """Mints and validates stateless session credentials.

    Validation never consults the database; callers that authorize
    requests should re-fetch the user by id afterwards.

    Args:
        secret: HMAC signing secret.
        issuer: iss claim.
        audience: aud claim.
        ttl: Credential lifetime.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        *,
        secret: str,
        issuer: str,
        audience: str,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._secret = secret
        self._issuer = issuer
        self._audience = audience
        self._ttl = ttl
        self._clock = clock or (lambda: datetime.now(UTC))

    @property
    def ttl(self) -> timedelta:
        """Credential lifetime, also used as the cookie max-age."""
        return self._ttl

    def mint(self, user_id: uuid.UUID, email: str) -> str:
        """Create a signed credential for a freshly verified user.

        Args:
            user_id: User primary key.
            email: User email.

        Returns:
            Encoded JWT string.
        """
        now = self._clock()
        payload = {
            "sub": str(user_id),
            "email": email,
            "verified": True,
            "aud": self._audience,
            "iss": self._issuer,
            "exp": now + self._ttl,
            "iat": now,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def validate(self, credential: str | None) -> SessionClaims:
        """Verify a credential and extract its identity.

        Security: every failure (missing, bad signature, expired, wrong
        audience/issuer, malformed claims) raises the same error so clients
        cannot probe which check failed.

        Args:
            credential: Encoded JWT from the session cookie.

        Returns:
            SessionClaims for the authenticated user.

        Raises:
            UnauthorizedError: If the credential is not acceptable.
        """
        if not credential:
            raise UnauthorizedError()

        try:
            payload = jwt.decode(
                credential,
                self._secret,
                algorithms=[_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
            return SessionClaims(
                user_id=uuid.UUID(payload["sub"]),
                email=payload["email"],
            )
        except (jwt.InvalidTokenError, KeyError, ValueError) as exc:
            logger.debug("Session credential rejected: %s", type(exc).__name__)
            raise UnauthorizedError() from exc


def get_session_issuer() -> SessionIssuer:
    """Build a SessionIssuer from current settings."""
    return SessionIssuer(
        secret=settings.auth_secret.get_secret_value(),
        issuer=settings.auth_issuer,
        audience=settings.auth_audience,
        ttl=settings.session_ttl,
    )


def set_auth_cookie(response: Response, token: str, *, max_age: timedelta) -> None:
    """Set httpOnly session cookie on response.

    Security: httpOnly prevents XSS cookie theft, SameSite=Strict blocks
    cross-site sends, Secure is on everywhere except local development.

    Args:
        response: FastAPI response object.
        token: Session credential.
        max_age: Cookie lifetime; matches the credential's validity window.
    """
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="strict",
        path="/",
        max_age=int(max_age.total_seconds()),
        domain=settings.auth_cookie_domain or None,
    )


def clear_auth_cookie(response: Response) -> None:
    """Delete the session cookie.

    Attributes must match set_auth_cookie() for browsers to drop it.
    """
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite="strict",
        domain=settings.auth_cookie_domain or None,
    )
