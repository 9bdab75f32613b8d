"""Magic link authentication endpoints.

Endpoints:
- POST /auth/signup: create (or reuse) a pending account, email a link
- POST /auth/login: email a login link to a verified account
- GET /auth/verify: consume a link, set the session cookie
- POST /auth/resend-verification: re-send a link to a pending account
- POST /auth/logout: clear the session cookie
- GET /me: current user from the session cookie
"""

from typing import Annotated

from fastapi import APIRouter, Query, Response

from app.api.deps import AuthService, CurrentUser, Issuer
from app.core.auth import clear_auth_cookie, set_auth_cookie
from app.core.responses import DataResponse
from app.schemas.auth import (
    EmailRequest,
    LinkSentResponse,
    SessionResponse,
    SignupRequest,
    UserResponse,
)

router = APIRouter()
me_router = APIRouter()

_SIGNUP_SENT_MSG = "Verification link sent to your email! Check your inbox."
_LOGIN_SENT_MSG = "Login link sent to your email! Check your inbox."
_RESEND_SENT_MSG = "New verification link sent to your email!"
_VERIFIED_MSG = "Successfully authenticated! Welcome back!"
_LOGGED_OUT_MSG = "Successfully logged out"


@router.post("/signup")
async def signup(
    body: SignupRequest,
    service: AuthService,
) -> DataResponse[LinkSentResponse]:
    """Start sign-up for a new (or still unverified) email address.

    Returns 409 if the email already belongs to a verified account.
    """
    result = await service.request_signup(body.email, body.name)
    return DataResponse(
        data=LinkSentResponse(
            email=result.email, name=result.name, message=_SIGNUP_SENT_MSG
        )
    )


@router.post("/login")
async def login(
    body: EmailRequest,
    service: AuthService,
) -> DataResponse[LinkSentResponse]:
    """Email a login link to an existing verified account."""
    result = await service.request_login(body.email)
    return DataResponse(
        data=LinkSentResponse(
            email=result.email, name=result.name, message=_LOGIN_SENT_MSG
        )
    )


@router.get("/verify")
async def verify(
    response: Response,
    service: AuthService,
    session_issuer: Issuer,
    token: Annotated[str, Query(max_length=256)] = "",
) -> DataResponse[SessionResponse]:
    """Consume a magic link token and start a session.

    Wrong, already-used and expired tokens all return the same 400.
    On success the session credential is set as an httpOnly cookie.
    """
    result = await service.verify(token)
    set_auth_cookie(response, result.credential, max_age=session_issuer.ttl)
    # Token travels in the query string; keep it out of Referer
    response.headers["Referrer-Policy"] = "no-referrer"
    return DataResponse(
        data=SessionResponse(
            user=UserResponse.model_validate(result.user),
            message=_VERIFIED_MSG,
        )
    )


@router.post("/resend-verification")
async def resend_verification(
    body: EmailRequest,
    service: AuthService,
) -> DataResponse[LinkSentResponse]:
    """Send a fresh link to an account that has not been verified yet."""
    result = await service.request_resend(body.email)
    return DataResponse(
        data=LinkSentResponse(
            email=result.email, name=result.name, message=_RESEND_SENT_MSG
        )
    )


@router.post("/logout")
async def logout(response: Response) -> DataResponse[dict]:
    """Clear the session cookie.

    No auth required; credentials are stateless, so logout is client-side.
    """
    clear_auth_cookie(response)
    return DataResponse(data={"message": _LOGGED_OUT_MSG})


@me_router.get("/me")
async def get_me(user: CurrentUser) -> DataResponse[UserResponse]:
    """Return the authenticated user. 401 without a valid session cookie."""
    return DataResponse(data=UserResponse.model_validate(user))
