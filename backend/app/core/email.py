"""Login link delivery via the Resend API.

Plain-text email with the magic link. Unlike a fire-and-forget background
send, delivery failures are raised as NotificationError: a user who never
receives the link has nothing to click, so the request must fail.
"""

import logging
from typing import Protocol
from urllib.parse import quote, urlencode

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_SUBJECT = "Your Login Link"


class NotificationError(Exception):
    """Login link could not be delivered (transport error, non-2xx, missing config)."""


class Notifier(Protocol):
    """Outbound channel for login links."""

    async def send_login_link(self, email: str, name: str | None, url: str) -> None:
        """Deliver the link or raise NotificationError."""
        ...


def build_login_url(base_url: str, token: str) -> str:
    """Magic link URL in the form ``<base>/verify?token=<token>``."""
    params = urlencode({"token": token}, quote_via=quote)
    return f"{base_url.rstrip('/')}/verify?{params}"


def render_login_email(name: str | None, url: str, ttl_minutes: int) -> str:
    """Plain-text body for a login link email."""
    greeting = f"Hi {name}!" if name else "Hi!"
    return (
        f"{greeting}\n\n"
        f"Click this link to log in: {url}\n\n"
        f"This link expires in {ttl_minutes} minutes.\n\n"
        "If you didn't request this, please ignore this email."
    )


class ResendNotifier:
    """Notifier backed by the Resend HTTP API.

    Args:
        api_key: Resend API key.
        sender: From address.
        ttl_minutes: Link lifetime quoted in the email body.
        timeout: HTTP timeout in seconds.
        client: Optional shared AsyncClient (tests inject a mock transport).
    """

    def __init__(
        self,
        *,
        api_key: str,
        sender: str,
        ttl_minutes: int,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._ttl_minutes = ttl_minutes
        self._timeout = timeout
        self._client = client

    async def send_login_link(self, email: str, name: str | None, url: str) -> None:
        """Send the login link email.

        Raises:
            NotificationError: If the API key is missing, the request fails,
                times out, or Resend answers with a non-2xx status.
        """
        if not self._api_key:
            raise NotificationError("RESEND_API_KEY is not configured")

        payload = {
            "from": self._sender,
            "to": email,
            "subject": _SUBJECT,
            "text": render_login_email(name, url, self._ttl_minutes),
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            if self._client is not None:
                resp = await self._client.post(
                    _RESEND_API_URL, headers=headers, json=payload, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient() as client:
                    resp = await client.post(
                        _RESEND_API_URL,
                        headers=headers,
                        json=payload,
                        timeout=self._timeout,
                    )
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Failed to send login link email", exc_info=True)
            raise NotificationError("Failed to send email") from exc

        logger.info("Login link sent to %s", email)


def get_notifier() -> Notifier:
    """Build the configured notifier from settings."""
    return ResendNotifier(
        api_key=settings.resend_api_key.get_secret_value(),
        sender=settings.email_from,
        ttl_minutes=settings.magic_link_ttl_minutes,
        timeout=settings.email_timeout_seconds,
    )
