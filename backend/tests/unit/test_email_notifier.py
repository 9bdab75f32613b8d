"""Tests for login link rendering and the Resend notifier."""

import json

import httpx
import pytest

from app.core.email import (
    NotificationError,
    ResendNotifier,
    build_login_url,
    render_login_email,
)

_URL = "http://localhost:8000/api/v1/auth/verify?token=abc"


def _notifier(handler, **overrides) -> ResendNotifier:
    kwargs = {
        "api_key": "re_test_key",
        "sender": "noreply@example.com",
        "ttl_minutes": 15,
        "client": httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    }
    kwargs.update(overrides)
    return ResendNotifier(**kwargs)


class TestBuildLoginUrl:
    def test_appends_verify_path_and_token(self):
        assert (
            build_login_url("http://localhost:8000/api/v1/auth", "abc123")
            == "http://localhost:8000/api/v1/auth/verify?token=abc123"
        )

    def test_tolerates_trailing_slash(self):
        assert build_login_url("https://x.io/auth/", "t") == "https://x.io/auth/verify?token=t"

    def test_quotes_token(self):
        assert build_login_url("https://x.io", "a b&c").endswith("token=a%20b%26c")


class TestRenderLoginEmail:
    def test_greets_by_name(self):
        body = render_login_email("Ada", _URL, 15)
        assert body.startswith("Hi Ada!")

    def test_generic_greeting_without_name(self):
        assert render_login_email(None, _URL, 15).startswith("Hi!")

    def test_contains_link_and_expiry(self):
        body = render_login_email(None, _URL, 15)
        assert _URL in body
        assert "expires in 15 minutes" in body
        assert "ignore this email" in body


class TestResendNotifier:
    async def test_posts_email_payload(self):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"id": "email_1"})

        await _notifier(handler).send_login_link("ada@example.com", "Ada", _URL)

        assert len(captured) == 1
        request = captured[0]
        assert request.url == "https://api.resend.com/emails"
        assert request.headers["Authorization"] == "Bearer re_test_key"
        payload = json.loads(request.content)
        assert payload["to"] == "ada@example.com"
        assert payload["from"] == "noreply@example.com"
        assert payload["subject"] == "Your Login Link"
        assert _URL in payload["text"]

    async def test_non_2xx_raises_notification_error(self):
        def handler(_request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"message": "invalid"})

        with pytest.raises(NotificationError):
            await _notifier(handler).send_login_link("ada@example.com", None, _URL)

    async def test_transport_error_raises_notification_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NotificationError) as exc_info:
            await _notifier(handler).send_login_link("ada@example.com", None, _URL)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_missing_api_key_raises_without_request(self):
        calls = 0

        def handler(_request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200)

        with pytest.raises(NotificationError):
            await _notifier(handler, api_key="").send_login_link(
                "ada@example.com", None, _URL
            )
        assert calls == 0
