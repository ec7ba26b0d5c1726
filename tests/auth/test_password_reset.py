"""Password reset: request, token check, single-use reset and the daily cap."""

import pytest
from conftest import FIREFOX_UA, RecordingNotifier
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.config import get_settings
from qaforum.db.models import PasswordReset, User
from qaforum.errors import ValidationError
from qaforum.notifications.service import reset_notification_service
from qaforum.security.password_reset import request_reset


async def _request(client: AsyncClient, **body) -> dict:
    response = await client.post("/password-reset/request-reset", json=body)
    assert response.status_code == 200, response.text
    return response.json()


class TestRequestReset:
    async def test_by_email(self, client: AsyncClient, alice: User, notifier: RecordingNotifier):
        body = await _request(client, email="alice@example.com")
        assert body["resetType"] == "email"
        assert body["delivered"] is True
        channel, recipient, _ = notifier.sent[-1]
        assert (channel, recipient) == ("email", "alice@example.com")
        context = notifier.last("password_reset_request")
        assert context["reset_url"].endswith(context["reset_token"])

    async def test_by_phone_goes_over_sms(self, client: AsyncClient, bob: User, notifier: RecordingNotifier):
        body = await _request(client, phone="+911234567890")
        assert body["resetType"] == "phone"
        assert notifier.sent[-1][:2] == ("sms", "+911234567890")

    async def test_needs_email_or_phone(self, client: AsyncClient):
        response = await client.post("/password-reset/request-reset", json={})
        assert response.status_code == 400
        assert response.json()["message"] == "Please provide either email or phone number"

    async def test_unknown_account(self, client: AsyncClient):
        response = await client.post("/password-reset/request-reset", json={"email": "nobody@example.com"})
        assert response.status_code == 404

    async def test_once_per_day(self, client: AsyncClient, alice: User):
        await _request(client, email="alice@example.com")
        response = await client.post("/password-reset/request-reset", json={"email": "alice@example.com"})
        assert response.status_code == 429
        body = response.json()
        assert body["warning"] is True
        assert body["message"].startswith("Warning:")

    async def test_failed_delivery_is_reported(self, client: AsyncClient, alice: User, notifier: RecordingNotifier):
        notifier.fail = True
        body = await _request(client, email="alice@example.com")
        assert body["delivered"] is False

    async def test_blank_email_and_phone_rejected(self, db_session: AsyncSession, alice: User):
        with pytest.raises(ValidationError):
            await request_reset(db_session, email="", phone="")

    async def test_broken_provider_reports_undelivered(
        self, client: AsyncClient, db_session: AsyncSession, alice: User, monkeypatch: pytest.MonkeyPatch
    ):
        settings = get_settings()
        monkeypatch.setattr(settings, "notification_backend", "live")
        monkeypatch.setattr(settings, "email_provider", "sendgrid")
        reset_notification_service()

        body = await _request(client, email="alice@example.com")
        assert body["delivered"] is False
        count = await db_session.scalar(select(func.count()).select_from(PasswordReset))
        assert count == 1


class TestResetPassword:
    async def test_token_lifecycle(self, client: AsyncClient, alice: User, notifier: RecordingNotifier):
        await _request(client, email="alice@example.com")
        token = notifier.last("password_reset_request")["reset_token"]

        verified = await client.get(f"/password-reset/verify-token/{token}")
        assert verified.json() == {"success": True, "resetType": "email", "resetValue": "alice@example.com"}

        response = await client.post("/password-reset/reset-password", json={"resetToken": token})
        assert response.status_code == 200
        assert response.json()["message"] == "Password reset successful. Your new password has been sent."
        new_password = notifier.last("new_password")["password"]

        old = await client.post(
            "/user/login",
            json={"email": "alice@example.com", "password": "secret123"},
            headers={"User-Agent": FIREFOX_UA},
        )
        assert old.status_code == 400
        new = await client.post(
            "/user/login",
            json={"email": "alice@example.com", "password": new_password},
            headers={"User-Agent": FIREFOX_UA},
        )
        assert new.status_code == 200
        assert new.json()["token"]

        again = await client.post("/password-reset/reset-password", json={"resetToken": token})
        assert again.status_code == 400
        assert again.json()["message"] == "Invalid or expired reset token"

    async def test_unknown_token(self, client: AsyncClient):
        response = await client.get("/password-reset/verify-token/not-a-token")
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid or expired reset token"}
