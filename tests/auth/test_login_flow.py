"""Signup and the login decision tree: password, handheld window, browser class."""

from datetime import datetime, timezone

import pytest
from conftest import CHROME_UA, EDGE_UA, FIREFOX_UA, IPHONE_UA, RecordingNotifier, auth_headers
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.service import authenticate
from qaforum.config import get_settings
from qaforum.db.models import User
from qaforum.errors import Forbidden
from qaforum.security.client_info import parse_client
from qaforum.security.login_history import recent_history


async def _signup(client: AsyncClient, email: str = "carol@example.com") -> dict:
    response = await client.post(
        "/user/signup", json={"name": "Carol", "email": email, "password": "secret123"}
    )
    assert response.status_code == 200
    return response.json()


async def _login(client: AsyncClient, ua: str, email: str = "alice@example.com", password: str = "secret123"):
    return await client.post(
        "/user/login", json={"email": email, "password": password}, headers={"User-Agent": ua}
    )


class TestSignup:
    async def test_returns_profile_and_token(self, client: AsyncClient):
        body = await _signup(client)
        assert body["data"]["email"] == "carol@example.com"
        assert body["data"]["joinedAt"]
        assert body["token"]

    async def test_email_normalised(self, client: AsyncClient):
        body = await _signup(client, email="Carol@Example.COM")
        assert body["data"]["email"] == "carol@example.com"

    async def test_duplicate_email_conflict(self, client: AsyncClient):
        await _signup(client)
        response = await client.post(
            "/user/signup", json={"name": "Carol", "email": "carol@example.com", "password": "secret123"}
        )
        assert response.status_code == 409
        assert response.json() == {"success": False, "message": "User already exist"}

    async def test_short_password(self, client: AsyncClient):
        response = await client.post(
            "/user/signup", json={"name": "Carol", "email": "c@example.com", "password": "abc"}
        )
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestLogin:
    async def test_unknown_user(self, client: AsyncClient):
        response = await _login(client, FIREFOX_UA, email="ghost@example.com")
        assert response.status_code == 404
        assert response.json()["message"] == "User does not exist"

    async def test_wrong_password_is_audited(self, client: AsyncClient, alice: User, db_session: AsyncSession):
        response = await _login(client, FIREFOX_UA, password="wrong-password")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid password"

        history = await recent_history(db_session, alice.id)
        assert [(h.status, h.failure_reason) for h in history] == [("failure", "Invalid password")]

    async def test_firefox_gets_token(self, client: AsyncClient, alice: User):
        response = await _login(client, FIREFOX_UA)
        assert response.status_code == 200
        body = response.json()
        assert body["token"]
        assert body["data"]["id"] == alice.id
        assert body["unusualLogin"] is False

    async def test_edge_gets_token_without_otp(self, client: AsyncClient, alice: User):
        response = await _login(client, EDGE_UA)
        assert response.status_code == 200
        assert response.json()["token"]

    async def test_chrome_requires_emailed_otp(self, client: AsyncClient, alice: User, notifier: RecordingNotifier):
        response = await _login(client, CHROME_UA)
        assert response.status_code == 200
        body = response.json()
        assert body["requiresOTP"] is True
        assert body["userId"] == alice.id
        assert "token" not in body

        code = notifier.last("login_otp")["code"]
        response = await client.post(
            "/user/verify-login-otp", json={"userId": alice.id, "otp": code}, headers={"User-Agent": CHROME_UA}
        )
        assert response.status_code == 200
        assert response.json()["token"]

    async def test_chrome_wrong_otp(self, client: AsyncClient, alice: User, notifier: RecordingNotifier):
        await _login(client, CHROME_UA)
        code = notifier.last("login_otp")["code"]
        wrong = "000000" if code != "000000" else "111111"
        response = await client.post("/user/verify-login-otp", json={"userId": alice.id, "otp": wrong})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid OTP"

    async def test_new_ip_flagged_as_unusual(self, client: AsyncClient, alice: User):
        await client.post(
            "/user/login",
            json={"email": "alice@example.com", "password": "secret123"},
            headers={"User-Agent": FIREFOX_UA, "X-Forwarded-For": "203.0.113.5"},
        )
        response = await client.post(
            "/user/login",
            json={"email": "alice@example.com", "password": "secret123"},
            headers={"User-Agent": FIREFOX_UA, "X-Forwarded-For": "198.51.100.7"},
        )
        assert response.json()["unusualLogin"] is True

    async def test_history_endpoint_newest_first(self, client: AsyncClient, alice: User):
        await _login(client, FIREFOX_UA)
        await _login(client, FIREFOX_UA, password="wrong-password")
        response = await client.get("/login-history", headers=auth_headers(alice))
        history = response.json()["history"]
        assert [(h["status"], h["failureReason"]) for h in history] == [
            ("failure", "Invalid password"),
            ("success", None),
        ]
        assert history[1]["browserName"] == "Firefox"
        assert history[1]["deviceType"] == "desktop"


class TestMobileWindow:
    """Handheld logins only between 10:00 and 13:00 IST."""

    @pytest.fixture(autouse=True)
    def _narrow_window(self, monkeypatch: pytest.MonkeyPatch) -> None:
        settings = get_settings()
        monkeypatch.setattr(settings, "mobile_login_window_start_minute", 600)
        monkeypatch.setattr(settings, "mobile_login_window_end_minute", 780)

    async def test_phone_inside_window(self, db_session: AsyncSession, alice: User):
        at_1130_ist = datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc)
        outcome = await authenticate(
            db_session, "alice@example.com", "secret123", parse_client(IPHONE_UA, "10.0.0.1"), now=at_1130_ist
        )
        assert outcome.token

    async def test_phone_outside_window_denied(self, db_session: AsyncSession, alice: User):
        at_1400_ist = datetime(2026, 3, 2, 8, 30, tzinfo=timezone.utc)
        with pytest.raises(Forbidden) as exc_info:
            await authenticate(
                db_session, "alice@example.com", "secret123", parse_client(IPHONE_UA, "10.0.0.1"), now=at_1400_ist
            )
        assert exc_info.value.extra == {"accessDenied": True}

        history = await recent_history(db_session, alice.id)
        assert history[0].status == "failure"
        assert history[0].device_type == "mobile"

    async def test_desktop_ignores_window(self, db_session: AsyncSession, alice: User):
        at_1400_ist = datetime(2026, 3, 2, 8, 30, tzinfo=timezone.utc)
        outcome = await authenticate(
            db_session, "alice@example.com", "secret123", parse_client(FIREFOX_UA, "10.0.0.1"), now=at_1400_ist
        )
        assert outcome.token


class TestProfile:
    async def test_update_own_profile(self, client: AsyncClient, alice: User):
        response = await client.patch(
            f"/user/update/{alice.id}",
            json={"name": "Alice B", "about": "Hi", "tags": ["python", " "]},
            headers=auth_headers(alice),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert (data["name"], data["about"], data["tags"]) == ("Alice B", "Hi", ["python"])

    async def test_cannot_update_someone_else(self, client: AsyncClient, alice: User, bob: User):
        response = await client.patch(f"/user/update/{bob.id}", json={"name": "X"}, headers=auth_headers(alice))
        assert response.status_code == 403

    async def test_requires_token(self, client: AsyncClient, alice: User):
        response = await client.patch(f"/user/update/{alice.id}", json={"name": "X"})
        assert response.status_code == 401
        assert response.json()["success"] is False

    async def test_list_users(self, client: AsyncClient, alice: User, bob: User):
        response = await client.get("/user/getallusers")
        assert [u["email"] for u in response.json()["data"]] == ["alice@example.com", "bob@example.com"]
