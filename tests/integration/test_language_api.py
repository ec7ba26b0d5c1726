"""Preferred language, changed only with a one-time code."""

from conftest import RecordingNotifier, auth_headers
from httpx import AsyncClient

from qaforum.db.models import User


class TestLanguage:
    async def test_defaults_to_english(self, client: AsyncClient, alice: User):
        body = (await client.get("/language", headers=auth_headers(alice))).json()
        assert body["language"] == "en"
        assert body["supportedLanguages"]["hi"] == "Hindi"

    async def test_change_by_email(self, client: AsyncClient, alice: User, notifier: RecordingNotifier):
        response = await client.post(
            "/language/request-change", json={"language": "fr", "method": "email"}, headers=auth_headers(alice)
        )
        assert response.json() == {"success": True, "message": "OTP sent to your email", "otpDelivered": True}
        context = notifier.last("language_otp")
        assert context["language"] == "French"

        response = await client.post(
            "/language/verify-change", json={"otp": context["code"]}, headers=auth_headers(alice)
        )
        assert response.json()["language"] == "fr"
        assert (await client.get("/language", headers=auth_headers(alice))).json()["language"] == "fr"

    async def test_change_by_sms(self, client: AsyncClient, bob: User, notifier: RecordingNotifier):
        response = await client.post(
            "/language/request-change", json={"language": "de", "method": "sms"}, headers=auth_headers(bob)
        )
        assert response.json()["message"] == "OTP sent to your phone"
        assert notifier.sent[-1][:2] == ("sms", "+911234567890")

    async def test_wrong_code_keeps_language(self, client: AsyncClient, alice: User):
        await client.post("/language/request-change", json={"language": "es"}, headers=auth_headers(alice))
        response = await client.post("/language/verify-change", json={"otp": "000000x"}, headers=auth_headers(alice))
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid OTP"
        assert (await client.get("/language", headers=auth_headers(alice))).json()["language"] == "en"

    async def test_unsupported_language(self, client: AsyncClient, alice: User):
        response = await client.post("/language/request-change", json={"language": "xx"}, headers=auth_headers(alice))
        assert response.status_code == 400
        assert response.json()["message"] == "Unsupported language: xx"

    async def test_sms_without_phone(self, client: AsyncClient, alice: User):
        response = await client.post(
            "/language/request-change", json={"language": "fr", "method": "sms"}, headers=auth_headers(alice)
        )
        assert response.status_code == 400

    async def test_requires_auth(self, client: AsyncClient):
        assert (await client.get("/language")).status_code == 401
