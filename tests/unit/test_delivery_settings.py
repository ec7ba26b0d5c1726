"""Live notification and payment settings, and how delivery failures surface."""

import hashlib
import hmac

import pytest

from qaforum.config import Settings, get_settings
from qaforum.main import create_app, lifespan
from qaforum.notifications.service import (
    LogEmailProvider,
    LogSmsProvider,
    NotificationService,
    init_notification_service,
    validate_notification_settings,
)
from qaforum.subscriptions.payments import RazorpayGateway, validate_payment_settings


def _live_notifications(**overrides) -> Settings:
    values = {
        "notification_backend": "live",
        "email_provider": "smtp",
        "smtp_host": "smtp.example.com",
        "twilio_account_sid": "AC123",
        "twilio_auth_token": "token",
        "twilio_from_number": "+15550000000",
    }
    values.update(overrides)
    return get_settings().model_copy(update=values)


def _live_payments(**overrides) -> Settings:
    values = {
        "payment_backend": "live",
        "stripe_secret_key": "sk_live_x",
        "razorpay_key_id": "rzp_live_x",
        "razorpay_key_secret": "secret",
    }
    values.update(overrides)
    return get_settings().model_copy(update=values)


class TestNotificationSettings:
    def test_log_backend_needs_nothing(self):
        validate_notification_settings(get_settings().model_copy(update={"smtp_host": ""}))

    def test_complete_live_setup(self):
        validate_notification_settings(_live_notifications())
        validate_notification_settings(_live_notifications(email_provider="resend", resend_api_key="re_x"))

    def test_unknown_email_provider(self):
        with pytest.raises(ValueError, match="unsupported email_provider 'sendgrid'"):
            validate_notification_settings(_live_notifications(email_provider="sendgrid"))

    def test_missing_credentials_all_listed(self):
        settings = _live_notifications(email_provider="resend", twilio_auth_token="")
        with pytest.raises(ValueError) as exc_info:
            validate_notification_settings(settings)
        assert "resend_api_key" in str(exc_info.value)
        assert "twilio_auth_token" in str(exc_info.value)

    def test_smtp_host_required(self):
        with pytest.raises(ValueError, match="smtp_host"):
            validate_notification_settings(_live_notifications(smtp_host=""))


class TestPaymentSettings:
    def test_sandbox_needs_nothing(self):
        validate_payment_settings(get_settings())

    def test_complete_live_setup(self):
        validate_payment_settings(_live_payments())

    def test_missing_keys(self):
        with pytest.raises(ValueError, match="razorpay_key_secret"):
            validate_payment_settings(_live_payments(razorpay_key_secret=""))


class TestNotify:
    async def test_unknown_template_is_undelivered(self):
        service = NotificationService(LogEmailProvider(), LogSmsProvider())
        assert await service.notify("email", "a@example.com", {"template": "nope"}) is False

    async def test_unknown_channel_is_undelivered(self):
        service = NotificationService(LogEmailProvider(), LogSmsProvider())
        payload = {"template": "login_otp", "context": {"name": "A", "code": "123456", "ttl_minutes": 5}}
        assert await service.notify("pigeon", "a@example.com", payload) is False  # type: ignore[arg-type]

    async def test_provider_that_cannot_be_built(self, monkeypatch: pytest.MonkeyPatch):
        settings = get_settings()
        monkeypatch.setattr(settings, "notification_backend", "live")
        monkeypatch.setattr(settings, "email_provider", "sendgrid")
        service = NotificationService()
        payload = {"template": "login_otp", "context": {"name": "A", "code": "123456", "ttl_minutes": 5}}
        assert await service.notify("email", "a@example.com", payload) is False


class TestStartup:
    def test_init_builds_log_providers(self):
        service = init_notification_service()
        assert isinstance(service.email_provider, LogEmailProvider)
        assert isinstance(service.sms_provider, LogSmsProvider)

    async def test_bad_notification_settings_abort_startup(self, monkeypatch: pytest.MonkeyPatch):
        settings = get_settings()
        monkeypatch.setattr(settings, "notification_backend", "live")
        monkeypatch.setattr(settings, "email_provider", "sendgrid")
        with pytest.raises(ValueError, match="Invalid notification settings"):
            async with lifespan(create_app()):
                pass

    async def test_missing_payment_keys_abort_startup(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(get_settings(), "payment_backend", "live")
        with pytest.raises(ValueError, match="stripe_secret_key"):
            async with lifespan(create_app()):
                pass


class TestRazorpaySignature:
    gateway = RazorpayGateway("rzp_test", "shh")

    def _sign(self, order_id: str, payment_id: str) -> str:
        return hmac.new(b"shh", f"{order_id}|{payment_id}".encode(), hashlib.sha256).hexdigest()

    async def test_valid_signature(self):
        signature = self._sign("order_1", "pay_1")
        assert await self.gateway.verify("order_1", payment_id="pay_1", signature=signature) is True

    async def test_signature_for_another_order(self):
        signature = self._sign("order_2", "pay_1")
        assert await self.gateway.verify("order_1", payment_id="pay_1", signature=signature) is False

    async def test_client_status_alone_is_not_enough(self):
        assert await self.gateway.verify("order_1", "paid") is False
