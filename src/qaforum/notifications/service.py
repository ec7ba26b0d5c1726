"""
Notification service with provider abstraction.

Email goes out over SMTP or the Resend API, SMS over the Twilio REST API.
With ``notification_backend=log`` both channels only write a log line, which
is what development and the test-suite use.

Callers use ``notify(channel, recipient, payload)`` and get back ``True`` when
the message was handed to the provider. Delivery failures are logged and
reported as ``False``; they never raise.
"""

from __future__ import annotations

import ssl
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Literal

import aiosmtplib
import httpx
import structlog

from qaforum.config import Settings, get_settings
from qaforum.notifications.templates import (
    language_otp,
    login_otp,
    new_password,
    password_reset_request,
    subscription_confirmed,
)

logger = structlog.get_logger()

Channel = Literal["email", "sms"]

_TEMPLATE_REGISTRY: dict[str, Any] = {
    "login_otp": login_otp,
    "language_otp": language_otp,
    "new_password": new_password,
    "password_reset_request": password_reset_request,
    "subscription_confirmed": subscription_confirmed,
}


# ---------------------------------------------------------------------------
# Email providers
# ---------------------------------------------------------------------------


class BaseEmailProvider(ABC):
    """Abstract base class for email delivery providers."""

    @abstractmethod
    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        """Send an email. Returns True on success."""
        ...


class SMTPProvider(BaseEmailProvider):
    """Send emails via SMTP using aiosmtplib."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_address = from_address
        self.from_name = from_name
        self.use_tls = use_tls
        self.timeout = timeout

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        msg = MIMEMultipart("alternative")
        msg["From"] = f"{self.from_name} <{self.from_address}>"
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            tls_context = ssl.create_default_context() if self.use_tls else None
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                start_tls=self.use_tls,
                tls_context=tls_context,
                timeout=self.timeout,
            )
            logger.info("email_sent", to=to_email, subject=subject, provider="smtp")
            return True
        except Exception:
            logger.exception("email_send_failed", to=to_email, provider="smtp")
            return False


class ResendProvider(BaseEmailProvider):
    """Send emails via Resend API."""

    def __init__(self, api_key: str, from_address: str, from_name: str, timeout: float = 10.0) -> None:
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name
        self.timeout = timeout

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    "https://api.resend.com/emails",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": f"{self.from_name} <{self.from_address}>",
                        "to": [to_email],
                        "subject": subject,
                        "html": html_body,
                        "text": text_body,
                    },
                )
                response.raise_for_status()
            logger.info("email_sent", to=to_email, subject=subject, provider="resend")
            return True
        except Exception:
            logger.exception("email_send_failed", to=to_email, provider="resend")
            return False


class LogEmailProvider(BaseEmailProvider):
    """Development provider: logs the message instead of sending it."""

    async def send(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        logger.info("email_logged", to=to_email, subject=subject, body=text_body)
        return True


# ---------------------------------------------------------------------------
# SMS providers
# ---------------------------------------------------------------------------


class BaseSmsProvider(ABC):
    """Abstract base class for SMS delivery providers."""

    @abstractmethod
    async def send(self, to_number: str, body: str) -> bool:
        """Send a text message. Returns True on success."""
        ...


class TwilioSmsProvider(BaseSmsProvider):
    """Send SMS via the Twilio Messages REST API."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str, timeout: float = 10.0) -> None:
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.timeout = timeout

    async def send(self, to_number: str, body: str) -> bool:
        url = f"https://api.twilio.com/2010-04-01/Accounts/{self.account_sid}/Messages.json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    auth=(self.account_sid, self.auth_token),
                    data={"From": self.from_number, "To": to_number, "Body": body},
                )
                response.raise_for_status()
            logger.info("sms_sent", to=to_number, provider="twilio")
            return True
        except Exception:
            logger.exception("sms_send_failed", to=to_number, provider="twilio")
            return False


class LogSmsProvider(BaseSmsProvider):
    """Development provider: logs the message instead of sending it."""

    async def send(self, to_number: str, body: str) -> bool:
        logger.info("sms_logged", to=to_number, body=body)
        return True


EMAIL_PROVIDERS = ("smtp", "resend")


def validate_notification_settings(settings: Settings) -> None:
    """
    Reject a live notification setup that cannot deliver anything.

    Raises:
        ValueError: Listing every missing or unknown setting.
    """
    if settings.notification_backend == "log":
        return
    problems: list[str] = []
    if settings.notification_backend != "live":
        problems.append(f"unknown notification_backend {settings.notification_backend!r}")

    provider_name = settings.email_provider.lower()
    if provider_name not in EMAIL_PROVIDERS:
        problems.append(f"unsupported email_provider {settings.email_provider!r}")
    elif provider_name == "smtp" and not settings.smtp_host:
        problems.append("smtp_host is required for the smtp email provider")
    elif provider_name == "resend" and not settings.resend_api_key:
        problems.append("resend_api_key is required for the resend email provider")

    for field in ("twilio_account_sid", "twilio_auth_token", "twilio_from_number"):
        if not getattr(settings, field):
            problems.append(f"{field} is required for sms delivery")

    if problems:
        msg = "Invalid notification settings: " + "; ".join(problems)
        raise ValueError(msg)


def _create_email_provider() -> BaseEmailProvider:
    settings = get_settings()
    if settings.notification_backend == "log":
        return LogEmailProvider()

    provider_name = settings.email_provider.lower()
    if provider_name == "smtp":
        return SMTPProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            use_tls=settings.smtp_use_tls,
            timeout=settings.notification_timeout_seconds,
        )
    if provider_name == "resend":
        return ResendProvider(
            api_key=settings.resend_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            timeout=settings.notification_timeout_seconds,
        )
    msg = f"Unsupported email provider: {provider_name}"
    raise ValueError(msg)


def _create_sms_provider() -> BaseSmsProvider:
    settings = get_settings()
    if settings.notification_backend == "log":
        return LogSmsProvider()
    return TwilioSmsProvider(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_from_number,
        timeout=settings.notification_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


def render(template_name: str, context: dict[str, Any]) -> tuple[str, str, str]:
    """Render a registered template to (subject, html_body, text_body)."""
    template_func = _TEMPLATE_REGISTRY.get(template_name)
    if template_func is None:
        msg = f"Unknown template: {template_name}"
        raise ValueError(msg)
    return template_func(**context)


class NotificationService:
    """Routes rendered templates to the email or SMS provider."""

    def __init__(
        self,
        email_provider: BaseEmailProvider | None = None,
        sms_provider: BaseSmsProvider | None = None,
    ) -> None:
        self._email_provider = email_provider
        self._sms_provider = sms_provider

    @property
    def email_provider(self) -> BaseEmailProvider:
        if self._email_provider is None:
            self._email_provider = _create_email_provider()
        return self._email_provider

    @property
    def sms_provider(self) -> BaseSmsProvider:
        if self._sms_provider is None:
            self._sms_provider = _create_sms_provider()
        return self._sms_provider

    async def notify(self, channel: Channel, recipient: str, payload: dict[str, Any]) -> bool:
        """
        Render ``payload["template"]`` with ``payload["context"]`` and send it.

        Unknown templates or channels and providers that cannot be built are
        logged and reported as ``False`` like any other delivery failure.
        """
        template = payload.get("template")
        try:
            subject, html_body, text_body = render(template, payload.get("context", {}))
            if channel == "email":
                return await self.email_provider.send(recipient, subject, html_body, text_body)
            if channel == "sms":
                return await self.sms_provider.send(recipient, text_body)
            msg = f"Unknown notification channel: {channel}"
            raise ValueError(msg)
        except Exception:
            logger.exception("notification_failed", channel=channel, template=template)
            return False


# Module-level singleton
_notification_service: NotificationService | None = None


def init_notification_service() -> NotificationService:
    """Validate delivery settings and install a service with its providers built.

    Called from the application lifespan; a ValueError aborts startup.
    """
    global _notification_service  # noqa: PLW0603
    validate_notification_settings(get_settings())
    _notification_service = NotificationService(_create_email_provider(), _create_sms_provider())
    return _notification_service


def get_notification_service() -> NotificationService:
    """Get or create the notification service singleton."""
    global _notification_service  # noqa: PLW0603
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service


def set_notification_service(service: NotificationService) -> None:
    """Install a specific service instance (used by tests)."""
    global _notification_service  # noqa: PLW0603
    _notification_service = service


def reset_notification_service() -> None:
    """Reset the notification service singleton (for testing)."""
    global _notification_service  # noqa: PLW0603
    _notification_service = None
