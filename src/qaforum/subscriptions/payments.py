"""
Payment gateway abstraction.

``stripe`` creates a PaymentIntent and is verified by reading its status back
from the API. ``razorpay`` creates an Order and is verified by checking the
checkout signature, an HMAC-SHA256 of ``order_id|payment_id`` keyed with the
account secret. With ``payment_backend=sandbox`` both
providers are served by an in-process gateway that always succeeds unless the
client reports a failure.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
import structlog

from qaforum.config import Settings, get_settings
from qaforum.errors import UpstreamFailure, ValidationError

logger = structlog.get_logger()

PROVIDERS = ("stripe", "razorpay")


@dataclass(frozen=True)
class PaymentOrder:
    provider: str
    external_id: str
    client_secret: str | None = None


class PaymentGateway(ABC):
    """Creates and verifies payments for one provider."""

    name: str

    @abstractmethod
    async def create_order(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentOrder:
        """Create the external payment. ``amount`` is in whole currency units."""
        ...

    @abstractmethod
    async def verify(
        self,
        external_id: str,
        reported_status: str | None = None,
        *,
        payment_id: str | None = None,
        signature: str | None = None,
    ) -> bool:
        """True when the external payment has completed."""
        ...


class StripeGateway(PaymentGateway):
    name = "stripe"
    base_url = "https://api.stripe.com/v1"

    def __init__(self, secret_key: str, timeout: float = 15.0) -> None:
        self.secret_key = secret_key
        self.timeout = timeout

    async def create_order(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentOrder:
        data = {"amount": str(amount * 100), "currency": currency.lower()}
        for key, value in metadata.items():
            data[f"metadata[{key}]"] = value
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}/payment_intents", auth=(self.secret_key, ""), data=data)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.exception("payment_create_failed", provider=self.name)
            msg = "Error creating subscription payment"
            raise UpstreamFailure(msg) from e
        return PaymentOrder(provider=self.name, external_id=body["id"], client_secret=body.get("client_secret"))

    async def verify(
        self,
        external_id: str,
        reported_status: str | None = None,
        *,
        payment_id: str | None = None,
        signature: str | None = None,
    ) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}/payment_intents/{external_id}", auth=(self.secret_key, "")
                )
                response.raise_for_status()
                return response.json().get("status") == "succeeded"
        except httpx.HTTPError as e:
            logger.exception("payment_verify_failed", provider=self.name, external_id=external_id)
            msg = "Error verifying subscription payment"
            raise UpstreamFailure(msg) from e


class RazorpayGateway(PaymentGateway):
    name = "razorpay"
    base_url = "https://api.razorpay.com/v1"

    def __init__(self, key_id: str, key_secret: str, timeout: float = 15.0) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout

    async def create_order(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentOrder:
        payload = {
            "amount": amount * 100,
            "currency": currency.upper(),
            "receipt": f"sub_{metadata.get('userId', '')}_{int(time.time() * 1000)}",
            "notes": metadata,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/orders", auth=(self.key_id, self.key_secret), json=payload
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.exception("payment_create_failed", provider=self.name)
            msg = "Error creating subscription payment"
            raise UpstreamFailure(msg) from e
        return PaymentOrder(provider=self.name, external_id=body["id"])

    async def verify(
        self,
        external_id: str,
        reported_status: str | None = None,
        *,
        payment_id: str | None = None,
        signature: str | None = None,
    ) -> bool:
        if not (payment_id and signature):
            logger.warning("payment_signature_missing", provider=self.name, external_id=external_id)
            return False
        expected = hmac.new(
            self.key_secret.encode(), f"{external_id}|{payment_id}".encode(), hashlib.sha256
        ).hexdigest()
        return hmac.compare_digest(expected, signature)


class SandboxGateway(PaymentGateway):
    """In-process gateway for development and tests."""

    def __init__(self, name: str = "sandbox") -> None:
        self.name = name

    async def create_order(self, amount: int, currency: str, metadata: dict[str, str]) -> PaymentOrder:
        external_id = f"{self.name}_{secrets.token_hex(8)}"
        logger.info("sandbox_payment_created", provider=self.name, amount=amount, currency=currency)
        return PaymentOrder(provider=self.name, external_id=external_id, client_secret=f"{external_id}_secret")

    async def verify(
        self,
        external_id: str,
        reported_status: str | None = None,
        *,
        payment_id: str | None = None,
        signature: str | None = None,
    ) -> bool:
        return reported_status not in ("failed", "cancelled")


def validate_payment_settings(settings: Settings) -> None:
    """
    Reject live payment settings that are missing provider credentials.

    Raises:
        ValueError: Listing every missing or unknown setting.
    """
    if settings.payment_backend == "sandbox":
        return
    problems: list[str] = []
    if settings.payment_backend != "live":
        problems.append(f"unknown payment_backend {settings.payment_backend!r}")
    for field in ("stripe_secret_key", "razorpay_key_id", "razorpay_key_secret"):
        if not getattr(settings, field):
            problems.append(f"{field} is required for live payments")
    if problems:
        msg = "Invalid payment settings: " + "; ".join(problems)
        raise ValueError(msg)


def _create_gateway(provider: str) -> PaymentGateway:
    settings = get_settings()
    if settings.payment_backend == "sandbox":
        return SandboxGateway(provider)
    validate_payment_settings(settings)
    if provider == "stripe":
        return StripeGateway(settings.stripe_secret_key, timeout=settings.payment_timeout_seconds)
    if provider == "razorpay":
        return RazorpayGateway(
            settings.razorpay_key_id, settings.razorpay_key_secret, timeout=settings.payment_timeout_seconds
        )
    msg = "Invalid payment provider"
    raise ValidationError(msg)


# Module-level registry, one gateway per provider name
_gateways: dict[str, PaymentGateway] = {}


def get_payment_gateway(provider: str) -> PaymentGateway:
    """Get or create the gateway for ``provider``."""
    if provider not in PROVIDERS:
        msg = "Invalid payment provider"
        raise ValidationError(msg)
    if provider not in _gateways:
        _gateways[provider] = _create_gateway(provider)
    return _gateways[provider]


def set_payment_gateway(provider: str, gateway: PaymentGateway) -> None:
    """Install a specific gateway instance (used by tests)."""
    _gateways[provider] = gateway


def reset_payment_gateways() -> None:
    """Forget every gateway instance (for testing)."""
    _gateways.clear()
