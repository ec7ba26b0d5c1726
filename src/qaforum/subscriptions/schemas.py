"""Request/response schemas for the /subscription endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from qaforum.schemas import CamelModel


class PlanResponse(CamelModel):
    id: int
    name: str
    price: int
    currency: str
    max_questions_per_day: int
    description: str | None = None
    features: list[str] = []
    is_active: bool = True


class PlanListResponse(CamelModel):
    success: bool = True
    plans: list[PlanResponse]


class SubscriptionResponse(CamelModel):
    id: int
    plan: PlanResponse
    status: str
    start_date: datetime
    end_date: datetime
    payment_provider: str
    external_payment_id: str | None = None
    amount: int
    currency: str
    payment_status: str
    auto_renew: bool


class UserSubscriptionResponse(CamelModel):
    success: bool = True
    subscription: SubscriptionResponse | None = None
    message: str | None = None


class CanPostQuestionResponse(CamelModel):
    success: bool = True
    can_post: bool
    current_count: int
    max_questions: int
    plan: str


class CreatePaymentRequest(CamelModel):
    plan_id: int
    payment_provider: Literal["stripe", "razorpay"]


class PaymentDetails(CamelModel):
    provider: str
    client_secret: str | None = None
    order_id: str | None = None
    amount: int
    currency: str
    subscription_id: int


class CreatePaymentResponse(CamelModel):
    success: bool = True
    message: str
    payment_details: PaymentDetails


class VerifyPaymentRequest(CamelModel):
    subscription_id: int
    payment_id: str | None = Field(None, max_length=128)
    payment_provider: Literal["stripe", "razorpay"] | None = None
    payment_status: str | None = Field(None, max_length=32)
    payment_signature: str | None = Field(None, max_length=256)


class VerifyPaymentResponse(CamelModel):
    success: bool = True
    message: str
    subscription: SubscriptionResponse


class CancelResponse(CamelModel):
    success: bool = True
    message: str
    subscription_end_date: datetime
