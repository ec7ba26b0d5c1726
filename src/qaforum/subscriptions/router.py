"""Subscription endpoints: catalog, current plan, question allowance, payment lifecycle."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.dependencies import get_current_user
from qaforum.database import get_session
from qaforum.db.models import DailyQuestionLimit, User
from qaforum.limits import counter
from qaforum.limits.policies import question_allowance
from qaforum.subscriptions import service
from qaforum.subscriptions.schemas import (
    CancelResponse,
    CanPostQuestionResponse,
    CreatePaymentRequest,
    CreatePaymentResponse,
    PaymentDetails,
    PlanListResponse,
    PlanResponse,
    SubscriptionResponse,
    UserSubscriptionResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)

router = APIRouter(prefix="/subscription", tags=["Subscriptions"])


@router.get("/plans", response_model=PlanListResponse)
async def get_plans(db: AsyncSession = Depends(get_session)) -> PlanListResponse:
    plans = await service.list_plans(db)
    return PlanListResponse(plans=[PlanResponse.model_validate(p) for p in plans])


@router.get("/user-subscription", response_model=UserSubscriptionResponse)
async def get_user_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserSubscriptionResponse:
    subscription = await service.get_active_subscription(db, user.id)
    await db.commit()
    if subscription is None:
        return UserSubscriptionResponse(message="No active subscription found")
    return UserSubscriptionResponse(subscription=SubscriptionResponse.model_validate(subscription))


@router.get("/can-post-question", response_model=CanPostQuestionResponse)
async def can_post_question(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CanPostQuestionResponse:
    plan_name, max_questions = await question_allowance(db, user.id)
    row = await counter.get_or_init(db, DailyQuestionLimit, user.id, max_questions)
    await db.commit()
    return CanPostQuestionResponse(
        can_post=counter.can_act(row),
        current_count=row.count,
        max_questions=row.max_allowed,
        plan=plan_name,
    )


@router.post("/create-payment", response_model=CreatePaymentResponse)
async def create_payment(
    body: CreatePaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CreatePaymentResponse:
    subscription, order = await service.create_payment(db, user, body.plan_id, body.payment_provider)
    await db.commit()
    return CreatePaymentResponse(
        message="Payment initiated successfully",
        payment_details=PaymentDetails(
            provider=order.provider,
            client_secret=order.client_secret,
            order_id=order.external_id,
            amount=subscription.amount,
            currency=subscription.currency,
            subscription_id=subscription.id,
        ),
    )


@router.post("/verify-payment", response_model=VerifyPaymentResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> VerifyPaymentResponse:
    subscription = await service.verify_payment(
        db,
        user,
        body.subscription_id,
        payment_id=body.payment_id,
        reported_status=body.payment_status,
        signature=body.payment_signature,
    )
    return VerifyPaymentResponse(
        message="Subscription activated successfully",
        subscription=SubscriptionResponse.model_validate(subscription),
    )


@router.post("/cancel", response_model=CancelResponse)
async def cancel_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CancelResponse:
    subscription = await service.cancel_subscription(db, user)
    await db.commit()
    return CancelResponse(
        message="Subscription cancelled. Renewal is off and the plan allowance no longer applies.",
        subscription_end_date=subscription.end_date,
    )
