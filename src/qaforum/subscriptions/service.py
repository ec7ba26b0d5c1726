"""
Subscription business logic.

Lifecycle: a payment creates a ``pending`` row; a successful verification
moves it to ``active``; a failed one to ``cancelled``. Cancelling an active
subscription takes effect immediately for the question allowance even though
``end_date`` is kept. Rows whose ``end_date`` has passed are marked
``expired`` lazily when the active subscription is looked up.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select, update

from qaforum.clock import add_months, format_window, is_within_window
from qaforum.config import get_settings
from qaforum.db.models import SubscriptionPlan, User, UserSubscription
from qaforum.errors import Conflict, Forbidden, NotFound, ValidationError
from qaforum.notifications.service import get_notification_service
from qaforum.subscriptions.payments import PaymentOrder, get_payment_gateway
from qaforum.subscriptions.plans import FREE_PLAN_NAME
from qaforum.subscriptions.state import ACTIVE, CANCELLED, EXPIRED, PENDING, validate_transition

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


async def list_plans(db: AsyncSession) -> list[SubscriptionPlan]:
    result = await db.execute(
        select(SubscriptionPlan)
        .where(SubscriptionPlan.is_active.is_(True))
        .order_by(SubscriptionPlan.price.asc(), SubscriptionPlan.sort_order.asc())
    )
    return list(result.scalars().all())


async def get_plan(db: AsyncSession, plan_id: int) -> SubscriptionPlan | None:
    return await db.get(SubscriptionPlan, plan_id)


async def get_free_plan(db: AsyncSession) -> SubscriptionPlan | None:
    result = await db.execute(select(SubscriptionPlan).where(SubscriptionPlan.name == FREE_PLAN_NAME))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def expire_lapsed(db: AsyncSession, user_id: int, now: datetime) -> int:
    """Mark active rows past their end date as expired. Returns rows touched."""
    result = await db.execute(
        update(UserSubscription)
        .where(
            UserSubscription.user_id == user_id,
            UserSubscription.status == ACTIVE,
            UserSubscription.end_date <= now,
        )
        .values(status=EXPIRED, updated_at=now)
        .execution_options(synchronize_session="fetch")
    )
    if result.rowcount:
        logger.info("subscription_expired", user_id=user_id, count=result.rowcount)
    return result.rowcount or 0


async def get_active_subscription(
    db: AsyncSession,
    user_id: int,
    *,
    now: datetime | None = None,
) -> UserSubscription | None:
    """The user's active, unexpired subscription, if any."""
    now = now or datetime.now(timezone.utc)
    await expire_lapsed(db, user_id, now)
    result = await db.execute(
        select(UserSubscription)
        .where(
            UserSubscription.user_id == user_id,
            UserSubscription.status == ACTIVE,
            UserSubscription.end_date > now,
        )
        .order_by(UserSubscription.end_date.desc())
        .limit(1)
    )
    return result.unique().scalar_one_or_none()


async def get_user_subscription(db: AsyncSession, user_id: int, subscription_id: int) -> UserSubscription:
    result = await db.execute(
        select(UserSubscription).where(
            UserSubscription.id == subscription_id,
            UserSubscription.user_id == user_id,
        )
    )
    subscription = result.unique().scalar_one_or_none()
    if subscription is None:
        msg = "Subscription not found"
        raise NotFound(msg)
    return subscription


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


def payment_window_open(now: datetime) -> bool:
    settings = get_settings()
    return is_within_window(
        now,
        settings.local_utc_offset_minutes,
        settings.payment_window_start_minute,
        settings.payment_window_end_minute,
    )


async def create_payment(
    db: AsyncSession,
    user: User,
    plan_id: int,
    provider: str,
    *,
    now: datetime | None = None,
) -> tuple[UserSubscription, PaymentOrder]:
    """
    Start paying for ``plan_id`` and record a pending subscription.

    Older pending rows for the user are cancelled so only the new one remains.

    Raises:
        Forbidden: Outside the daily payment window.
        ValidationError: Unknown, inactive or free plan, or unknown provider.
        Conflict: An active subscription already exists.
        UpstreamFailure: The provider rejected the order.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    if not payment_window_open(now):
        window = format_window(settings.payment_window_start_minute, settings.payment_window_end_minute)
        msg = f"Payments are only allowed between {window} local time"
        raise Forbidden(msg, paymentWindow=window)

    plan = await get_plan(db, plan_id)
    if plan is None or not plan.is_active:
        msg = "Invalid or inactive subscription plan"
        raise ValidationError(msg)
    if plan.price <= 0:
        msg = "The Free plan does not require a payment"
        raise ValidationError(msg)

    if await get_active_subscription(db, user.id, now=now) is not None:
        msg = "You already have an active subscription"
        raise Conflict(msg)

    gateway = get_payment_gateway(provider)
    order = await gateway.create_order(
        plan.price,
        settings.subscription_currency,
        {"userId": str(user.id), "planId": str(plan.id), "planName": plan.name},
    )

    superseded = await db.execute(
        update(UserSubscription)
        .where(UserSubscription.user_id == user.id, UserSubscription.status == PENDING)
        .values(status=CANCELLED, payment_status="superseded", updated_at=now)
        .execution_options(synchronize_session="fetch")
    )
    if superseded.rowcount:
        logger.info("pending_subscriptions_superseded", user_id=user.id, count=superseded.rowcount)

    subscription = UserSubscription(
        user_id=user.id,
        plan=plan,
        status=PENDING,
        start_date=now,
        end_date=add_months(now, 1),
        payment_provider=provider,
        external_payment_id=order.external_id,
        amount=plan.price,
        currency=settings.subscription_currency,
        payment_status="pending",
        auto_renew=True,
        created_at=now,
        updated_at=now,
    )
    db.add(subscription)
    await db.flush()
    logger.info(
        "subscription_payment_created",
        user_id=user.id,
        subscription_id=subscription.id,
        plan=plan.name,
        provider=provider,
    )
    return subscription, order


async def verify_payment(
    db: AsyncSession,
    user: User,
    subscription_id: int,
    payment_id: str | None = None,
    reported_status: str | None = None,
    signature: str | None = None,
    *,
    now: datetime | None = None,
) -> UserSubscription:
    """
    Confirm the payment with the provider and activate the subscription.

    The status change is committed as one unit; the confirmation email goes
    out afterwards and a failed send is only logged.

    Raises:
        NotFound: No such subscription for this user.
        Conflict: Subscription is not pending (400).
        ValidationError: The provider reports the payment as not completed.
    """
    now = now or datetime.now(timezone.utc)
    subscription = await get_user_subscription(db, user.id, subscription_id)
    validate_transition(subscription.status, ACTIVE)

    gateway = get_payment_gateway(subscription.payment_provider)
    external_id = subscription.external_payment_id or payment_id or ""
    paid = await gateway.verify(external_id, reported_status, payment_id=payment_id, signature=signature)
    if not paid:
        subscription.status = CANCELLED
        subscription.payment_status = "failed"
        subscription.updated_at = now
        await db.commit()
        logger.warning("subscription_payment_failed", user_id=user.id, subscription_id=subscription.id)
        msg = "Payment verification failed"
        raise ValidationError(msg)

    try:
        subscription.status = ACTIVE
        subscription.payment_status = "completed"
        subscription.updated_at = now
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "subscription_activated",
        user_id=user.id,
        subscription_id=subscription.id,
        plan=subscription.plan.name,
    )
    delivered = await get_notification_service().notify(
        "email",
        user.email,
        {
            "template": "subscription_confirmed",
            "context": {
                "name": user.name,
                "plan_name": subscription.plan.name,
                "amount": subscription.amount,
                "currency": subscription.currency,
                "end_date": subscription.end_date.date().isoformat(),
                "max_questions_per_day": subscription.plan.max_questions_per_day,
            },
        },
    )
    if not delivered:
        logger.warning("subscription_email_failed", user_id=user.id, subscription_id=subscription.id)
    return subscription


async def cancel_subscription(
    db: AsyncSession,
    user: User,
    *,
    now: datetime | None = None,
) -> UserSubscription:
    """
    Cancel the active subscription and stop renewal.

    Raises:
        ValidationError: No active subscription.
    """
    now = now or datetime.now(timezone.utc)
    subscription = await get_active_subscription(db, user.id, now=now)
    if subscription is None:
        msg = "No active subscription found"
        raise ValidationError(msg)

    validate_transition(subscription.status, CANCELLED)
    subscription.status = CANCELLED
    subscription.auto_renew = False
    subscription.updated_at = now
    await db.flush()
    logger.info("subscription_cancelled", user_id=user.id, subscription_id=subscription.id)
    return subscription
