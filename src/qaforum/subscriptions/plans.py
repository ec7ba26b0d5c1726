"""Subscription plan seed data: Free, Bronze, Silver and Gold."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.db.models import SubscriptionPlan

logger = logging.getLogger(__name__)

FREE_PLAN_NAME = "Free"

PLAN_SEED_DATA: list[dict] = [
    {
        "name": FREE_PLAN_NAME,
        "price": 0,
        "currency": "INR",
        "max_questions_per_day": 1,
        "description": "Free plan with limited question posting",
        "features": ["1 question per day", "Basic features"],
        "sort_order": 1,
    },
    {
        "name": "Bronze",
        "price": 100,
        "currency": "INR",
        "max_questions_per_day": 5,
        "description": "Bronze plan with 5 questions per day",
        "features": ["5 questions per day", "Priority support", "Advanced features"],
        "sort_order": 2,
    },
    {
        "name": "Silver",
        "price": 300,
        "currency": "INR",
        "max_questions_per_day": 10,
        "description": "Silver plan with 10 questions per day",
        "features": ["10 questions per day", "Priority support", "Advanced features", "Analytics"],
        "sort_order": 3,
    },
    {
        "name": "Gold",
        "price": 1000,
        "currency": "INR",
        "max_questions_per_day": 999,
        "description": "Gold plan with unlimited questions",
        "features": [
            "Unlimited questions",
            "Priority support",
            "All advanced features",
            "Analytics",
            "Custom branding",
        ],
        "sort_order": 4,
    },
]


async def seed_plans(db: AsyncSession) -> int:
    """Insert or refresh every catalog plan by name. Returns number of plans seeded."""
    existing = {p.name: p for p in (await db.execute(select(SubscriptionPlan))).scalars().all()}
    seeded = 0
    for plan_data in PLAN_SEED_DATA:
        plan = existing.get(plan_data["name"])
        if plan is None:
            db.add(SubscriptionPlan(is_active=True, **plan_data))
        else:
            for key, value in plan_data.items():
                setattr(plan, key, value)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d subscription plans", seeded)
    return seeded
