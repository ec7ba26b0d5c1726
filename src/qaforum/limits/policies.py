"""Where the daily maximums come from."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.subscriptions.plans import FREE_PLAN_NAME
from qaforum.subscriptions.service import get_active_subscription, get_free_plan
from qaforum.users.friends import count_accepted_friends

UNLIMITED = 999
DEFAULT_QUESTIONS_PER_DAY = 1


def post_limit_for_friends(friend_count: int) -> int:
    """Daily post allowance for a given number of accepted friends."""
    if friend_count <= 0:
        return 0
    if friend_count == 1:
        return 1
    if friend_count == 2:
        return 2
    if friend_count >= 10:
        return UNLIMITED
    return 1


async def post_limit(db: AsyncSession, user_id: int) -> tuple[int, int]:
    """Return (friend_count, max_posts) from the user's current friendships."""
    friend_count = await count_accepted_friends(db, user_id)
    return friend_count, post_limit_for_friends(friend_count)


async def question_allowance(db: AsyncSession, user_id: int, *, now: datetime | None = None) -> tuple[str, int]:
    """(plan name, questions per day) from the active plan, falling back to the Free plan."""
    subscription = await get_active_subscription(db, user_id, now=now)
    if subscription is not None:
        return subscription.plan.name, subscription.plan.max_questions_per_day
    free = await get_free_plan(db)
    if free is None:
        return FREE_PLAN_NAME, DEFAULT_QUESTIONS_PER_DAY
    return free.name, free.max_questions_per_day
