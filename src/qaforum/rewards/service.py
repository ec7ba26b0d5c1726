"""Points ledger: grants, deductions, refunds, transfers and the leaderboard.

Every balance change appends a ``PointsLedger`` row. ``grant``, ``credit`` and
``deduct`` only flush; the caller owns the transaction. ``transfer`` commits
(or rolls back) on its own because both sides must land together.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.config import get_settings
from qaforum.db.models import PointsLedger, Reward, User
from qaforum.errors import InsufficientFunds, NotFound, ValidationError

logger = structlog.get_logger()

HISTORY_LIMIT = 50
SEARCH_LIMIT = 10


async def get_account(db: AsyncSession, user_id: int) -> Reward | None:
    result = await db.execute(select(Reward).where(Reward.user_id == user_id))
    return result.scalar_one_or_none()


async def get_or_create_account(db: AsyncSession, user_id: int) -> Reward:
    """Get or create the points account for a user (all balances start at zero)."""
    reward = await get_account(db, user_id)
    if reward is None:
        reward = Reward(
            user_id=user_id,
            points=0,
            total_points_earned=0,
            total_points_spent=0,
            badges=[],
        )
        db.add(reward)
        await db.flush()
    return reward


def _record(
    db: AsyncSession,
    user_id: int,
    amount: int,
    kind: str,
    reason: str | None,
    counterparty_id: int | None = None,
) -> None:
    db.add(
        PointsLedger(
            user_id=user_id,
            amount=amount,
            kind=kind,
            reason=reason,
            counterparty_id=counterparty_id,
            created_at=datetime.now(timezone.utc),
        )
    )


def make_badge(name: str, description: str = "", icon: str = "", now: datetime | None = None) -> dict[str, Any]:
    """Build a badge entry as stored in ``Reward.badges``."""
    earned_at = now or datetime.now(timezone.utc)
    return {"name": name, "description": description, "icon": icon, "earnedAt": earned_at.isoformat()}


async def grant(
    db: AsyncSession,
    user_id: int,
    points: int | None,
    badge: dict[str, Any] | None = None,
    *,
    reason: str = "grant",
) -> Reward:
    """Add ``points`` to balance and lifetime earnings and optionally append a badge.

    Never fails on a missing account; one is created first. Zero or ``None``
    points leave the balance untouched.
    """
    reward = await get_or_create_account(db, user_id)
    if points:
        reward.points += points
        reward.total_points_earned += points
        _record(db, user_id, points, "earn", reason)
    if badge:
        # Reassign so the JSON column is flagged dirty.
        reward.badges = [*reward.badges, badge]
    await db.flush()
    logger.info("points_granted", user_id=user_id, points=points or 0, reason=reason, badge=bool(badge))
    return reward


async def credit(db: AsyncSession, user_id: int, points: int, *, reason: str) -> Reward:
    """Give points back without counting them as earnings (penalty refunds)."""
    reward = await get_or_create_account(db, user_id)
    reward.points += points
    _record(db, user_id, points, "refund", reason)
    await db.flush()
    logger.info("points_refunded", user_id=user_id, points=points, reason=reason)
    return reward


async def deduct(db: AsyncSession, user_id: int, points: int, *, reason: str = "deduct") -> bool:
    """Take ``points`` from the balance if it covers them.

    Returns False (and changes nothing) when the user has no account or the
    balance is short.
    """
    reward = await get_account(db, user_id)
    if reward is None or reward.points < points:
        logger.info("points_deduct_skipped", user_id=user_id, points=points, reason=reason)
        return False
    reward.points -= points
    reward.total_points_spent += points
    _record(db, user_id, -points, "spend", reason)
    await db.flush()
    logger.info("points_deducted", user_id=user_id, points=points, reason=reason)
    return True


async def transfer(db: AsyncSession, sender_id: int, recipient_id: int, points: int) -> Reward:
    """Move points between two accounts as one unit of work.

    Returns the sender's updated account.

    Raises:
        ValidationError: Self-transfer or non-positive amount.
        NotFound: Recipient does not exist.
        InsufficientFunds: Sender has no account, is below the transfer
            floor, or cannot cover ``points``.
    """
    settings = get_settings()
    if sender_id == recipient_id:
        msg = "You cannot transfer points to yourself"
        raise ValidationError(msg)
    if points <= 0:
        msg = "Points to transfer must be positive"
        raise ValidationError(msg)

    try:
        recipient = await db.get(User, recipient_id)
        if recipient is None:
            msg = "Recipient not found"
            raise NotFound(msg)

        sender_reward = await get_account(db, sender_id)
        if sender_reward is None or sender_reward.points < settings.transfer_min_balance:
            msg = f"You need at least {settings.transfer_min_balance} points to transfer"
            raise InsufficientFunds(msg)
        if sender_reward.points < points:
            msg = "Insufficient points to transfer"
            raise InsufficientFunds(msg)

        recipient_reward = await get_or_create_account(db, recipient_id)
        recipient_reward.points += points
        recipient_reward.total_points_earned += points
        _record(db, recipient_id, points, "transfer_in", "transfer", counterparty_id=sender_id)

        sender_reward.points -= points
        sender_reward.total_points_spent += points
        _record(db, sender_id, -points, "transfer_out", "transfer", counterparty_id=recipient_id)

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("points_transferred", sender_id=sender_id, recipient_id=recipient_id, points=points)
    return sender_reward


async def leaderboard(db: AsyncSession, limit: int | None = None) -> list[Reward]:
    """Top accounts by lifetime earnings."""
    limit = limit or get_settings().leaderboard_size
    result = await db.execute(
        select(Reward)
        .order_by(Reward.total_points_earned.desc(), Reward.created_at.asc(), Reward.user_id.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def history(db: AsyncSession, user_id: int, limit: int = HISTORY_LIMIT) -> list[PointsLedger]:
    """Latest ledger entries for a user, newest first."""
    result = await db.execute(
        select(PointsLedger)
        .where(PointsLedger.user_id == user_id)
        .order_by(PointsLedger.created_at.desc(), PointsLedger.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def search_users(db: AsyncSession, user_id: int, query: str, limit: int = SEARCH_LIMIT) -> list[User]:
    """Find transfer recipients by name or email, excluding the caller."""
    pattern = f"%{query.strip().lower()}%"
    result = await db.execute(
        select(User)
        .where(
            User.id != user_id,
            or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)),
        )
        .order_by(User.name.asc())
        .limit(limit)
    )
    return list(result.scalars().all())
