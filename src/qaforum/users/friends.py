"""Friendship business logic.

Rules:
- One friendship row per pair of users, whichever side asked first
- Only the recipient can accept
- Only ``accepted`` rows count towards the posting allowance
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.db.models import Friendship, User
from qaforum.errors import Conflict, Forbidden, NotFound, ValidationError

logger = logging.getLogger(__name__)


def _involves(user_id: int):  # type: ignore[no-untyped-def]
    return or_(Friendship.requester_id == user_id, Friendship.recipient_id == user_id)


async def count_accepted_friends(db: AsyncSession, user_id: int) -> int:
    """Number of accepted friendships the user is part of, in either direction."""
    result = await db.execute(
        select(func.count()).select_from(Friendship).where(_involves(user_id), Friendship.status == "accepted")
    )
    return int(result.scalar_one())


async def get_friendship_between(db: AsyncSession, user_a: int, user_b: int) -> Friendship | None:
    result = await db.execute(
        select(Friendship).where(
            or_(
                and_(Friendship.requester_id == user_a, Friendship.recipient_id == user_b),
                and_(Friendship.requester_id == user_b, Friendship.recipient_id == user_a),
            )
        )
    )
    return result.scalar_one_or_none()


async def send_request(db: AsyncSession, requester_id: int, recipient_id: int) -> Friendship:
    """Create a pending friend request."""
    if requester_id == recipient_id:
        msg = "You cannot send a friend request to yourself"
        raise ValidationError(msg)

    if await db.get(User, recipient_id) is None:
        msg = "User not found"
        raise NotFound(msg)

    if await get_friendship_between(db, requester_id, recipient_id) is not None:
        msg = "A friend request already exists between these users"
        raise Conflict(msg)

    friendship = Friendship(
        requester_id=requester_id,
        recipient_id=recipient_id,
        status="pending",
        created_at=datetime.now(timezone.utc),
    )
    db.add(friendship)
    await db.flush()
    logger.info("Friend request %d: user %d -> user %d", friendship.id, requester_id, recipient_id)
    return friendship


async def accept_request(db: AsyncSession, user_id: int, friendship_id: int) -> Friendship:
    """Accept a pending request addressed to ``user_id``."""
    friendship = await db.get(Friendship, friendship_id)
    if friendship is None:
        msg = "Friend request not found"
        raise NotFound(msg)
    if friendship.recipient_id != user_id:
        msg = "Only the recipient can accept this request"
        raise Forbidden(msg)
    if friendship.status == "accepted":
        msg = "Friend request already accepted"
        raise Conflict(msg)

    friendship.status = "accepted"
    friendship.responded_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("Friend request %d accepted by user %d", friendship_id, user_id)
    return friendship


async def list_friendships(db: AsyncSession, user_id: int) -> list[tuple[Friendship, User]]:
    """All friendships of the user with the other party, newest first."""
    result = await db.execute(
        select(Friendship).where(_involves(user_id)).order_by(Friendship.created_at.desc(), Friendship.id.desc())
    )
    friendships = list(result.scalars().all())
    other_ids = {f.recipient_id if f.requester_id == user_id else f.requester_id for f in friendships}
    if not other_ids:
        return []
    users_result = await db.execute(select(User).where(User.id.in_(other_ids)))
    users = {u.id: u for u in users_result.scalars().all()}
    return [
        (f, users[f.recipient_id if f.requester_id == user_id else f.requester_id])
        for f in friendships
    ]
