"""
Password reset by email or phone.

Flow:
1. ``request_reset``: one request per user per local day; a random token is
   stored as a SHA-256 digest and the raw value is sent to the user.
2. ``verify_token``: lets the client check a token before using it.
3. ``reset_password``: single use; generates a new password, stores its
   hash, and sends the plain password over the same channel.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from qaforum.auth.password import generate_password, hash_password
from qaforum.auth.service import get_user_by_email, get_user_by_phone
from qaforum.clock import local_day_bounds
from qaforum.config import get_settings
from qaforum.db.models import PasswordReset, User
from qaforum.errors import NotFound, RateLimited, ValidationError
from qaforum.notifications.service import get_notification_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

INVALID_TOKEN = "Invalid or expired reset token"


@dataclass
class ResetRequestResult:
    reset_type: str
    delivered: bool


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _channel(reset_type: str) -> str:
    return "email" if reset_type == "email" else "sms"


async def _count_today(db: AsyncSession, user_id: int, now: datetime) -> int:
    start, end = local_day_bounds(now)
    result = await db.execute(
        select(func.count())
        .select_from(PasswordReset)
        .where(
            PasswordReset.user_id == user_id,
            PasswordReset.created_at >= start,
            PasswordReset.created_at < end,
        )
    )
    return int(result.scalar_one())


async def request_reset(
    db: AsyncSession,
    email: str | None = None,
    phone: str | None = None,
    *,
    now: datetime | None = None,
) -> ResetRequestResult:
    """
    Start a reset for the account owning ``email`` (preferred) or ``phone``.

    The row is committed before the message is sent; a failed send is logged
    and reported through ``delivered``.

    Raises:
        ValidationError: Neither email nor phone supplied.
        NotFound: No matching account.
        RateLimited: Daily request limit already used (``warning``).
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    user: User | None
    if email:
        user = await get_user_by_email(db, email)
        reset_type, reset_value = "email", email.lower().strip()
    elif phone:
        user = await get_user_by_phone(db, phone)
        reset_type, reset_value = "phone", phone.strip()
    else:
        msg = "Please provide either email or phone number"
        raise ValidationError(msg)

    if user is None:
        msg = "User not found with the provided email/phone"
        raise NotFound(msg)

    if await _count_today(db, user.id, now) >= settings.password_reset_daily_limit:
        logger.warning("password_reset_daily_limit", user_id=user.id)
        msg = (
            "Warning: You can only request password reset once per day. "
            "You have already used your daily request. Please try again tomorrow."
        )
        raise RateLimited(msg, warning=True)

    raw_token = secrets.token_hex(32)
    db.add(
        PasswordReset(
            user_id=user.id,
            token_hash=hash_token(raw_token),
            reset_type=reset_type,
            reset_value=reset_value,
            used=False,
            attempts=0,
            expires_at=now + timedelta(minutes=settings.password_reset_token_ttl_minutes),
            created_at=now,
        )
    )
    await db.commit()
    logger.info("password_reset_requested", user_id=user.id, reset_type=reset_type)

    recipient = user.email if reset_type == "email" else (user.phone or reset_value)
    reset_url = f"{settings.frontend_base_url}/reset-password/{raw_token}"
    delivered = await get_notification_service().notify(
        _channel(reset_type),
        recipient,
        {
            "template": "password_reset_request",
            "context": {
                "name": user.name,
                "reset_token": raw_token,
                "reset_url": reset_url,
                "ttl_minutes": settings.password_reset_token_ttl_minutes,
            },
        },
    )
    if not delivered:
        logger.warning("password_reset_delivery_failed", user_id=user.id, reset_type=reset_type)
    return ResetRequestResult(reset_type=reset_type, delivered=delivered)


async def _find_live_token(db: AsyncSession, raw_token: str, now: datetime) -> PasswordReset:
    result = await db.execute(select(PasswordReset).where(PasswordReset.token_hash == hash_token(raw_token)))
    reset = result.scalar_one_or_none()
    if reset is None or reset.used or now >= reset.expires_at:
        raise ValidationError(INVALID_TOKEN)
    return reset


async def verify_token(db: AsyncSession, raw_token: str, *, now: datetime | None = None) -> PasswordReset:
    """Return the live reset row for ``raw_token`` or raise ValidationError."""
    return await _find_live_token(db, raw_token, now or datetime.now(timezone.utc))


async def reset_password(
    db: AsyncSession,
    raw_token: str,
    *,
    now: datetime | None = None,
) -> tuple[User, bool]:
    """
    Consume the token and set a freshly generated password.

    Returns the user and whether the new password was delivered.

    Raises:
        ValidationError: Token unknown, used or expired.
        RateLimited: Too many attempts against this token.
        NotFound: The account was removed.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    reset = await _find_live_token(db, raw_token, now)
    if reset.attempts >= settings.password_reset_max_attempts:
        msg = "Maximum attempts exceeded for this reset token"
        raise RateLimited(msg)
    reset.attempts += 1

    user = await db.get(User, reset.user_id)
    if user is None:
        await db.commit()
        msg = "User not found"
        raise NotFound(msg)

    new_password = generate_password()
    user.password_hash = hash_password(new_password)
    reset.used = True
    reset.used_at = now
    await db.commit()
    logger.info("password_reset_completed", user_id=user.id, reset_type=reset.reset_type)

    recipient = user.email if reset.reset_type == "email" else (user.phone or reset.reset_value)
    delivered = await get_notification_service().notify(
        _channel(reset.reset_type),
        recipient,
        {"template": "new_password", "context": {"name": user.name, "password": new_password}},
    )
    if not delivered:
        logger.warning("new_password_delivery_failed", user_id=user.id)
    return user, delivered
