"""
Authentication business logic.

Handles signup, the login decision tree, login OTP completion and profile
updates. Every login attempt, successful or not, is written to the login
history before the outcome is returned or raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from qaforum.auth.jwt import create_access_token
from qaforum.auth.password import (
    PasswordStrengthError,
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from qaforum.clock import format_window, is_within_window
from qaforum.config import get_settings
from qaforum.db.models import User
from qaforum.errors import (
    Conflict,
    Forbidden,
    InvalidCredentials,
    NotFound,
    RateLimited,
    ValidationError,
)
from qaforum.notifications.service import get_notification_service
from qaforum.security import login_history, otp
from qaforum.security.client_info import ClientInfo

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass
class LoginOutcome:
    """Result of a login step that did not raise."""

    user: User
    token: str | None = None
    requires_otp: bool = False
    otp_delivered: bool = True
    unusual_login: bool = False


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


async def get_user_by_phone(db: AsyncSession, phone: str) -> User | None:
    result = await db.execute(select(User).where(User.phone == phone.strip()))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.joined_at.asc(), User.id.asc()))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Signup
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    phone: str | None = None,
) -> User:
    """
    Create an account.

    Raises:
        ValidationError: Password too weak.
        Conflict: Email or phone already registered.
    """
    try:
        validate_password_strength(password)
    except PasswordStrengthError as e:
        raise ValidationError(str(e)) from e

    if await get_user_by_email(db, email) is not None:
        msg = "User already exist"
        raise Conflict(msg)
    if phone and await get_user_by_phone(db, phone) is not None:
        msg = "Phone number already registered"
        raise Conflict(msg)

    user = User(
        name=name.strip(),
        email=email.lower().strip(),
        phone=phone.strip() if phone else None,
        password_hash=hash_password(password),
        tags=[],
        joined_at=datetime.now(timezone.utc),
        login_count=0,
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, email=user.email)
    return user


# ---------------------------------------------------------------------------
# Login decision tree
# ---------------------------------------------------------------------------


async def _reject(
    db: AsyncSession,
    user_id: int | None,
    client: ClientInfo,
    reason: str,
    now: datetime,
) -> None:
    await login_history.record_attempt(db, user_id, client, "failure", reason, now=now)
    await db.commit()


async def _complete_login(db: AsyncSession, user: User, client: ClientInfo, now: datetime) -> LoginOutcome:
    unusual = await login_history.is_unusual_ip(db, user.id, client.ip_address)
    await login_history.record_attempt(db, user.id, client, "success", now=now)
    user.last_login = now
    user.login_count = (user.login_count or 0) + 1
    await db.flush()
    token = create_access_token(user.id, user.email, now=now)
    logger.info("login_succeeded", user_id=user.id, unusual=unusual, device=client.device_type)
    return LoginOutcome(user=user, token=token, unusual_login=unusual)


async def authenticate(
    db: AsyncSession,
    email: str,
    password: str,
    client: ClientInfo,
    *,
    now: datetime | None = None,
) -> LoginOutcome:
    """
    Evaluate a login attempt.

    Order: known user, password, handheld time window, browser class. Chrome
    gets an emailed one-time code instead of a token; every other browser gets
    a token straight away.

    Raises:
        NotFound: No account for ``email``.
        InvalidCredentials: Wrong password.
        Forbidden: Handheld device outside the allowed window (``accessDenied``).
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    user = await get_user_by_email(db, email)
    if user is None:
        await _reject(db, None, client, "User does not exist", now)
        msg = "User does not exist"
        raise NotFound(msg)

    if not verify_password(password, user.password_hash):
        await _reject(db, user.id, client, "Invalid password", now)
        msg = "Invalid password"
        raise InvalidCredentials(msg)

    if user.password_hash and check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)

    if client.is_handheld and not is_within_window(
        now,
        settings.local_utc_offset_minutes,
        settings.mobile_login_window_start_minute,
        settings.mobile_login_window_end_minute,
    ):
        window = format_window(settings.mobile_login_window_start_minute, settings.mobile_login_window_end_minute)
        await _reject(db, user.id, client, f"Mobile access not allowed outside {window}", now)
        msg = f"Mobile access is only allowed between {window} local time. Please try again during this time."
        raise Forbidden(msg, accessDenied=True)

    if client.is_chrome:
        _, code = await otp.issue_challenge(db, user.id, "login", now=now)
        await db.commit()
        delivered = await get_notification_service().notify(
            "email",
            user.email,
            {
                "template": "login_otp",
                "context": {"name": user.name, "code": code, "ttl_minutes": settings.otp_ttl_minutes},
            },
        )
        if not delivered:
            logger.warning("login_otp_delivery_failed", user_id=user.id)
        logger.info("login_otp_issued", user_id=user.id, browser=client.browser_name)
        return LoginOutcome(user=user, requires_otp=True, otp_delivered=delivered)

    return await _complete_login(db, user, client, now)


async def verify_login_otp(
    db: AsyncSession,
    user_id: int,
    code: str,
    client: ClientInfo,
    *,
    now: datetime | None = None,
) -> LoginOutcome:
    """Finish a Chrome login with the emailed code."""
    now = now or datetime.now(timezone.utc)
    user = await get_user_by_id(db, user_id)
    if user is None:
        msg = "User not found"
        raise NotFound(msg)

    try:
        await otp.verify_challenge(db, user.id, "login", code, now=now)
    except (ValidationError, RateLimited) as e:
        await _reject(db, user.id, client, e.message, now)
        raise

    return await _complete_login(db, user, client, now)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


async def update_profile(
    db: AsyncSession,
    user: User,
    target_id: int,
    name: str | None = None,
    about: str | None = None,
    tags: list[str] | None = None,
) -> User:
    """
    Update the caller's own profile fields.

    Raises:
        Forbidden: ``target_id`` is someone else.
    """
    if target_id != user.id:
        msg = "You can only update your own profile"
        raise Forbidden(msg)

    if name is not None:
        user.name = name.strip()
    if about is not None:
        user.about = about
    if tags is not None:
        user.tags = [t.strip() for t in tags if t.strip()]
    await db.flush()
    return user
