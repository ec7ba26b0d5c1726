"""
Persisted one-time codes for login and language-change confirmation.

One live challenge per (user, purpose): issuing a new one retires the
previous. Only the SHA-256 digest of the code is stored. A wrong guess
counts against the challenge; once the attempt cap is reached it is locked.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.config import get_settings
from qaforum.db.models import OtpChallenge
from qaforum.errors import RateLimited, ValidationError

logger = structlog.get_logger()

Purpose = Literal["login", "language"]


def generate_code(length: int | None = None) -> str:
    """Random numeric code with no leading-zero loss."""
    length = length or get_settings().otp_length
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode()).hexdigest()


async def issue_challenge(
    db: AsyncSession,
    user_id: int,
    purpose: Purpose,
    payload: dict[str, Any] | None = None,
    *,
    now: datetime | None = None,
) -> tuple[OtpChallenge, str]:
    """
    Create a challenge and return it with the plain code (to be sent, never stored).
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    # Retire older unused challenges for the same purpose
    await db.execute(
        update(OtpChallenge)
        .where(
            OtpChallenge.user_id == user_id,
            OtpChallenge.purpose == purpose,
            OtpChallenge.used_at.is_(None),
        )
        .values(used_at=now)
    )

    code = generate_code()
    challenge = OtpChallenge(
        user_id=user_id,
        purpose=purpose,
        code_hash=hash_code(code),
        payload=payload or {},
        attempts=0,
        expires_at=now + timedelta(minutes=settings.otp_ttl_minutes),
        created_at=now,
    )
    db.add(challenge)
    await db.flush()
    logger.info("otp_issued", user_id=user_id, purpose=purpose, challenge_id=challenge.id)
    return challenge, code


async def get_live_challenge(db: AsyncSession, user_id: int, purpose: Purpose) -> OtpChallenge | None:
    result = await db.execute(
        select(OtpChallenge)
        .where(
            OtpChallenge.user_id == user_id,
            OtpChallenge.purpose == purpose,
            OtpChallenge.used_at.is_(None),
        )
        .order_by(OtpChallenge.created_at.desc(), OtpChallenge.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def verify_challenge(
    db: AsyncSession,
    user_id: int,
    purpose: Purpose,
    code: str,
    *,
    now: datetime | None = None,
) -> OtpChallenge:
    """
    Check ``code`` against the user's live challenge and consume it.

    A failed guess is committed before the error is raised so the attempt
    counter survives the aborted request.

    Raises:
        ValidationError: No live challenge, expired, or wrong code.
        RateLimited: Attempt cap reached.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    challenge = await get_live_challenge(db, user_id, purpose)
    if challenge is None:
        msg = "Invalid OTP"
        raise ValidationError(msg)

    if now > challenge.expires_at:
        msg = "OTP has expired"
        raise ValidationError(msg)

    if challenge.attempts >= settings.otp_max_attempts:
        msg = "Too many failed attempts. Request a new code."
        raise RateLimited(msg)

    if not hmac.compare_digest(challenge.code_hash, hash_code(code.strip())):
        challenge.attempts += 1
        await db.commit()
        logger.warning("otp_mismatch", user_id=user_id, purpose=purpose, attempts=challenge.attempts)
        if challenge.attempts >= settings.otp_max_attempts:
            msg = "Too many failed attempts. Request a new code."
            raise RateLimited(msg)
        msg = "Invalid OTP"
        raise ValidationError(msg)

    challenge.used_at = now
    await db.flush()
    logger.info("otp_verified", user_id=user_id, purpose=purpose)
    return challenge
