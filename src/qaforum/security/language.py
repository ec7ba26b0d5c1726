"""Preferred-language changes confirmed by a one-time code."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from qaforum.config import get_settings
from qaforum.db.models import User, UserLanguage
from qaforum.errors import ValidationError
from qaforum.notifications.service import get_notification_service
from qaforum.security import otp

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SUPPORTED_LANGUAGES = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "hi": "Hindi",
}
DEFAULT_LANGUAGE = "en"


async def get_or_create_language(db: AsyncSession, user_id: int) -> UserLanguage:
    result = await db.execute(select(UserLanguage).where(UserLanguage.user_id == user_id))
    row = result.scalar_one_or_none()
    if row is None:
        row = UserLanguage(user_id=user_id, language=DEFAULT_LANGUAGE)
        db.add(row)
        await db.flush()
    return row


async def request_change(
    db: AsyncSession,
    user: User,
    language: str,
    method: str,
    *,
    now: datetime | None = None,
) -> bool:
    """
    Issue a code for switching to ``language`` and send it by email or SMS.

    Returns whether the code was delivered. The challenge is committed first
    so a failed send does not lose it.

    Raises:
        ValidationError: Unsupported language, unknown method, or SMS without a phone.
    """
    settings = get_settings()
    now = now or datetime.now(timezone.utc)

    if language not in SUPPORTED_LANGUAGES:
        msg = f"Unsupported language: {language}"
        raise ValidationError(msg)
    if method == "email":
        recipient = user.email
    elif method == "sms" and user.phone:
        recipient = user.phone
    else:
        msg = "Invalid verification method or missing phone number"
        raise ValidationError(msg)

    await get_or_create_language(db, user.id)
    _, code = await otp.issue_challenge(db, user.id, "language", {"language": language}, now=now)
    await db.commit()

    delivered = await get_notification_service().notify(
        "email" if method == "email" else "sms",
        recipient,
        {
            "template": "language_otp",
            "context": {
                "name": user.name,
                "code": code,
                "language": SUPPORTED_LANGUAGES[language],
                "ttl_minutes": settings.otp_ttl_minutes,
            },
        },
    )
    if not delivered:
        logger.warning("language_otp_delivery_failed", user_id=user.id, method=method)
    logger.info("language_change_requested", user_id=user.id, language=language, method=method)
    return delivered


async def verify_change(
    db: AsyncSession,
    user: User,
    code: str,
    *,
    now: datetime | None = None,
) -> UserLanguage:
    """Apply the pending language once the code checks out."""
    challenge = await otp.verify_challenge(db, user.id, "language", code, now=now)
    row = await get_or_create_language(db, user.id)
    row.language = challenge.payload.get("language", row.language)
    row.updated_at = now or datetime.now(timezone.utc)
    await db.flush()
    logger.info("language_changed", user_id=user.id, language=row.language)
    return row
