"""Append-only audit of login attempts and the new-IP signal built on it."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.db.models import LoginHistory
from qaforum.security.client_info import ClientInfo

logger = structlog.get_logger()

HISTORY_LIMIT = 20
KNOWN_IP_WINDOW = 5


async def record_attempt(
    db: AsyncSession,
    user_id: int | None,
    client: ClientInfo,
    status: str,
    failure_reason: str | None = None,
    *,
    now: datetime | None = None,
) -> LoginHistory:
    entry = LoginHistory(
        user_id=user_id,
        ip_address=client.ip_address,
        user_agent=client.user_agent,
        browser_name=client.browser_name,
        browser_version=client.browser_version,
        os_name=client.os_name,
        os_version=client.os_version,
        device_type=client.device_type,
        status=status,
        failure_reason=failure_reason,
        created_at=now or datetime.now(timezone.utc),
    )
    db.add(entry)
    await db.flush()
    logger.info(
        "login_attempt_recorded",
        user_id=user_id,
        status=status,
        reason=failure_reason,
        ip=client.ip_address,
        device=client.device_type,
    )
    return entry


async def recent_history(db: AsyncSession, user_id: int, limit: int = HISTORY_LIMIT) -> list[LoginHistory]:
    result = await db.execute(
        select(LoginHistory)
        .where(LoginHistory.user_id == user_id)
        .order_by(LoginHistory.created_at.desc(), LoginHistory.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def is_unusual_ip(db: AsyncSession, user_id: int, ip_address: str) -> bool:
    """True when the user has prior successful logins and none came from ``ip_address``.

    Call before recording the current attempt.
    """
    result = await db.execute(
        select(LoginHistory.ip_address)
        .where(LoginHistory.user_id == user_id, LoginHistory.status == "success")
        .order_by(LoginHistory.created_at.desc(), LoginHistory.id.desc())
        .limit(KNOWN_IP_WINDOW)
    )
    known_ips = list(result.scalars().all())
    if not known_ips:
        return False
    if ip_address in known_ips:
        return False
    logger.warning("unusual_login_detected", user_id=user_id, ip=ip_address, known_ips=known_ips)
    return True
