"""Per-user daily action counters.

One row per (user, local day). The stored ``max_allowed`` is rewritten from
the live policy value on every ``get_or_init`` so a limit change (new
friend, new plan) takes effect immediately, mid-day included.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.clock import local_day
from qaforum.db.models import DailyCounterMixin, DailyPostLimit, DailyQuestionLimit

logger = structlog.get_logger()

CounterModel = type[DailyPostLimit] | type[DailyQuestionLimit]


@dataclass(frozen=True)
class CounterState:
    count: int
    max_allowed: int

    @property
    def remaining(self) -> int:
        return max(0, self.max_allowed - self.count)


def can_act(counter: DailyCounterMixin | CounterState) -> bool:
    return counter.count < counter.max_allowed


async def _get_row(db: AsyncSession, model: CounterModel, user_id: int, day: date) -> DailyCounterMixin | None:
    result = await db.execute(select(model).where(model.user_id == user_id, model.day == day))
    return result.scalar_one_or_none()


async def get_or_init(
    db: AsyncSession,
    model: CounterModel,
    user_id: int,
    current_max: int,
    *,
    now: datetime | None = None,
) -> DailyCounterMixin:
    """Fetch today's counter, creating it at zero, and overwrite its max with ``current_max``."""
    day = local_day(now)
    row = await _get_row(db, model, user_id, day)
    if row is None:
        row = model(user_id=user_id, day=day, count=0, max_allowed=current_max)
        db.add(row)
    else:
        row.max_allowed = current_max
    await db.flush()
    return row


async def increment(
    db: AsyncSession,
    model: CounterModel,
    user_id: int,
    *,
    now: datetime | None = None,
) -> DailyCounterMixin | None:
    """Add one to today's counter. Only touches an existing row."""
    row = await _get_row(db, model, user_id, local_day(now))
    if row is None:
        logger.warning("daily_counter_missing", table=model.__tablename__, user_id=user_id)
        return None
    row.count += 1
    await db.flush()
    return row
