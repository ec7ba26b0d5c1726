"""
Vote toggling for questions and answers.

Each (target, voter) pair is in one of three states: none, up, down. An
upvote clears a downvote and toggles the upvote; a downvote clears an upvote
and toggles the downvote. Questions stop there. For answers the owner's
points follow the votes:

- a new downvote costs the owner 1 point when they have any
- removing a downvote (toggled off or replaced by an upvote) refunds 1 point
- the upvote that brings the count from below the milestone to exactly the
  milestone pays a one-time bonus
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.config import get_settings
from qaforum.db.models import Answer, AnswerVote, QuestionVote
from qaforum.errors import ValidationError
from qaforum.rewards import service as rewards

logger = structlog.get_logger()

VoteState = Literal["up", "down"] | None
VoteModel = type[QuestionVote] | type[AnswerVote]

_DIRECTIONS = {"upvote": "up", "downvote": "down"}


@dataclass(frozen=True)
class VoteChange:
    before: VoteState
    after: VoteState


@dataclass(frozen=True)
class VoteOutcome:
    upvotes: int
    downvotes: int
    state: VoteState
    points_awarded: int = 0


def parse_direction(value: str) -> Literal["up", "down"]:
    direction = _DIRECTIONS.get(value)
    if direction is None:
        msg = "Vote value must be 'upvote' or 'downvote'"
        raise ValidationError(msg)
    return direction  # type: ignore[return-value]


def next_state(before: VoteState, direction: Literal["up", "down"]) -> VoteState:
    """Voting the current direction again clears it; the other direction replaces it."""
    return None if before == direction else direction


def _target_column(model: VoteModel):  # type: ignore[no-untyped-def]
    return model.question_id if model is QuestionVote else model.answer_id  # type: ignore[union-attr]


async def tally(db: AsyncSession, model: VoteModel, target_id: int) -> tuple[int, int]:
    """(upvotes, downvotes) for one target."""
    counts = await tally_many(db, model, [target_id])
    return counts.get(target_id, (0, 0))


async def tally_many(db: AsyncSession, model: VoteModel, target_ids: list[int]) -> dict[int, tuple[int, int]]:
    if not target_ids:
        return {}
    column = _target_column(model)
    result = await db.execute(
        select(column, model.direction, func.count())
        .where(column.in_(target_ids))
        .group_by(column, model.direction)
    )
    counts: dict[int, list[int]] = {}
    for target_id, direction, n in result.all():
        pair = counts.setdefault(target_id, [0, 0])
        pair[0 if direction == "up" else 1] = n
    return {k: (v[0], v[1]) for k, v in counts.items()}


async def toggle(
    db: AsyncSession,
    model: VoteModel,
    target_id: int,
    voter_id: int,
    direction: Literal["up", "down"],
) -> VoteChange:
    """Move the voter's row to its next state and return both states."""
    column = _target_column(model)
    result = await db.execute(select(model).where(column == target_id, model.user_id == voter_id))
    row = result.scalar_one_or_none()
    before: VoteState = row.direction if row is not None else None  # type: ignore[assignment]
    after = next_state(before, direction)

    if after is None:
        if row is not None:
            await db.delete(row)
    elif row is None:
        key = "question_id" if model is QuestionVote else "answer_id"
        db.add(model(**{key: target_id}, user_id=voter_id, direction=after))
    else:
        row.direction = after
    await db.flush()
    return VoteChange(before=before, after=after)


async def vote_question(db: AsyncSession, question_id: int, voter_id: int, value: str) -> VoteOutcome:
    change = await toggle(db, QuestionVote, question_id, voter_id, parse_direction(value))
    up, down = await tally(db, QuestionVote, question_id)
    return VoteOutcome(upvotes=up, downvotes=down, state=change.after)


async def vote_answer(
    db: AsyncSession,
    answer: Answer,
    voter_id: int,
    value: str,
    *,
    now: datetime | None = None,
) -> VoteOutcome:
    """Toggle the vote and settle the answer owner's points."""
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    direction = parse_direction(value)

    before_up, _ = await tally(db, AnswerVote, answer.id)
    change = await toggle(db, AnswerVote, answer.id, voter_id, direction)
    owner_id = answer.user_id

    if change.before == "down":
        # Refunds only apply to existing accounts.
        if await rewards.get_account(db, owner_id) is not None:
            await rewards.credit(
                db, owner_id, settings.downvote_penalty_points, reason=f"downvote_removed:answer:{answer.id}"
            )
    if change.after == "down" and change.before != "down":
        await rewards.deduct(db, owner_id, settings.downvote_penalty_points, reason=f"downvoted:answer:{answer.id}")

    up, down = await tally(db, AnswerVote, answer.id)
    points_awarded = 0
    milestone = settings.answer_milestone_upvotes
    if before_up < milestone and up == milestone:
        if settings.answer_milestone_rearm or answer.milestone_awarded_at is None:
            await rewards.grant(
                db, owner_id, settings.answer_milestone_bonus, reason=f"upvote_milestone:answer:{answer.id}"
            )
            points_awarded = settings.answer_milestone_bonus
            logger.info("answer_milestone_reached", answer_id=answer.id, owner_id=owner_id, upvotes=up)
        answer.milestone_awarded_at = answer.milestone_awarded_at or now
        await db.flush()

    return VoteOutcome(upvotes=up, downvotes=down, state=change.after, points_awarded=points_awarded)
