"""Answer business logic and the points tied to it."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from qaforum.config import get_settings
from qaforum.db.models import Answer, AnswerVote, User
from qaforum.errors import Forbidden, NotFound
from qaforum.qa.questions import count_answers, get_question
from qaforum.qa.voting import VoteOutcome, tally, vote_answer
from qaforum.rewards import service as rewards

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass(frozen=True)
class AnswerRemoval:
    points_deducted: int
    answer_count: int


async def get_answer(db: AsyncSession, answer_id: int) -> Answer:
    answer = await db.get(Answer, answer_id)
    if answer is None:
        msg = "answer not found"
        raise NotFound(msg)
    return answer


async def post_answer(
    db: AsyncSession,
    user: User,
    question_id: int,
    body: str,
    *,
    now: datetime | None = None,
) -> Answer:
    """Add an answer, pay the answer reward and refresh the question's answer count."""
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    question = await get_question(db, question_id)

    answer = Answer(question_id=question.id, user_id=user.id, body=body.strip(), answered_at=now)
    answer.author = user
    db.add(answer)
    await db.flush()

    await rewards.grant(db, user.id, settings.answer_reward_points, reason=f"answer_posted:answer:{answer.id}")
    question.answer_count = await count_answers(db, question.id)
    await db.flush()
    logger.info("answer_posted", user_id=user.id, question_id=question.id, answer_id=answer.id)
    return answer


async def delete_answer(db: AsyncSession, user: User, question_id: int, answer_id: int) -> AnswerRemoval:
    """
    Remove an answer and take back the points it earned.

    The answer reward is always reclaimed; the milestone bonus too when the
    answer is at or above the milestone. Both are taken in one deduction,
    which is skipped when the owner's balance cannot cover it.

    Raises:
        NotFound: Unknown question or answer, or the answer belongs elsewhere.
        Forbidden: Caller did not write the answer.
    """
    settings = get_settings()
    question = await get_question(db, question_id)
    answer = await get_answer(db, answer_id)
    if answer.question_id != question.id:
        msg = "answer not found"
        raise NotFound(msg)
    if answer.user_id != user.id:
        msg = "You can only delete your own answers"
        raise Forbidden(msg)

    upvotes, _ = await tally(db, AnswerVote, answer.id)
    points = settings.answer_reward_points
    if upvotes >= settings.answer_milestone_upvotes:
        points += settings.answer_milestone_bonus
    applied = await rewards.deduct(db, answer.user_id, points, reason=f"answer_deleted:answer:{answer.id}")

    await db.delete(answer)
    await db.flush()
    question.answer_count = await count_answers(db, question.id)
    await db.flush()
    logger.info(
        "answer_deleted",
        user_id=user.id,
        answer_id=answer_id,
        points_deducted=points if applied else 0,
    )
    return AnswerRemoval(points_deducted=points if applied else 0, answer_count=question.answer_count)


async def vote(db: AsyncSession, user: User, answer_id: int, value: str) -> tuple[Answer, VoteOutcome]:
    answer = await get_answer(db, answer_id)
    outcome = await vote_answer(db, answer, user.id, value)
    return answer, outcome

