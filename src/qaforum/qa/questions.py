"""Question business logic: asking (gated by the daily allowance), listing, deleting."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from qaforum.db.models import Answer, AnswerVote, DailyQuestionLimit, Question, QuestionVote, User
from qaforum.errors import Forbidden, NotFound, RateLimited
from qaforum.limits import counter
from qaforum.limits.policies import question_allowance
from qaforum.qa.voting import tally_many

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass
class AnswerView:
    answer: Answer
    upvotes: int = 0
    downvotes: int = 0


@dataclass
class QuestionView:
    """A question with its vote tallies and answers, ready for serialisation."""

    question: Question
    upvotes: int = 0
    downvotes: int = 0
    answers: list[AnswerView] = field(default_factory=list)


async def get_question(db: AsyncSession, question_id: int) -> Question:
    question = await db.get(Question, question_id)
    if question is None:
        msg = "question not found"
        raise NotFound(msg)
    return question


async def count_answers(db: AsyncSession, question_id: int) -> int:
    result = await db.execute(select(func.count()).select_from(Answer).where(Answer.question_id == question_id))
    return int(result.scalar_one())


async def build_views(db: AsyncSession, questions: list[Question]) -> list[QuestionView]:
    """Attach vote tallies and answers to each question."""
    ids = [q.id for q in questions]
    question_votes = await tally_many(db, QuestionVote, ids)

    answers_by_question: dict[int, list[Answer]] = {}
    if ids:
        result = await db.execute(
            select(Answer).where(Answer.question_id.in_(ids)).order_by(Answer.answered_at.asc(), Answer.id.asc())
        )
        for answer in result.scalars().all():
            answers_by_question.setdefault(answer.question_id, []).append(answer)
    answer_ids = [a.id for group in answers_by_question.values() for a in group]
    answer_votes = await tally_many(db, AnswerVote, answer_ids)

    views = []
    for q in questions:
        up, down = question_votes.get(q.id, (0, 0))
        answers = [
            AnswerView(a, *answer_votes.get(a.id, (0, 0))) for a in answers_by_question.get(q.id, [])
        ]
        views.append(QuestionView(q, up, down, answers))
    return views


async def build_view(db: AsyncSession, question: Question) -> QuestionView:
    return (await build_views(db, [question]))[0]


async def list_questions(db: AsyncSession) -> list[QuestionView]:
    result = await db.execute(select(Question).order_by(Question.asked_at.desc(), Question.id.desc()))
    return await build_views(db, list(result.scalars().all()))


async def ask_question(
    db: AsyncSession,
    user: User,
    title: str,
    body: str,
    tags: list[str] | None = None,
    *,
    now: datetime | None = None,
) -> Question:
    """
    Post a question if today's allowance has room, then count it.

    Raises:
        RateLimited: Daily question limit reached for the current plan.
    """
    now = now or datetime.now(timezone.utc)
    plan_name, max_questions = await question_allowance(db, user.id, now=now)
    limit_row = await counter.get_or_init(db, DailyQuestionLimit, user.id, max_questions, now=now)
    if not counter.can_act(limit_row):
        logger.info("question_limit_reached", user_id=user.id, plan=plan_name, max_questions=max_questions)
        msg = (
            f"You have reached your daily question limit of {limit_row.max_allowed} "
            f"for the {plan_name} plan. Upgrade your plan to ask more questions."
        )
        raise RateLimited(
            msg,
            currentCount=limit_row.count,
            maxQuestions=limit_row.max_allowed,
            plan=plan_name,
        )

    question = Question(
        user_id=user.id,
        title=title.strip(),
        body=body.strip(),
        tags=[t.strip() for t in tags or [] if t.strip()],
        answer_count=0,
        asked_at=now,
    )
    question.author = user
    db.add(question)
    await db.flush()
    await counter.increment(db, DailyQuestionLimit, user.id, now=now)
    logger.info("question_asked", user_id=user.id, question_id=question.id, plan=plan_name)
    return question


async def delete_question(db: AsyncSession, user: User, question_id: int) -> None:
    """
    Delete a question together with its answers and votes.

    Raises:
        NotFound: Unknown question.
        Forbidden: Caller did not ask it.
    """
    question = await get_question(db, question_id)
    if question.user_id != user.id:
        msg = "You can only delete your own questions"
        raise Forbidden(msg)
    await db.delete(question)
    await db.flush()
    logger.info("question_deleted", user_id=user.id, question_id=question_id)
