"""Answer endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.dependencies import get_current_user
from qaforum.database import get_session
from qaforum.db.models import User
from qaforum.qa import answers, questions
from qaforum.qa.questions import AnswerView
from qaforum.qa.schemas import (
    AnswerDeletedResponse,
    AnswerOut,
    AnswerVoteResponse,
    DeleteAnswerRequest,
    PostAnswerRequest,
    QuestionOut,
    QuestionResponse,
    VoteRequest,
)

router = APIRouter(prefix="/answer", tags=["Answers"])


@router.post("/postanswer/{question_id}", response_model=QuestionResponse)
async def post_answer(
    question_id: int,
    body: PostAnswerRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> QuestionResponse:
    """Answer a question; the response carries the updated question."""
    await answers.post_answer(db, user, question_id, body.body)
    await db.commit()
    question = await questions.get_question(db, question_id)
    return QuestionResponse(data=QuestionOut.from_view(await questions.build_view(db, question)))


@router.delete("/delete/{question_id}", response_model=AnswerDeletedResponse)
async def delete_answer(
    question_id: int,
    body: DeleteAnswerRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AnswerDeletedResponse:
    removal = await answers.delete_answer(db, user, question_id, body.answer_id)
    await db.commit()
    return AnswerDeletedResponse(
        message="answer deleted successfully",
        points_deducted=removal.points_deducted,
        answer_count=removal.answer_count,
    )


@router.patch("/vote/{answer_id}", response_model=AnswerVoteResponse)
async def vote(
    answer_id: int,
    body: VoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> AnswerVoteResponse:
    answer, outcome = await answers.vote(db, user, answer_id, body.value)
    await db.commit()
    view = AnswerView(answer, outcome.upvotes, outcome.downvotes)
    return AnswerVoteResponse(data=AnswerOut.from_view(view), points_awarded=outcome.points_awarded)
