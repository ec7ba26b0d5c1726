"""Question endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.dependencies import get_current_user
from qaforum.database import get_session
from qaforum.db.models import User
from qaforum.qa import questions
from qaforum.qa.schemas import (
    AskQuestionRequest,
    QuestionListResponse,
    QuestionOut,
    QuestionResponse,
    VoteRequest,
)
from qaforum.qa.voting import vote_question
from qaforum.schemas import MessageResponse

router = APIRouter(prefix="/question", tags=["Questions"])


@router.post("/ask", response_model=QuestionResponse)
async def ask(
    body: AskQuestionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> QuestionResponse:
    question = await questions.ask_question(db, user, body.title, body.body, body.tags)
    await db.commit()
    return QuestionResponse(data=QuestionOut.from_view(await questions.build_view(db, question)))


@router.get("/getallquestion", response_model=QuestionListResponse)
async def get_all_questions(db: AsyncSession = Depends(get_session)) -> QuestionListResponse:
    views = await questions.list_questions(db)
    return QuestionListResponse(data=[QuestionOut.from_view(v) for v in views])


@router.delete("/{question_id}", response_model=MessageResponse)
async def delete_question(
    question_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    await questions.delete_question(db, user, question_id)
    await db.commit()
    return MessageResponse(message="question deleted")


@router.patch("/vote/{question_id}", response_model=QuestionResponse)
async def vote(
    question_id: int,
    body: VoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> QuestionResponse:
    question = await questions.get_question(db, question_id)
    await vote_question(db, question.id, user.id, body.value)
    await db.commit()
    return QuestionResponse(data=QuestionOut.from_view(await questions.build_view(db, question)))
