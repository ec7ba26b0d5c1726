"""Request/response schemas for the /question and /answer endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from qaforum.qa.questions import AnswerView, QuestionView
from qaforum.schemas import CamelModel, UserSummary


class AskQuestionRequest(CamelModel):
    title: str = Field(..., min_length=1, max_length=300)
    body: str = Field(..., min_length=1, max_length=20000)
    tags: list[str] = Field(default_factory=list, max_length=10)


class VoteRequest(CamelModel):
    value: str = Field(..., description="upvote or downvote")


class PostAnswerRequest(CamelModel):
    body: str = Field(..., min_length=1, max_length=20000)


class DeleteAnswerRequest(CamelModel):
    answer_id: int


class AnswerOut(CamelModel):
    id: int
    question_id: int
    user_id: int
    author: UserSummary | None = None
    body: str
    answered_at: datetime
    upvotes: int = 0
    downvotes: int = 0

    @classmethod
    def from_view(cls, view: AnswerView) -> AnswerOut:
        a = view.answer
        return cls(
            id=a.id,
            question_id=a.question_id,
            user_id=a.user_id,
            author=UserSummary.model_validate(a.author) if a.author is not None else None,
            body=a.body,
            answered_at=a.answered_at,
            upvotes=view.upvotes,
            downvotes=view.downvotes,
        )


class QuestionOut(CamelModel):
    id: int
    user_id: int | None = None
    author: UserSummary | None = None
    title: str
    body: str
    tags: list[str] = []
    answer_count: int
    asked_at: datetime
    upvotes: int = 0
    downvotes: int = 0
    answers: list[AnswerOut] = []

    @classmethod
    def from_view(cls, view: QuestionView) -> QuestionOut:
        q = view.question
        return cls(
            id=q.id,
            user_id=q.user_id,
            author=UserSummary.model_validate(q.author) if q.author is not None else None,
            title=q.title,
            body=q.body,
            tags=q.tags,
            answer_count=q.answer_count,
            asked_at=q.asked_at,
            upvotes=view.upvotes,
            downvotes=view.downvotes,
            answers=[AnswerOut.from_view(a) for a in view.answers],
        )


class QuestionResponse(CamelModel):
    data: QuestionOut


class QuestionListResponse(CamelModel):
    data: list[QuestionOut]


class AnswerVoteResponse(CamelModel):
    data: AnswerOut
    points_awarded: int = 0


class AnswerDeletedResponse(CamelModel):
    message: str
    points_deducted: int = 0
    answer_count: int
