"""Pydantic schemas for the /posts endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from qaforum.schemas import CamelModel, UserSummary


class CommentRequest(CamelModel):
    content: str = Field(..., max_length=2000)


class CommentOut(CamelModel):
    id: int
    post_id: int
    user: UserSummary = Field(validation_alias="author")
    content: str
    created_at: datetime


class PostOut(CamelModel):
    id: int
    user: UserSummary = Field(validation_alias="author")
    content: str
    media: list[dict[str, Any]] = []
    created_at: datetime
    like_count: int = 0
    share_count: int = 0
    comment_count: int = 0
    liked_by_me: bool = False
    comments: list[CommentOut] = []


class CreatePostResponse(CamelModel):
    success: bool = True
    message: str
    post: PostOut
    remaining_posts: int


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_posts: int
    has_next_page: bool
    has_prev_page: bool


class FeedResponse(CamelModel):
    success: bool = True
    posts: list[PostOut]
    pagination: Pagination


class LikeResponse(CamelModel):
    success: bool = True
    message: str
    liked: bool
    likes: int


class CommentResponse(CamelModel):
    success: bool = True
    message: str
    comment: CommentOut
    total_comments: int


class ShareResponse(CamelModel):
    success: bool = True
    message: str
    shares: int


class DailyStatusOut(CamelModel):
    post_count: int
    max_posts: int
    remaining_posts: int
    can_post: bool
    friend_count: int


class DailyStatusResponse(CamelModel):
    success: bool = True
    daily_status: DailyStatusOut
