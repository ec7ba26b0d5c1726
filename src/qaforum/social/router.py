"""Social feed endpoints under /posts."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.dependencies import get_current_user, get_optional_user
from qaforum.database import get_session
from qaforum.db.models import Post, User
from qaforum.schemas import UserSummary
from qaforum.social import post_service
from qaforum.social.media import MediaFile
from qaforum.social.post_service import PostView
from qaforum.social.schemas import (
    CommentOut,
    CommentRequest,
    CommentResponse,
    CreatePostResponse,
    DailyStatusOut,
    DailyStatusResponse,
    FeedResponse,
    LikeResponse,
    Pagination,
    PostOut,
    ShareResponse,
)

router = APIRouter(prefix="/posts", tags=["Posts"])


# ── Helper ──


def _post_out(post: Post, view: PostView | None = None) -> PostOut:
    view = view or PostView(post=post)
    return PostOut(
        id=post.id,
        user=UserSummary.model_validate(post.author),
        content=post.content,
        media=post.media,
        created_at=post.created_at,
        like_count=view.like_count,
        share_count=view.share_count,
        comment_count=len(view.comments),
        liked_by_me=view.liked_by_me,
        comments=[CommentOut.model_validate(c) for c in view.comments],
    )


# ── Posts ──


@router.post("/create", response_model=CreatePostResponse, status_code=201)
async def create_post(
    content: str = Form(..., max_length=1000),
    media: list[UploadFile] = File(default=[]),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CreatePostResponse:
    files = [
        MediaFile(
            filename=f.filename or "upload",
            content_type=f.content_type or "application/octet-stream",
            data=await f.read(),
        )
        for f in media
    ]
    post, remaining = await post_service.create_post(db, user, content, files)
    await db.commit()
    return CreatePostResponse(message="Post created successfully", post=_post_out(post), remaining_posts=remaining)


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_session),
    viewer: User | None = Depends(get_optional_user),
) -> FeedResponse:
    result = await post_service.feed(db, page=page, limit=limit, viewer_id=viewer.id if viewer else None)
    return FeedResponse(
        posts=[_post_out(v.post, v) for v in result.posts],
        pagination=Pagination(
            current_page=result.page,
            total_pages=result.total_pages,
            total_posts=result.total,
            has_next_page=result.has_next_page,
            has_prev_page=result.has_prev_page,
        ),
    )


@router.get("/daily-status", response_model=DailyStatusResponse)
async def get_daily_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DailyStatusResponse:
    status = await post_service.daily_status(db, user.id)
    await db.commit()
    return DailyStatusResponse(
        daily_status=DailyStatusOut(
            post_count=status.post_count,
            max_posts=status.max_posts,
            remaining_posts=status.remaining_posts,
            can_post=status.can_post,
            friend_count=status.friend_count,
        )
    )


# ── Interactions ──


@router.post("/{post_id}/like", response_model=LikeResponse)
async def like_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LikeResponse:
    liked, count = await post_service.toggle_like(db, user, post_id)
    await db.commit()
    message = "Post liked successfully" if liked else "Post unliked successfully"
    return LikeResponse(message=message, liked=liked, likes=count)


@router.post("/{post_id}/comment", response_model=CommentResponse, status_code=201)
async def comment_on_post(
    post_id: int,
    body: CommentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CommentResponse:
    comment, total = await post_service.add_comment(db, user, post_id, body.content)
    await db.commit()
    return CommentResponse(
        message="Comment added successfully",
        comment=CommentOut.model_validate(comment),
        total_comments=total,
    )


@router.post("/{post_id}/share", response_model=ShareResponse)
async def share_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ShareResponse:
    shares = await post_service.share(db, user, post_id)
    await db.commit()
    return ShareResponse(message="Post shared successfully", shares=shares)
