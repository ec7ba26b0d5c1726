"""
Social feed business logic.

Posting needs at least one accepted friend and room in today's post
allowance, which follows the current friend count (see
``qaforum.limits.policies.post_limit_for_friends``). Media is uploaded
before anything is written, so a failed upload leaves no post behind.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from qaforum.db.models import DailyPostLimit, Post, PostComment, PostLike, PostShare, User
from qaforum.errors import Conflict, Forbidden, NotFound, RateLimited, ValidationError
from qaforum.limits import counter
from qaforum.limits.policies import post_limit
from qaforum.social.media import MediaFile, get_media_storage, validate_files

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

COMMENT_MAX_LENGTH = 500
POST_MAX_LENGTH = 1000


@dataclass
class DailyStatus:
    post_count: int
    max_posts: int
    friend_count: int

    @property
    def remaining_posts(self) -> int:
        return max(0, self.max_posts - self.post_count)

    @property
    def can_post(self) -> bool:
        return self.post_count < self.max_posts and self.friend_count > 0


@dataclass
class PostView:
    post: Post
    like_count: int = 0
    share_count: int = 0
    comments: list[PostComment] = field(default_factory=list)
    liked_by_me: bool = False


@dataclass
class FeedPage:
    posts: list[PostView]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return (self.page - 1) * self.limit + len(self.posts) < self.total

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


async def get_post(db: AsyncSession, post_id: int) -> Post:
    post = await db.get(Post, post_id)
    if post is None:
        msg = "Post not found"
        raise NotFound(msg)
    return post


async def daily_status(db: AsyncSession, user_id: int, *, now: datetime | None = None) -> DailyStatus:
    """Today's counter with the maximum recomputed from the current friend count."""
    friend_count, max_posts = await post_limit(db, user_id)
    row = await counter.get_or_init(db, DailyPostLimit, user_id, max_posts, now=now)
    return DailyStatus(post_count=row.count, max_posts=row.max_allowed, friend_count=friend_count)


async def create_post(
    db: AsyncSession,
    user: User,
    content: str,
    files: list[MediaFile] | None = None,
    *,
    now: datetime | None = None,
) -> tuple[Post, int]:
    """
    Publish a post. Returns the post and the posts left for today.

    Raises:
        ValidationError: Empty content or unacceptable media.
        Forbidden: No accepted friends.
        RateLimited: Today's allowance is used up.
        InternalError: A media upload failed.
    """
    now = now or datetime.now(timezone.utc)
    files = files or []
    content = content.strip()
    if not content:
        msg = "Post content is required"
        raise ValidationError(msg)
    if len(content) > POST_MAX_LENGTH:
        msg = f"Post content cannot exceed {POST_MAX_LENGTH} characters"
        raise ValidationError(msg)
    validate_files(files)

    status = await daily_status(db, user.id, now=now)
    if status.friend_count == 0:
        msg = "You need at least 1 friend to post. Add some friends first!"
        raise Forbidden(msg)
    if status.post_count >= status.max_posts:
        msg = f"You have reached your daily post limit of {status.max_posts} posts. Come back tomorrow!"
        raise RateLimited(msg, maxPosts=status.max_posts, postCount=status.post_count)

    media = await get_media_storage().store_all(user.id, files)

    post = Post(user_id=user.id, content=content, media=media, created_at=now)
    post.author = user
    db.add(post)
    await db.flush()
    row = await counter.increment(db, DailyPostLimit, user.id, now=now)
    remaining = max(0, row.max_allowed - row.count) if row is not None else 0
    logger.info("post_created", user_id=user.id, post_id=post.id, media=len(media), remaining=remaining)
    return post, remaining


async def _count_by_post(db: AsyncSession, model: type[PostLike] | type[PostShare], post_ids: list[int]) -> dict[int, int]:
    if not post_ids:
        return {}
    result = await db.execute(
        select(model.post_id, func.count()).where(model.post_id.in_(post_ids)).group_by(model.post_id)
    )
    return {post_id: n for post_id, n in result.all()}


async def feed(db: AsyncSession, page: int = 1, limit: int = 10, viewer_id: int | None = None) -> FeedPage:
    """Newest posts first with like, share and comment data."""
    page = max(page, 1)
    total = int((await db.execute(select(func.count()).select_from(Post))).scalar_one())
    result = await db.execute(
        select(Post).order_by(Post.created_at.desc(), Post.id.desc()).offset((page - 1) * limit).limit(limit)
    )
    posts = list(result.scalars().all())
    ids = [p.id for p in posts]

    likes = await _count_by_post(db, PostLike, ids)
    shares = await _count_by_post(db, PostShare, ids)
    comments: dict[int, list[PostComment]] = {}
    liked: set[int] = set()
    if ids:
        comment_rows = await db.execute(
            select(PostComment)
            .where(PostComment.post_id.in_(ids))
            .order_by(PostComment.created_at.asc(), PostComment.id.asc())
        )
        for c in comment_rows.scalars().all():
            comments.setdefault(c.post_id, []).append(c)
        if viewer_id is not None:
            liked_rows = await db.execute(
                select(PostLike.post_id).where(PostLike.post_id.in_(ids), PostLike.user_id == viewer_id)
            )
            liked = set(liked_rows.scalars().all())

    views = [
        PostView(
            post=p,
            like_count=likes.get(p.id, 0),
            share_count=shares.get(p.id, 0),
            comments=comments.get(p.id, []),
            liked_by_me=p.id in liked,
        )
        for p in posts
    ]
    return FeedPage(posts=views, page=page, limit=limit, total=total)


async def toggle_like(db: AsyncSession, user: User, post_id: int) -> tuple[bool, int]:
    """Like or unlike. Returns (liked, like count)."""
    post = await get_post(db, post_id)
    result = await db.execute(select(PostLike).where(PostLike.post_id == post.id, PostLike.user_id == user.id))
    existing = result.scalar_one_or_none()
    if existing is not None:
        await db.delete(existing)
        liked = False
    else:
        db.add(PostLike(post_id=post.id, user_id=user.id, created_at=datetime.now(timezone.utc)))
        liked = True
    await db.flush()
    count = (await _count_by_post(db, PostLike, [post.id])).get(post.id, 0)
    logger.info("post_like_toggled", user_id=user.id, post_id=post.id, liked=liked)
    return liked, count


async def add_comment(db: AsyncSession, user: User, post_id: int, content: str) -> tuple[PostComment, int]:
    """Returns the comment and the post's comment total."""
    content = content.strip()
    if not content:
        msg = "Comment content is required"
        raise ValidationError(msg)
    if len(content) > COMMENT_MAX_LENGTH:
        msg = f"Comment cannot exceed {COMMENT_MAX_LENGTH} characters"
        raise ValidationError(msg)

    post = await get_post(db, post_id)
    comment = PostComment(post_id=post.id, user_id=user.id, content=content, created_at=datetime.now(timezone.utc))
    comment.author = user
    db.add(comment)
    await db.flush()
    total = int(
        (
            await db.execute(select(func.count()).select_from(PostComment).where(PostComment.post_id == post.id))
        ).scalar_one()
    )
    logger.info("post_commented", user_id=user.id, post_id=post.id, comment_id=comment.id)
    return comment, total


async def share(db: AsyncSession, user: User, post_id: int) -> int:
    """Record a share. Returns the share count.

    Raises:
        Conflict: Already shared by this user (400).
    """
    post = await get_post(db, post_id)
    result = await db.execute(select(PostShare).where(PostShare.post_id == post.id, PostShare.user_id == user.id))
    if result.scalar_one_or_none() is not None:
        msg = "You already shared this post"
        raise Conflict(msg, status_code=400)
    db.add(PostShare(post_id=post.id, user_id=user.id, created_at=datetime.now(timezone.utc)))
    await db.flush()
    logger.info("post_shared", user_id=user.id, post_id=post.id)
    return (await _count_by_post(db, PostShare, [post.id])).get(post.id, 0)
