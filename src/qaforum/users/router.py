"""Friendship router: send, accept and list friend requests."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.dependencies import get_current_user
from qaforum.database import get_session
from qaforum.db.models import User
from qaforum.schemas import UserSummary
from qaforum.users.friends import accept_request, count_accepted_friends, list_friendships, send_request
from qaforum.users.schemas import FriendEntry, FriendListResponse, FriendshipOut, FriendshipResponse

router = APIRouter(prefix="/friends", tags=["Friends"])


@router.post("/request/{user_id}", response_model=FriendshipResponse, status_code=201)
async def request_friend(
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendshipResponse:
    friendship = await send_request(db, user.id, user_id)
    await db.commit()
    return FriendshipResponse(message="Friend request sent", friendship=FriendshipOut.model_validate(friendship))


@router.post("/{friendship_id}/accept", response_model=FriendshipResponse)
async def accept_friend(
    friendship_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendshipResponse:
    friendship = await accept_request(db, user.id, friendship_id)
    await db.commit()
    return FriendshipResponse(message="Friend request accepted", friendship=FriendshipOut.model_validate(friendship))


@router.get("", response_model=FriendListResponse)
async def list_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FriendListResponse:
    rows = await list_friendships(db, user.id)
    return FriendListResponse(
        friend_count=await count_accepted_friends(db, user.id),
        friends=[
            FriendEntry(
                friendship=FriendshipOut.model_validate(f),
                user=UserSummary.model_validate(other),
                incoming=f.recipient_id == user.id,
            )
            for f, other in rows
        ],
    )
