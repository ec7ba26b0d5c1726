"""Pydantic schemas for the /friends endpoints."""

from __future__ import annotations

from datetime import datetime

from qaforum.schemas import CamelModel, UserSummary


class FriendshipOut(CamelModel):
    id: int
    requester_id: int
    recipient_id: int
    status: str
    created_at: datetime
    responded_at: datetime | None = None


class FriendshipResponse(CamelModel):
    success: bool = True
    message: str
    friendship: FriendshipOut


class FriendEntry(CamelModel):
    friendship: FriendshipOut
    user: UserSummary
    incoming: bool


class FriendListResponse(CamelModel):
    success: bool = True
    friend_count: int
    friends: list[FriendEntry]
