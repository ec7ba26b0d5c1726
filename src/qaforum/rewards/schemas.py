"""Request/response schemas for the points endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from qaforum.schemas import CamelModel, UserSummary


class TransferRequest(CamelModel):
    recipient_id: int
    points: int


class RewardAccount(CamelModel):
    points: int = 0
    total_points_earned: int = 0
    total_points_spent: int = 0
    badges: list[dict[str, Any]] = []


class RewardStatusResponse(CamelModel):
    success: bool = True
    reward: RewardAccount
    message: str | None = None


class TransferResponse(CamelModel):
    success: bool = True
    message: str
    reward: RewardAccount


class LeaderboardEntry(CamelModel):
    rank: int
    user: UserSummary
    points: int
    total_points_earned: int
    badges: list[dict[str, Any]] = []


class LeaderboardResponse(CamelModel):
    success: bool = True
    leaderboard: list[LeaderboardEntry]


class LedgerEntry(CamelModel):
    amount: int
    kind: str
    reason: str | None = None
    counterparty_id: int | None = None
    created_at: datetime


class HistoryResponse(CamelModel):
    success: bool = True
    entries: list[LedgerEntry]


class UserSearchResponse(CamelModel):
    success: bool = True
    users: list[UserSummary] = Field(default_factory=list)
