"""Points endpoints: status, transfer, leaderboard, history, recipient search."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.dependencies import get_current_user
from qaforum.database import get_session
from qaforum.db.models import User
from qaforum.rewards import service
from qaforum.rewards.schemas import (
    HistoryResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    LedgerEntry,
    RewardAccount,
    RewardStatusResponse,
    TransferRequest,
    TransferResponse,
    UserSearchResponse,
)
from qaforum.schemas import UserSummary

router = APIRouter(prefix="/reward", tags=["Rewards"])


@router.get("/status", response_model=RewardStatusResponse)
async def reward_status(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> RewardStatusResponse:
    reward = await service.get_account(db, user.id)
    if reward is None:
        return RewardStatusResponse(reward=RewardAccount(), message="No rewards found for this user")
    return RewardStatusResponse(reward=RewardAccount.model_validate(reward))


@router.post("/transfer", response_model=TransferResponse)
async def transfer_points(
    body: TransferRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TransferResponse:
    reward = await service.transfer(db, user.id, body.recipient_id, body.points)
    return TransferResponse(
        message=f"Successfully transferred {body.points} points",
        reward=RewardAccount.model_validate(reward),
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(db: AsyncSession = Depends(get_session)) -> LeaderboardResponse:
    rows = await service.leaderboard(db)
    return LeaderboardResponse(
        leaderboard=[
            LeaderboardEntry(
                rank=i + 1,
                user=UserSummary.model_validate(row.user),
                points=row.points,
                total_points_earned=row.total_points_earned,
                badges=row.badges,
            )
            for i, row in enumerate(rows)
        ]
    )


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> HistoryResponse:
    entries = await service.history(db, user.id)
    return HistoryResponse(entries=[LedgerEntry.model_validate(e) for e in entries])


@router.get("/search-users", response_model=UserSearchResponse)
async def search_users(
    q: str = Query("", max_length=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserSearchResponse:
    if not q.strip():
        return UserSearchResponse(users=[])
    users = await service.search_users(db, user.id, q)
    return UserSearchResponse(users=[UserSummary.model_validate(u) for u in users])
