"""Login history for the current user."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.dependencies import get_current_user
from qaforum.database import get_session
from qaforum.db.models import User
from qaforum.security.login_history import recent_history
from qaforum.security.schemas import LoginHistoryEntry, LoginHistoryResponse

router = APIRouter(prefix="/login-history", tags=["Security"])


@router.get("", response_model=LoginHistoryResponse)
async def get_login_history(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LoginHistoryResponse:
    rows = await recent_history(db, user.id)
    return LoginHistoryResponse(history=[LoginHistoryEntry.model_validate(r) for r in rows])
