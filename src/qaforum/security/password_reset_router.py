"""Password reset endpoints (unauthenticated)."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.database import get_session
from qaforum.schemas import MessageResponse
from qaforum.security import password_reset
from qaforum.security.schemas import (
    ResetPasswordRequest,
    ResetRequest,
    ResetRequestResponse,
    VerifyTokenResponse,
)

router = APIRouter(prefix="/password-reset", tags=["Password Reset"])


@router.post("/request-reset", response_model=ResetRequestResponse)
async def request_reset(
    body: ResetRequest,
    db: AsyncSession = Depends(get_session),
) -> ResetRequestResponse:
    result = await password_reset.request_reset(db, email=body.email, phone=body.phone)
    where = "email" if result.reset_type == "email" else "phone"
    return ResetRequestResponse(
        message=f"Password reset instructions sent to your {where}",
        reset_type=result.reset_type,
        delivered=result.delivered,
    )


@router.get("/verify-token/{reset_token}", response_model=VerifyTokenResponse)
async def verify_reset_token(
    reset_token: str,
    db: AsyncSession = Depends(get_session),
) -> VerifyTokenResponse:
    reset = await password_reset.verify_token(db, reset_token)
    return VerifyTokenResponse(reset_type=reset.reset_type, reset_value=reset.reset_value)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    _, delivered = await password_reset.reset_password(db, body.reset_token)
    if not delivered:
        return MessageResponse(message="Password was reset but the new password could not be delivered")
    return MessageResponse(message="Password reset successful. Your new password has been sent.")
