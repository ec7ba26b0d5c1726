"""Preferred-language endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.dependencies import get_current_user
from qaforum.database import get_session
from qaforum.db.models import User
from qaforum.security.language import SUPPORTED_LANGUAGES, get_or_create_language, request_change, verify_change
from qaforum.security.schemas import (
    LanguageChangeRequest,
    LanguageChangeResponse,
    LanguageResponse,
    LanguageVerifyRequest,
)

router = APIRouter(prefix="/language", tags=["Language"])


@router.get("", response_model=LanguageResponse)
async def get_language(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LanguageResponse:
    row = await get_or_create_language(db, user.id)
    await db.commit()
    return LanguageResponse(language=row.language, supported_languages=SUPPORTED_LANGUAGES)


@router.post("/request-change", response_model=LanguageChangeResponse)
async def request_language_change(
    body: LanguageChangeRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LanguageChangeResponse:
    delivered = await request_change(db, user, body.language, body.method)
    target = "email" if body.method == "email" else "phone"
    message = f"OTP sent to your {target}" if delivered else f"OTP created but could not be sent to your {target}"
    return LanguageChangeResponse(message=message, otp_delivered=delivered)


@router.post("/verify-change", response_model=LanguageResponse)
async def verify_language_change(
    body: LanguageVerifyRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LanguageResponse:
    row = await verify_change(db, user, body.otp)
    await db.commit()
    return LanguageResponse(language=row.language, supported_languages=SUPPORTED_LANGUAGES)
