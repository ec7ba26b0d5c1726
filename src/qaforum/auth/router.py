"""Identity endpoints: /user/signup, /user/login, /user/verify-login-otp, profiles."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from qaforum.auth.dependencies import get_current_user
from qaforum.auth.jwt import create_access_token
from qaforum.auth.schemas import (
    AuthResponse,
    LoginRequest,
    OtpRequiredResponse,
    ProfileUpdateRequest,
    SignupRequest,
    UserListResponse,
    UserResponse,
    VerifyLoginOtpRequest,
)
from qaforum.auth.service import (
    LoginOutcome,
    authenticate,
    list_users,
    register_user,
    update_profile,
    verify_login_otp,
)
from qaforum.database import get_session
from qaforum.db.models import User
from qaforum.schemas import UserProfile
from qaforum.security.client_info import client_from_request

logger = structlog.get_logger()

router = APIRouter(prefix="/user", tags=["Users"])


def _auth_response(outcome: LoginOutcome) -> AuthResponse:
    return AuthResponse(
        data=UserProfile.model_validate(outcome.user),
        token=outcome.token or "",
        unusual_login=outcome.unusual_login,
    )


@router.post("/signup", response_model=AuthResponse)
async def signup(
    body: SignupRequest,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Create an account and return a session token."""
    user = await register_user(db, name=body.name, email=body.email, password=body.password, phone=body.phone)
    await db.commit()
    return AuthResponse(data=UserProfile.model_validate(user), token=create_access_token(user.id, user.email))


@router.post("/login", response_model=AuthResponse | OtpRequiredResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse | OtpRequiredResponse:
    """Log in; Chrome clients receive an emailed code instead of a token."""
    outcome = await authenticate(db, body.email, body.password, client_from_request(request))
    if outcome.requires_otp:
        return OtpRequiredResponse(
            message="OTP sent to your email. Please verify to complete login.",
            user_id=outcome.user.id,
            otp_delivered=outcome.otp_delivered,
        )
    await db.commit()
    return _auth_response(outcome)


@router.post("/verify-login-otp", response_model=AuthResponse)
async def verify_login(
    body: VerifyLoginOtpRequest,
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    outcome = await verify_login_otp(db, body.user_id, body.otp, client_from_request(request))
    await db.commit()
    return _auth_response(outcome)


@router.get("/getallusers", response_model=UserListResponse)
async def get_all_users(db: AsyncSession = Depends(get_session)) -> UserListResponse:
    users = await list_users(db)
    return UserListResponse(data=[UserProfile.model_validate(u) for u in users])


@router.patch("/update/{user_id}", response_model=UserResponse)
async def update_user_profile(
    user_id: int,
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    updated = await update_profile(db, user, user_id, name=body.name, about=body.about, tags=body.tags)
    await db.commit()
    logger.info("profile_updated", user_id=user.id)
    return UserResponse(data=UserProfile.model_validate(updated))
