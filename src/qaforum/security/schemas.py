"""Request/response schemas for language, login-history and password-reset endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field

from qaforum.schemas import CamelModel


# --- Language ---


class LanguageResponse(CamelModel):
    success: bool = True
    language: str
    supported_languages: dict[str, str]


class LanguageChangeRequest(CamelModel):
    language: str = Field(..., min_length=2, max_length=8)
    method: Literal["email", "sms"] = "email"


class LanguageVerifyRequest(CamelModel):
    otp: str = Field(..., min_length=4, max_length=10)


class LanguageChangeResponse(CamelModel):
    success: bool = True
    message: str
    otp_delivered: bool = True


# --- Login history ---


class LoginHistoryEntry(CamelModel):
    id: int
    ip_address: str
    browser_name: str
    browser_version: str
    os_name: str
    os_version: str
    device_type: str
    status: str
    failure_reason: str | None = None
    created_at: datetime


class LoginHistoryResponse(CamelModel):
    success: bool = True
    history: list[LoginHistoryEntry]


# --- Password reset ---


class ResetRequest(CamelModel):
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=32)


class ResetRequestResponse(CamelModel):
    success: bool = True
    message: str
    reset_type: str
    delivered: bool = True


class ResetPasswordRequest(CamelModel):
    reset_token: str = Field(..., min_length=1, max_length=128)


class VerifyTokenResponse(CamelModel):
    success: bool = True
    reset_type: str
    reset_value: str
