"""Request/response schemas for the /user endpoints."""

from __future__ import annotations

from pydantic import EmailStr, Field, field_validator

from qaforum.schemas import CamelModel, UserProfile


class SignupRequest(CamelModel):
    """Account creation request."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)
    phone: str | None = Field(None, max_length=32)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class VerifyLoginOtpRequest(CamelModel):
    user_id: int
    otp: str = Field(..., min_length=4, max_length=10)


class ProfileUpdateRequest(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    about: str | None = Field(None, max_length=2000)
    tags: list[str] | None = None


class AuthResponse(CamelModel):
    """Session issued: the user and a bearer token."""

    data: UserProfile
    token: str
    unusual_login: bool = False


class OtpRequiredResponse(CamelModel):
    message: str
    requires_otp: bool = Field(True, alias="requiresOTP")
    user_id: int
    otp_delivered: bool = True


class UserResponse(CamelModel):
    data: UserProfile


class UserListResponse(CamelModel):
    data: list[UserProfile]
