"""Pydantic schemas for signup, login and password reset."""

from datetime import datetime

from pydantic import Field

from shareme.schemas.common import EMAIL_PATTERN, CamelModel, UserInfo


class SignupRequest(CamelModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class AuthResponse(CamelModel):
    """Login result. Clients send `token` back as `Authorization: Bearer <token>`."""
    token: str
    token_type: str = "Bearer"
    expires_at: datetime
    user: UserInfo


class ForgotPasswordRequest(CamelModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)
