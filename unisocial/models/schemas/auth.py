"""
Authentication Schemas

Request and response schemas for signup, verification, login and
password reset endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SignupRequest(BaseModel):
    """Request schema for starting a signup."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")
    username: str = Field(..., min_length=1, max_length=50, description="Public username")
    language: Optional[str] = Field(None, description="Preferred UI language")


class SignupResponse(BaseModel):
    """Response schema once a verification code has been sent."""

    message: str = Field(..., description="Localized message")
    email: EmailStr = Field(..., description="Address the code was sent to")
    requiresVerification: bool = Field(default=True, description="Always true")


class VerifyRequest(BaseModel):
    """Request schema for confirming a signup code."""

    email: EmailStr = Field(..., description="User email address")
    code: str = Field(..., description="6-digit code")


class ResendCodeRequest(BaseModel):
    email: EmailStr = Field(..., description="User email address")
    language: Optional[str] = Field(None, description="Language of the email")


class LoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


class ForgotPasswordRequest(BaseModel):
    email: EmailStr = Field(..., description="User email address")


class ForgotPasswordResponse(BaseModel):
    message: str = Field(..., description="Localized message")
    devCode: Optional[str] = Field(None, description="Reset code, only when SMTP is not configured")


class ResetPasswordRequest(BaseModel):
    """Request schema for completing a password reset."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr = Field(..., description="User email address")
    code: str = Field(..., description="6-digit reset code")
    new_password: str = Field(..., alias="newPassword", description="New password")


class LanguageUpdateRequest(BaseModel):
    language: str = Field(..., description="One of ko, en, zh, ja")


class UserOut(BaseModel):
    """Public view of a user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str
    language: str
    email_verified: bool = False
    oauth_provider: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthResponse(BaseModel):
    """Response schema for successful authentication."""

    message: str = Field(..., description="Localized message")
    token: str = Field(..., description="JWT access token")
    user: UserOut = Field(..., description="Authenticated user")


class UserResponse(BaseModel):
    user: UserOut


class LanguageResponse(BaseModel):
    message: str
    language: str
