"""
Authentication API Endpoints

This module contains all authentication-related endpoints including:
- Two-step email signup with a verification code
- Login, logout and the current user
- Password reset by emailed code
- Preferred language
"""

import structlog
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.api.deps import get_email_service, get_lang
from unisocial.config.database import get_db
from unisocial.config.i18n import t
from unisocial.models.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LanguageResponse,
    LanguageUpdateRequest,
    LoginRequest,
    ResendCodeRequest,
    ResetPasswordRequest,
    SignupRequest,
    SignupResponse,
    UserOut,
    UserResponse,
    VerifyRequest,
)
from unisocial.models.schemas.common import ErrorResponse, MessageResponse
from unisocial.models.tables import UserRow
from unisocial.services.auth import AuthService
from unisocial.services.email import EmailService
from unisocial.utils.auth import get_current_user
from unisocial.utils.logger import log_user_action

# Initialize router and logger
router = APIRouter()
logger = structlog.get_logger(__name__)


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> AuthService:
    """Get authentication service instance."""
    return AuthService(db, email_service)


@router.post(
    "/signup",
    response_model=SignupResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid signup data"},
        409: {"model": ErrorResponse, "description": "Email or username already taken"},
    }
)
async def signup(
    request: SignupRequest,
    lang: str = Depends(get_lang),
    auth_service: AuthService = Depends(get_auth_service),
) -> SignupResponse:
    """
    Start a signup.

    Nothing is created yet: a 6-digit code is emailed and the account only
    exists once ``/verify`` confirms it.
    """
    logger.info("Signup attempt", email=request.email)
    language = await auth_service.start_signup(request, lang)
    return SignupResponse(message=t(language, "auth_code_sent"), email=request.email)


@router.post(
    "/verify",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired code"},
        409: {"model": ErrorResponse, "description": "Account already exists"},
    }
)
async def verify(
    request: VerifyRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Confirm the signup code and create the account."""
    user, token = await auth_service.verify_signup(request.email, request.code)
    logger.info("User registered", user_id=user.id)
    return AuthResponse(
        message=t(user.language, "auth_signup_success"),
        token=token,
        user=UserOut.model_validate(user),
    )


@router.post(
    "/resend-code",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "No pending signup"}}
)
async def resend_code(
    request: ResendCodeRequest,
    lang: str = Depends(get_lang),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.resend_code(request.email, request.language)
    return MessageResponse(message=t(request.language or lang, "auth_code_resent"))


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Email not verified"},
    }
)
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResponse:
    """Authenticate with email and password and return a JWT."""
    logger.info("User login attempt", email=request.email)
    user, token = await auth_service.login(request.email, request.password)
    return AuthResponse(
        message=t(user.language, "auth_login_success"),
        token=token,
        user=UserOut.model_validate(user),
    )


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse, "description": "Unknown email"}}
)
async def forgot_password(
    request: ForgotPasswordRequest,
    lang: str = Depends(get_lang),
    auth_service: AuthService = Depends(get_auth_service),
) -> ForgotPasswordResponse:
    """
    Email a password reset code.

    Without SMTP the code is returned as ``devCode`` so local setups can
    still reset passwords.
    """
    dev_code = await auth_service.forgot_password(request.email, lang)
    return ForgotPasswordResponse(message=t(lang, "auth_reset_code_sent"), devCode=dev_code)


@router.post(
    "/reset-password",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid code or password"},
        404: {"model": ErrorResponse, "description": "Unknown email"},
    }
)
async def reset_password(
    request: ResetPasswordRequest,
    lang: str = Depends(get_lang),
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth_service.reset_password(request.email, request.code, request.new_password)
    return MessageResponse(message=t(lang, "auth_password_reset"))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
) -> MessageResponse:
    """Tokens are stateless; the client simply discards its copy."""
    log_user_action(current_user.id, "logout")
    return MessageResponse(message=t(lang, "auth_logged_out"))


@router.get(
    "/me",
    response_model=UserResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}}
)
async def me(current_user: UserRow = Depends(get_current_user)) -> UserResponse:
    return UserResponse(user=UserOut.model_validate(current_user))


@router.patch(
    "/language",
    response_model=LanguageResponse,
    responses={400: {"model": ErrorResponse, "description": "Unsupported language"}}
)
async def update_language(
    request: LanguageUpdateRequest,
    current_user: UserRow = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> LanguageResponse:
    user = await auth_service.update_language(current_user, request.language)
    return LanguageResponse(message=t(user.language, "auth_language_updated"), language=user.language)
