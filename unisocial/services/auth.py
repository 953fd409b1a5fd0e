"""
Authentication Service

This service handles account lifecycle:
- Two-step email signup (code, then verified account)
- Password login with OAuth-only and unverified-account handling
- Password reset by emailed code
- Find-or-create for OAuth identities
"""

import re
import time
from datetime import datetime, timedelta
from typing import Optional, Tuple

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.config.i18n import SUPPORTED_LANGUAGES, normalize_language
from unisocial.integrations.oauth import PROVIDER_INFO, OAuthProfile
from unisocial.models.schemas.auth import SignupRequest
from unisocial.models.tables import EmailVerificationRow, UserRow
from unisocial.services.email import EmailService, generate_code
from unisocial.utils.auth import hash_password, issue_user_token, verify_password
from unisocial.utils.error_handling import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    OAuthError,
    PermissionDeniedError,
    ValidationError,
)
from unisocial.utils.logger import log_security_event, log_user_action

CODE_TTL = timedelta(minutes=10)
MIN_PASSWORD_LENGTH = 4

_USERNAME_CHARS = re.compile(r"[^a-zA-Z0-9가-힣]")


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    result = ""
    while number:
        number, remainder = divmod(number, 36)
        result = digits[remainder] + result
    return result or "0"


class AuthService:
    """Service for signup, login and password management."""

    def __init__(self, db: AsyncSession, email_service: Optional[EmailService] = None):
        """Initialize auth service."""
        self.db = db
        self.email = email_service or EmailService()
        self.logger = structlog.get_logger(__name__)

    async def get_user_by_email(self, email: str) -> Optional[UserRow]:
        result = await self.db.execute(select(UserRow).where(UserRow.email == email))
        return result.scalar_one_or_none()

    async def username_taken(self, username: str) -> bool:
        result = await self.db.execute(select(UserRow.id).where(UserRow.username == username))
        return result.first() is not None

    async def _latest_code(self, email: str, purpose: str, code: Optional[str] = None) -> Optional[EmailVerificationRow]:
        """Newest unused, unexpired code row for an address."""
        query = select(EmailVerificationRow).where(
            EmailVerificationRow.email == email,
            EmailVerificationRow.purpose == purpose,
            EmailVerificationRow.used.is_(False),
            EmailVerificationRow.expires_at > datetime.utcnow(),
        )
        if code is not None:
            query = query.where(EmailVerificationRow.code == code)
        query = query.order_by(EmailVerificationRow.created_at.desc(), EmailVerificationRow.id.desc())
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def _retire_codes(self, email: str, purpose: str) -> None:
        await self.db.execute(
            update(EmailVerificationRow)
            .where(
                EmailVerificationRow.email == email,
                EmailVerificationRow.purpose == purpose,
                EmailVerificationRow.used.is_(False),
            )
            .values(used=True)
        )

    async def start_signup(self, request: SignupRequest, lang: str) -> str:
        """
        Validate a signup and email a verification code.

        The pending account (with its bcrypt hash) is stored next to the code
        and only becomes a user once the code is confirmed.

        Returns:
            Language used for the email
        """
        email = request.email.lower()

        if await self.get_user_by_email(email):
            raise ConflictError("auth_email_exists")
        if await self.username_taken(request.username):
            raise ConflictError("auth_username_exists")

        language = normalize_language(request.language or lang)

        await self._retire_codes(email, "signup")
        code = generate_code()
        self.db.add(
            EmailVerificationRow(
                email=email,
                code=code,
                purpose="signup",
                pending_username=request.username,
                pending_password_hash=hash_password(request.password),
                pending_language=language,
                expires_at=datetime.utcnow() + CODE_TTL,
            )
        )
        await self.db.commit()

        await self.email.send_code(email, code, language, purpose="signup")
        self.logger.info("Signup code issued", email=email)
        return language

    async def verify_signup(self, email: str, code: str) -> Tuple[UserRow, str]:
        """
        Confirm a signup code and create the verified user.

        Returns:
            The new user and an access token
        """
        email = email.lower()
        pending = await self._latest_code(email, "signup", code=code)
        if pending is None or not pending.pending_password_hash:
            log_security_event("signup_code_rejected", severity="warning", email=email)
            raise ValidationError("auth_code_invalid", field="code")

        if await self.get_user_by_email(email):
            raise ConflictError("auth_email_exists")
        if await self.username_taken(pending.pending_username):
            raise ConflictError("auth_username_exists")

        pending.used = True
        user = UserRow(
            email=email,
            password_hash=pending.pending_password_hash,
            username=pending.pending_username,
            language=pending.pending_language or "ko",
            email_verified=True,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("auth_email_exists")

        await self.db.refresh(user)
        log_user_action(user.id, "signup", resource_type="user", resource_id=user.id)
        return user, issue_user_token(user)

    async def resend_code(self, email: str, language: Optional[str]) -> None:
        """Issue a fresh code for the newest pending signup of this address."""
        email = email.lower()
        result = await self.db.execute(
            select(EmailVerificationRow)
            .where(
                EmailVerificationRow.email == email,
                EmailVerificationRow.purpose == "signup",
                EmailVerificationRow.pending_password_hash.is_not(None),
            )
            .order_by(EmailVerificationRow.created_at.desc(), EmailVerificationRow.id.desc())
            .limit(1)
        )
        previous = result.scalar_one_or_none()
        if previous is None:
            raise ValidationError("auth_no_pending_signup", field="email")

        lang = normalize_language(language or previous.pending_language)
        await self._retire_codes(email, "signup")
        code = generate_code()
        self.db.add(
            EmailVerificationRow(
                email=email,
                code=code,
                purpose="signup",
                pending_username=previous.pending_username,
                pending_password_hash=previous.pending_password_hash,
                pending_language=previous.pending_language,
                expires_at=datetime.utcnow() + CODE_TTL,
            )
        )
        await self.db.commit()
        await self.email.send_code(email, code, lang, purpose="signup")

    async def login(self, email: str, password: str) -> Tuple[UserRow, str]:
        """
        Authenticate with email and password.

        Raises:
            AuthenticationError: Bad credentials, or an OAuth-only account
            PermissionDeniedError: Email not verified yet
        """
        email = email.lower()
        user = await self.get_user_by_email(email)

        if user is None or not user.password_hash or not verify_password(password, user.password_hash):
            if user is not None and not user.password_hash and user.oauth_provider:
                provider = PROVIDER_INFO.get(user.oauth_provider, {}).get("name", user.oauth_provider)
                raise AuthenticationError("auth_oauth_only", params={"provider": provider})
            log_security_event("login_failed", severity="warning", email=email)
            raise AuthenticationError("auth_invalid_credentials")

        if not user.email_verified:
            raise PermissionDeniedError(
                "auth_email_not_verified",
                extra={"requiresVerification": True, "email": user.email},
            )

        log_user_action(user.id, "login")
        return user, issue_user_token(user)

    async def forgot_password(self, email: str, lang: str) -> Optional[str]:
        """
        Email a password reset code.

        Returns:
            The code itself when SMTP is not configured, otherwise None
        """
        email = email.lower()
        user = await self.get_user_by_email(email)
        if user is None:
            raise NotFoundError("auth_user_not_found")

        await self._retire_codes(email, "password_reset")
        code = generate_code()
        self.db.add(
            EmailVerificationRow(
                email=email,
                code=code,
                purpose="password_reset",
                expires_at=datetime.utcnow() + CODE_TTL,
            )
        )
        await self.db.commit()

        sent = await self.email.send_code(email, code, user.language or lang, purpose="password_reset")
        log_security_event("password_reset_requested", user_id=user.id)
        return None if sent else code

    async def reset_password(self, email: str, code: str, new_password: str) -> UserRow:
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError("auth_password_too_short", field="newPassword")

        email = email.lower()
        row = await self._latest_code(email, "password_reset", code=code)
        if row is None:
            log_security_event("reset_code_rejected", severity="warning", email=email)
            raise ValidationError("auth_code_invalid", field="code")

        user = await self.get_user_by_email(email)
        if user is None:
            raise NotFoundError("auth_user_not_found")

        row.used = True
        user.password_hash = hash_password(new_password)
        user.email_verified = True
        await self.db.commit()

        log_security_event("password_reset", user_id=user.id)
        return user

    async def update_language(self, user: UserRow, language: str) -> UserRow:
        if language not in SUPPORTED_LANGUAGES:
            raise ValidationError("auth_language_invalid", field="language")
        user.language = language
        await self.db.commit()
        return user

    async def _unique_username(self, display_name: str) -> str:
        base = _USERNAME_CHARS.sub("", display_name)[:30] or "user"
        username = base
        while await self.username_taken(username):
            username = f"{base}_{_base36(int(time.time() * 1000))[-4:]}"
        return username

    async def find_or_create_oauth_user(self, profile: OAuthProfile) -> UserRow:
        """
        Resolve an OAuth identity to a local user.

        Order: same provider and id; then an existing account with the same
        email (linked and marked verified); otherwise a new verified user.
        """
        if not profile.email:
            raise OAuthError(f"Email not provided by {profile.provider}")

        result = await self.db.execute(
            select(UserRow).where(
                UserRow.oauth_provider == profile.provider,
                UserRow.oauth_id == profile.id,
            )
        )
        user = result.scalar_one_or_none()
        if user is not None:
            return user

        email = profile.email.lower()
        user = await self.get_user_by_email(email)
        if user is not None:
            user.oauth_provider = profile.provider
            user.oauth_id = profile.id
            user.email_verified = True
            await self.db.commit()
            log_user_action(user.id, "oauth_linked", provider=profile.provider)
            return user

        username = await self._unique_username(profile.display_name or email.split("@")[0])
        user = UserRow(
            email=email,
            username=username,
            oauth_provider=profile.provider,
            oauth_id=profile.id,
            email_verified=True,
            language="ko",
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        log_user_action(user.id, "oauth_signup", provider=profile.provider)
        return user
