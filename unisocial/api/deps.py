"""
Shared API Dependencies

Request language, vendor client providers and the usage-limit guards
used by the post and AI routers.
"""

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.config.database import get_db
from unisocial.config.i18n import DEFAULT_LANGUAGE
from unisocial.integrations.claude import ClaudeClient
from unisocial.integrations.deepl import DeepLClient
from unisocial.integrations.late import LateClient
from unisocial.integrations.media_host import MediaHostClient
from unisocial.integrations.portone import PortOneClient
from unisocial.models.tables import UserRow
from unisocial.services.email import EmailService
from unisocial.services.uploads import UploadService
from unisocial.services.usage import AI_FIELD, POSTS_FIELD, UsageService
from unisocial.utils.auth import get_current_user


def get_lang(request: Request) -> str:
    """Language chosen by the language middleware."""
    return getattr(request.state, "lang", DEFAULT_LANGUAGE)


def get_late_client() -> LateClient:
    return LateClient()


def get_claude_client() -> ClaudeClient:
    return ClaudeClient()


def get_deepl_client() -> DeepLClient:
    return DeepLClient()


def get_portone_client() -> PortOneClient:
    return PortOneClient()


def get_media_host_client() -> MediaHostClient:
    return MediaHostClient()


def get_email_service() -> EmailService:
    return EmailService()


def get_upload_service() -> UploadService:
    return UploadService()


async def require_post_quota(
    response: Response,
    current_user: UserRow = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Reject the request once the monthly post quota is used up."""
    check = await UsageService(db).check_limit(current_user.id, POSTS_FIELD)
    if check:
        response.headers.update(check.headers())


async def require_ai_quota(
    response: Response,
    current_user: UserRow = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Reject the request once the monthly AI quota is used up."""
    check = await UsageService(db).check_limit(current_user.id, AI_FIELD)
    if check:
        response.headers.update(check.headers())
