"""
Social Account API Endpoints

This module contains the connected-account endpoints:
- Listing and syncing accounts from Late
- Browser redirect to Late's connect flow
- Local disconnect and reconnect
"""

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.api.deps import get_lang, get_late_client
from unisocial.config.database import get_db
from unisocial.config.i18n import t
from unisocial.integrations.late import LateClient
from unisocial.models.platform import PlatformsResponse, platform_catalogue
from unisocial.models.schemas.common import ErrorResponse
from unisocial.models.social import (
    AccountActionResponse,
    AccountsResponse,
    ProfilesResponse,
    SocialAccountOut,
    SyncResponse,
)
from unisocial.models.tables import UserRow
from unisocial.services.social import SocialAccountService
from unisocial.utils.auth import get_current_user

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_social_service(
    db: AsyncSession = Depends(get_db),
    late: LateClient = Depends(get_late_client),
) -> SocialAccountService:
    """Get social account service instance."""
    return SocialAccountService(db, late)


def _out(rows):
    return [SocialAccountOut.model_validate(row) for row in rows]


@router.get("/accounts", response_model=AccountsResponse)
async def list_accounts(
    current_user: UserRow = Depends(get_current_user),
    social: SocialAccountService = Depends(get_social_service),
) -> AccountsResponse:
    """All of the caller's accounts, newest first, active or not."""
    return AccountsResponse(accounts=_out(await social.list_accounts(current_user.id)))


@router.post(
    "/sync",
    response_model=SyncResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Late not configured or no profile"},
        500: {"model": ErrorResponse, "description": "Late API error"},
    }
)
async def sync_accounts(
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    social: SocialAccountService = Depends(get_social_service),
) -> SyncResponse:
    logger.info("Account sync requested", user_id=current_user.id)
    active, synced = await social.sync_accounts(current_user.id)
    return SyncResponse(message=t(lang, "social_synced"), accounts=_out(active), synced=synced)


@router.get(
    "/connect/{platform}",
    responses={400: {"model": ErrorResponse, "description": "Unsupported platform"}}
)
async def connect_platform(
    platform: str,
    current_user: UserRow = Depends(get_current_user),
    social: SocialAccountService = Depends(get_social_service),
) -> RedirectResponse:
    """
    Send the browser to Late's connect page for a platform.

    Opened as a plain navigation, so the token usually arrives as ``?token=``.
    """
    url = await social.connect_redirect(current_user.id, platform)
    return RedirectResponse(url, status_code=302)


@router.delete(
    "/accounts/{account_id}",
    response_model=AccountActionResponse,
    responses={404: {"model": ErrorResponse, "description": "Account not found"}}
)
async def disconnect_account(
    account_id: int,
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    social: SocialAccountService = Depends(get_social_service),
) -> AccountActionResponse:
    active = await social.disconnect(current_user.id, account_id)
    return AccountActionResponse(message=t(lang, "social_disconnected"), accounts=_out(active))


@router.post(
    "/accounts/{account_id}/reconnect",
    response_model=AccountActionResponse,
    responses={404: {"model": ErrorResponse, "description": "No inactive account with this id"}}
)
async def reconnect_account(
    account_id: int,
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    social: SocialAccountService = Depends(get_social_service),
) -> AccountActionResponse:
    active = await social.reconnect(current_user.id, account_id)
    return AccountActionResponse(message=t(lang, "social_reconnected"), accounts=_out(active))


@router.get("/profiles", response_model=ProfilesResponse)
async def list_profiles(
    current_user: UserRow = Depends(get_current_user),
    social: SocialAccountService = Depends(get_social_service),
) -> ProfilesResponse:
    return ProfilesResponse(profiles=await social.profiles())


@router.get("/platforms", response_model=PlatformsResponse)
async def list_platforms(lang: str = Depends(get_lang)) -> PlatformsResponse:
    return platform_catalogue(lang)
