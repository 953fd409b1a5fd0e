"""
OAuth Login API Endpoints

Google and Microsoft authorization-code logins and Sign in with Apple.
Every flow ends in a browser redirect to the frontend carrying either a
JWT and the user, or an ``error`` query parameter.
"""

from typing import Dict, List, Optional
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Depends, Form, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.config.database import get_db
from unisocial.config.settings import get_settings
from unisocial.integrations.oauth import (
    OAuthClient,
    OAuthProfile,
    enabled_providers,
    parse_apple_callback,
)
from unisocial.models.schemas.auth import UserOut
from unisocial.services.auth import AuthService
from unisocial.utils.auth import create_oauth_state, issue_user_token, verify_oauth_state
from unisocial.utils.error_handling import OAuthError
from unisocial.utils.logger import log_security_event

router = APIRouter()
logger = structlog.get_logger(__name__)

CODE_PROVIDERS = ("google", "microsoft")


def get_oauth_client(provider: str) -> OAuthClient:
    return OAuthClient(provider)


def _frontend() -> str:
    return get_settings().frontend_url.rstrip("/")


def _failure(provider: str) -> RedirectResponse:
    return RedirectResponse(f"{_frontend()}/?error={provider}_failed", status_code=302)


async def _complete_login(db: AsyncSession, profile: OAuthProfile) -> RedirectResponse:
    """Find or create the user and hand the token to the frontend."""
    user = await AuthService(db).find_or_create_oauth_user(profile)
    user_json = UserOut.model_validate(user).model_dump_json(include={"id", "email", "username", "language"})
    query = urlencode({"token": issue_user_token(user), "user": user_json})
    log_security_event("oauth_login", user_id=user.id, provider=profile.provider)
    return RedirectResponse(f"{_frontend()}/?{query}", status_code=302)


@router.get("/providers")
async def providers() -> Dict[str, List[Dict[str, str]]]:
    """OAuth providers with credentials configured."""
    return {"providers": enabled_providers()}


@router.get("/apple")
async def apple_login() -> RedirectResponse:
    client = get_oauth_client("apple")
    if not client.configured:
        return _failure("apple")
    return RedirectResponse(client.authorization_url(create_oauth_state("apple")), status_code=302)


@router.post("/apple/callback")
async def apple_callback(
    id_token: Optional[str] = Form(None),
    state: Optional[str] = Form(None),
    user: Optional[str] = Form(None),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    """Apple posts the id_token back as a form (``response_mode=form_post``)."""
    if not id_token or not verify_oauth_state(state, "apple"):
        log_security_event("oauth_state_rejected", severity="warning", provider="apple")
        return _failure("apple")

    try:
        profile = parse_apple_callback(id_token, user)
        return await _complete_login(db, profile)
    except (OAuthError, SQLAlchemyError) as e:
        logger.error("Apple login failed", error=str(e))
        return _failure("apple")


@router.get("/{provider}")
async def oauth_login(provider: str) -> RedirectResponse:
    """Redirect the browser to the provider's consent screen."""
    if provider not in CODE_PROVIDERS:
        return _failure(provider)
    client = get_oauth_client(provider)
    if not client.configured:
        logger.warning("OAuth provider not configured", provider=provider)
        return _failure(provider)
    return RedirectResponse(client.authorization_url(create_oauth_state(provider)), status_code=302)


@router.get("/{provider}/callback")
async def oauth_callback(
    provider: str,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    if provider not in CODE_PROVIDERS:
        return _failure(provider)
    if error or not code or not verify_oauth_state(state, provider):
        log_security_event("oauth_callback_rejected", severity="warning", provider=provider, error=error)
        return _failure(provider)

    client = get_oauth_client(provider)
    try:
        access_token = await client.exchange_code(code)
        profile = await client.fetch_profile(access_token)
        return await _complete_login(db, profile)
    except (OAuthError, SQLAlchemyError) as e:
        logger.error("OAuth login failed", provider=provider, error=str(e))
        return _failure(provider)
