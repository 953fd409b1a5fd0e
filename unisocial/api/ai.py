"""
AI Assistance API Endpoints

Caption suggestions, content ideas and translation. Every endpoint sits
behind the monthly AI quota.
"""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.api.deps import get_claude_client, get_deepl_client, get_lang, require_ai_quota
from unisocial.config.database import get_db
from unisocial.integrations.claude import ClaudeClient
from unisocial.integrations.deepl import DeepLClient
from unisocial.models.ai import (
    IdeasRequest,
    IdeasResponse,
    SuggestRequest,
    SuggestResponse,
    TranslateRequest,
    TranslateResponse,
)
from unisocial.models.schemas.common import ErrorResponse
from unisocial.models.tables import UserRow
from unisocial.services.ai import AIService
from unisocial.utils.auth import get_current_user

router = APIRouter(dependencies=[Depends(require_ai_quota)])
logger = structlog.get_logger(__name__)


def get_ai_service(
    db: AsyncSession = Depends(get_db),
    claude: ClaudeClient = Depends(get_claude_client),
    deepl: DeepLClient = Depends(get_deepl_client),
) -> AIService:
    """Get AI service instance."""
    return AIService(db, claude, deepl)


@router.post(
    "/suggest",
    response_model=SuggestResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Topic missing"},
        429: {"model": ErrorResponse, "description": "Monthly AI limit reached"},
        500: {"model": ErrorResponse, "description": "Claude API error"},
    }
)
async def suggest(
    request: SuggestRequest,
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
) -> SuggestResponse:
    """Platform-optimized captions, hashtags and posting times for a topic."""
    logger.info("Caption suggestion requested", user_id=current_user.id, platforms=request.platforms)
    return SuggestResponse(**await ai.suggest_captions(current_user.id, request, lang))


@router.post(
    "/ideas",
    response_model=IdeasResponse,
    responses={429: {"model": ErrorResponse, "description": "Monthly AI limit reached"}}
)
async def ideas(
    request: IdeasRequest,
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
) -> IdeasResponse:
    return IdeasResponse(**await ai.suggest_ideas(current_user.id, request, lang))


@router.post(
    "/translate",
    response_model=TranslateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Incomplete request or DeepL not configured"},
        429: {"model": ErrorResponse, "description": "Monthly AI limit reached"},
    }
)
async def translate(
    request: TranslateRequest,
    current_user: UserRow = Depends(get_current_user),
    ai: AIService = Depends(get_ai_service),
) -> TranslateResponse:
    """Translate a caption into several languages at once."""
    return TranslateResponse(**await ai.translate(current_user.id, request))
