"""
Post API Endpoints

This module contains the cross-posting endpoints:
- Publish now or schedule on several platforms at once
- Paged post history
- Rescheduling and deleting scheduled posts
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.api.deps import (
    get_lang,
    get_late_client,
    get_media_host_client,
    get_upload_service,
    require_post_quota,
)
from unisocial.config.database import get_db
from unisocial.config.i18n import t
from unisocial.integrations.late import LateClient
from unisocial.integrations.media_host import MediaHostClient
from unisocial.models.post import (
    PostListResponse,
    PostOut,
    PostPublishResponse,
    PostRequest,
    PostResponse,
    PostStatus,
)
from unisocial.models.schemas.common import ErrorResponse, MessageResponse
from unisocial.models.tables import UserRow
from unisocial.services.publishing import PublishingService
from unisocial.services.uploads import UploadService
from unisocial.services.usage import UsageService
from unisocial.utils.auth import get_current_user

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_publishing_service(
    db: AsyncSession = Depends(get_db),
    late: LateClient = Depends(get_late_client),
    media_host: MediaHostClient = Depends(get_media_host_client),
    uploads: UploadService = Depends(get_upload_service),
) -> PublishingService:
    """Get publishing service instance."""
    return PublishingService(db, late, media_host=media_host, uploads=uploads)


def _published_message(lang: str, request: PostRequest, updated: bool = False) -> str:
    if updated:
        return t(lang, "post_updated")
    return t(lang, "post_scheduled" if request.is_scheduled else "post_created")


@router.post(
    "",
    response_model=PostPublishResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_post_quota)],
    responses={
        400: {"model": ErrorResponse, "description": "Missing content, platforms or accounts"},
        403: {"model": ErrorResponse, "description": "Plan does not allow this post"},
        429: {"model": ErrorResponse, "description": "Monthly post limit reached"},
        500: {"model": ErrorResponse, "description": "Late API error"},
    }
)
async def create_post(
    request: PostRequest,
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    publishing: PublishingService = Depends(get_publishing_service),
) -> PostPublishResponse:
    """
    Publish or schedule a post on every requested platform.

    Scheduling is a paid feature; the post is counted against the
    monthly quota either way.
    """
    logger.info(
        "Post requested",
        user_id=current_user.id,
        platforms=request.platforms,
        scheduled=request.is_scheduled,
    )
    if request.is_scheduled:
        await UsageService(db).check_schedule_permission(current_user.id)

    post, late_result = await publishing.create_post(current_user.id, request)
    return PostPublishResponse(
        message=_published_message(lang, request),
        post=PostOut.model_validate(post),
        late=late_result,
    )


@router.get("", response_model=PostListResponse)
async def list_posts(
    status_filter: Optional[PostStatus] = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: UserRow = Depends(get_current_user),
    publishing: PublishingService = Depends(get_publishing_service),
) -> PostListResponse:
    posts, total = await publishing.list_posts(
        current_user.id,
        status=status_filter.value if status_filter else None,
        limit=limit,
        offset=offset,
    )
    return PostListResponse(
        posts=[PostOut.model_validate(post) for post in posts],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    responses={404: {"model": ErrorResponse, "description": "Post not found"}}
)
async def get_post(
    post_id: int,
    current_user: UserRow = Depends(get_current_user),
    publishing: PublishingService = Depends(get_publishing_service),
) -> PostResponse:
    post = await publishing.get_post(current_user.id, post_id)
    return PostResponse(post=PostOut.model_validate(post))


@router.put(
    "/{post_id}",
    response_model=PostPublishResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Post is not scheduled"},
        404: {"model": ErrorResponse, "description": "Post not found"},
    }
)
async def update_post(
    post_id: int,
    request: PostRequest,
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    publishing: PublishingService = Depends(get_publishing_service),
) -> PostPublishResponse:
    """Replace a scheduled post's content, media, platforms or time."""
    if request.is_scheduled:
        await UsageService(db).check_schedule_permission(current_user.id)

    post, late_result = await publishing.update_post(current_user.id, post_id, request)
    return PostPublishResponse(
        message=_published_message(lang, request, updated=True),
        post=PostOut.model_validate(post),
        late=late_result,
    )


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse, "description": "Post not found"}}
)
async def delete_post(
    post_id: int,
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    publishing: PublishingService = Depends(get_publishing_service),
) -> MessageResponse:
    await publishing.delete_post(current_user.id, post_id)
    return MessageResponse(message=t(lang, "post_deleted"))
