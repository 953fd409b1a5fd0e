"""
Publishing Service

This service handles the cross-posting workflow:
- Resolving the user's Late account for each requested platform
- Re-hosting locally uploaded media on a public host
- Creating, rescheduling and deleting posts on Late
- Recording every post and Late's per-platform results
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.config.plans import UNLIMITED, get_plan
from unisocial.integrations.late import LateClient, entity_id
from unisocial.integrations.media_host import MediaHostClient
from unisocial.models.platform import PLATFORMS, is_supported_platform
from unisocial.models.post import MediaItem, PostRequest, PostStatus
from unisocial.models.tables import PostRow
from unisocial.services.social import SocialAccountService
from unisocial.services.uploads import UploadService
from unisocial.services.usage import UsageService
from unisocial.utils.error_handling import (
    ExternalServiceError,
    LateAPIError,
    NotFoundError,
    ValidationError,
)
from unisocial.utils.logger import log_user_action

FAILED_STATES = {"failed", "error"}
DONE_STATES = {"published", "success", "posted", "completed"}
TOP_LEVEL_STATES = {
    "failed": PostStatus.FAILED,
    "partial": PostStatus.PARTIAL,
    "scheduled": PostStatus.SCHEDULED,
    "pending": PostStatus.PUBLISHING,
    "publishing": PostStatus.PUBLISHING,
    "processing": PostStatus.PUBLISHING,
}


def late_post_of(late_result: Dict[str, Any]) -> Dict[str, Any]:
    post = late_result.get("post")
    return post if isinstance(post, dict) else late_result


def derive_status(late_result: Dict[str, Any], scheduled: bool = False) -> PostStatus:
    """
    Map Late's answer onto a local post status.

    Per-platform results win: all failed is ``failed``, some failed is
    ``partial``, all done is ``published``. Otherwise the top-level status
    decides, defaulting to ``published``.
    """
    if scheduled:
        return PostStatus.SCHEDULED

    post = late_post_of(late_result)
    statuses = [
        str(entry.get("status")).lower()
        for entry in post.get("platforms") or []
        if isinstance(entry, dict) and entry.get("status")
    ]
    if statuses:
        failed = sum(1 for s in statuses if s in FAILED_STATES)
        if failed == len(statuses):
            return PostStatus.FAILED
        if failed:
            return PostStatus.PARTIAL
        if all(s in DONE_STATES for s in statuses):
            return PostStatus.PUBLISHED

    top = str(post.get("status") or "").lower()
    return TOP_LEVEL_STATES.get(top, PostStatus.PUBLISHED)


def to_late_time(value: datetime) -> str:
    return value.replace(microsecond=0).isoformat() + "Z"


class PublishingService:
    """Service for publishing content through Late."""

    def __init__(
        self,
        db: AsyncSession,
        late: LateClient,
        media_host: Optional[MediaHostClient] = None,
        uploads: Optional[UploadService] = None,
    ):
        """Initialize publishing service."""
        self.db = db
        self.late = late
        self.media_host = media_host or MediaHostClient()
        self.uploads = uploads or UploadService()
        self.social = SocialAccountService(db, late)
        self.usage = UsageService(db)
        self.logger = structlog.get_logger(__name__)

    def _check_request(self, request: PostRequest) -> None:
        if (not request.content and not request.media_items) or not request.platforms:
            raise ValidationError("post_content_required")

        unsupported = [p for p in request.platforms if not is_supported_platform(p)]
        if unsupported:
            raise ValidationError(
                "social_platform_invalid",
                field="platforms",
                extra={"unsupported": unsupported, "supported": PLATFORMS},
            )

    async def _publicize(self, item: MediaItem) -> Dict[str, Any]:
        """Swap a local upload URL for a public one; keep the local URL on failure."""
        data = item.model_dump()
        path = self.uploads.local_path(item.url)
        if path is None:
            return data

        try:
            data["url"] = await self.media_host.upload_file(path)
            self.logger.info("Media re-hosted", filename=path.name, url=data["url"])
        except (ExternalServiceError, OSError) as e:
            self.logger.warning("Public re-upload failed, keeping local URL", filename=path.name, error=str(e))
        return data

    async def _dispatch(self, user_id: int, request: PostRequest) -> Tuple[Dict[str, Any], List[Dict[str, Any]]]:
        """
        Send a post to Late.

        Returns:
            Late's response and the media items actually sent
        """
        targets = await self.social.publish_targets(user_id, request.platforms)
        if not targets:
            raise ValidationError("post_no_accounts")

        media = list(await asyncio.gather(*(self._publicize(item) for item in request.media_items)))

        try:
            late_result = await self.late.create_post(
                content=request.content,
                accounts=targets,
                media_items=media,
                scheduled_for=to_late_time(request.scheduled_for) if request.scheduled_for else None,
                platform_specific=request.platform_specific,
            )
        except LateAPIError as e:
            self.logger.error("Late post creation failed", user_id=user_id, error=str(e))
            raise LateAPIError(
                e.detail,
                upstream_status=e.upstream_status,
                message_key="post_error",
                original_error=e,
            ) from e

        return late_result, media

    async def create_post(self, user_id: int, request: PostRequest) -> Tuple[PostRow, Dict[str, Any]]:
        """
        Publish now or schedule a post on every requested platform.

        Returns:
            The stored post and Late's raw response
        """
        self._check_request(request)
        late_result, media = await self._dispatch(user_id, request)

        status = derive_status(late_result, scheduled=request.is_scheduled)
        post = PostRow(
            user_id=user_id,
            content=request.content,
            media_urls=media,
            platforms=request.platforms,
            platform_specific=request.platform_specific,
            platform_results=late_result,
            late_post_id=entity_id(late_post_of(late_result)),
            status=status.value,
            scheduled_at=request.scheduled_for,
            published_at=None if request.is_scheduled else datetime.utcnow(),
        )
        self.db.add(post)
        await self.db.commit()
        await self.db.refresh(post)

        log_user_action(
            user_id,
            "schedule_post" if request.is_scheduled else "publish_post",
            resource_type="post",
            resource_id=post.id,
            platforms=request.platforms,
            status=status.value,
        )
        return post, late_result

    async def list_posts(
        self,
        user_id: int,
        status: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[PostRow], int]:
        """Page through the user's posts within the plan's history window."""
        conditions = [PostRow.user_id == user_id]
        if status:
            conditions.append(PostRow.status == status)

        history_days = get_plan(await self.usage.current_plan(user_id))["history_days"]
        if history_days != UNLIMITED:
            conditions.append(PostRow.created_at >= datetime.utcnow() - timedelta(days=history_days))

        total = (await self.db.execute(select(func.count(PostRow.id)).where(*conditions))).scalar_one()
        result = await self.db.execute(
            select(PostRow)
            .where(*conditions)
            .order_by(PostRow.created_at.desc(), PostRow.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars()), int(total)

    async def get_post(self, user_id: int, post_id: int) -> PostRow:
        post = await self.db.get(PostRow, post_id)
        if post is None or post.user_id != user_id:
            raise NotFoundError("post_not_found")
        return post

    async def _delete_remote(self, late_post_id: Optional[str]) -> None:
        if not late_post_id:
            return
        try:
            await self.late.delete_post(late_post_id)
        except LateAPIError as e:
            self.logger.warning("Late post delete failed", late_post_id=late_post_id, error=str(e))

    async def update_post(self, user_id: int, post_id: int, request: PostRequest) -> Tuple[PostRow, Dict[str, Any]]:
        """Replace a scheduled post: drop the old Late post and create a new one."""
        post = await self.get_post(user_id, post_id)
        if post.status != PostStatus.SCHEDULED.value:
            raise ValidationError("post_only_scheduled")

        self._check_request(request)
        await self._delete_remote(post.late_post_id)
        late_result, media = await self._dispatch(user_id, request)

        status = derive_status(late_result, scheduled=request.is_scheduled)
        post.content = request.content
        post.media_urls = media
        post.platforms = request.platforms
        post.platform_specific = request.platform_specific
        post.platform_results = late_result
        post.late_post_id = entity_id(late_post_of(late_result))
        post.status = status.value
        post.scheduled_at = request.scheduled_for
        post.published_at = None if request.is_scheduled else datetime.utcnow()
        await self.db.commit()
        await self.db.refresh(post)

        log_user_action(user_id, "update_post", resource_type="post", resource_id=post.id)
        return post, late_result

    async def delete_post(self, user_id: int, post_id: int) -> None:
        post = await self.get_post(user_id, post_id)
        late_post_id = post.late_post_id
        await self.db.delete(post)
        await self.db.commit()

        await self._delete_remote(late_post_id)
        log_user_action(user_id, "delete_post", resource_type="post", resource_id=post_id)

    async def refresh_due_posts(self, now: Optional[datetime] = None) -> int:
        """
        Pull Late's current state for posts that should have gone out.

        Returns:
            Number of posts whose status changed
        """
        now = now or datetime.utcnow()
        result = await self.db.execute(
            select(PostRow).where(
                PostRow.late_post_id.is_not(None),
                or_(
                    (PostRow.status == PostStatus.SCHEDULED.value) & (PostRow.scheduled_at <= now),
                    PostRow.status == PostStatus.PUBLISHING.value,
                ),
            )
        )

        changed = 0
        for post in result.scalars():
            try:
                late_result = await self.late.get_post(post.late_post_id)
            except LateAPIError as e:
                self.logger.warning("Late post refresh failed", post_id=post.id, error=str(e))
                continue

            status = derive_status(late_result)
            if status.value == post.status:
                continue

            post.status = status.value
            post.platform_results = late_result
            if status in (PostStatus.PUBLISHED, PostStatus.PARTIAL):
                post.published_at = post.published_at or now
            changed += 1

        await self.db.commit()
        return changed
