"""
Post Data Models and Schemas

Status enum and request/response schemas for the cross-posting flow.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PostStatus(str, Enum):
    """Lifecycle of a post row."""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    PARTIAL = "partial"
    FAILED = "failed"


class MediaItem(BaseModel):
    """Media descriptor as produced by the upload endpoint."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="image", description="image or video")
    url: str = Field(..., description="Media URL")


class PostRequest(BaseModel):
    """Request schema for publishing or scheduling a post."""

    model_config = ConfigDict(populate_by_name=True)

    content: str = Field(default="", description="Caption text")
    media_items: List[MediaItem] = Field(default_factory=list, alias="mediaItems")
    platforms: List[str] = Field(default_factory=list, description="Target platform IDs")
    scheduled_for: Optional[datetime] = Field(None, alias="scheduledFor")
    platform_specific: Dict[str, Any] = Field(default_factory=dict, alias="platformSpecific")

    @field_validator("content", mode="before")
    @classmethod
    def none_to_empty(cls, value):
        return value or ""

    @field_validator("scheduled_for")
    @classmethod
    def to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Store schedule times as naive UTC."""
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @property
    def is_scheduled(self) -> bool:
        return self.scheduled_for is not None


class PostOut(BaseModel):
    """Public view of a post row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    media_urls: List[Dict[str, Any]] = Field(default_factory=list)
    platforms: List[str] = Field(default_factory=list)
    platform_specific: Dict[str, Any] = Field(default_factory=dict)
    platform_results: Dict[str, Any] = Field(default_factory=dict)
    late_post_id: Optional[str] = None
    status: PostStatus
    scheduled_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PostResponse(BaseModel):
    post: PostOut


class PostPublishResponse(BaseModel):
    """Response schema after publishing, scheduling or rescheduling."""

    message: str = Field(..., description="Localized message")
    post: PostOut
    late: Dict[str, Any] = Field(default_factory=dict, description="Raw Late response")


class PostListResponse(BaseModel):
    posts: List[PostOut]
    total: int
    limit: int
    offset: int
