"""
Platform Catalogue

The 13 platforms reachable through Late, with the static feature record
the composer uses to validate captions and media.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from unisocial.config.i18n import platform_name


class Platform(str, Enum):
    """Platform identifiers as Late expects them."""
    TWITTER = "twitter"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"
    YOUTUBE = "youtube"
    THREADS = "threads"
    REDDIT = "reddit"
    PINTEREST = "pinterest"
    BLUESKY = "bluesky"
    TELEGRAM = "telegram"
    SNAPCHAT = "snapchat"
    GOOGLEBUSINESS = "googlebusiness"


PLATFORMS: List[str] = [p.value for p in Platform]

# Identifiers older Late accounts were stored under
LEGACY_PLATFORM_IDS = ("x", "google_business")

PLATFORM_FEATURES: Dict[str, Dict[str, Any]] = {
    "twitter": {"maxChars": 280, "media": ["image", "video", "gif"], "threads": True},
    "instagram": {"maxChars": 2200, "media": ["image", "video", "carousel"], "stories": True, "reels": True},
    "tiktok": {"maxChars": 2200, "media": ["video"], "minDuration": 1, "maxDuration": 600},
    "linkedin": {"maxChars": 3000, "media": ["image", "video", "document"], "articles": True},
    "facebook": {"maxChars": 63206, "media": ["image", "video"], "pages": True},
    "youtube": {"maxChars": 5000, "media": ["video"], "requiresTitle": True, "shorts": True},
    "threads": {"maxChars": 500, "media": ["image", "video"]},
    "reddit": {"maxChars": 40000, "media": ["image", "video", "link"], "requiresTitle": True},
    "pinterest": {"maxChars": 500, "media": ["image", "video"], "requiresLink": True},
    "bluesky": {"maxChars": 300, "media": ["image"]},
    "telegram": {"maxChars": 4096, "media": ["image", "video", "document"]},
    "snapchat": {"maxChars": 250, "media": ["image", "video"]},
    "googlebusiness": {"maxChars": 1500, "media": ["image"], "types": ["update", "offer", "event"]},
}


def is_supported_platform(platform: str) -> bool:
    return platform in PLATFORM_FEATURES


class PlatformsResponse(BaseModel):
    """Response schema for the platform catalogue."""

    platforms: List[str] = Field(..., description="Supported platform IDs")
    features: Dict[str, Dict[str, Any]] = Field(..., description="Feature record per platform")
    names: Dict[str, str] = Field(default_factory=dict, description="Display name per platform")


def platform_catalogue(lang: Optional[str] = None) -> PlatformsResponse:
    return PlatformsResponse(
        platforms=PLATFORMS,
        features=PLATFORM_FEATURES,
        names={p: platform_name(lang, p) for p in PLATFORMS},
    )
