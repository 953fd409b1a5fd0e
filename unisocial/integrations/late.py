"""
Late API Integration

Late aggregates the user's social accounts and publishes to all 13
platforms. This client covers posting, account and profile discovery
and the hosted connect flow.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode

import httpx

from unisocial.config.settings import get_settings
from unisocial.integrations.http import VendorClient
from unisocial.utils.error_handling import LateAPIError, with_retry


class LateClient(VendorClient):
    """Late REST client."""

    service = "late"
    error_class = LateAPIError

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        super().__init__(base_url or settings.late_base_url, transport=transport)
        self.api_key = settings.late_api_key if api_key is None else api_key

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def create_post(
        self,
        content: str,
        accounts: List[Dict[str, str]],
        media_items: Optional[List[Dict[str, Any]]] = None,
        scheduled_for: Optional[str] = None,
        platform_specific: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Cross-post content to the given Late accounts.

        Args:
            content: Caption text
            accounts: ``[{"platform": ..., "accountId": ...}]`` targets
            media_items: Public media descriptors (``{"type", "url"}``)
            scheduled_for: ISO 8601 time; publish immediately when omitted
            platform_specific: Extra per-platform fields keyed by platform

        Returns:
            Late's response, including the created post and per-platform results
        """
        body: Dict[str, Any] = {"content": content, "platforms": []}

        for account in accounts:
            entry = {"platform": account["platform"], "accountId": account["accountId"]}
            extra = (platform_specific or {}).get(account["platform"])
            if extra:
                entry["platformSpecificData"] = extra
            body["platforms"].append(entry)

        if media_items:
            body["mediaItems"] = media_items
        if scheduled_for:
            body["scheduledFor"] = scheduled_for
        else:
            body["publishNow"] = True

        self.logger.info(
            "Creating Late post",
            platforms=[a["platform"] for a in accounts],
            media_count=len(media_items or []),
            scheduled_for=scheduled_for,
        )
        return await self._request("POST", "/posts", "create_post", json=body)

    @with_retry(max_attempts=3)
    async def get_post(self, post_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/posts/{quote(post_id, safe='')}", "get_post")

    async def delete_post(self, post_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/posts/{quote(post_id, safe='')}", "delete_post")

    @with_retry(max_attempts=3)
    async def get_accounts(self, profile_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """List connected accounts, optionally for one profile."""
        params = {"profileId": profile_id} if profile_id else None
        data = await self._request("GET", "/accounts", "get_accounts", params=params)
        if isinstance(data, dict):
            data = data.get("accounts", [])
        return data if isinstance(data, list) else []

    @with_retry(max_attempts=3)
    async def get_profiles(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/profiles", "get_profiles")
        if isinstance(data, dict):
            data = data.get("profiles", [])
        return data if isinstance(data, list) else []

    def get_connect_url(self, platform: str, profile_id: str, redirect_url: Optional[str] = None) -> str:
        """Build the hosted Late URL that walks the user through connecting a platform."""
        params = {"profileId": profile_id}
        if redirect_url:
            params["redirect_url"] = redirect_url
        return f"{self.base_url}/connect/{platform}?{urlencode(params)}"


def entity_id(entity: Dict[str, Any]) -> Optional[str]:
    """Late entities use ``_id``; some endpoints return ``id``."""
    value = entity.get("_id") or entity.get("id")
    return str(value) if value is not None else None
