"""
Social Account Service

Mirrors the user's Late accounts into ``social_accounts`` and manages
their local active flag. Late stays the source of truth for the actual
platform connections.
"""

from typing import Any, Dict, List, Tuple

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.config.settings import get_settings
from unisocial.integrations.late import LateClient, entity_id
from unisocial.models.platform import LEGACY_PLATFORM_IDS, PLATFORMS, is_supported_platform
from unisocial.models.tables import SocialAccountRow
from unisocial.utils.error_handling import LateAPIError, NotFoundError, ValidationError
from unisocial.utils.logger import log_user_action

LATE_DASHBOARD_HINT = "https://getlate.dev -> Dashboard -> Profiles"


class SocialAccountService:
    """Service for connected social accounts."""

    def __init__(self, db: AsyncSession, late: LateClient):
        self.db = db
        self.late = late
        self.logger = structlog.get_logger(__name__)

    def _require_late(self) -> None:
        if not self.late.configured:
            raise ValidationError("social_late_unconfigured")

    async def list_accounts(self, user_id: int) -> List[SocialAccountRow]:
        result = await self.db.execute(
            select(SocialAccountRow)
            .where(SocialAccountRow.user_id == user_id)
            .order_by(SocialAccountRow.connected_at.desc(), SocialAccountRow.id.desc())
        )
        return list(result.scalars())

    async def active_accounts(self, user_id: int) -> List[SocialAccountRow]:
        result = await self.db.execute(
            select(SocialAccountRow)
            .where(SocialAccountRow.user_id == user_id, SocialAccountRow.is_active.is_(True))
            .order_by(SocialAccountRow.connected_at.desc(), SocialAccountRow.id.desc())
        )
        return list(result.scalars())

    async def publish_targets(self, user_id: int, platforms: List[str]) -> List[Dict[str, str]]:
        """Late account targets for the requested platforms."""
        if not platforms:
            return []
        result = await self.db.execute(
            select(SocialAccountRow).where(
                SocialAccountRow.user_id == user_id,
                SocialAccountRow.platform.in_(platforms),
                SocialAccountRow.is_active.is_(True),
                SocialAccountRow.late_account_id.is_not(None),
            )
        )
        return [
            {"platform": row.platform, "accountId": row.late_account_id}
            for row in result.scalars()
            if row.late_account_id
        ]

    async def profiles(self) -> List[Dict[str, Any]]:
        self._require_late()
        return await self.late.get_profiles()

    async def sync_accounts(self, user_id: int) -> Tuple[List[SocialAccountRow], int]:
        """
        Pull every profile's accounts from Late and upsert them.

        Accounts the user disconnected locally stay inactive.

        Returns:
            Active accounts after the sync and the number of accounts Late reported
        """
        self._require_late()

        await self.db.execute(
            delete(SocialAccountRow).where(
                SocialAccountRow.user_id == user_id,
                SocialAccountRow.platform.in_(LEGACY_PLATFORM_IDS),
            )
        )

        profiles = await self.late.get_profiles()
        if not profiles:
            await self.db.commit()
            raise ValidationError("social_no_profile", extra={"action": LATE_DASHBOARD_HINT})

        remote_accounts: List[Dict[str, Any]] = []
        for profile in profiles:
            profile_id = entity_id(profile)
            accounts = await self.late.get_accounts(profile_id)
            self.logger.info(
                "Fetched Late accounts",
                profile_id=profile_id,
                platforms=[a.get("platform") for a in accounts],
            )
            remote_accounts.extend({**account, "profileId": profile_id} for account in accounts)

        for account in remote_accounts:
            await self._upsert(user_id, account)

        await self.db.commit()
        active = await self.active_accounts(user_id)

        log_user_action(user_id, "sync_accounts", resource_type="social_account", synced=len(remote_accounts))
        return active, len(remote_accounts)

    async def _upsert(self, user_id: int, account: Dict[str, Any]) -> None:
        platform = account.get("platform")
        account_id = entity_id(account)
        if not platform or not account_id:
            return
        username = (
            account.get("username")
            or account.get("displayName")
            or account.get("name")
            or account_id
        )

        result = await self.db.execute(
            select(SocialAccountRow).where(
                SocialAccountRow.user_id == user_id,
                SocialAccountRow.platform == platform,
                SocialAccountRow.late_account_id == account_id,
            )
        )
        row = result.scalar_one_or_none()
        if row is None:
            self.db.add(
                SocialAccountRow(
                    user_id=user_id,
                    platform=platform,
                    platform_username=username,
                    late_account_id=account_id,
                    profile_data=account,
                    is_active=True,
                )
            )
        else:
            row.platform_username = username
            row.profile_data = account

    async def connect_redirect(self, user_id: int, platform: str) -> str:
        """
        Where to send the browser to connect a platform.

        Falls back to the frontend accounts page with an ``error`` query
        parameter when Late has no profile or cannot be reached.
        """
        if not is_supported_platform(platform):
            raise ValidationError(
                "social_platform_invalid",
                field="platform",
                extra={"supported": PLATFORMS},
            )

        frontend_url = get_settings().frontend_url.rstrip("/")
        try:
            self._require_late()
            profiles = await self.late.get_profiles()
        except (LateAPIError, ValidationError) as e:
            self.logger.error("Connect URL failed", platform=platform, error=str(e))
            return f"{frontend_url}/accounts?error=connect_failed"

        if not profiles:
            return f"{frontend_url}/accounts?error=no_profile"

        profile_id = entity_id(profiles[0])
        redirect_url = f"{frontend_url}/accounts?connected={platform}"

        result = await self.db.execute(
            select(SocialAccountRow).where(
                SocialAccountRow.user_id == user_id,
                SocialAccountRow.platform == platform,
                SocialAccountRow.is_active.is_(False),
            )
        )
        for row in result.scalars():
            row.is_active = True
        await self.db.commit()

        self.logger.info("Connecting platform", platform=platform, profile_id=profile_id)
        return self.late.get_connect_url(platform, profile_id, redirect_url)

    async def _owned_account(self, user_id: int, account_id: int) -> SocialAccountRow:
        account = await self.db.get(SocialAccountRow, account_id)
        if account is None or account.user_id != user_id:
            raise NotFoundError("social_not_found")
        return account

    async def disconnect(self, user_id: int, account_id: int) -> List[SocialAccountRow]:
        """Deactivate an account locally; Late keeps the connection."""
        account = await self._owned_account(user_id, account_id)
        account.is_active = False
        await self.db.commit()
        log_user_action(user_id, "disconnect_account", resource_type="social_account", resource_id=account_id, platform=account.platform)
        return await self.active_accounts(user_id)

    async def reconnect(self, user_id: int, account_id: int) -> List[SocialAccountRow]:
        account = await self._owned_account(user_id, account_id)
        if account.is_active:
            raise NotFoundError("social_not_found")
        account.is_active = True
        await self.db.commit()
        log_user_action(user_id, "reconnect_account", resource_type="social_account", resource_id=account_id, platform=account.platform)
        return await self.active_accounts(user_id)
