"""
Usage Limit Service

Monthly plan quotas: posts per month and AI requests per month, counted
from the first instant of the current UTC calendar month. Checks fail
open so a database hiccup never blocks a paying user.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.config.plans import DEFAULT_PLAN, UNLIMITED, get_plan
from unisocial.models.subscription import SubscriptionStatus
from unisocial.models.tables import AIUsageLogRow, PostRow, SubscriptionRow
from unisocial.utils.error_handling import PermissionDeniedError, UsageLimitError

POSTS_FIELD = "posts_per_month"
AI_FIELD = "ai_suggestions_per_month"


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


@dataclass
class UsageCheck:
    """Outcome of a passed quota check."""
    plan: str
    field: str
    used: int
    limit: int

    @property
    def remaining(self) -> int:
        if self.limit == UNLIMITED:
            return UNLIMITED
        return max(self.limit - self.used, 0)

    def headers(self) -> Dict[str, str]:
        if self.limit == UNLIMITED:
            return {}
        return {
            "X-Usage-Used": str(self.used),
            "X-Usage-Limit": str(self.limit),
            "X-Usage-Remaining": str(self.remaining),
        }


class UsageService:
    """Plan lookup, monthly counters and quota enforcement."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.logger = structlog.get_logger(__name__)

    async def current_subscription(self, user_id: int) -> Optional[SubscriptionRow]:
        """
        Newest subscription that still grants its plan.

        A cancelled-at-period-end subscription keeps its plan until the
        period is over.
        """
        result = await self.db.execute(
            select(SubscriptionRow)
            .where(
                SubscriptionRow.user_id == user_id,
                or_(
                    SubscriptionRow.status == SubscriptionStatus.ACTIVE.value,
                    and_(
                        SubscriptionRow.status == SubscriptionStatus.CANCELLING.value,
                        SubscriptionRow.current_period_end > datetime.utcnow(),
                    ),
                ),
            )
            .order_by(SubscriptionRow.created_at.desc(), SubscriptionRow.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def current_plan(self, user_id: int) -> str:
        subscription = await self.current_subscription(user_id)
        return subscription.plan if subscription else DEFAULT_PLAN

    async def monthly_post_count(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count(PostRow.id)).where(
                PostRow.user_id == user_id,
                PostRow.created_at >= month_start(),
            )
        )
        return int(result.scalar_one())

    async def monthly_ai_count(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count(AIUsageLogRow.id)).where(
                AIUsageLogRow.user_id == user_id,
                AIUsageLogRow.created_at >= month_start(),
            )
        )
        return int(result.scalar_one())

    async def check_limit(self, user_id: int, field: str) -> Optional[UsageCheck]:
        """
        Enforce a monthly quota.

        Returns:
            The usage snapshot when allowed, or None when the check itself
            failed and the request is let through

        Raises:
            UsageLimitError: If the quota is exhausted
        """
        try:
            plan = await self.current_plan(user_id)
            limit = get_plan(plan)[field]
            if field == POSTS_FIELD:
                used = await self.monthly_post_count(user_id)
            else:
                used = await self.monthly_ai_count(user_id)
        except SQLAlchemyError as e:
            self.logger.warning("Usage check failed, allowing request", user_id=user_id, field=field, error=str(e))
            return None

        if limit != UNLIMITED and used >= limit:
            self.logger.info("Usage limit reached", user_id=user_id, plan=plan, field=field, used=used, limit=limit)
            raise UsageLimitError(plan=plan, field=field, used=used, limit=limit)

        return UsageCheck(plan=plan, field=field, used=used, limit=limit)

    async def check_schedule_permission(self, user_id: int) -> None:
        """Scheduled posting is a paid feature."""
        try:
            plan = await self.current_plan(user_id)
        except SQLAlchemyError as e:
            self.logger.warning("Schedule permission check failed, allowing request", user_id=user_id, error=str(e))
            return

        if not get_plan(plan)["scheduled_posting"]:
            raise PermissionDeniedError(
                "usage_schedule_upgrade",
                extra={"plan": plan, "upgrade_url": "/subscription/plans"},
            )

    async def log_ai_usage(self, user_id: int, action: str, tokens_used: int) -> None:
        self.db.add(AIUsageLogRow(user_id=user_id, action=action, tokens_used=tokens_used))
        await self.db.commit()

    async def summary(self, user_id: int) -> Dict[str, Any]:
        plan = await self.current_plan(user_id)
        details = get_plan(plan)
        return {
            "plan": plan,
            "period_start": month_start(),
            "posts": {
                "used": await self.monthly_post_count(user_id),
                "limit": details[POSTS_FIELD],
            },
            "ai": {
                "used": await self.monthly_ai_count(user_id),
                "limit": details[AI_FIELD],
            },
        }
