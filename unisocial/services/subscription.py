"""
Subscription Service

Paid plans billed monthly through PortOne billing keys:
- Immediate first charge and a scheduled charge for every following month
- Cancellation at the end of the paid period
- Webhook-driven renewal, dunning and expiry
"""

import calendar
import time
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.config.i18n import t
from unisocial.config.plans import DEFAULT_PLAN, PAID_PLANS, PLANS, get_plan
from unisocial.integrations.portone import PortOneClient
from unisocial.models.subscription import PaymentStatus, PortOneWebhook, SubscriptionStatus
from unisocial.models.tables import PaymentHistoryRow, SubscriptionRow, UserRow
from unisocial.services.usage import UsageService
from unisocial.utils.error_handling import NotFoundError, PortOneError, ValidationError
from unisocial.utils.logger import log_business_event

MAX_FAILED_ATTEMPTS = 3
RETRY_DELAY = timedelta(days=3)

PAID_EVENT = "Transaction.Paid"
FAILED_EVENT = "Transaction.Failed"


def add_month(value: datetime) -> datetime:
    """Same day next month, clamped to the month's last day."""
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def order_id(user_id: int, offset_ms: int = 0) -> str:
    return f"sub_{user_id}_{int(time.time() * 1000) + offset_ms}"


def order_name(plan: str) -> str:
    return f"Unisocial {get_plan(plan)['name']} subscription"


def cancel_message(lang: str, until: Optional[datetime]) -> str:
    cancelled = t(lang, "sub_cancelled")
    if until is None:
        return cancelled
    date = until.strftime("%Y-%m-%d")
    if lang in ("ko", "ja"):
        return f"{cancelled} {date}{t(lang, 'sub_until')}"
    return f"{cancelled} {t(lang, 'sub_until')} {date}."


class SubscriptionService:
    """Service for plans, billing keys and recurring payments."""

    def __init__(self, db: AsyncSession, portone: PortOneClient):
        self.db = db
        self.portone = portone
        self.usage = UsageService(db)
        self.logger = structlog.get_logger(__name__)

    def plans(self) -> Dict[str, Dict[str, Any]]:
        return PLANS

    async def my_subscription(self, user_id: int) -> Dict[str, Any]:
        subscription = await self.usage.current_subscription(user_id)
        plan = subscription.plan if subscription else DEFAULT_PLAN
        return {"plan": plan, "details": get_plan(plan), "subscription": subscription}

    async def register_billing_key(self, user: UserRow, billing_key: str) -> None:
        user.billing_key = billing_key
        await self.db.commit()
        log_business_event("billing_key_registered", user_id=user.id)

    async def _record_payment(
        self,
        subscription: SubscriptionRow,
        payment_id: Optional[str],
        status: PaymentStatus,
    ) -> None:
        self.db.add(
            PaymentHistoryRow(
                user_id=subscription.user_id,
                subscription_id=subscription.id,
                portone_payment_id=payment_id,
                amount=subscription.amount,
                status=status.value,
                paid_at=datetime.utcnow() if status == PaymentStatus.PAID else None,
            )
        )

    async def _schedule_charge(
        self,
        subscription: SubscriptionRow,
        billing_key: Optional[str],
        email: str,
        time_to_pay: datetime,
    ) -> Optional[str]:
        """
        Schedule the next charge and remember its payment id on the subscription.

        Returns:
            The scheduled payment id, or None when scheduling failed
        """
        if not billing_key:
            self.logger.warning("No billing key to schedule with", subscription_id=subscription.id)
            return None

        payment_id = order_id(subscription.user_id, offset_ms=1)
        try:
            await self.portone.schedule_billing(
                payment_id=payment_id,
                billing_key=billing_key,
                order_name=order_name(subscription.plan),
                amount=subscription.amount,
                customer_email=email,
                time_to_pay=time_to_pay,
            )
        except PortOneError as e:
            self.logger.error(
                "Scheduling next charge failed",
                subscription_id=subscription.id,
                payment_id=payment_id,
                error=str(e),
            )
            return None

        subscription.portone_payment_id = payment_id
        return payment_id

    async def _revoke_schedule(self, subscription: SubscriptionRow) -> None:
        if not subscription.portone_payment_id:
            return
        try:
            await self.portone.cancel_schedule(subscription.portone_payment_id)
        except PortOneError as e:
            self.logger.warning(
                "Revoking scheduled charge failed",
                subscription_id=subscription.id,
                payment_id=subscription.portone_payment_id,
                error=str(e),
            )

    async def subscribe(self, user: UserRow, plan: str) -> Tuple[SubscriptionRow, Dict[str, Any]]:
        """
        Start a paid plan.

        The first month is charged right away. Any current subscription is
        cancelled and its scheduled charge revoked.

        Returns:
            The new subscription and PortOne's payment response
        """
        if plan not in PAID_PLANS:
            raise ValidationError("sub_plan_invalid", field="plan", extra={"plans": list(PAID_PLANS)})
        if not user.billing_key:
            raise ValidationError("sub_billing_required", extra={"action": "register_billing_key"})

        amount = get_plan(plan)["price"]
        payment_id = order_id(user.id)
        try:
            payment = await self.portone.pay_with_billing_key(
                payment_id=payment_id,
                billing_key=user.billing_key,
                order_name=order_name(plan),
                amount=amount,
                customer_email=user.email,
            )
        except PortOneError as e:
            self.logger.error("First charge failed", user_id=user.id, plan=plan, error=str(e))
            raise PortOneError(
                e.detail,
                upstream_status=e.upstream_status,
                message_key="sub_payment_failed",
                original_error=e,
            ) from e

        result = await self.db.execute(
            select(SubscriptionRow).where(
                SubscriptionRow.user_id == user.id,
                SubscriptionRow.status.in_(
                    [
                        SubscriptionStatus.ACTIVE.value,
                        SubscriptionStatus.CANCELLING.value,
                        SubscriptionStatus.PAST_DUE.value,
                    ]
                ),
            )
        )
        now = datetime.utcnow()
        for previous in result.scalars():
            await self._revoke_schedule(previous)
            previous.status = SubscriptionStatus.CANCELLED.value
            previous.cancelled_at = previous.cancelled_at or now

        subscription = SubscriptionRow(
            user_id=user.id,
            plan=plan,
            status=SubscriptionStatus.ACTIVE.value,
            billing_key=user.billing_key,
            portone_payment_id=payment_id,
            amount=amount,
            failed_attempts=0,
            current_period_start=now,
            current_period_end=add_month(now),
        )
        self.db.add(subscription)
        await self.db.flush()

        await self._record_payment(subscription, payment_id, PaymentStatus.PAID)
        await self._schedule_charge(subscription, user.billing_key, user.email, subscription.current_period_end)
        await self.db.commit()
        await self.db.refresh(subscription)

        log_business_event(
            "subscription_started",
            user_id=user.id,
            plan=plan,
            amount=amount,
            payment_id=payment_id,
        )
        return subscription, payment

    async def cancel(self, user_id: int) -> SubscriptionRow:
        """Stop renewal; the plan stays usable until the period ends."""
        result = await self.db.execute(
            select(SubscriptionRow)
            .where(
                SubscriptionRow.user_id == user_id,
                SubscriptionRow.status.in_(
                    [SubscriptionStatus.ACTIVE.value, SubscriptionStatus.PAST_DUE.value]
                ),
            )
            .order_by(SubscriptionRow.created_at.desc(), SubscriptionRow.id.desc())
            .limit(1)
        )
        subscription = result.scalar_one_or_none()
        if subscription is None:
            raise NotFoundError("sub_no_active")

        subscription.status = SubscriptionStatus.CANCELLING.value
        subscription.cancelled_at = datetime.utcnow()
        await self._revoke_schedule(subscription)
        await self.db.commit()
        await self.db.refresh(subscription)

        log_business_event(
            "subscription_cancelled",
            user_id=user_id,
            plan=subscription.plan,
            effective_until=subscription.current_period_end.isoformat() if subscription.current_period_end else None,
        )
        return subscription

    async def _find_by_payment(self, payment_id: str) -> Optional[SubscriptionRow]:
        result = await self.db.execute(
            select(SubscriptionRow)
            .where(SubscriptionRow.portone_payment_id == payment_id)
            .order_by(SubscriptionRow.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _already_recorded(self, payment_id: str, status: PaymentStatus) -> bool:
        result = await self.db.execute(
            select(PaymentHistoryRow.id).where(
                PaymentHistoryRow.portone_payment_id == payment_id,
                PaymentHistoryRow.status == status.value,
            )
        )
        return result.first() is not None

    async def handle_webhook(self, event: PortOneWebhook) -> Optional[str]:
        """
        Apply a PortOne payment event.

        Events for unknown or already recorded payments are ignored so
        PortOne redeliveries are harmless.

        Returns:
            What was done, or None when the event was ignored
        """
        payment_id = event.payment_id
        self.logger.info("PortOne webhook received", type=event.type, payment_id=payment_id)
        if event.type not in (PAID_EVENT, FAILED_EVENT) or not payment_id:
            return None

        status = PaymentStatus.PAID if event.type == PAID_EVENT else PaymentStatus.FAILED
        if await self._already_recorded(payment_id, status):
            return None

        subscription = await self._find_by_payment(payment_id)
        if subscription is None:
            self.logger.warning("Webhook for unknown payment", payment_id=payment_id)
            return None

        user = await self.db.get(UserRow, subscription.user_id)
        email = user.email if user else ""
        billing_key = subscription.billing_key or (user.billing_key if user else None)

        if status == PaymentStatus.PAID:
            outcome = await self._renew(subscription, payment_id, billing_key, email)
        else:
            outcome = await self._payment_failed(subscription, payment_id, billing_key, email)

        await self.db.commit()
        log_business_event(
            outcome,
            user_id=subscription.user_id,
            subscription_id=subscription.id,
            payment_id=payment_id,
            failed_attempts=subscription.failed_attempts,
        )
        return outcome

    async def _renew(
        self,
        subscription: SubscriptionRow,
        payment_id: str,
        billing_key: Optional[str],
        email: str,
    ) -> str:
        now = datetime.utcnow()
        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.failed_attempts = 0
        subscription.cancelled_at = None
        subscription.current_period_start = now
        subscription.current_period_end = add_month(now)
        await self._record_payment(subscription, payment_id, PaymentStatus.PAID)
        await self._schedule_charge(subscription, billing_key, email, subscription.current_period_end)
        return "subscription_renewed"

    async def _payment_failed(
        self,
        subscription: SubscriptionRow,
        payment_id: str,
        billing_key: Optional[str],
        email: str,
    ) -> str:
        subscription.failed_attempts = (subscription.failed_attempts or 0) + 1
        await self._record_payment(subscription, payment_id, PaymentStatus.FAILED)

        if subscription.failed_attempts >= MAX_FAILED_ATTEMPTS:
            subscription.status = SubscriptionStatus.CANCELLED.value
            subscription.cancelled_at = datetime.utcnow()
            return "subscription_terminated"

        subscription.status = SubscriptionStatus.PAST_DUE.value
        await self._schedule_charge(subscription, billing_key, email, datetime.utcnow() + RETRY_DELAY)
        return "payment_failed"

    async def expire_cancelled(self, now: Optional[datetime] = None) -> int:
        """
        Close cancelled-at-period-end subscriptions whose period is over.

        Returns:
            Number of subscriptions expired
        """
        now = now or datetime.utcnow()
        result = await self.db.execute(
            update(SubscriptionRow)
            .where(
                SubscriptionRow.status == SubscriptionStatus.CANCELLING.value,
                SubscriptionRow.current_period_end <= now,
            )
            .values(status=SubscriptionStatus.CANCELLED.value)
        )
        await self.db.commit()
        expired = result.rowcount or 0
        if expired:
            log_business_event("subscriptions_expired", count=expired)
        return expired
