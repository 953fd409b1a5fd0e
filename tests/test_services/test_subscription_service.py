"""
Tests for Subscription Service

This module contains tests for period arithmetic, dunning after failed
renewals and expiry of subscriptions cancelled at period end.
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from unisocial.models.subscription import PortOneWebhook
from unisocial.models.tables import SubscriptionRow
from unisocial.services.subscription import (
    MAX_FAILED_ATTEMPTS,
    SubscriptionService,
    add_month,
    cancel_message,
    order_id,
)
from unisocial.services.usage import UsageService
from unisocial.utils.error_handling import PortOneError


class TestHelpers:

    def test_add_month_clamps_to_month_end(self):
        assert add_month(datetime(2025, 1, 31, 10, 30)) == datetime(2025, 2, 28, 10, 30)
        assert add_month(datetime(2024, 1, 31)) == datetime(2024, 2, 29)
        assert add_month(datetime(2025, 12, 15)) == datetime(2026, 1, 15)

    def test_order_id(self):
        first = order_id(7)
        assert first.startswith("sub_7_")
        assert int(order_id(7, offset_ms=1).rsplit("_", 1)[1]) > int(first.rsplit("_", 1)[1])

    def test_cancel_message_by_language(self):
        until = datetime(2030, 1, 2)

        assert cancel_message("en", until).endswith("until 2030-01-02.")
        assert cancel_message("ja", until).endswith("2030-01-02まで現在のプランをご利用いただけます。")
        assert cancel_message("en", None) == "Subscription cancelled."


class TestDunning:
    """Test repeated payment failures."""

    @pytest.mark.asyncio
    async def test_third_failure_terminates(self, db_session, test_user, make_subscription, mock_portone_client):
        subscription = await make_subscription(
            test_user, status="past_due", portone_payment_id="retry-2", failed_attempts=MAX_FAILED_ATTEMPTS - 1
        )
        service = SubscriptionService(db_session, mock_portone_client)

        outcome = await service.handle_webhook(
            PortOneWebhook(type="Transaction.Failed", data={"paymentId": "retry-2"})
        )

        assert outcome == "subscription_terminated"
        await db_session.refresh(subscription)
        assert subscription.status == "cancelled"
        assert subscription.failed_attempts == MAX_FAILED_ATTEMPTS
        mock_portone_client.schedule_billing.assert_not_called()
        assert await UsageService(db_session).current_plan(test_user.id) == "free"

    @pytest.mark.asyncio
    async def test_retry_success_restores_plan(self, db_session, test_user, make_subscription, mock_portone_client):
        subscription = await make_subscription(
            test_user, plan="pro", status="past_due", portone_payment_id="retry-1", failed_attempts=1
        )
        service = SubscriptionService(db_session, mock_portone_client)

        outcome = await service.handle_webhook(PortOneWebhook(type="Transaction.Paid", data={"paymentId": "retry-1"}))

        assert outcome == "subscription_renewed"
        await db_session.refresh(subscription)
        assert subscription.status == "active"
        assert subscription.failed_attempts == 0
        assert await UsageService(db_session).current_plan(test_user.id) == "pro"

    @pytest.mark.asyncio
    async def test_scheduling_failure_is_not_fatal(
        self, db_session, test_user, make_subscription, mock_portone_client
    ):
        await make_subscription(test_user, portone_payment_id="scheduled-1")
        mock_portone_client.schedule_billing = AsyncMock(side_effect=PortOneError("down", upstream_status=503))
        service = SubscriptionService(db_session, mock_portone_client)

        outcome = await service.handle_webhook(
            PortOneWebhook(type="Transaction.Paid", data={"paymentId": "scheduled-1"})
        )

        assert outcome == "subscription_renewed"

    @pytest.mark.asyncio
    async def test_missing_payment_id_is_ignored(self, db_session, mock_portone_client):
        service = SubscriptionService(db_session, mock_portone_client)

        assert await service.handle_webhook(PortOneWebhook(type="Transaction.Paid")) is None


class TestExpiry:

    @pytest.mark.asyncio
    async def test_expire_cancelled(self, db_session, test_user, make_subscription, mock_portone_client):
        now = datetime.utcnow()
        await make_subscription(test_user, status="cancelling", current_period_end=now - timedelta(minutes=1))
        await make_subscription(test_user, status="cancelling", current_period_end=now + timedelta(days=3))
        await make_subscription(test_user, status="active", current_period_end=now - timedelta(days=1))
        service = SubscriptionService(db_session, mock_portone_client)

        assert await service.expire_cancelled(now) == 1

        result = await db_session.execute(
            select(SubscriptionRow.status).order_by(SubscriptionRow.id)
        )
        assert list(result.scalars()) == ["cancelled", "cancelling", "active"]

    @pytest.mark.asyncio
    async def test_cancelling_plan_lapses_after_period_end(self, db_session, test_user, make_subscription):
        await make_subscription(
            test_user, plan="pro", status="cancelling", current_period_end=datetime.utcnow() - timedelta(seconds=1)
        )

        assert await UsageService(db_session).current_plan(test_user.id) == "free"
