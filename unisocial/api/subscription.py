"""
Subscription API Endpoints

This module contains billing endpoints including:
- Plan catalogue, current plan and monthly usage
- Billing key registration, subscribe and cancel
- The PortOne payment webhook
"""

import structlog
from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from unisocial.api.deps import get_lang, get_portone_client
from unisocial.config.database import get_db
from unisocial.config.i18n import t
from unisocial.integrations.portone import PortOneClient
from unisocial.models.schemas.common import ErrorResponse, MessageResponse
from unisocial.models.subscription import (
    BillingKeyRequest,
    CancelResponse,
    MySubscriptionResponse,
    PlansResponse,
    PortOneWebhook,
    SubscribeRequest,
    SubscribeResponse,
    SubscriptionOut,
    UsageResponse,
)
from unisocial.models.tables import UserRow
from unisocial.services.subscription import SubscriptionService, cancel_message
from unisocial.services.usage import UsageService
from unisocial.utils.auth import get_current_user
from unisocial.utils.error_handling import UnisocialError

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_subscription_service(
    db: AsyncSession = Depends(get_db),
    portone: PortOneClient = Depends(get_portone_client),
) -> SubscriptionService:
    """Get subscription service instance."""
    return SubscriptionService(db, portone)


@router.get("/plans", response_model=PlansResponse)
async def list_plans(
    subscriptions: SubscriptionService = Depends(get_subscription_service),
) -> PlansResponse:
    return PlansResponse(plans=subscriptions.plans())


@router.get("/me", response_model=MySubscriptionResponse)
async def my_subscription(
    current_user: UserRow = Depends(get_current_user),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
) -> MySubscriptionResponse:
    current = await subscriptions.my_subscription(current_user.id)
    subscription = current["subscription"]
    return MySubscriptionResponse(
        plan=current["plan"],
        details=current["details"],
        subscription=SubscriptionOut.model_validate(subscription) if subscription else None,
    )


@router.get("/usage", response_model=UsageResponse)
async def usage(
    current_user: UserRow = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UsageResponse:
    """Posts and AI requests used this calendar month against the plan limits."""
    return UsageResponse(**await UsageService(db).summary(current_user.id))


@router.post("/billing-key", response_model=MessageResponse)
async def register_billing_key(
    request: BillingKeyRequest,
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
) -> MessageResponse:
    await subscriptions.register_billing_key(current_user, request.billing_key)
    return MessageResponse(message=t(lang, "sub_billing_registered"))


@router.post(
    "/subscribe",
    response_model=SubscribeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid plan or no billing key"},
        500: {"model": ErrorResponse, "description": "Payment failed"},
    }
)
async def subscribe(
    request: SubscribeRequest,
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
) -> SubscribeResponse:
    """Charge the first month and start a paid plan."""
    logger.info("Subscribe requested", user_id=current_user.id, plan=request.plan)
    subscription, payment = await subscriptions.subscribe(current_user, request.plan)
    return SubscribeResponse(
        message=t(lang, "sub_started"),
        subscription=SubscriptionOut.model_validate(subscription),
        payment=payment,
    )


@router.post(
    "/cancel",
    response_model=CancelResponse,
    responses={404: {"model": ErrorResponse, "description": "No active subscription"}}
)
async def cancel(
    lang: str = Depends(get_lang),
    current_user: UserRow = Depends(get_current_user),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
) -> CancelResponse:
    subscription = await subscriptions.cancel(current_user.id)
    return CancelResponse(
        message=cancel_message(lang, subscription.current_period_end),
        effective_until=subscription.current_period_end,
    )


@router.post("/webhook")
async def portone_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
):
    """
    PortOne payment notifications.

    Always acknowledged with 200 so PortOne does not keep redelivering;
    malformed deliveries and failures are logged instead.
    """
    try:
        event = PortOneWebhook.model_validate(await request.json())
    except (ValueError, PydanticValidationError) as e:
        logger.warning("Malformed webhook ignored", error=str(e))
        return {"received": True}

    try:
        await subscriptions.handle_webhook(event)
    except (UnisocialError, SQLAlchemyError) as e:
        await db.rollback()
        logger.error("Webhook handling failed", type=event.type, payment_id=event.payment_id, error=str(e), exc_info=True)
    return {"received": True}
