"""
Subscription Data Models and Schemas

Status enums and request/response schemas for plans, billing and usage.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    PAST_DUE = "past_due"


class PaymentStatus(str, Enum):
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class SubscriptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plan: str
    status: SubscriptionStatus
    amount: int
    portone_payment_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class PlansResponse(BaseModel):
    plans: Dict[str, Dict[str, Any]]


class MySubscriptionResponse(BaseModel):
    """The caller's current plan; ``subscription`` is null on Free."""

    plan: str
    details: Dict[str, Any]
    subscription: Optional[SubscriptionOut] = None


class UsageCounter(BaseModel):
    used: int
    limit: int


class UsageResponse(BaseModel):
    plan: str
    period_start: datetime
    posts: UsageCounter
    ai: UsageCounter


class BillingKeyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    billing_key: str = Field(..., min_length=1, alias="billingKey")


class SubscribeRequest(BaseModel):
    plan: str = Field(..., description="Paid plan name (basic or pro)")


class SubscribeResponse(BaseModel):
    message: str
    subscription: SubscriptionOut
    payment: Dict[str, Any] = Field(default_factory=dict, description="Raw PortOne response")


class CancelResponse(BaseModel):
    message: str
    effective_until: Optional[datetime] = None


class PortOneWebhook(BaseModel):
    """PortOne V2 webhook envelope."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(default="", description="Event type, e.g. Transaction.Paid")
    timestamp: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def payment_id(self) -> Optional[str]:
        return self.data.get("paymentId")
