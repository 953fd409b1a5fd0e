"""
PortOne API Integration

Billing-key based recurring charges through the PortOne V2 REST API.
The browser obtains the billing key with the PortOne SDK; the server
only charges, schedules and revokes with it.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from unisocial.config.settings import get_settings
from unisocial.integrations.http import VendorClient
from unisocial.utils.error_handling import PortOneError

CURRENCY = "KRW"


class PortOneClient(VendorClient):
    """PortOne V2 payments client."""

    service = "portone"
    error_class = PortOneError

    def __init__(
        self,
        api_secret: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        super().__init__("https://api.portone.io", transport=transport)
        self.api_secret = settings.portone_api_secret if api_secret is None else api_secret
        self.store_id = settings.portone_store_id
        self.channel_key = settings.portone_channel_key

    def _headers(self):
        return {"Authorization": f"PortOne {self.api_secret}"}

    @staticmethod
    def _payment_path(payment_id: str, suffix: str = "") -> str:
        return f"/payments/{quote(payment_id, safe='')}{suffix}"

    def _payment_body(
        self, billing_key: str, order_name: str, amount: int, customer_email: str
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "billingKey": billing_key,
            "orderName": order_name,
            "customer": {"email": customer_email},
            "amount": {"total": amount},
            "currency": CURRENCY,
        }
        if self.store_id:
            body["storeId"] = self.store_id
        if self.channel_key:
            body["channelKey"] = self.channel_key
        return body

    async def pay_with_billing_key(
        self,
        payment_id: str,
        billing_key: str,
        order_name: str,
        amount: int,
        customer_email: str,
    ) -> Dict[str, Any]:
        """Charge the billing key immediately."""
        return await self._request(
            "POST",
            self._payment_path(payment_id, "/billing-key"),
            "pay_with_billing_key",
            json=self._payment_body(billing_key, order_name, amount, customer_email),
        )

    async def schedule_billing(
        self,
        payment_id: str,
        billing_key: str,
        order_name: str,
        amount: int,
        customer_email: str,
        time_to_pay: datetime,
    ) -> Dict[str, Any]:
        """Schedule a future charge against the billing key."""
        return await self._request(
            "POST",
            self._payment_path(payment_id, "/schedule"),
            "schedule_billing",
            json={
                "payment": self._payment_body(billing_key, order_name, amount, customer_email),
                "timeToPay": time_to_pay.isoformat() + "Z",
            },
        )

    async def cancel_schedule(self, payment_id: str) -> Dict[str, Any]:
        return await self._request(
            "POST",
            self._payment_path(payment_id, "/schedule/revoke"),
            "cancel_schedule",
        )
