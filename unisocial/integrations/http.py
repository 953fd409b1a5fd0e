"""
Vendor HTTP Client Base

Shared request plumbing for the REST vendors: one short-lived
``httpx.AsyncClient`` per call, timing, structured call logging and
conversion of transport or HTTP failures into the vendor's error class.
"""

import time
from typing import Any, Dict, Optional, Type

import httpx
import structlog

from unisocial.utils.error_handling import ExternalServiceError
from unisocial.utils.logger import log_external_api_call


class VendorClient:
    """Base class for thin async REST clients."""

    service: str = "external"
    error_class: Type[ExternalServiceError] = ExternalServiceError

    def __init__(
        self,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.transport = transport
        self.timeout = timeout
        self.logger = structlog.get_logger(self.__class__.__module__)

    def _headers(self) -> Dict[str, str]:
        return {}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            transport=self.transport,
            timeout=self.timeout,
        )

    async def _send(self, method: str, path: str, operation: str, **kwargs) -> httpx.Response:
        """Send a request and raise the vendor error on failure."""
        start_time = time.time()

        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log_external_api_call(self.service, operation, False, error=str(e))
            raise self.error_class(str(e) or e.__class__.__name__, original_error=e) from e

        duration_ms = (time.time() - start_time) * 1000

        if response.is_error:
            log_external_api_call(
                self.service,
                operation,
                False,
                duration_ms=duration_ms,
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise self.error_class(response.text, upstream_status=response.status_code)

        log_external_api_call(
            self.service,
            operation,
            True,
            duration_ms=duration_ms,
            status_code=response.status_code,
        )
        return response

    async def _request(self, method: str, path: str, operation: str, **kwargs) -> Any:
        """Send a request and decode the JSON body.

        Non-JSON bodies come back as ``{"raw": text}``.
        """
        response = await self._send(method, path, operation, **kwargs)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}
