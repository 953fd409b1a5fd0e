"""
Centralized Error Handling

This module provides:
- The Unisocial exception hierarchy, each error carrying its HTTP status,
  i18n message key and extra response fields
- Vendor-specific errors for Late, PortOne, Claude and DeepL
- An async retry decorator with exponential backoff and jitter
"""

import asyncio
import random
from datetime import datetime
from enum import Enum
from functools import wraps
from typing import Any, Dict, List, Optional, Type

import structlog

from unisocial.config.i18n import t


class ErrorCategory(Enum):
    """Categories of errors for classification."""
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    EXTERNAL_SERVICE = "external_service"
    SYSTEM = "system"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class UnisocialError(Exception):
    """Base exception class for Unisocial errors."""

    status_code: int = 500

    def __init__(
        self,
        message_key: str = "error_server",
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None,
        recoverable: bool = True
    ):
        super().__init__(message_key)
        self.message_key = message_key
        self.category = category
        self.severity = severity
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}
        self.params = params or {}
        self.original_error = original_error
        self.recoverable = recoverable
        self.timestamp = datetime.utcnow()

    def localized(self, lang: Optional[str]) -> str:
        return t(lang, self.message_key, **self.params)

    def to_response(self, lang: Optional[str]) -> Dict[str, Any]:
        """Render the JSON body returned to the client."""
        return {"error": self.localized(lang), **self.extra}


class ValidationError(UnisocialError):
    """Input validation errors."""

    status_code = 400

    def __init__(self, message_key: str, field: Optional[str] = None, **kwargs):
        super().__init__(
            message_key,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            recoverable=False,
            **kwargs
        )
        self.field = field


class AuthenticationError(UnisocialError):
    """Authentication errors."""

    status_code = 401

    def __init__(self, message_key: str = "error_unauthorized", **kwargs):
        super().__init__(
            message_key,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            recoverable=False,
            **kwargs
        )


class PermissionDeniedError(UnisocialError):
    """The caller is authenticated but may not do this."""

    status_code = 403

    def __init__(self, message_key: str = "error_forbidden", **kwargs):
        super().__init__(
            message_key,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.LOW,
            recoverable=False,
            **kwargs
        )


class NotFoundError(UnisocialError):
    status_code = 404

    def __init__(self, message_key: str = "error_not_found", **kwargs):
        super().__init__(
            message_key,
            category=ErrorCategory.PERMANENT,
            severity=ErrorSeverity.LOW,
            recoverable=False,
            **kwargs
        )


class ConflictError(UnisocialError):
    status_code = 409

    def __init__(self, message_key: str, **kwargs):
        super().__init__(
            message_key,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            recoverable=False,
            **kwargs
        )


class UsageLimitError(UnisocialError):
    """Monthly plan quota exhausted."""

    status_code = 429

    def __init__(self, plan: str, field: str, used: int, limit: int, **kwargs):
        super().__init__(
            "usage_limit_reached",
            category=ErrorCategory.RATE_LIMIT,
            severity=ErrorSeverity.LOW,
            recoverable=False,
            **kwargs
        )
        self.plan = plan
        self.field = field
        self.used = used
        self.limit = limit

    def to_response(self, lang: Optional[str]) -> Dict[str, Any]:
        return {
            "error": self.localized(lang),
            "plan": self.plan,
            "field": self.field,
            "used": self.used,
            "limit": self.limit,
            "upgrade_url": "/subscription/plans",
            "message": t(lang, "usage_upgrade"),
            **self.extra,
        }


class ExternalServiceError(UnisocialError):
    """A vendor API call failed.

    ``detail`` keeps the vendor's own message for logs and response bodies.
    Server-side and throttling failures are marked recoverable so
    ``with_retry`` may try again.
    """

    service_name = "external"

    def __init__(
        self,
        detail: str,
        upstream_status: Optional[int] = None,
        message_key: str = "error_server",
        **kwargs
    ):
        recoverable = upstream_status is None or upstream_status >= 500 or upstream_status == 429
        kwargs.setdefault("recoverable", recoverable)
        super().__init__(
            message_key,
            category=ErrorCategory.EXTERNAL_SERVICE,
            severity=ErrorSeverity.MEDIUM,
            **kwargs
        )
        self.detail = detail
        self.upstream_status = upstream_status

    def __str__(self) -> str:
        if self.upstream_status:
            return f"{self.service_name} API error ({self.upstream_status}): {self.detail}"
        return f"{self.service_name} API error: {self.detail}"

    def to_response(self, lang: Optional[str]) -> Dict[str, Any]:
        return {"error": self.localized(lang), "detail": str(self), **self.extra}


class LateAPIError(ExternalServiceError):
    service_name = "Late"


class PortOneError(ExternalServiceError):
    service_name = "PortOne"


class ClaudeAPIError(ExternalServiceError):
    service_name = "Claude"


class DeepLError(ExternalServiceError):
    service_name = "DeepL"


class OAuthError(ExternalServiceError):
    service_name = "OAuth"


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_errors: Optional[List[Type[Exception]]] = None
):
    """Decorator for adding retry logic to async functions."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)

                except Exception as e:
                    if retryable_errors and not any(isinstance(e, err_type) for err_type in retryable_errors):
                        raise

                    if isinstance(e, UnisocialError) and not e.recoverable:
                        raise

                    if attempt == max_attempts - 1:
                        raise

                    delay = min(base_delay * (exponential_base ** attempt), max_delay)
                    if jitter:
                        delay *= (0.5 + random.random() * 0.5)

                    structlog.get_logger(__name__).warning(
                        "Retrying after error",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay=delay,
                        error=str(e)
                    )

                    await asyncio.sleep(delay)

        return wrapper
    return decorator
