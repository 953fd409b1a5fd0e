"""
Logging Configuration

This module provides structured logging configuration for Unisocial
using structlog, plus helpers for the events every route logs.
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.types import Processor

from unisocial import __version__
from unisocial.config.settings import get_settings


def setup_logging() -> None:
    """Set up structured logging for the application."""
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
    )

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.is_development:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        # JSON lines for log aggregation
        processors.extend([
            add_app_context,
            structlog.processors.JSONRenderer(),
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def add_app_context(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add application context to log entries."""
    settings = get_settings()

    event_dict["app"] = "unisocial"
    event_dict["version"] = __version__
    event_dict["environment"] = settings.environment

    return event_dict


def log_api_response(method: str, path: str, status_code: int, duration_ms: float, **kwargs) -> None:
    """Log API response details."""
    logger = structlog.get_logger("api_response")
    logger.info(
        "API response",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        **kwargs
    )


def log_external_api_call(
    service: str,
    operation: str,
    success: bool,
    duration_ms: Optional[float] = None,
    **kwargs
) -> None:
    """Log external API call details."""
    logger = structlog.get_logger("external_api")
    log_data = {
        "service": service,
        "operation": operation,
        "success": success,
        **kwargs
    }

    if duration_ms is not None:
        log_data["duration_ms"] = duration_ms

    if success:
        logger.info("External API call successful", **log_data)
    else:
        logger.error("External API call failed", **log_data)


def log_user_action(
    user_id: Any,
    action: str,
    resource_type: Optional[str] = None,
    resource_id: Any = None,
    **kwargs
) -> None:
    """Log user action for audit trail."""
    logger = structlog.get_logger("user_action")
    logger.info(
        "User action",
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        **kwargs
    )


def log_business_event(event_type: str, **kwargs) -> None:
    """Log billing and usage events."""
    logger = structlog.get_logger("business_event")
    logger.info(
        "Business event",
        event_type=event_type,
        **kwargs
    )


def log_security_event(event_type: str, severity: str = "info", user_id: Any = None, **kwargs) -> None:
    """Log security-related events."""
    logger = structlog.get_logger("security")

    log_data = {
        "security_event": event_type,
        "severity": severity,
        **kwargs
    }

    if user_id:
        log_data["user_id"] = user_id

    if severity == "critical":
        logger.critical("Security event", **log_data)
    elif severity == "error":
        logger.error("Security event", **log_data)
    elif severity == "warning":
        logger.warning("Security event", **log_data)
    else:
        logger.info("Security event", **log_data)
