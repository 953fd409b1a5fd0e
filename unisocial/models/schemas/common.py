"""
Common Schemas

Shared schemas used across multiple API endpoints for consistent
request/response formatting and validation.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(..., description="Localized error message")
    detail: Optional[str] = Field(None, description="Upstream or diagnostic detail")
    details: Optional[List[Dict[str, Any]]] = Field(
        None,
        description="Field-level validation errors"
    )


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str = Field(..., description="Localized message")


class HealthCheckResponse(BaseModel):
    """Health check response format."""

    status: str = Field(..., description="Service health status")
    timestamp: str = Field(..., description="Current timestamp")
    language: str = Field(..., description="Language detected for this request")
