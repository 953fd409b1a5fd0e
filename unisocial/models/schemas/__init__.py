"""
API Schemas for Request/Response Validation

This module contains shared schemas used across different API endpoints
for request validation and response formatting.
"""

from .auth import *
from .common import *

__all__ = [
    # Auth schemas
    "SignupRequest",
    "SignupResponse",
    "VerifyRequest",
    "ResendCodeRequest",
    "LoginRequest",
    "ForgotPasswordRequest",
    "ForgotPasswordResponse",
    "ResetPasswordRequest",
    "LanguageUpdateRequest",
    "UserOut",
    "AuthResponse",
    "UserResponse",
    "LanguageResponse",

    # Common schemas
    "ErrorResponse",
    "MessageResponse",
    "HealthCheckResponse",
]
