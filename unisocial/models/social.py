"""
Social Account Schemas

Response schemas for accounts connected through Late.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SocialAccountOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    platform: str
    platform_username: Optional[str] = None
    late_account_id: Optional[str] = None
    is_active: bool
    connected_at: Optional[datetime] = None


class AccountsResponse(BaseModel):
    accounts: List[SocialAccountOut]


class AccountActionResponse(BaseModel):
    """Result of disconnecting or reconnecting an account."""

    message: str = Field(..., description="Localized message")
    accounts: List[SocialAccountOut] = Field(..., description="Currently active accounts")


class SyncResponse(BaseModel):
    message: str = Field(..., description="Localized message")
    accounts: List[SocialAccountOut] = Field(..., description="Currently active accounts")
    synced: int = Field(..., description="Accounts reported by Late")


class ProfilesResponse(BaseModel):
    profiles: List[Dict[str, Any]]
