"""
OAuth Login Providers

Authorization-code login with Google and Microsoft, and Apple Sign In
with ``form_post``. Each provider is enabled only when both its client
id and secret are configured.
"""

import json
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlencode

import httpx
import jwt

from unisocial.config.settings import Settings, get_settings
from unisocial.integrations.http import VendorClient
from unisocial.utils.error_handling import OAuthError

PROVIDER_INFO = {
    "google": {"icon": "G", "name": "Google"},
    "microsoft": {"icon": "M", "name": "Microsoft"},
    "apple": {"icon": "", "name": "Apple"},
}

PROVIDER_ENDPOINTS = {
    "google": {
        "authorize": "https://accounts.google.com/o/oauth2/v2/auth",
        "token": "https://oauth2.googleapis.com/token",
        "profile": "https://openidconnect.googleapis.com/v1/userinfo",
        "scope": "openid email profile",
    },
    "microsoft": {
        "authorize": "https://login.microsoftonline.com/common/oauth2/v2.0/authorize",
        "token": "https://login.microsoftonline.com/common/oauth2/v2.0/token",
        "profile": "https://graph.microsoft.com/v1.0/me",
        "scope": "openid email user.read",
    },
    "apple": {
        "authorize": "https://appleid.apple.com/auth/authorize",
        "scope": "name email",
    },
}


@dataclass
class OAuthProfile:
    """Identity returned by a provider."""
    provider: str
    id: str
    email: Optional[str]
    display_name: Optional[str] = None


def _credentials(settings: Settings, provider: str):
    return (
        getattr(settings, f"{provider}_client_id", ""),
        getattr(settings, f"{provider}_client_secret", ""),
    )


def enabled_providers(settings: Optional[Settings] = None) -> List[Dict[str, str]]:
    """Providers with both a client id and a secret configured."""
    settings = settings or get_settings()
    providers = []
    for provider, info in PROVIDER_INFO.items():
        client_id, client_secret = _credentials(settings, provider)
        if client_id and client_secret:
            providers.append({"id": provider, **info})
    return providers


class OAuthClient(VendorClient):
    """Authorization-code flow for one provider."""

    service = "oauth"
    error_class = OAuthError

    def __init__(
        self,
        provider: str,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if provider not in PROVIDER_ENDPOINTS:
            raise ValueError(f"Unknown OAuth provider: {provider}")
        settings = settings or get_settings()
        self.provider = provider
        self.endpoints = PROVIDER_ENDPOINTS[provider]
        self.client_id, self.client_secret = _credentials(settings, provider)
        self.redirect_uri = f"{settings.base_url.rstrip('/')}/api/auth/{provider}/callback"
        super().__init__(self.endpoints["authorize"], transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self.endpoints["scope"],
            "state": state,
        }
        if self.provider == "apple":
            params.update({"response_type": "code id_token", "response_mode": "form_post"})
        else:
            params["response_type"] = "code"
        return f"{self.endpoints['authorize']}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> str:
        """Trade the authorization code for an access token."""
        data = await self._request(
            "POST",
            self.endpoints["token"],
            "exchange_code",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
            headers={"Accept": "application/json"},
        )
        access_token = data.get("access_token")
        if not access_token:
            raise OAuthError(f"{self.provider} token response without access_token")
        return access_token

    async def fetch_profile(self, access_token: str) -> OAuthProfile:
        data = await self._request(
            "GET",
            self.endpoints["profile"],
            "fetch_profile",
            headers={"Authorization": f"Bearer {access_token}"},
        )

        if self.provider == "google":
            return OAuthProfile(
                provider="google",
                id=str(data.get("sub") or data.get("id")),
                email=data.get("email"),
                display_name=data.get("name"),
            )

        return OAuthProfile(
            provider="microsoft",
            id=str(data.get("id")),
            email=data.get("mail") or data.get("userPrincipalName"),
            display_name=data.get("displayName"),
        )


def parse_apple_callback(id_token: str, user_json: Optional[str] = None) -> OAuthProfile:
    """
    Read the identity from Apple's ``form_post`` callback.

    The id_token payload is decoded without signature verification; the
    optional ``user`` form field only arrives on the first sign in.
    """
    try:
        payload = jwt.decode(id_token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        raise OAuthError(f"invalid Apple id_token: {e}") from e

    email = payload.get("email")
    display_name = email.split("@")[0] if email else None
    if user_json:
        try:
            name = json.loads(user_json).get("name") or {}
            display_name = name.get("firstName") or display_name
        except (ValueError, AttributeError):
            pass

    return OAuthProfile(
        provider="apple",
        id=str(payload.get("sub")),
        email=email,
        display_name=display_name,
    )
