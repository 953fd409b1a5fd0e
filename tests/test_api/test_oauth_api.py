"""
Tests for OAuth Login API Endpoints

This module contains tests for the provider list, the Google
authorization-code round trip and the Apple form_post callback.
"""

import json
from urllib.parse import parse_qs, urlsplit

import httpx
import jwt
import pytest
from fastapi import status
from httpx import AsyncClient

from unisocial.api import oauth as oauth_api
from unisocial.config.settings import get_settings
from unisocial.integrations.oauth import OAuthClient
from unisocial.utils.auth import create_oauth_state, verify_oauth_state, verify_token

FRONTEND = "http://localhost:5173"
APPLE_KEY = "apple-test-signing-key-0123456789abcdef"


def _query(location: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlsplit(location).query).items()}


@pytest.fixture
def oauth_settings(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "google_client_id", "google-id")
    monkeypatch.setattr(settings, "google_client_secret", "google-secret")
    monkeypatch.setattr(settings, "microsoft_client_id", "microsoft-id")
    monkeypatch.setattr(settings, "microsoft_client_secret", "")
    monkeypatch.setattr(settings, "apple_client_id", "apple-id")
    monkeypatch.setattr(settings, "apple_client_secret", "apple-secret")
    return settings


@pytest.fixture
def google_transport(monkeypatch, oauth_settings):
    """Serve Google's token and userinfo endpoints from a MockTransport."""
    seen = []
    profile = {"sub": "g-123", "email": "New.Person@Example.com", "name": "newperson"}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/token":
            return httpx.Response(200, json={"access_token": "google-access", "token_type": "Bearer"})
        if request.url.path == "/v1/userinfo":
            return httpx.Response(200, json=profile)
        return httpx.Response(404, json={"error": "not_found"})

    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(
        oauth_api,
        "get_oauth_client",
        lambda provider: OAuthClient(provider, transport=transport),
    )
    return seen, profile


class TestProviders:

    @pytest.mark.asyncio
    async def test_only_fully_configured_providers(self, async_client: AsyncClient, oauth_settings):
        response = await async_client.get("/api/auth/providers")

        assert response.status_code == status.HTTP_200_OK
        ids = [p["id"] for p in response.json()["providers"]]
        assert ids == ["google", "apple"]

    @pytest.mark.asyncio
    async def test_no_providers_by_default(self, async_client: AsyncClient):
        response = await async_client.get("/api/auth/providers")

        assert response.json() == {"providers": []}


class TestCodeFlow:
    """Test the Google authorization-code round trip."""

    @pytest.mark.asyncio
    async def test_login_redirects_with_signed_state(self, async_client: AsyncClient, oauth_settings):
        response = await async_client.get("/api/auth/google")

        assert response.status_code == status.HTTP_302_FOUND
        location = response.headers["location"]
        assert location.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        params = _query(location)
        assert params["client_id"] == "google-id"
        assert params["response_type"] == "code"
        assert params["redirect_uri"] == "http://localhost:3001/api/auth/google/callback"
        assert verify_oauth_state(params["state"], "google")
        assert not verify_oauth_state(params["state"], "microsoft")

    @pytest.mark.asyncio
    async def test_unconfigured_provider_fails(self, async_client: AsyncClient, oauth_settings):
        response = await async_client.get("/api/auth/microsoft")

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == f"{FRONTEND}/?error=microsoft_failed"

    @pytest.mark.asyncio
    async def test_callback_rejects_bad_state(self, async_client: AsyncClient, google_transport):
        seen, _ = google_transport

        response = await async_client.get(
            "/api/auth/google/callback",
            params={"code": "auth-code", "state": create_oauth_state("microsoft")},
        )

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == f"{FRONTEND}/?error=google_failed"
        assert seen == []

    @pytest.mark.asyncio
    async def test_callback_with_provider_error(self, async_client: AsyncClient, google_transport):
        seen, _ = google_transport

        response = await async_client.get(
            "/api/auth/google/callback",
            params={"error": "access_denied", "state": create_oauth_state("google")},
        )

        assert response.headers["location"] == f"{FRONTEND}/?error=google_failed"
        assert seen == []

    @pytest.mark.asyncio
    async def test_callback_signs_in_new_user(self, async_client: AsyncClient, google_transport):
        seen, _ = google_transport

        response = await async_client.get(
            "/api/auth/google/callback",
            params={"code": "auth-code", "state": create_oauth_state("google")},
        )

        assert response.status_code == status.HTTP_302_FOUND
        location = response.headers["location"]
        assert location.startswith(f"{FRONTEND}/?")
        params = _query(location)
        user = json.loads(params["user"])
        assert user["email"] == "new.person@example.com"
        assert user["language"] == "ko"
        assert set(user) == {"id", "email", "username", "language"}
        assert verify_token(params["token"])["sub"] == str(user["id"])

        token_request, profile_request = seen
        assert parse_qs(token_request.content.decode())["code"] == ["auth-code"]
        assert profile_request.headers["authorization"] == "Bearer google-access"

    @pytest.mark.asyncio
    async def test_callback_links_existing_email(self, async_client: AsyncClient, google_transport, test_user):
        _, profile = google_transport
        profile["email"] = "TEST@example.com"

        response = await async_client.get(
            "/api/auth/google/callback",
            params={"code": "auth-code", "state": create_oauth_state("google")},
        )

        user = json.loads(_query(response.headers["location"])["user"])
        assert user["id"] == test_user.id
        assert user["username"] == "tester"

    @pytest.mark.asyncio
    async def test_token_exchange_failure(self, async_client: AsyncClient, oauth_settings, monkeypatch):
        transport = httpx.MockTransport(lambda r: httpx.Response(400, json={"error": "invalid_grant"}))
        monkeypatch.setattr(
            oauth_api,
            "get_oauth_client",
            lambda provider: OAuthClient(provider, transport=transport),
        )

        response = await async_client.get(
            "/api/auth/google/callback",
            params={"code": "stale-code", "state": create_oauth_state("google")},
        )

        assert response.headers["location"] == f"{FRONTEND}/?error=google_failed"


class TestAppleCallback:
    """Test Sign in with Apple's form_post callback."""

    @pytest.mark.asyncio
    async def test_form_id_token_signs_in(self, async_client: AsyncClient):
        id_token = jwt.encode({"sub": "apple-001", "email": "fan@privaterelay.appleid.com"}, APPLE_KEY, algorithm="HS256")

        response = await async_client.post(
            "/api/auth/apple/callback",
            data={
                "id_token": id_token,
                "state": create_oauth_state("apple"),
                "user": json.dumps({"name": {"firstName": "Minji", "lastName": "Kim"}}),
            },
        )

        assert response.status_code == status.HTTP_302_FOUND
        params = _query(response.headers["location"])
        user = json.loads(params["user"])
        assert user["email"] == "fan@privaterelay.appleid.com"
        assert verify_token(params["token"])["sub"] == str(user["id"])

    @pytest.mark.asyncio
    async def test_bad_state_rejected(self, async_client: AsyncClient):
        id_token = jwt.encode({"sub": "apple-001", "email": "fan@privaterelay.appleid.com"}, APPLE_KEY, algorithm="HS256")

        response = await async_client.post(
            "/api/auth/apple/callback",
            data={"id_token": id_token, "state": create_oauth_state("google")},
        )

        assert response.status_code == status.HTTP_302_FOUND
        assert response.headers["location"] == f"{FRONTEND}/?error=apple_failed"

    @pytest.mark.asyncio
    async def test_unreadable_id_token(self, async_client: AsyncClient):
        response = await async_client.post(
            "/api/auth/apple/callback",
            data={"id_token": "not-a-jwt", "state": create_oauth_state("apple")},
        )

        assert response.headers["location"] == f"{FRONTEND}/?error=apple_failed"
