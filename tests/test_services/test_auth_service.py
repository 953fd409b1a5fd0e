"""
Tests for Authentication Service

This module contains tests for resolving OAuth identities to local users.
"""

import pytest

from unisocial.integrations.oauth import OAuthProfile
from unisocial.models.tables import UserRow
from unisocial.services.auth import AuthService
from unisocial.utils.error_handling import OAuthError


class TestOAuthUsers:
    """Test find-or-create for OAuth logins."""

    @pytest.mark.asyncio
    async def test_creates_verified_user(self, db_session, mock_email_service):
        service = AuthService(db_session, mock_email_service)

        user = await service.find_or_create_oauth_user(
            OAuthProfile(provider="google", id="g-42", email="Jane.Doe@Example.com", display_name="Jane Doe!")
        )

        assert user.id is not None
        assert user.email == "jane.doe@example.com"
        assert user.username == "JaneDoe"
        assert user.email_verified is True
        assert user.password_hash is None
        assert user.language == "ko"

    @pytest.mark.asyncio
    async def test_same_identity_returns_same_user(self, db_session, mock_email_service):
        service = AuthService(db_session, mock_email_service)
        profile = OAuthProfile(provider="microsoft", id="ms-1", email="ms@example.com", display_name="MS User")

        first = await service.find_or_create_oauth_user(profile)
        second = await service.find_or_create_oauth_user(profile)

        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_links_existing_email_account(self, db_session, test_user, mock_email_service):
        test_user.email_verified = False
        await db_session.commit()
        service = AuthService(db_session, mock_email_service)

        user = await service.find_or_create_oauth_user(
            OAuthProfile(provider="apple", id="apple-1", email="TEST@example.com")
        )

        assert user.id == test_user.id
        assert user.oauth_provider == "apple"
        assert user.oauth_id == "apple-1"
        assert user.email_verified is True
        assert user.password_hash is not None

    @pytest.mark.asyncio
    async def test_username_collision_gets_suffix(self, db_session, mock_email_service):
        db_session.add(UserRow(email="taken@example.com", username="kim", email_verified=True))
        await db_session.commit()
        service = AuthService(db_session, mock_email_service)

        user = await service.find_or_create_oauth_user(
            OAuthProfile(provider="google", id="g-7", email="kim@other.com", display_name="kim")
        )

        assert user.username.startswith("kim_")
        assert len(user.username) == len("kim_") + 4

    @pytest.mark.asyncio
    async def test_korean_display_name_is_kept(self, db_session, mock_email_service):
        service = AuthService(db_session, mock_email_service)

        user = await service.find_or_create_oauth_user(
            OAuthProfile(provider="google", id="g-8", email="hong@example.com", display_name="홍 길동")
        )

        assert user.username == "홍길동"

    @pytest.mark.asyncio
    async def test_email_is_required(self, db_session, mock_email_service):
        service = AuthService(db_session, mock_email_service)

        with pytest.raises(OAuthError):
            await service.find_or_create_oauth_user(OAuthProfile(provider="google", id="g-9", email=None))
