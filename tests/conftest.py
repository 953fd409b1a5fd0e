"""
Test Configuration and Fixtures

This module contains pytest fixtures and configuration for the test suite:
an in-memory SQLite database per test, mocked vendor clients wired in
through FastAPI dependency overrides, and an authenticated user.
"""

import os
import tempfile
from datetime import datetime, timedelta
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="unisocial-uploads-")
os.environ["BASE_URL"] = "http://localhost:3001"
os.environ["FRONTEND_URL"] = "http://localhost:5173"

from unisocial.api import deps
from unisocial.config.database import Base, get_db
from unisocial.main import app
from unisocial.models import tables  # noqa: F401
from unisocial.models.tables import PostRow, SubscriptionRow, UserRow
from unisocial.utils.auth import hash_password, issue_user_token


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_late_client() -> MagicMock:
    """Create a mock Late client."""
    mock_client = MagicMock()
    mock_client.configured = True
    mock_client.create_post = AsyncMock(return_value={
        "post": {
            "_id": "late-post-1",
            "status": "published",
            "platforms": [{"platform": "twitter", "status": "published"}],
        }
    })
    mock_client.get_post = AsyncMock(return_value={"post": {"_id": "late-post-1", "status": "published"}})
    mock_client.delete_post = AsyncMock(return_value={})
    mock_client.get_profiles = AsyncMock(return_value=[{"_id": "profile-1", "name": "Default"}])
    mock_client.get_accounts = AsyncMock(return_value=[])
    mock_client.get_connect_url = MagicMock(
        side_effect=lambda platform, profile_id, redirect_url=None: (
            f"https://getlate.dev/api/v1/connect/{platform}?profileId={profile_id}"
        )
    )
    return mock_client


@pytest.fixture
def mock_claude_client() -> MagicMock:
    """Create a mock Claude client; unconfigured unless a test says otherwise."""
    mock_client = MagicMock()
    mock_client.configured = False
    mock_client.complete = AsyncMock(return_value="{}")
    return mock_client


@pytest.fixture
def mock_deepl_client() -> MagicMock:
    mock_client = MagicMock()
    mock_client.configured = True
    mock_client.translate_multi = AsyncMock(return_value={"en": "Hello!"})
    return mock_client


@pytest.fixture
def mock_portone_client() -> MagicMock:
    """Create a mock PortOne client."""
    mock_client = MagicMock()
    mock_client.pay_with_billing_key = AsyncMock(return_value={"payment": {"status": "PAID"}})
    mock_client.schedule_billing = AsyncMock(return_value={"schedule": {"id": "schedule-1"}})
    mock_client.cancel_schedule = AsyncMock(return_value={})
    return mock_client


@pytest.fixture
def mock_media_host_client() -> MagicMock:
    mock_client = MagicMock()
    mock_client.upload_file = AsyncMock(return_value="https://files.catbox.moe/abc123.png")
    return mock_client


@pytest.fixture
def mock_email_service() -> MagicMock:
    """Email service without SMTP: nothing is sent."""
    mock_service = MagicMock()
    mock_service.send_code = AsyncMock(return_value=False)
    return mock_service


@pytest.fixture
def override_dependencies(
    session_factory,
    mock_late_client,
    mock_claude_client,
    mock_deepl_client,
    mock_portone_client,
    mock_media_host_client,
    mock_email_service,
):
    """Route the app's database and vendor clients to the test doubles."""
    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[deps.get_late_client] = lambda: mock_late_client
    app.dependency_overrides[deps.get_claude_client] = lambda: mock_claude_client
    app.dependency_overrides[deps.get_deepl_client] = lambda: mock_deepl_client
    app.dependency_overrides[deps.get_portone_client] = lambda: mock_portone_client
    app.dependency_overrides[deps.get_media_host_client] = lambda: mock_media_host_client
    app.dependency_overrides[deps.get_email_service] = lambda: mock_email_service

    yield

    app.dependency_overrides.clear()


@pytest.fixture
async def async_client(override_dependencies) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client for the FastAPI application."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def test_user(db_session: AsyncSession) -> UserRow:
    """A verified user with password ``secret123``."""
    user = UserRow(
        email="test@example.com",
        username="tester",
        password_hash=hash_password("secret123"),
        language="en",
        email_verified=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user: UserRow) -> dict:
    """Create authentication headers for API requests."""
    return {"Authorization": f"Bearer {issue_user_token(test_user)}"}


@pytest.fixture
def make_subscription(db_session: AsyncSession):
    """Factory that gives a user a subscription on some plan."""
    async def _make(user: UserRow, plan: str = "basic", status: str = "active", **kwargs) -> SubscriptionRow:
        now = datetime.utcnow()
        defaults = {
            "user_id": user.id,
            "plan": plan,
            "status": status,
            "amount": 3900 if plan == "basic" else 9900,
            "billing_key": "billing-key-1",
            "portone_payment_id": f"sub_{user.id}_1",
            "current_period_start": now,
            "current_period_end": now + timedelta(days=30),
        }
        defaults.update(kwargs)
        subscription = SubscriptionRow(**defaults)
        db_session.add(subscription)
        await db_session.commit()
        await db_session.refresh(subscription)
        return subscription

    return _make


@pytest.fixture
def make_posts(db_session: AsyncSession):
    """Factory for stored posts."""
    async def _make(user: UserRow, count: int = 1, **kwargs):
        posts = []
        for index in range(count):
            values = {
                "user_id": user.id,
                "content": f"post {index}",
                "platforms": ["twitter"],
                "status": "published",
            }
            values.update(kwargs)
            posts.append(PostRow(**values))
        db_session.add_all(posts)
        await db_session.commit()
        return posts

    return _make
