"""
Tests for Post API Endpoints

This module contains tests for the cross-posting flow: publishing,
scheduling, plan limits, history and editing scheduled posts.
"""

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select

from unisocial.models.tables import PostRow, SocialAccountRow, UserRow
from unisocial.utils.error_handling import LateAPIError

EN = {"Accept-Language": "en"}


@pytest.fixture
async def twitter_account(db_session, test_user) -> SocialAccountRow:
    account = SocialAccountRow(
        user_id=test_user.id,
        platform="twitter",
        platform_username="tester",
        late_account_id="acc-twitter",
        profile_data={},
        is_active=True,
    )
    db_session.add(account)
    await db_session.commit()
    return account


class TestCreatePost:
    """Test publishing and scheduling."""

    @pytest.mark.asyncio
    async def test_publish_now(self, async_client: AsyncClient, auth_headers, twitter_account, mock_late_client):
        response = await async_client.post(
            "/api/posts",
            json={"content": "Hello world", "platforms": ["twitter"]},
            headers={**auth_headers, **EN},
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["message"] == "Post published."
        assert data["post"]["status"] == "published"
        assert data["post"]["late_post_id"] == "late-post-1"
        assert data["post"]["published_at"] is not None

        kwargs = mock_late_client.create_post.await_args.kwargs
        assert kwargs["accounts"] == [{"platform": "twitter", "accountId": "acc-twitter"}]
        assert kwargs["scheduled_for"] is None

        assert response.headers["X-Usage-Used"] == "0"
        assert response.headers["X-Usage-Limit"] == "5"
        assert response.headers["X-Usage-Remaining"] == "5"

    @pytest.mark.asyncio
    async def test_partial_failure_status(
        self, async_client: AsyncClient, auth_headers, twitter_account, mock_late_client
    ):
        mock_late_client.create_post.return_value = {
            "post": {
                "_id": "late-post-2",
                "platforms": [
                    {"platform": "twitter", "status": "published"},
                    {"platform": "threads", "status": "failed"},
                ],
            }
        }

        response = await async_client.post(
            "/api/posts",
            json={"content": "Hello", "platforms": ["twitter"]},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["post"]["status"] == "partial"

    @pytest.mark.asyncio
    async def test_requires_content_and_platforms(self, async_client: AsyncClient, auth_headers):
        response = await async_client.post(
            "/api/posts",
            json={"content": "", "platforms": ["twitter"]},
            headers={**auth_headers, **EN},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "Content and platforms are required."

        response = await async_client.post(
            "/api/posts",
            json={"content": "text", "platforms": []},
            headers=auth_headers,
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_unsupported_platform(self, async_client: AsyncClient, auth_headers):
        response = await async_client.post(
            "/api/posts",
            json={"content": "text", "platforms": ["myspace"]},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["unsupported"] == ["myspace"]

    @pytest.mark.asyncio
    async def test_no_connected_accounts(self, async_client: AsyncClient, auth_headers, mock_late_client):
        response = await async_client.post(
            "/api/posts",
            json={"content": "text", "platforms": ["instagram"]},
            headers={**auth_headers, **EN},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "sync" in response.json()["error"]
        mock_late_client.create_post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_to_many_platforms(
        self, async_client: AsyncClient, auth_headers, db_session, test_user, make_subscription, mock_late_client
    ):
        await make_subscription(test_user, plan="pro")
        platforms = ["twitter", "instagram", "threads", "bluesky", "linkedin"]
        for platform in platforms:
            db_session.add(SocialAccountRow(
                user_id=test_user.id,
                platform=platform,
                platform_username="tester",
                late_account_id=f"acc-{platform}",
                profile_data={},
                is_active=True,
            ))
        await db_session.commit()

        response = await async_client.post(
            "/api/posts",
            json={"content": "everywhere", "platforms": platforms},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["post"]["platforms"] == platforms
        accounts = mock_late_client.create_post.await_args.kwargs["accounts"]
        assert sorted(a["accountId"] for a in accounts) == sorted(f"acc-{p}" for p in platforms)

    @pytest.mark.asyncio
    async def test_monthly_post_limit(self, async_client: AsyncClient, auth_headers, test_user, make_posts):
        await make_posts(test_user, count=5)

        response = await async_client.post(
            "/api/posts",
            json={"content": "one too many", "platforms": ["twitter"]},
            headers={**auth_headers, **EN},
        )

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        data = response.json()
        assert data["plan"] == "free"
        assert data["used"] == 5
        assert data["limit"] == 5
        assert data["upgrade_url"] == "/subscription/plans"
        assert data["error"] == "Monthly usage limit reached."

    @pytest.mark.asyncio
    async def test_schedule_needs_paid_plan(self, async_client: AsyncClient, auth_headers, twitter_account):
        scheduled_for = (datetime.utcnow() + timedelta(days=1)).isoformat() + "Z"

        response = await async_client.post(
            "/api/posts",
            json={"content": "later", "platforms": ["twitter"], "scheduledFor": scheduled_for},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["plan"] == "free"

    @pytest.mark.asyncio
    async def test_schedule_on_basic_plan(
        self,
        async_client: AsyncClient,
        auth_headers,
        test_user,
        twitter_account,
        make_subscription,
        mock_late_client,
    ):
        await make_subscription(test_user, plan="basic")

        response = await async_client.post(
            "/api/posts",
            json={
                "content": "later",
                "platforms": ["twitter"],
                "scheduledFor": "2030-01-02T09:30:00+09:00",
            },
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        post = response.json()["post"]
        assert post["status"] == "scheduled"
        assert post["published_at"] is None
        assert post["scheduled_at"].startswith("2030-01-02T00:30:00")
        assert mock_late_client.create_post.await_args.kwargs["scheduled_for"] == "2030-01-02T00:30:00Z"
        assert response.headers["X-Usage-Limit"] == "50"

    @pytest.mark.asyncio
    async def test_late_error(self, async_client: AsyncClient, auth_headers, twitter_account, mock_late_client):
        mock_late_client.create_post.side_effect = LateAPIError("account expired", upstream_status=400)

        response = await async_client.post(
            "/api/posts",
            json={"content": "Hello", "platforms": ["twitter"]},
            headers={**auth_headers, **EN},
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        data = response.json()
        assert data["error"] == "An error occurred while posting."
        assert "account expired" in data["detail"]

    @pytest.mark.asyncio
    async def test_local_media_is_rehosted(
        self,
        async_client: AsyncClient,
        auth_headers,
        twitter_account,
        mock_late_client,
        mock_media_host_client,
    ):
        upload = Path(os.environ["UPLOAD_DIR"]) / "1700000000000-123456.png"
        upload.write_bytes(b"\x89PNG")

        response = await async_client.post(
            "/api/posts",
            json={
                "content": "with media",
                "platforms": ["twitter"],
                "mediaItems": [{"type": "image", "url": f"http://localhost:3001/uploads/{upload.name}"}],
            },
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        mock_media_host_client.upload_file.assert_awaited_once()
        sent_media = mock_late_client.create_post.await_args.kwargs["media_items"]
        assert sent_media[0]["url"] == "https://files.catbox.moe/abc123.png"
        assert response.json()["post"]["media_urls"][0]["url"] == "https://files.catbox.moe/abc123.png"

    @pytest.mark.asyncio
    async def test_remote_media_is_left_alone(
        self, async_client: AsyncClient, auth_headers, twitter_account, mock_media_host_client
    ):
        response = await async_client.post(
            "/api/posts",
            json={
                "content": "",
                "platforms": ["twitter"],
                "mediaItems": [{"type": "image", "url": "https://cdn.example.com/a.png"}],
            },
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_201_CREATED
        mock_media_host_client.upload_file.assert_not_awaited()


class TestPostHistory:
    """Test listing, reading and deleting posts."""

    @pytest.mark.asyncio
    async def test_list_with_paging(self, async_client: AsyncClient, auth_headers, test_user, make_posts):
        await make_posts(test_user, count=3)
        await make_posts(test_user, count=1, status="failed")

        response = await async_client.get("/api/posts", params={"limit": 2}, headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 4
        assert len(data["posts"]) == 2
        assert data["limit"] == 2

        response = await async_client.get("/api/posts", params={"status": "failed"}, headers=auth_headers)
        data = response.json()
        assert data["total"] == 1
        assert data["posts"][0]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_free_plan_history_window(self, async_client: AsyncClient, auth_headers, test_user, make_posts):
        await make_posts(test_user, count=1)
        await make_posts(test_user, count=1, created_at=datetime.utcnow() - timedelta(days=10))

        response = await async_client.get("/api/posts", headers=auth_headers)

        assert response.json()["total"] == 1

    @pytest.mark.asyncio
    async def test_get_other_users_post(self, async_client: AsyncClient, auth_headers, db_session):
        other = UserRow(email="other@example.com", username="other", email_verified=True)
        db_session.add(other)
        await db_session.commit()
        post = PostRow(user_id=other.id, content="secret", platforms=["twitter"], status="published")
        db_session.add(post)
        await db_session.commit()

        response = await async_client.get(f"/api/posts/{post.id}", headers=auth_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_post(
        self, async_client: AsyncClient, auth_headers, test_user, make_posts, mock_late_client, session_factory
    ):
        [post] = await make_posts(test_user, count=1, late_post_id="late-9")

        response = await async_client.delete(f"/api/posts/{post.id}", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK
        mock_late_client.delete_post.assert_awaited_once_with("late-9")
        async with session_factory() as session:
            assert await session.get(PostRow, post.id) is None

    @pytest.mark.asyncio
    async def test_delete_survives_late_failure(
        self, async_client: AsyncClient, auth_headers, test_user, make_posts, mock_late_client
    ):
        [post] = await make_posts(test_user, count=1, late_post_id="late-9")
        mock_late_client.delete_post.side_effect = LateAPIError("gone", upstream_status=404)

        response = await async_client.delete(f"/api/posts/{post.id}", headers=auth_headers)

        assert response.status_code == status.HTTP_200_OK


class TestUpdatePost:
    """Test rescheduling."""

    @pytest.mark.asyncio
    async def test_only_scheduled_posts(self, async_client: AsyncClient, auth_headers, test_user, make_posts):
        [post] = await make_posts(test_user, count=1, status="published")

        response = await async_client.put(
            f"/api/posts/{post.id}",
            json={"content": "edited", "platforms": ["twitter"]},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_reschedule(
        self,
        async_client: AsyncClient,
        auth_headers,
        test_user,
        twitter_account,
        make_posts,
        make_subscription,
        mock_late_client,
        session_factory,
    ):
        await make_subscription(test_user, plan="pro")
        [post] = await make_posts(
            test_user,
            count=1,
            status="scheduled",
            late_post_id="late-old",
            scheduled_at=datetime(2030, 1, 1, 9, 0),
        )
        mock_late_client.create_post.return_value = {"post": {"_id": "late-new", "status": "scheduled"}}

        response = await async_client.put(
            f"/api/posts/{post.id}",
            json={"content": "edited", "platforms": ["twitter"], "scheduledFor": "2030-02-01T09:00:00Z"},
            headers={**auth_headers, **EN},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == "Scheduled post updated."
        mock_late_client.delete_post.assert_awaited_once_with("late-old")

        async with session_factory() as session:
            stored = (await session.execute(select(PostRow).where(PostRow.id == post.id))).scalar_one()
        assert stored.content == "edited"
        assert stored.late_post_id == "late-new"
        assert stored.status == "scheduled"
        assert stored.scheduled_at == datetime(2030, 2, 1, 9, 0)
