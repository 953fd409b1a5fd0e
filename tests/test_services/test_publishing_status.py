"""
Tests for Publishing Status Handling

This module contains tests for mapping Late responses onto post statuses
and for refreshing posts whose scheduled time has passed.
"""

from datetime import datetime, timedelta

import pytest

from unisocial.models.post import PostStatus
from unisocial.services.publishing import PublishingService, derive_status, to_late_time
from unisocial.utils.error_handling import LateAPIError


class TestDeriveStatus:

    def test_all_platforms_published(self):
        result = {"post": {"platforms": [{"status": "published"}, {"status": "success"}]}}
        assert derive_status(result) == PostStatus.PUBLISHED

    def test_some_platforms_failed(self):
        result = {"post": {"platforms": [{"status": "published"}, {"status": "failed"}]}}
        assert derive_status(result) == PostStatus.PARTIAL

    def test_all_platforms_failed(self):
        result = {"platforms": [{"status": "error"}, {"status": "FAILED"}]}
        assert derive_status(result) == PostStatus.FAILED

    def test_top_level_status_when_platforms_pending(self):
        result = {"post": {"status": "processing", "platforms": [{"status": "pending"}]}}
        assert derive_status(result) == PostStatus.PUBLISHING

    def test_defaults_to_published(self):
        assert derive_status({}) == PostStatus.PUBLISHED

    def test_scheduled_wins(self):
        result = {"post": {"platforms": [{"status": "failed"}]}}
        assert derive_status(result, scheduled=True) == PostStatus.SCHEDULED


def test_to_late_time():
    assert to_late_time(datetime(2030, 1, 2, 3, 4, 5, 678)) == "2030-01-02T03:04:05Z"


class TestRefreshDuePosts:
    """Test the background refresh of scheduled posts."""

    @pytest.mark.asyncio
    async def test_refresh_updates_due_posts(self, db_session, test_user, make_posts, mock_late_client):
        now = datetime.utcnow()
        due, = await make_posts(
            test_user, status="scheduled", late_post_id="late-due", scheduled_at=now - timedelta(minutes=5)
        )
        later, = await make_posts(
            test_user, status="scheduled", late_post_id="late-later", scheduled_at=now + timedelta(hours=1)
        )
        mock_late_client.get_post.return_value = {
            "post": {"_id": "late-due", "platforms": [{"platform": "twitter", "status": "published"}]}
        }

        changed = await PublishingService(db_session, mock_late_client).refresh_due_posts(now)

        assert changed == 1
        mock_late_client.get_post.assert_awaited_once_with("late-due")
        await db_session.refresh(due)
        await db_session.refresh(later)
        assert due.status == "published"
        assert due.published_at == now
        assert later.status == "scheduled"

    @pytest.mark.asyncio
    async def test_refresh_skips_late_errors(self, db_session, test_user, make_posts, mock_late_client):
        post, = await make_posts(test_user, status="publishing", late_post_id="late-1")
        mock_late_client.get_post.side_effect = LateAPIError("gone", upstream_status=404)

        changed = await PublishingService(db_session, mock_late_client).refresh_due_posts()

        assert changed == 0
        await db_session.refresh(post)
        assert post.status == "publishing"
