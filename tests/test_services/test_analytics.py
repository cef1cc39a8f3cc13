"""Tests for AnalyticsService."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from events_indexer.authors.schemas import Author, PlatformProfile
from events_indexer.posts.schemas import Platform, Post
from events_indexer.services.analytics import AnalyticsService

NOW = datetime.now(timezone.utc)


def _post(post_id: str, topics: list[str]) -> Post:
    return Post(
        id=post_id,
        platform=Platform.TWITTER,
        platform_id=post_id,
        content="Soroban smart contracts are live on Stellar mainnet " * 3,
        author_id="author_1",
        created_at=NOW,
        topics=topics,
        expires_at=NOW + timedelta(days=30),
    )


@pytest.fixture
def mock_posts():
    posts = MagicMock()
    posts.get_topic_posts = AsyncMock(return_value=[])
    posts.get_co_occurring = AsyncMock(return_value=[])
    posts.count_by_platform = AsyncMock(return_value={})
    posts.get_topic_counts = AsyncMock(return_value=[])
    posts.get_recent = AsyncMock(return_value=[])
    posts.count_by_author = AsyncMock(return_value=0)
    posts.get_author_topic_counts = AsyncMock(return_value=[])
    return posts


@pytest.fixture
def mock_authors():
    authors = MagicMock()
    authors.get = AsyncMock(return_value=None)
    return authors


@pytest.fixture
def analytics(mock_database, mock_posts, mock_authors):
    return AnalyticsService(mock_database, posts=mock_posts, authors=mock_authors)


class TestWindows:
    def test_default_window(self, analytics):
        assert analytics.clamp_hours(None) == 24

    def test_clamped(self, analytics):
        assert analytics.clamp_hours(0) == 1
        assert analytics.clamp_hours(-5) == 1
        assert analytics.clamp_hours(1000) == 168
        assert analytics.clamp_hours(48) == 48

    def test_cutoff(self, analytics):
        cutoff = analytics.cutoff(2)
        expected = datetime.now(timezone.utc) - timedelta(hours=2)
        assert abs((cutoff - expected).total_seconds()) < 5


class TestTopicQueries:
    @pytest.mark.asyncio
    async def test_topic_posts_normalizes_topic(self, analytics, mock_posts):
        mock_posts.get_topic_posts.return_value = [_post("1", ["stellar"])]

        posts = await analytics.topic_posts(" Stellar ", limit=5, hours=48, platform="twitter")

        assert len(posts) == 1
        topic, since, limit, platform = mock_posts.get_topic_posts.call_args[0]
        assert topic == "stellar"
        assert (limit, platform) == (5, "twitter")
        assert abs((datetime.now(timezone.utc) - since) - timedelta(hours=48)) < timedelta(seconds=5)

    @pytest.mark.asyncio
    async def test_topic_posts_failure_returns_empty(self, analytics, mock_posts):
        mock_posts.get_topic_posts.side_effect = ConnectionError("db down")
        assert await analytics.topic_posts("stellar") == []

    @pytest.mark.asyncio
    async def test_co_occurring(self, analytics, mock_posts):
        mock_posts.get_co_occurring.return_value = [
            {"topic": "soroban", "count": 3, "platforms": ["twitter"]},
        ]

        related = await analytics.co_occurring_topics("stellar")

        assert related[0]["topic"] == "soroban"

    @pytest.mark.asyncio
    async def test_co_occurring_failure_returns_empty(self, analytics, mock_posts):
        mock_posts.get_co_occurring.side_effect = ConnectionError("db down")
        assert await analytics.co_occurring_topics("stellar") == []


class TestAuthorStats:
    @pytest.mark.asyncio
    async def test_unknown_author(self, analytics):
        assert await analytics.author_stats("author_missing") is None

    @pytest.mark.asyncio
    async def test_author_stats(self, analytics, mock_authors, mock_posts):
        mock_authors.get.return_value = Author(
            id="author_1",
            display_name="Crypto Analyst",
            platforms={
                "twitter": PlatformProfile(native_id="tw_1", username="analyst"),
                "discord": PlatformProfile(native_id="dc_1", username="analyst#1"),
            },
            post_count=4,
            first_seen=NOW - timedelta(days=3),
            last_active=NOW,
        )
        mock_posts.count_by_author.return_value = 4
        mock_posts.get_author_topic_counts.return_value = [{"topic": "stellar", "count": 4}]

        stats = await analytics.author_stats("author_1")

        assert stats == {
            "author_id": "author_1",
            "display_name": "Crypto Analyst",
            "total_posts": 4,
            "platforms": ["twitter", "discord"],
            "top_topics": [{"topic": "stellar", "count": 4}],
            "recent_activity": NOW,
        }
        mock_posts.get_author_topic_counts.assert_awaited_once_with("author_1", limit=10)

    @pytest.mark.asyncio
    async def test_author_stats_failure(self, analytics, mock_authors):
        mock_authors.get.side_effect = ConnectionError("db down")
        assert await analytics.author_stats("author_1") is None


class TestIndexingStats:
    @pytest.mark.asyncio
    async def test_aggregates(self, analytics, mock_posts):
        mock_posts.count_by_platform.return_value = {"reddit": 2, "twitter": 3}
        mock_posts.get_topic_counts.return_value = [{"topic": "stellar", "count": 5}]
        mock_posts.get_recent.return_value = [_post("1", ["stellar", "soroban", "a", "b"])]

        stats = await analytics.indexing_stats(24)

        assert stats["total_posts"] == 5
        assert stats["by_platform"] == {"reddit": 2, "twitter": 3}
        assert stats["top_topics"] == [{"topic": "stellar", "count": 5}]
        preview = stats["recent_activity"][0]
        assert preview["topics"] == ["stellar", "soroban", "a"]
        assert len(preview["content_preview"]) == 103
        mock_posts.get_topic_counts.assert_awaited_once()
        assert mock_posts.get_topic_counts.call_args.kwargs["limit"] == 20
        assert mock_posts.get_recent.call_args.kwargs["limit"] == 10

    @pytest.mark.asyncio
    async def test_failure_returns_zeroes(self, analytics, mock_posts):
        mock_posts.count_by_platform.side_effect = ConnectionError("db down")

        stats = await analytics.indexing_stats()

        assert stats == {
            "total_posts": 0,
            "by_platform": {},
            "top_topics": [],
            "recent_activity": [],
        }


class TestRecentPosts:
    @pytest.mark.asyncio
    async def test_without_window(self, analytics, mock_posts):
        await analytics.recent_posts(platform="reddit", limit=10)
        assert mock_posts.get_recent.call_args[0] == (None, 10, "reddit")

    @pytest.mark.asyncio
    async def test_with_window(self, analytics, mock_posts):
        await analytics.recent_posts(hours=6)
        since = mock_posts.get_recent.call_args[0][0]
        assert since is not None

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self, analytics, mock_posts):
        mock_posts.get_recent.side_effect = ConnectionError("db down")
        assert await analytics.recent_posts() == []
