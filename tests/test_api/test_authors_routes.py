"""Tests for author endpoints."""

from datetime import datetime, timezone

from events_indexer.authors.schemas import Author, PlatformProfile

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _author(platforms: dict[str, PlatformProfile]) -> Author:
    return Author(
        id="author_1",
        display_name="Crypto Analyst",
        platforms=platforms,
        post_count=7,
        first_seen=NOW,
        last_active=NOW,
    )


class TestListAuthors:
    def test_prefers_twitter_profile(self, client, mock_pipeline):
        mock_pipeline.resolver.list_authors.return_value = [_author({
            "discord": PlatformProfile(native_id="d1", username="analyst#1"),
            "twitter": PlatformProfile(
                native_id="t1", username="analyst", followers_count=900, verified=True
            ),
        })]

        resp = client.get("/authors")
        data = resp.json()

        assert resp.status_code == 200
        assert data["count"] == 1
        assert data["platform"] == "all"
        author = data["authors"][0]
        assert author["platform"] == "twitter"
        assert author["username"] == "analyst"
        assert author["followers_count"] == 900
        assert author["verified"] is True
        assert author["post_count"] == 7

    def test_platform_filter(self, client, mock_pipeline):
        mock_pipeline.resolver.list_authors.return_value = [_author({
            "twitter": PlatformProfile(native_id="t1", username="analyst"),
            "discord": PlatformProfile(native_id="d1", username="analyst#1"),
        })]

        resp = client.get("/authors?platform=discord&limit=10")

        assert resp.json()["authors"][0]["username"] == "analyst#1"
        mock_pipeline.resolver.list_authors.assert_awaited_once_with(limit=10, platform="discord")

    def test_author_without_identities(self, client, mock_pipeline):
        mock_pipeline.resolver.list_authors.return_value = [_author({})]

        author = client.get("/authors").json()["authors"][0]

        assert author["platform"] == "unknown"
        assert author["username"] == "unknown"


class TestAuthorStats:
    def test_not_found(self, client):
        resp = client.get("/authors/author_missing/stats")
        assert resp.status_code == 404

    def test_stats(self, client, mock_analytics):
        mock_analytics.author_stats.return_value = {
            "author_id": "author_1",
            "display_name": "Crypto Analyst",
            "total_posts": 7,
            "platforms": ["twitter"],
            "top_topics": [{"topic": "stellar", "count": 5}],
            "recent_activity": NOW,
        }

        resp = client.get("/authors/author_1/stats")
        data = resp.json()

        assert resp.status_code == 200
        assert data["total_posts"] == 7
        assert data["top_topics"] == [{"topic": "stellar", "count": 5}]
