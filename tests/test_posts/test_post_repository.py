"""Tests for PostRepository query construction and row mapping."""

from datetime import datetime, timedelta, timezone

import pytest

from events_indexer.posts.repository import PostRepository
from events_indexer.posts.schemas import ExtractedEntity, Platform, Post

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _post_row(post_id: str = "twitter_1", topics: list[str] | None = None) -> dict:
    return {
        "id": post_id,
        "platform": "twitter",
        "platform_id": post_id.split("_", 1)[1],
        "content": "Stellar anchors are expanding",
        "author_id": "author_1",
        "author_name": "Crypto Analyst",
        "created_at": NOW,
        "url": None,
        "topics": topics if topics is not None else ["stellar", "stellar anchor"],
        "extracted_entities": [{"text": "SDF", "type": "ORG", "method": "ner", "confidence": 0.9}],
        "processed_at": NOW,
        "expires_at": NOW + timedelta(days=30),
        "raw_data": None,
    }


def _post() -> Post:
    return Post(
        id="twitter_1",
        platform=Platform.TWITTER,
        platform_id="1",
        content="Stellar anchors are expanding",
        author_id="author_1",
        author_name="Crypto Analyst",
        created_at=NOW,
        topics=["stellar"],
        extracted_entities=[ExtractedEntity(text="SDF", type="ORG", confidence=0.9)],
        processed_at=NOW,
        expires_at=NOW + timedelta(days=30),
        raw_data={"id": "1"},
    )


@pytest.fixture
def repo(mock_database):
    return PostRepository(mock_database)


class TestInsert:
    @pytest.mark.asyncio
    async def test_insert_returns_true_when_row_created(self, repo, mock_database):
        mock_database.fetchrow.return_value = {"id": "twitter_1"}

        assert await repo.insert(_post()) is True

        sql, *args = mock_database.fetchrow.call_args[0]
        assert "ON CONFLICT (platform, platform_id) DO NOTHING" in sql
        assert args[1] == "twitter"
        assert args[9] == [{"text": "SDF", "type": "ORG", "method": "ner", "confidence": 0.9}]
        assert args[12] == {"id": "1"}

    @pytest.mark.asyncio
    async def test_insert_duplicate_returns_false(self, repo, mock_database):
        mock_database.fetchrow.return_value = None
        assert await repo.insert(_post()) is False

    @pytest.mark.asyncio
    async def test_insert_uses_connection(self, repo, mock_database, mock_conn):
        assert await repo.insert(_post(), conn=mock_conn) is True
        mock_conn.fetchrow.assert_called_once()
        mock_database.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_exists(self, repo, mock_database):
        mock_database.fetchval.return_value = True
        assert await repo.exists("twitter", "1") is True
        assert mock_database.fetchval.call_args[0][1:] == ("twitter", "1")


class TestQueries:
    @pytest.mark.asyncio
    async def test_row_mapping(self, repo, mock_database):
        mock_database.fetchrow.return_value = _post_row()

        post = await repo.get("twitter_1")

        assert post.platform is Platform.TWITTER
        assert post.topics == ["stellar", "stellar anchor"]
        assert post.extracted_entities[0].text == "SDF"
        assert post.raw_data == {}

    @pytest.mark.asyncio
    async def test_blank_display_name_falls_back_to_post_author(self, repo, mock_database):
        mock_database.fetch.return_value = []

        await repo.get_recent()
        await repo.get_topic_posts("stellar", NOW)
        mock_database.fetchrow.return_value = None
        await repo.get("twitter_1")

        queries = [c[0][0] for c in mock_database.fetch.call_args_list]
        queries.append(mock_database.fetchrow.call_args[0][0])
        for sql in queries:
            assert "COALESCE(NULLIF(a.display_name, ''), p.author_name)" in sql

    @pytest.mark.asyncio
    async def test_topic_posts_parameters(self, repo, mock_database):
        mock_database.fetch.return_value = [_post_row()]
        since = NOW - timedelta(hours=24)

        posts = await repo.get_topic_posts("stellar", since, limit=5, platform="reddit")

        assert len(posts) == 1
        sql, *args = mock_database.fetch.call_args[0]
        assert "ORDER BY p.created_at DESC" in sql
        assert args == ["stellar", since, 5, "reddit"]

    @pytest.mark.asyncio
    async def test_co_occurring(self, repo, mock_database):
        mock_database.fetch.return_value = [
            {"topic": "soroban", "count": 4, "platforms": ["reddit", "twitter"]},
            {"topic": "lobstr", "count": 1, "platforms": None},
        ]

        related = await repo.get_co_occurring("stellar", NOW)

        assert related == [
            {"topic": "soroban", "count": 4, "platforms": ["reddit", "twitter"]},
            {"topic": "lobstr", "count": 1, "platforms": []},
        ]
        assert "t <> $1" in mock_database.fetch.call_args[0][0]

    @pytest.mark.asyncio
    async def test_count_by_platform(self, repo, mock_database):
        mock_database.fetch.return_value = [
            {"platform": "reddit", "count": 2},
            {"platform": "twitter", "count": 5},
        ]
        assert await repo.count_by_platform(NOW) == {"reddit": 2, "twitter": 5}

    @pytest.mark.asyncio
    async def test_author_topic_counts(self, repo, mock_database):
        mock_database.fetch.return_value = [{"topic": "stellar", "count": 3}]

        counts = await repo.get_author_topic_counts("author_1")

        assert counts == [{"topic": "stellar", "count": 3}]
        assert mock_database.fetch.call_args[0][1:] == ("author_1", 10)


class TestWrites:
    @pytest.mark.asyncio
    async def test_delete_expired(self, repo, mock_database):
        mock_database.execute.return_value = "DELETE 7"

        assert await repo.delete_expired(NOW) == 7
        assert mock_database.execute.call_args[0][1] == NOW

    @pytest.mark.asyncio
    async def test_update_content(self, repo, mock_database):
        mock_database.execute.return_value = "UPDATE 1"

        updated = await repo.update_content(
            "twitter_1", "new text", ["stellar"], [ExtractedEntity(text="SDF", type="ORG")]
        )

        assert updated is True
        args = mock_database.execute.call_args[0][1:]
        assert args[:3] == ("twitter_1", "new text", ["stellar"])
        assert args[3] == [{"text": "SDF", "type": "ORG", "method": "ner", "confidence": None}]
