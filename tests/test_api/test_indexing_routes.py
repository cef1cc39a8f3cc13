"""Tests for indexing endpoints and indexing statistics."""

from events_indexer.ingestion.mock_source import DEMO_POSTS
from events_indexer.services.pipeline import BatchResult


def _post_payload(platform_id: str = "1") -> dict:
    return {
        "platform": "twitter",
        "platform_id": platform_id,
        "content": "Stellar Lumens (XLM) is revolutionizing cross-border payments today.",
        "author_id": "tw_42",
        "author_username": "CryptoAnalyst",
        "created_at": "2026-03-01T12:00:00Z",
    }


# ── POST /index/posts ───────────────────────────────────


class TestIndexPosts:
    def test_indexes_batch(self, client, mock_indexer):
        mock_indexer.index_posts.return_value = BatchResult(processed=1, skipped=1)

        resp = client.post("/index/posts", json={"posts": [_post_payload("1"), _post_payload("2")]})
        data = resp.json()

        assert resp.status_code == 200
        assert (data["processed"], data["skipped"], data["errors"]) == (1, 1, 0)
        assert "latency_ms" in data
        posts = mock_indexer.index_posts.call_args[0][0]
        assert [p.post_id for p in posts] == ["twitter_1", "twitter_2"]

    def test_empty_batch_rejected(self, client):
        assert client.post("/index/posts", json={"posts": []}).status_code == 422

    def test_invalid_platform_rejected(self, client):
        payload = _post_payload()
        payload["platform"] = "facebook"
        assert client.post("/index/posts", json={"posts": [payload]}).status_code == 422


# ── POST /index/run ─────────────────────────────────────


def test_run_indexing(client, mock_indexer):
    mock_indexer.run_once.return_value = {
        "twitter": {"fetched": 5, "processed": 4, "skipped": 1, "errors": 0},
        "discord": {"fetched": 0, "processed": 0, "skipped": 0, "errors": 1},
        "total_processed": 4,
    }

    resp = client.post("/index/run?limit=5")
    data = resp.json()

    assert resp.status_code == 200
    assert data["total_processed"] == 4
    assert data["platforms"]["discord"]["errors"] == 1
    mock_indexer.run_once.assert_awaited_once_with(max_results=5)


# ── POST /demo/process ──────────────────────────────────


def test_demo_process(client, mock_topic_service):
    resp = client.post("/demo/process")
    data = resp.json()

    assert resp.status_code == 200
    assert data["demo_mode"] is True
    assert data["total_posts"] == len(DEMO_POSTS)
    first = data["topic_extraction_demo"][0]
    assert first["platform"] == "twitter"
    assert first["topics_found"] == ["stellar"]
    assert first["meets_length_requirement"] is True
    assert first["content_preview"].endswith("...")


# ── GET /stats ──────────────────────────────────────────


class TestStats:
    def test_empty(self, client, mock_analytics):
        resp = client.get("/stats")
        assert resp.status_code == 200
        assert resp.json() == {
            "total_posts": 0,
            "by_platform": {},
            "top_topics": [],
            "recent_activity": [],
            "time_window_hours": 24,
        }

    def test_with_activity(self, client, mock_analytics):
        mock_analytics.indexing_stats.return_value = {
            "total_posts": 3,
            "by_platform": {"twitter": 2, "reddit": 1},
            "top_topics": [{"topic": "stellar", "count": 3}],
            "recent_activity": [{
                "id": "twitter_1",
                "platform": "twitter",
                "created_at": "2026-03-01T12:00:00Z",
                "topics": ["stellar"],
                "content_preview": "Stellar ...",
            }],
        }

        resp = client.get("/stats?hours=72")
        data = resp.json()

        assert data["total_posts"] == 3
        assert data["time_window_hours"] == 72
        assert data["recent_activity"][0]["id"] == "twitter_1"
        mock_analytics.indexing_stats.assert_awaited_once_with(72)
