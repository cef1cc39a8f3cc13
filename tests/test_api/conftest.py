"""Shared fixtures for API tests."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from events_indexer.api.app import create_app
from events_indexer.api.auth import verify_api_key
from events_indexer.api.dependencies import (
    get_analytics_service,
    get_database,
    get_indexer_service,
    get_pipeline_service,
    get_topic_service,
)
from events_indexer.posts.schemas import ExtractedEntity, Platform, Post
from events_indexer.services.pipeline import BatchResult
from events_indexer.topics.schemas import Topic


def _make_post(
    post_id: str = "twitter_1",
    content: str = "Soroban smart contracts are live on the Stellar network.",
    **kwargs,
) -> Post:
    """Helper to create a Post with sensible defaults."""
    created_at = kwargs.pop("created_at", datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc))
    return Post(
        id=post_id,
        platform=kwargs.pop("platform", Platform.TWITTER),
        platform_id=post_id.split("_", 1)[1],
        content=content,
        author_id=kwargs.pop("author_id", "author_1"),
        author_name=kwargs.pop("author_name", "Crypto Analyst"),
        created_at=created_at,
        topics=kwargs.pop("topics", ["soroban", "stellar"]),
        extracted_entities=kwargs.pop(
            "extracted_entities", [ExtractedEntity(text="SDF", type="ORG")]
        ),
        expires_at=created_at + timedelta(days=30),
        **kwargs,
    )


def _make_topic(name: str = "stellar", **kwargs) -> Topic:
    """Helper to create a Topic."""
    return Topic(
        name=name,
        aliases=kwargs.pop("aliases", ["xlm"]),
        category=kwargs.pop("category", "cryptocurrency"),
        frequency=kwargs.pop("frequency", 12),
        **kwargs,
    )


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.health_check = AsyncMock(return_value=True)
    return db


@pytest.fixture
def mock_topic_service():
    service = MagicMock()
    service.get_top_topics = AsyncMock(return_value=[])
    service.get_topics_by_category = AsyncMock(return_value=[])
    service.add_topic = AsyncMock()
    service.reset_and_reload = AsyncMock(return_value=29)
    service.automaton.term_count = 120
    service.match_topics = MagicMock(return_value={"stellar"})
    service.match_probe = MagicMock(return_value={
        "topic": "stellar",
        "text_snippet": "xlm",
        "is_match": True,
        "all_matches": ["stellar"],
    })
    service.stats = MagicMock(return_value={"topics": 29, "terms": 120, "collisions": []})
    return service


@pytest.fixture
def mock_analytics():
    analytics = MagicMock()
    analytics.topic_posts = AsyncMock(return_value=[])
    analytics.co_occurring_topics = AsyncMock(return_value=[])
    analytics.author_stats = AsyncMock(return_value=None)
    analytics.recent_posts = AsyncMock(return_value=[])
    analytics.indexing_stats = AsyncMock(return_value={
        "total_posts": 0,
        "by_platform": {},
        "top_topics": [],
        "recent_activity": [],
    })
    return analytics


@pytest.fixture
def mock_pipeline():
    pipeline = MagicMock()
    pipeline.resolver.list_authors = AsyncMock(return_value=[])
    pipeline.reprocess_content = AsyncMock(return_value=None)
    pipeline.extractor.classify_content = AsyncMock(return_value=None)
    return pipeline


@pytest.fixture
def mock_indexer():
    indexer = MagicMock()
    indexer.index_posts = AsyncMock(return_value=BatchResult(processed=1))
    indexer.run_once = AsyncMock(return_value={"total_processed": 0})
    return indexer


@pytest.fixture
def client(mock_db, mock_topic_service, mock_analytics, mock_pipeline, mock_indexer):
    """FastAPI TestClient with dependency overrides."""
    app = create_app()

    app.dependency_overrides[verify_api_key] = lambda: "test-key"
    app.dependency_overrides[get_database] = lambda: mock_db
    app.dependency_overrides[get_topic_service] = lambda: mock_topic_service
    app.dependency_overrides[get_analytics_service] = lambda: mock_analytics
    app.dependency_overrides[get_pipeline_service] = lambda: mock_pipeline
    app.dependency_overrides[get_indexer_service] = lambda: mock_indexer

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
