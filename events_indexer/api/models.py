"""
Request and response models for the events indexer API.
"""

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field

from events_indexer.posts.schemas import IncomingPost


class ErrorResponse(BaseModel):
    """Error body returned by failing endpoints."""

    detail: str
    error_type: str | None = None


# ── Indexing ────────────────────────────────────────────────


class IndexPostsRequest(BaseModel):
    """Batch of normalized posts to index."""

    posts: list[IncomingPost] = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="Posts to run through the pipeline (1-1000)",
    )


class IndexPostsResponse(BaseModel):
    processed: int
    skipped: int
    errors: int
    latency_ms: float


class SourceRunResult(BaseModel):
    fetched: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0


class IndexRunResponse(BaseModel):
    """Result of one indexing cycle across all sources."""

    platforms: dict[str, SourceRunResult]
    total_processed: int


class DemoPostResult(BaseModel):
    platform: str
    content_preview: str
    topics_found: list[str]
    meets_length_requirement: bool


class DemoResponse(BaseModel):
    demo_mode: bool = True
    total_posts: int
    topic_extraction_demo: list[DemoPostResult]


# ── Topics ──────────────────────────────────────────────────


class TopicItem(BaseModel):
    name: str
    aliases: list[str]
    category: str | None = None
    description: str | None = None
    type: str
    frequency: int


class TopicsListResponse(BaseModel):
    topics: list[TopicItem]
    total: int


class CategoryTopicsResponse(BaseModel):
    category: str
    topics: list[TopicItem]


class CreateTopicRequest(BaseModel):
    """Register a new dictionary topic."""

    name: str = Field(..., min_length=1, max_length=200)
    aliases: list[str] = Field(default_factory=list, max_length=100)
    category: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=1000)


class MatchRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Text to scan for topics")


class MatchResponse(BaseModel):
    topic: str
    text_snippet: str
    is_match: bool
    all_matches: list[str]
    surfaces: list[str] = Field(default_factory=list)


class ResetTopicsResponse(BaseModel):
    success: bool
    topics_loaded: int
    terms: int


# ── Posts ───────────────────────────────────────────────────


class PostItem(BaseModel):
    id: str
    platform: str
    content: str
    author_id: str
    author_name: str
    created_at: dt.datetime
    url: str | None = None
    topics: list[str]
    entity_count: int


class TopicPostsResponse(BaseModel):
    topic: str
    posts: list[PostItem]
    total: int
    time_window_hours: int


class RelatedTopicItem(BaseModel):
    topic: str
    count: int
    platforms: list[str]


class RelatedTopicsResponse(BaseModel):
    topic: str
    related_topics: list[RelatedTopicItem]
    time_window_hours: int


class RecentPostsResponse(BaseModel):
    count: int
    time_window_hours: int | None
    platform: str
    posts: list[PostItem]


class ReprocessRequest(BaseModel):
    """Corrected content for a stored post."""

    content: str = Field(..., min_length=1)


class ClassifyRequest(BaseModel):
    text: str = Field(..., min_length=1)
    categories: list[str] = Field(..., min_length=1, max_length=50)


class ClassifyResponse(BaseModel):
    category: str | None = Field(
        default=None, description="Chosen category, or null when none applies"
    )


# ── Authors ─────────────────────────────────────────────────


class AuthorItem(BaseModel):
    id: str
    display_name: str
    username: str
    platform: str
    followers_count: int
    verified: bool
    post_count: int
    first_seen: dt.datetime | None = None
    last_active: dt.datetime | None = None


class AuthorsListResponse(BaseModel):
    count: int
    platform: str
    authors: list[AuthorItem]


class TopicCount(BaseModel):
    topic: str
    count: int


class AuthorStatsResponse(BaseModel):
    author_id: str
    display_name: str
    total_posts: int
    platforms: list[str]
    top_topics: list[TopicCount]
    recent_activity: dt.datetime | None = None


# ── Stats / health ──────────────────────────────────────────


class ActivityPreview(BaseModel):
    id: str
    platform: str
    created_at: dt.datetime
    topics: list[str]
    content_preview: str


class IndexingStatsResponse(BaseModel):
    total_posts: int
    by_platform: dict[str, int]
    top_topics: list[TopicCount]
    recent_activity: list[ActivityPreview]
    time_window_hours: int


class ComponentHealth(BaseModel):
    status: str = Field(..., description="healthy, degraded, or unhealthy")
    latency_ms: float | None = None
    details: dict[str, Any] | None = None


class HealthResponse(BaseModel):
    status: str
    components: dict[str, ComponentHealth]
    dictionary: dict[str, Any]
    apis: dict[str, str]
    timestamp: dt.datetime
    version: str
