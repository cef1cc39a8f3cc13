"""Recent post feed, content corrections and classification."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from events_indexer.api.auth import verify_api_key
from events_indexer.api.dependencies import get_analytics_service, get_pipeline_service
from events_indexer.api.models import (
    ClassifyRequest,
    ClassifyResponse,
    ErrorResponse,
    PostItem,
    RecentPostsResponse,
    ReprocessRequest,
)
from events_indexer.posts.schemas import Platform, Post
from events_indexer.services.analytics import AnalyticsService
from events_indexer.services.pipeline import PostProcessingService

logger = structlog.get_logger(__name__)
router = APIRouter()


def post_to_item(
    post: Post,
    content_chars: int | None = None,
    topic_limit: int | None = None,
) -> PostItem:
    """Flatten a Post for API responses, optionally truncating content and topics."""
    content = post.content
    if content_chars is not None and len(content) > content_chars:
        content = content[:content_chars] + "..."
    topics = post.topics if topic_limit is None else post.topics[:topic_limit]
    return PostItem(
        id=post.id,
        platform=post.platform.value,
        content=content,
        author_id=post.author_id,
        author_name=post.author_name,
        created_at=post.created_at,
        url=post.url,
        topics=topics,
        entity_count=len(post.extracted_entities),
    )


@router.get(
    "/posts/recent",
    response_model=RecentPostsResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Newest indexed posts",
)
async def recent_posts(
    hours: int = Query(default=24, ge=1, le=168, description="Window in hours"),
    platform: Platform | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=100),
    api_key: str = Depends(verify_api_key),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> RecentPostsResponse:
    posts = await analytics.recent_posts(
        hours=hours,
        platform=platform.value if platform else None,
        limit=limit,
    )
    return RecentPostsResponse(
        count=len(posts),
        time_window_hours=hours,
        platform=platform.value if platform else "all",
        posts=[post_to_item(p, content_chars=200, topic_limit=5) for p in posts],
    )


@router.put(
    "/posts/{post_id}/content",
    response_model=PostItem,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Correct a stored post and re-derive its topics",
)
async def reprocess_post(
    post_id: str,
    body: ReprocessRequest,
    api_key: str = Depends(verify_api_key),
    pipeline: PostProcessingService = Depends(get_pipeline_service),
) -> PostItem:
    """
    Replace a post's content and rerun topic and entity extraction.

    Topic frequencies are left as they were.
    """
    post = await pipeline.reprocess_content(post_id, body.content)
    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Post not found: {post_id}",
        )
    logger.info("Post reprocessed", post_id=post_id, topics=len(post.topics))
    return post_to_item(post)


@router.post(
    "/posts/classify",
    response_model=ClassifyResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Classify text into one of the given categories",
)
async def classify_text(
    body: ClassifyRequest,
    api_key: str = Depends(verify_api_key),
    pipeline: PostProcessingService = Depends(get_pipeline_service),
) -> ClassifyResponse:
    category = await pipeline.extractor.classify_content(body.text, body.categories)
    return ClassifyResponse(category=category)
