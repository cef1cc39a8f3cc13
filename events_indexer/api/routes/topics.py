"""Topic registry, matching probe and topic analytics endpoints."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from events_indexer.api.auth import verify_api_key
from events_indexer.api.dependencies import get_analytics_service, get_topic_service
from events_indexer.api.models import (
    CategoryTopicsResponse,
    CreateTopicRequest,
    ErrorResponse,
    MatchRequest,
    MatchResponse,
    RelatedTopicItem,
    RelatedTopicsResponse,
    ResetTopicsResponse,
    TopicItem,
    TopicPostsResponse,
    TopicsListResponse,
)
from events_indexer.api.routes.posts import post_to_item
from events_indexer.posts.schemas import Platform
from events_indexer.services.analytics import AnalyticsService
from events_indexer.topics.schemas import Topic
from events_indexer.topics.service import TopicConflictError, TopicMatchingService

logger = structlog.get_logger(__name__)
router = APIRouter()


def _topic_to_item(topic: Topic) -> TopicItem:
    return TopicItem(
        name=topic.name,
        aliases=topic.aliases,
        category=topic.category,
        description=topic.description,
        type=topic.type,
        frequency=topic.frequency,
    )


@router.get(
    "/topics",
    response_model=TopicsListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Most frequent topics",
)
async def list_topics(
    limit: int = Query(default=50, ge=1, le=1000),
    api_key: str = Depends(verify_api_key),
    service: TopicMatchingService = Depends(get_topic_service),
) -> TopicsListResponse:
    topics = await service.get_top_topics(limit)
    return TopicsListResponse(
        topics=[_topic_to_item(t) for t in topics],
        total=len(topics),
    )


@router.post(
    "/topics",
    response_model=TopicItem,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Register a topic",
)
async def create_topic(
    body: CreateTopicRequest,
    api_key: str = Depends(verify_api_key),
    service: TopicMatchingService = Depends(get_topic_service),
) -> TopicItem:
    try:
        topic = await service.add_topic(
            name=body.name,
            aliases=body.aliases,
            category=body.category,
            description=body.description,
        )
    except TopicConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return _topic_to_item(topic)


@router.post(
    "/topics/reset",
    response_model=ResetTopicsResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Replace the registry with the default vocabulary",
)
async def reset_topics(
    api_key: str = Depends(verify_api_key),
    service: TopicMatchingService = Depends(get_topic_service),
) -> ResetTopicsResponse:
    try:
        loaded = await service.reset_and_reload()
    except Exception as e:
        logger.error("reset_topics_failed", error=str(e), exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to reset topics")

    return ResetTopicsResponse(
        success=True,
        topics_loaded=loaded,
        terms=service.automaton.term_count,
    )


@router.get(
    "/topics/categories/{category}",
    response_model=CategoryTopicsResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Topics in a category",
)
async def topics_by_category(
    category: str,
    api_key: str = Depends(verify_api_key),
    service: TopicMatchingService = Depends(get_topic_service),
) -> CategoryTopicsResponse:
    topics = await service.get_topics_by_category(category)
    return CategoryTopicsResponse(
        category=category,
        topics=[_topic_to_item(t) for t in topics],
    )


@router.get(
    "/topics/{topic}/posts",
    response_model=TopicPostsResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Recent posts tagged with a topic",
)
async def topic_posts(
    topic: str,
    limit: int = Query(default=20, ge=1, le=1000),
    hours: int = Query(default=24, ge=1, le=168),
    platform: Platform | None = Query(default=None),
    api_key: str = Depends(verify_api_key),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> TopicPostsResponse:
    posts = await analytics.topic_posts(
        topic,
        limit=limit,
        hours=hours,
        platform=platform.value if platform else None,
    )
    return TopicPostsResponse(
        topic=topic,
        posts=[post_to_item(p) for p in posts],
        total=len(posts),
        time_window_hours=hours,
    )


@router.get(
    "/topics/{topic}/related",
    response_model=RelatedTopicsResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Topics co-occurring with a topic",
)
async def related_topics(
    topic: str,
    limit: int = Query(default=20, ge=1, le=100),
    hours: int = Query(default=24, ge=1, le=168),
    platform: Platform | None = Query(default=None),
    api_key: str = Depends(verify_api_key),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> RelatedTopicsResponse:
    related = await analytics.co_occurring_topics(
        topic,
        limit=limit,
        hours=hours,
        platform=platform.value if platform else None,
    )
    return RelatedTopicsResponse(
        topic=topic,
        related_topics=[RelatedTopicItem(**r) for r in related],
        time_window_hours=hours,
    )


@router.post(
    "/topics/{topic}/match",
    response_model=MatchResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Check whether a text matches a topic",
)
async def match_topic(
    topic: str,
    body: MatchRequest,
    api_key: str = Depends(verify_api_key),
    service: TopicMatchingService = Depends(get_topic_service),
) -> MatchResponse:
    return MatchResponse(**service.match_probe(topic, body.text))
