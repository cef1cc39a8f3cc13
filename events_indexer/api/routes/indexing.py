"""Indexing triggers and indexing statistics."""

import time

import structlog
from fastapi import APIRouter, Depends, Query

from events_indexer.api.auth import verify_api_key
from events_indexer.api.dependencies import (
    get_analytics_service,
    get_indexer_service,
    get_topic_service,
)
from events_indexer.api.models import (
    ActivityPreview,
    DemoPostResult,
    DemoResponse,
    ErrorResponse,
    IndexingStatsResponse,
    IndexPostsRequest,
    IndexPostsResponse,
    IndexRunResponse,
    SourceRunResult,
    TopicCount,
)
from events_indexer.config.settings import get_settings
from events_indexer.ingestion.mock_source import DEMO_POSTS
from events_indexer.services.analytics import AnalyticsService
from events_indexer.services.indexer_service import EventsIndexerService
from events_indexer.topics.service import TopicMatchingService

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/index/posts",
    response_model=IndexPostsResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Index a batch of normalized posts",
)
async def index_posts(
    body: IndexPostsRequest,
    api_key: str = Depends(verify_api_key),
    indexer: EventsIndexerService = Depends(get_indexer_service),
) -> IndexPostsResponse:
    start = time.perf_counter()
    result = await indexer.index_posts(body.posts)
    latency_ms = (time.perf_counter() - start) * 1000
    return IndexPostsResponse(**result.to_dict(), latency_ms=round(latency_ms, 2))


@router.post(
    "/index/run",
    response_model=IndexRunResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Run one indexing cycle over the configured sources",
)
async def run_indexing(
    limit: int = Query(default=100, ge=1, le=100),
    api_key: str = Depends(verify_api_key),
    indexer: EventsIndexerService = Depends(get_indexer_service),
) -> IndexRunResponse:
    results = await indexer.run_once(max_results=limit)
    total = results.pop("total_processed", 0)
    return IndexRunResponse(
        platforms={p: SourceRunResult(**r) for p, r in results.items()},
        total_processed=total,
    )


@router.post(
    "/demo/process",
    response_model=DemoResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Show dictionary matching on the built-in demo posts",
)
async def demo_process(
    api_key: str = Depends(verify_api_key),
    service: TopicMatchingService = Depends(get_topic_service),
) -> DemoResponse:
    min_length = get_settings().min_content_length
    platforms = ["twitter", "reddit", "twitter"]
    results = [
        DemoPostResult(
            platform=platform,
            content_preview=content[:100] + "...",
            topics_found=sorted(service.match_topics(content)),
            meets_length_requirement=len(content) >= min_length,
        )
        for platform, (_, content) in zip(platforms, DEMO_POSTS)
    ]
    return DemoResponse(total_posts=len(results), topic_extraction_demo=results)


@router.get(
    "/stats",
    response_model=IndexingStatsResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Indexing statistics for a time window",
)
async def indexing_stats(
    hours: int = Query(default=24, ge=1, le=168),
    api_key: str = Depends(verify_api_key),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> IndexingStatsResponse:
    stats = await analytics.indexing_stats(hours)
    return IndexingStatsResponse(
        total_posts=stats["total_posts"],
        by_platform=stats["by_platform"],
        top_topics=[TopicCount(**t) for t in stats["top_topics"]],
        recent_activity=[ActivityPreview(**a) for a in stats["recent_activity"]],
        time_window_hours=hours,
    )
