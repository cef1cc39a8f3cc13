"""Author listing and per-author statistics."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from events_indexer.api.auth import verify_api_key
from events_indexer.api.dependencies import get_analytics_service, get_pipeline_service
from events_indexer.api.models import (
    AuthorItem,
    AuthorsListResponse,
    AuthorStatsResponse,
    ErrorResponse,
)
from events_indexer.authors.schemas import Author, PlatformProfile
from events_indexer.posts.schemas import Platform
from events_indexer.services.analytics import AnalyticsService
from events_indexer.services.pipeline import PostProcessingService

router = APIRouter()

_PLATFORM_PREFERENCE = [p.value for p in Platform]


def _author_to_item(author: Author, platform: str | None) -> AuthorItem:
    """Flatten an author using the requested platform's profile, else the first known one."""
    chosen = platform or next(
        (p for p in _PLATFORM_PREFERENCE if p in author.platforms),
        None,
    )
    profile = author.platforms.get(chosen) if chosen else None
    if profile is None:
        profile = PlatformProfile(native_id="", username="unknown")

    return AuthorItem(
        id=author.id,
        display_name=author.display_name,
        username=profile.username or "unknown",
        platform=chosen or "unknown",
        followers_count=profile.followers_count,
        verified=profile.verified,
        post_count=author.post_count,
        first_seen=author.first_seen,
        last_active=author.last_active,
    )


@router.get(
    "/authors",
    response_model=AuthorsListResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Most recently active authors",
)
async def list_authors(
    limit: int = Query(default=50, ge=1, le=500),
    platform: Platform | None = Query(default=None),
    api_key: str = Depends(verify_api_key),
    pipeline: PostProcessingService = Depends(get_pipeline_service),
) -> AuthorsListResponse:
    platform_name = platform.value if platform else None
    authors = await pipeline.resolver.list_authors(limit=limit, platform=platform_name)
    return AuthorsListResponse(
        count=len(authors),
        platform=platform_name or "all",
        authors=[_author_to_item(a, platform_name) for a in authors],
    )


@router.get(
    "/authors/{author_id}/stats",
    response_model=AuthorStatsResponse,
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Post totals and top topics for an author",
)
async def author_stats(
    author_id: str,
    api_key: str = Depends(verify_api_key),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> AuthorStatsResponse:
    stats = await analytics.author_stats(author_id)
    if stats is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Author '{author_id}' not found",
        )
    return AuthorStatsResponse(**stats)
