"""
Health check endpoint.
"""

import time
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends

from events_indexer.api.dependencies import get_database, get_topic_service
from events_indexer.api.models import ComponentHealth, HealthResponse
from events_indexer.config.settings import get_settings
from events_indexer.extraction.config import ExtractionConfig
from events_indexer.storage.database import Database
from events_indexer.topics.service import TopicMatchingService

router = APIRouter()
logger = structlog.get_logger(__name__)

VERSION = "0.1.0"


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    try:
        healthy = await db.health_check()
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="healthy" if healthy else "unhealthy",
            latency_ms=round(latency_ms, 2),
        )
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )


def _configured(flag: bool) -> str:
    return "configured" if flag else "not_configured"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    db: Database = Depends(get_database),
    topics: TopicMatchingService = Depends(get_topic_service),
) -> HealthResponse:
    """
    Status logic:
    - unhealthy: database is down
    - degraded: topic dictionary is empty (posts get extractor topics only)
    - healthy: otherwise
    """
    settings = get_settings()

    db_health = await _check_database(db)
    dictionary = topics.stats()
    matcher_health = ComponentHealth(
        status="healthy" if dictionary["terms"] else "degraded",
        details={"terms": dictionary["terms"], "topics": dictionary["topics"]},
    )

    if db_health.status == "unhealthy":
        overall = "unhealthy"
    elif matcher_health.status != "healthy":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        components={"database": db_health, "topic_matching": matcher_health},
        dictionary=dictionary,
        apis={
            "twitter": _configured(settings.twitter_configured),
            "reddit": _configured(settings.reddit_configured),
            "together_ai": _configured(ExtractionConfig().configured),
        },
        timestamp=datetime.now(timezone.utc),
        version=VERSION,
    )
