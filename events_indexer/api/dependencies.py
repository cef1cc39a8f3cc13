"""
Dependency injection for FastAPI endpoints.

Services are process-wide singletons created on first request and shared
by every route. Tests replace them through app.dependency_overrides.
"""

from events_indexer.extraction.client import EntityExtractionClient
from events_indexer.services.analytics import AnalyticsService
from events_indexer.services.indexer_service import EventsIndexerService
from events_indexer.services.pipeline import PostProcessingService
from events_indexer.storage.database import Database
from events_indexer.topics.service import TopicMatchingService

_database: Database | None = None
_topic_service: TopicMatchingService | None = None
_extractor: EntityExtractionClient | None = None
_pipeline: PostProcessingService | None = None
_analytics: AnalyticsService | None = None
_indexer: EventsIndexerService | None = None


async def get_database() -> Database:
    """Connected Database shared by all services."""
    global _database

    if _database is None:
        _database = Database()
        await _database.connect()

    return _database


async def get_topic_service() -> TopicMatchingService:
    """Topic service with its dictionary loaded."""
    global _topic_service

    if _topic_service is None:
        database = await get_database()
        service = TopicMatchingService(database)
        await service.initialize()
        _topic_service = service

    return _topic_service


async def get_pipeline_service() -> PostProcessingService:
    global _pipeline, _extractor

    if _pipeline is None:
        database = await get_database()
        topics = await get_topic_service()
        _extractor = EntityExtractionClient()
        _pipeline = PostProcessingService(database, topics, extractor=_extractor)

    return _pipeline


async def get_analytics_service() -> AnalyticsService:
    global _analytics

    if _analytics is None:
        _analytics = AnalyticsService(await get_database())

    return _analytics


async def get_indexer_service() -> EventsIndexerService:
    """Indexer over mock sources; real platform fetchers register their own."""
    global _indexer

    if _indexer is None:
        _indexer = EventsIndexerService(await get_pipeline_service(), use_mock=True)

    return _indexer


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _database, _topic_service, _extractor, _pipeline, _analytics, _indexer

    if _indexer is not None:
        await _indexer.stop()
        _indexer = None

    if _extractor is not None:
        await _extractor.close()
        _extractor = None

    _pipeline = None
    _analytics = None
    _topic_service = None

    if _database is not None:
        await _database.close()
        _database = None
