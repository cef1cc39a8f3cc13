"""Services: pipeline, analytics and indexer orchestration."""

from events_indexer.services.analytics import AnalyticsService
from events_indexer.services.indexer_service import EventsIndexerService
from events_indexer.services.pipeline import BatchResult, PostProcessingService

__all__ = [
    "AnalyticsService",
    "BatchResult",
    "EventsIndexerService",
    "PostProcessingService",
]
