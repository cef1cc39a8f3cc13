"""Extraction: remote entity and topic extraction."""

from events_indexer.extraction.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
)
from events_indexer.extraction.client import EntityExtractionClient
from events_indexer.extraction.config import ExtractionConfig
from events_indexer.extraction.schemas import EntityMention, ExtractionResult

__all__ = [
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "EntityExtractionClient",
    "EntityMention",
    "ExtractionConfig",
    "ExtractionResult",
]
