"""Ingestion: source interface and demo source."""

from events_indexer.ingestion.base_source import BaseSource, SourceStats
from events_indexer.ingestion.mock_source import MockSource, create_mock_sources

__all__ = ["BaseSource", "MockSource", "SourceStats", "create_mock_sources"]
