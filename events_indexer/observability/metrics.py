"""
Prometheus metrics for monitoring the indexing pipeline.

Defines and exposes metrics for:
- Post processing outcomes per platform
- Stage latency
- Error rates
- Entity extraction degradation
- Topic dictionary size

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from events_indexer.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the events-indexer pipeline.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_post(platform="twitter", status="processed")
        metrics.record_stage_latency("extraction", 0.42)
    """

    def __init__(self):
        self.posts_fetched = Counter(
            "events_indexer_posts_fetched_total",
            "Total number of posts handed over by sources",
            ["platform"],
        )

        self.posts_processed = Counter(
            "events_indexer_posts_processed_total",
            "Total number of posts run through the pipeline",
            ["platform", "status"],  # status: processed, skipped, error
        )

        self.processing_errors = Counter(
            "events_indexer_processing_errors_total",
            "Total processing errors",
            ["stage", "error_type"],
        )

        self.source_errors = Counter(
            "events_indexer_source_errors_total",
            "Total source fetch errors",
            ["platform", "error_type"],
        )

        self.extraction_failures = Counter(
            "events_indexer_extraction_failures_total",
            "Entity extraction calls that degraded to dictionary-only topics",
            ["reason"],
        )

        self.topic_matches = Counter(
            "events_indexer_topic_matches_total",
            "Topics attached to persisted posts",
            ["source"],  # dictionary, extractor
        )

        self.processing_latency = Histogram(
            "events_indexer_processing_latency_seconds",
            "Time spent in each pipeline stage",
            ["stage"],  # identity, extraction, persistence
            buckets=LATENCY_BUCKETS,
        )

        self.fetch_latency = Histogram(
            "events_indexer_fetch_latency_seconds",
            "Time for a source to fetch and process one batch",
            ["platform"],
            buckets=LATENCY_BUCKETS,
        )

        self.dictionary_terms = Gauge(
            "events_indexer_dictionary_terms",
            "Number of surface forms in the active topic automaton",
        )

        self.dictionary_rebuilds = Counter(
            "events_indexer_dictionary_rebuilds_total",
            "Topic automaton rebuilds",
            ["status"],  # success, empty, failed
        )

        self.posts_purged = Counter(
            "events_indexer_posts_purged_total",
            "Posts deleted after their retention deadline",
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_post(self, platform: str, status: str, count: int = 1) -> None:
        """Record the outcome of a post passing through the pipeline."""
        self.posts_processed.labels(platform=platform, status=status).inc(count)

    def record_fetch(
        self,
        platform: str,
        count: int,
        latency: float | None = None,
    ) -> None:
        """Record a source batch handed to the pipeline."""
        self.posts_fetched.labels(platform=platform).inc(count)
        if latency is not None:
            self.fetch_latency.labels(platform=platform).observe(latency)

    def record_stage_latency(self, stage: str, latency: float) -> None:
        """Record processing stage latency in seconds."""
        self.processing_latency.labels(stage=stage).observe(latency)

    def record_error(
        self,
        stage: str,
        error_type: str,
        is_source: bool = False,
    ) -> None:
        """
        Record an error.

        Args:
            stage: Pipeline stage, or platform name for source errors
            error_type: Exception class name
            is_source: Whether this is a source fetch error
        """
        if is_source:
            self.source_errors.labels(platform=stage, error_type=error_type).inc()
        else:
            self.processing_errors.labels(stage=stage, error_type=error_type).inc()

    def record_extraction_failure(self, reason: str) -> None:
        """Record a degraded entity extraction call."""
        self.extraction_failures.labels(reason=reason).inc()

    def record_topic_matches(self, source: str, count: int) -> None:
        """Record topics attached to a persisted post by origin."""
        if count:
            self.topic_matches.labels(source=source).inc(count)

    def record_dictionary_rebuild(self, status: str, term_count: int) -> None:
        """Record a topic automaton rebuild and its resulting size."""
        self.dictionary_rebuilds.labels(status=status).inc()
        self.dictionary_terms.set(term_count)

    def record_purge(self, count: int) -> None:
        """Record posts deleted by the retention purge."""
        self.posts_purged.inc(count)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
