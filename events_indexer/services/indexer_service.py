"""
Indexer service: pulls from every source and feeds the pipeline.

One cycle fetches all sources concurrently, then runs each source's batch
through the post processing pipeline. The continuous mode repeats cycles on
the configured poll interval and purges expired posts each time.
"""

import asyncio
import time
from typing import Any

import structlog

from events_indexer.config.settings import get_settings
from events_indexer.ingestion.base_source import BaseSource
from events_indexer.ingestion.mock_source import create_mock_sources
from events_indexer.observability.logging import bound_context
from events_indexer.observability.metrics import get_metrics
from events_indexer.posts.schemas import IncomingPost, Platform
from events_indexer.services.pipeline import BatchResult, PostProcessingService

logger = structlog.get_logger(__name__)


class EventsIndexerService:
    """
    Orchestrates sources and the processing pipeline.

    Usage:
        indexer = EventsIndexerService(pipeline, use_mock=True)
        results = await indexer.run_once(max_results=50)
        await indexer.start()  # Runs until stop()
    """

    def __init__(
        self,
        pipeline: PostProcessingService,
        sources: dict[Platform, BaseSource] | None = None,
        use_mock: bool = False,
    ):
        settings = get_settings()

        self._pipeline = pipeline
        self._poll_interval = settings.poll_interval_seconds
        self._max_results = settings.max_batch_size
        self._running = False
        self._task: asyncio.Task | None = None
        self._metrics = get_metrics()

        if sources is not None:
            self._sources = sources
        elif use_mock:
            self._sources = create_mock_sources()
        else:
            self._sources = {}

        if not self._sources:
            logger.warning("No sources configured; cycles will fetch nothing")

        logger.info(
            "Indexer service initialized",
            sources=[p.value for p in self._sources],
            poll_interval=self._poll_interval,
        )

    @property
    def sources(self) -> dict[Platform, BaseSource]:
        return self._sources

    @property
    def is_running(self) -> bool:
        return self._running

    async def _fetch(self, platform: Platform, source: BaseSource, limit: int) -> list[IncomingPost]:
        start = time.monotonic()
        posts = await source.fetch(limit)
        self._metrics.record_fetch(platform.value, len(posts), time.monotonic() - start)
        return posts

    async def index_posts(self, posts: list[IncomingPost]) -> BatchResult:
        """Process an externally supplied batch."""
        return await self._pipeline.process_posts(posts)

    async def run_once(self, max_results: int | None = None) -> dict[str, Any]:
        """
        Run one indexing cycle over all sources.

        Returns:
            {platform: {fetched, processed, skipped, errors}, ...,
             "total_processed": n}. A failing source reports
            {0, 0, 0, 1}.
        """
        limit = max_results or self._max_results
        platforms = list(self._sources)

        fetched = await asyncio.gather(
            *(self._fetch(p, self._sources[p], limit) for p in platforms),
            return_exceptions=True,
        )

        results: dict[str, Any] = {}
        total_processed = 0

        for platform, outcome in zip(platforms, fetched):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Source fetch failed",
                    platform=platform.value,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                self._metrics.record_error(
                    platform.value, type(outcome).__name__, is_source=True
                )
                results[platform.value] = {
                    "fetched": 0, "processed": 0, "skipped": 0, "errors": 1,
                }
                continue

            with bound_context(platform=platform.value):
                batch = await self._pipeline.process_posts(outcome)

            results[platform.value] = {"fetched": len(outcome), **batch.to_dict()}
            total_processed += batch.processed

        results["total_processed"] = total_processed
        logger.info("Indexing cycle complete", total_processed=total_processed)
        return results

    async def purge_expired(self) -> int:
        deleted = await self._pipeline.posts.delete_expired()
        self._metrics.record_purge(deleted)
        return deleted

    async def start(self) -> None:
        """Run cycles until stop() is called."""
        self._running = True
        logger.info("Starting indexer")

        try:
            while self._running:
                try:
                    await self.run_once()
                    await self.purge_expired()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error("Indexing cycle failed", error=str(e))
                await asyncio.sleep(self._poll_interval)
        except asyncio.CancelledError:
            logger.info("Indexer cancelled")
        finally:
            self._running = False
            logger.info("Indexer stopped")

    def start_background(self) -> asyncio.Task:
        """Schedule start() as a task on the running loop."""
        self._task = asyncio.create_task(self.start(), name="events_indexer")
        return self._task

    async def stop(self) -> None:
        """Stop the loop and wait for the current task to finish."""
        logger.info("Stopping indexer")
        self._running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

    async def health_check(self) -> dict[str, Any]:
        source_health = {}
        for platform, source in self._sources.items():
            try:
                source_health[platform.value] = await source.health_check()
            except Exception as e:
                logger.warning("Source health check failed", platform=platform.value, error=str(e))
                source_health[platform.value] = False

        return {
            "running": self._running,
            "sources": source_health,
        }
