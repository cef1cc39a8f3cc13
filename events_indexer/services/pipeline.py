"""
Post processing pipeline.

Runs each incoming post through:
1. Quality filter (minimum content length)
2. Duplicate check on (platform, platform_id)
3. Author identity resolution
4. Topic extraction (dictionary matcher + remote extractor)
5. Persistence, topic frequency and author bookkeeping in one transaction

Posts in a batch are filtered and persisted sequentially; extraction for the
surviving posts runs as one concurrent batch. A failing post is counted as
an error and the batch continues.
"""

import time
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from events_indexer.authors.resolver import IdentityResolver
from events_indexer.authors.schemas import PlatformProfile
from events_indexer.config.settings import get_settings
from events_indexer.extraction.client import EntityExtractionClient
from events_indexer.extraction.schemas import ExtractionResult
from events_indexer.observability.metrics import get_metrics
from events_indexer.posts.repository import PostRepository
from events_indexer.posts.schemas import ExtractedEntity, IncomingPost, Post
from events_indexer.storage.database import Database
from events_indexer.topics.service import TopicMatchingService

logger = structlog.get_logger(__name__)

PROCESSED = "processed"
SKIPPED = "skipped"
ERROR = "error"


@dataclass
class BatchResult:
    """Outcome counts for one batch."""

    processed: int = 0
    skipped: int = 0
    errors: int = 0

    def record(self, outcome: str) -> None:
        if outcome == PROCESSED:
            self.processed += 1
        elif outcome == SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1

    @property
    def total(self) -> int:
        return self.processed + self.skipped + self.errors

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def merge_topics(dictionary: list[str], extracted: list[str]) -> list[str]:
    """Dictionary topics first, then extractor topics, lowercased, without repeats."""
    merged: dict[str, None] = {}
    for topic in [*dictionary, *extracted]:
        normalized = topic.strip().lower()
        if normalized:
            merged.setdefault(normalized, None)
    return list(merged)


class PostProcessingService:
    """
    Turns normalized platform posts into stored, topic-tagged posts.

    Usage:
        service = PostProcessingService(db, topic_service)
        result = await service.process_posts(posts)
        print(result.processed, result.skipped, result.errors)
    """

    def __init__(
        self,
        database: Database,
        topics: TopicMatchingService,
        extractor: EntityExtractionClient | None = None,
        resolver: IdentityResolver | None = None,
        posts: PostRepository | None = None,
    ):
        settings = get_settings()

        self._db = database
        self._topics = topics
        self._extractor = extractor or EntityExtractionClient()
        self._resolver = resolver or IdentityResolver(database)
        self._posts = posts or PostRepository(database)

        self._min_content_length = settings.min_content_length
        self._retention = timedelta(days=settings.retention_days)
        self._max_batch_size = settings.max_batch_size
        self._metrics = get_metrics()

    @property
    def posts(self) -> PostRepository:
        return self._posts

    @property
    def resolver(self) -> IdentityResolver:
        return self._resolver

    @property
    def extractor(self) -> EntityExtractionClient:
        return self._extractor

    async def process_posts(self, posts: list[IncomingPost]) -> BatchResult:
        """Process a batch. Never raises for a single bad post.

        Filtering and persistence run sequentially in batch order; entity
        extraction for the posts that survive filtering runs concurrently
        through the extractor's batch API.
        """
        result = BatchResult()

        if len(posts) > self._max_batch_size:
            logger.warning(
                "Batch larger than recommended",
                size=len(posts),
                max_batch_size=self._max_batch_size,
            )

        candidates: list[IncomingPost] = []
        for post in posts:
            try:
                if await self._should_skip(post):
                    self._record(result, post, SKIPPED)
                else:
                    candidates.append(post)
            except Exception as e:
                self._record_failure(result, post, e)

        extractions = await self._extract_batch(candidates)

        for post in candidates:
            try:
                outcome = await self._ingest(post, extractions.get(post.post_id))
            except Exception as e:
                self._record_failure(result, post, e)
                continue
            self._record(result, post, outcome)

        logger.info("Batch processed", **result.to_dict())
        return result

    def _record(self, result: BatchResult, post: IncomingPost, outcome: str) -> None:
        result.record(outcome)
        self._metrics.record_post(post.platform.value, outcome)

    def _record_failure(self, result: BatchResult, post: IncomingPost, error: Exception) -> None:
        logger.error(
            "Failed to process post",
            platform=post.platform.value,
            platform_id=post.platform_id,
            error=str(error),
            error_type=type(error).__name__,
        )
        self._metrics.record_error("pipeline", type(error).__name__)
        self._record(result, post, ERROR)

    async def process_post(self, post: IncomingPost) -> str:
        """Run one post through every stage.

        Returns:
            "processed" or "skipped".

        Raises:
            Exception: Any storage or identity failure. Extraction failures
                are absorbed.
        """
        if await self._should_skip(post):
            return SKIPPED
        return await self._ingest(post)

    async def _should_skip(self, post: IncomingPost) -> bool:
        """Quality filter and duplicate fast path."""
        platform = post.platform.value

        if len(post.content) < self._min_content_length:
            logger.debug(
                "Skipping short post",
                platform=platform,
                platform_id=post.platform_id,
                length=len(post.content),
            )
            return True

        if await self._posts.exists(platform, post.platform_id):
            logger.debug(
                "Skipping duplicate post",
                platform=platform,
                platform_id=post.platform_id,
            )
            return True

        return False

    async def _ingest(
        self,
        post: IncomingPost,
        extraction: ExtractionResult | None = None,
    ) -> str:
        platform = post.platform.value

        start = time.monotonic()
        author_id = await self._resolver.resolve(
            platform=platform,
            native_id=post.author_id,
            username=post.author_username,
            display_name=post.author_name,
            seen_at=post.created_at,
            profile=_profile_from(post),
        )
        self._metrics.record_stage_latency("identity", time.monotonic() - start)

        start = time.monotonic()
        topics, entities = await self._extract(post, extraction)
        self._metrics.record_stage_latency("extraction", time.monotonic() - start)

        now = datetime.now(timezone.utc)
        record = Post(
            id=post.post_id,
            platform=post.platform,
            platform_id=post.platform_id,
            content=post.content,
            author_id=author_id,
            author_name=post.author_name or post.author_username,
            created_at=post.created_at,
            url=post.url,
            topics=topics,
            extracted_entities=entities,
            processed_at=now,
            expires_at=now + self._retention,
            raw_data=post.raw_data,
        )

        start = time.monotonic()
        async with self._db.transaction() as conn:
            if not await self._posts.insert(record, conn=conn):
                logger.debug(
                    "Post inserted concurrently, skipping",
                    platform=platform,
                    platform_id=post.platform_id,
                )
                return SKIPPED
            await self._topics.update_topic_frequencies(topics, conn=conn)
            await self._resolver.record_post(author_id, post.created_at, conn=conn)
        self._metrics.record_stage_latency("persistence", time.monotonic() - start)

        logger.debug(
            "Post processed",
            post_id=record.id,
            topics=len(topics),
            entities=len(entities),
        )
        return PROCESSED

    async def _extract_batch(self, posts: list[IncomingPost]) -> dict[str, ExtractionResult]:
        """Run the extractor concurrently over posts, keyed by post id."""
        if not posts:
            return {}

        try:
            return await self._extractor.batch_extract(
                [(post.post_id, post.content) for post in posts]
            )
        except Exception as e:
            logger.warning(
                "Batch entity extraction failed, using dictionary topics only",
                posts=len(posts),
                error=str(e),
            )
            self._metrics.record_extraction_failure(type(e).__name__)
            return {post.post_id: ExtractionResult() for post in posts}

    async def _extract(
        self,
        post: IncomingPost,
        extraction: ExtractionResult | None = None,
    ) -> tuple[list[str], list[ExtractedEntity]]:
        """Dictionary topics merged with extractor output."""
        dictionary = sorted(
            self._topics.match_topics(post.content, self._topics.match_min_length)
        )

        if extraction is None:
            try:
                extraction = await self._extractor.extract(post.content)
            except Exception as e:
                logger.warning(
                    "Entity extraction failed, using dictionary topics only",
                    platform_id=post.platform_id,
                    error=str(e),
                )
                self._metrics.record_extraction_failure(type(e).__name__)
                extraction = ExtractionResult()

        topics = merge_topics(dictionary, extraction.topics)
        entities = [
            ExtractedEntity(
                text=mention.text,
                type=mention.type,
                method="ner",
                confidence=mention.confidence,
            )
            for mention in extraction.entities
        ]

        self._metrics.record_topic_matches("dictionary", len(dictionary))
        self._metrics.record_topic_matches("extractor", len(topics) - len(dictionary))
        return topics, entities

    async def reprocess_content(self, post_id: str, content: str) -> Post | None:
        """Rewrite a stored post's content and re-derive its topics and entities.

        Frequencies are not adjusted; the correction path only rewrites the post.
        """
        existing = await self._posts.get(post_id)
        if existing is None:
            return None

        incoming = IncomingPost(
            platform=existing.platform,
            platform_id=existing.platform_id,
            content=content,
            author_id=existing.author_id,
            created_at=existing.created_at,
        )
        topics, entities = await self._extract(incoming)
        await self._posts.update_content(post_id, content, topics, entities)
        return existing.model_copy(
            update={"content": content, "topics": topics, "extracted_entities": entities}
        )

    def stats(self) -> dict[str, Any]:
        return {
            "min_content_length": self._min_content_length,
            "retention_days": self._retention.days,
            "extractor_available": self._extractor.available,
            "extractor_circuit": self._extractor.breaker.state.value,
        }


def _profile_from(post: IncomingPost) -> PlatformProfile:
    return PlatformProfile(
        native_id=post.author_id,
        username=post.author_username,
        display_name=post.author_name,
        profile_image_url=post.author_profile_image_url,
        verified=post.author_verified,
        followers_count=post.author_followers,
        following_count=post.author_following,
    )
