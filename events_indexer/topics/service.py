"""Topic registry service: owns the live dictionary matcher.

Wraps TopicRepository and keeps one TopicAutomaton built from the active
topics. Rebuilds construct a new automaton and swap the reference under an
asyncio.Lock, so concurrent matchers always read a complete automaton.
"""

import asyncio
import json
from pathlib import Path
from typing import Any

import asyncpg
import structlog

from events_indexer.observability.metrics import get_metrics
from events_indexer.storage.database import Database
from events_indexer.topics.config import TopicsConfig
from events_indexer.topics.matcher import TopicAutomaton
from events_indexer.topics.repository import TopicRepository
from events_indexer.topics.schemas import Topic, normalize_term

logger = structlog.get_logger(__name__)

_DEFAULT_TOPICS_FILE = Path(__file__).parent / "data" / "default_topics.json"


class TopicConflictError(Exception):
    """Raised when a new topic's name or alias is already registered."""


def load_default_topics(path: Path | None = None) -> list[Topic]:
    """Read the bootstrap vocabulary. Every entry is a fresh dictionary_match topic."""
    seed_path = path or _DEFAULT_TOPICS_FILE
    with open(seed_path) as f:
        entries = json.load(f)
    return [
        Topic.from_dict({**entry, "type": "dictionary_match", "frequency": 0})
        for entry in entries
    ]


class TopicMatchingService:
    """
    Topic vocabulary management plus dictionary matching.

    Usage:
        service = TopicMatchingService(db)
        await service.initialize()
        service.match_topics("Stellar Lumens (XLM) settles in seconds")
        # {"stellar"}
    """

    def __init__(
        self,
        database: Database,
        config: TopicsConfig | None = None,
    ) -> None:
        self._config = config or TopicsConfig()
        self._repo = TopicRepository(database)
        self._automaton = TopicAutomaton.empty()
        self._lock = asyncio.Lock()
        self._metrics = get_metrics()

    @property
    def repository(self) -> TopicRepository:
        return self._repo

    @property
    def match_min_length(self) -> int:
        return self._config.match_min_length

    @property
    def automaton(self) -> TopicAutomaton:
        """The automaton currently used for matching."""
        return self._automaton

    def _seed_path(self) -> Path | None:
        return Path(self._config.seed_file) if self._config.seed_file else None

    # ── Dictionary lifecycle ────────────────────────────────────

    async def initialize(self) -> int:
        """Load the registry into the matcher. Returns the surface form count."""
        return await self.refresh_dictionary()

    async def refresh_dictionary(self) -> int:
        """Rebuild the matcher from the active topics.

        Bootstraps the default vocabulary when the registry is empty. Load
        failures are logged and leave the current automaton in place.
        """
        async with self._lock:
            try:
                topics = await self._repo.list_active()
                if not topics and self._config.seed_on_init:
                    logger.warning("Topic registry empty, bootstrapping defaults")
                    await self._repo.bulk_insert(load_default_topics(self._seed_path()))
                    topics = await self._repo.list_active()
                self._install(topics)
            except Exception as e:
                logger.error(
                    "Failed to build topic dictionary",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self._metrics.record_dictionary_rebuild(
                    "failed", self._automaton.term_count
                )
            return self._automaton.term_count

    async def reset_and_reload(self) -> int:
        """Replace the whole registry with the default vocabulary and rebuild.

        Raises on storage failure.
        """
        defaults = load_default_topics(self._seed_path())
        async with self._lock:
            await self._repo.replace_all(defaults)
            topics = await self._repo.list_active()
            self._install(topics)
        logger.info("Topic registry reset", topics=len(defaults))
        return len(defaults)

    def _install(self, topics: list[Topic]) -> None:
        """Build a new automaton from topics and swap it in."""
        entries = [pair for topic in topics for pair in topic.surface_forms()]
        automaton = TopicAutomaton.build(entries)
        self._automaton = automaton

        status = "empty" if automaton.is_empty else "success"
        self._metrics.record_dictionary_rebuild(status, automaton.term_count)
        logger.info(
            "Topic dictionary built",
            topics=automaton.topic_count,
            terms=automaton.term_count,
            collisions=len(automaton.collisions),
        )

    async def add_topic(
        self,
        name: str,
        aliases: list[str] | None = None,
        category: str | None = None,
        description: str | None = None,
        topic_type: str = "dictionary_match",
    ) -> Topic:
        """Register a new topic and rebuild the matcher.

        Raises:
            TopicConflictError: If the name exists, or the name or an alias
                already resolves to a different topic.
        """
        topic = Topic(
            name=name,
            aliases=[a.strip() for a in (aliases or []) if a.strip()],
            type=topic_type,
            category=category,
            description=description,
        )

        async with self._lock:
            if await self._repo.get_by_name(topic.name) is not None:
                raise TopicConflictError(f"Topic '{topic.name}' already exists")

            for surface, _ in topic.surface_forms():
                owner = self._automaton.canonical_for(surface)
                if owner is not None and owner != topic.name:
                    raise TopicConflictError(
                        f"'{normalize_term(surface)}' already belongs to topic '{owner}'"
                    )

            if not await self._repo.insert(topic):
                raise TopicConflictError(f"Topic '{topic.name}' already exists")

            topics = await self._repo.list_active()
            self._install(topics)

        logger.info("Topic added", topic=topic.name, aliases=len(topic.aliases))
        return topic

    # ── Matching ────────────────────────────────────────────────

    def match_topics(self, text: str, min_length: int = 0) -> set[str]:
        """Canonical topics found in text by the current automaton."""
        automaton = self._automaton
        return automaton.match(text, min_length)

    def match_probe(self, topic: str, text: str) -> dict[str, Any]:
        """Check whether one topic matches a text, with every match for context.

        ``surfaces`` lists the distinct surface forms that fired, in scan order.
        """
        automaton = self._automaton
        matches = automaton.match(text)
        surfaces = list(dict.fromkeys(s for _, s in automaton.match_surfaces(text)))
        snippet = text[:100] + ("..." if len(text) > 100 else "")
        return {
            "topic": topic,
            "text_snippet": snippet,
            "is_match": normalize_term(topic) in matches,
            "all_matches": sorted(matches),
            "surfaces": surfaces,
        }

    # ── Registry reads/writes ───────────────────────────────────

    async def update_topic_frequencies(
        self,
        topics: list[str],
        conn: asyncpg.Connection | None = None,
    ) -> int:
        """Increment frequency once per distinct topic name."""
        names = list(dict.fromkeys(normalize_term(t) for t in topics if t.strip()))
        return await self._repo.increment_frequency(names, conn=conn)

    async def get_top_topics(self, limit: int | None = None) -> list[Topic]:
        return await self._repo.get_top_topics(limit or self._config.top_topics_limit)

    async def get_topics_by_category(self, category: str) -> list[Topic]:
        return await self._repo.get_by_category(category)

    def stats(self) -> dict[str, Any]:
        """Shape of the current automaton."""
        automaton = self._automaton
        return {
            "topics": automaton.topic_count,
            "terms": automaton.term_count,
            "collisions": [
                {"surface": c.surface, "previous": c.previous, "current": c.current}
                for c in automaton.collisions
            ],
        }
