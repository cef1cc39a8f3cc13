"""Database repository for the topics table."""

import logging

import asyncpg

from events_indexer.storage.database import Database
from events_indexer.topics.schemas import Topic

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS topics (
    name         TEXT PRIMARY KEY,
    seq          BIGSERIAL,
    aliases      TEXT[] NOT NULL DEFAULT '{}',
    type         TEXT NOT NULL DEFAULT 'dictionary_match'
                 CHECK (type IN ('dictionary_match', 'ner', 'llm_classified')),
    category     TEXT,
    description  TEXT,
    frequency    BIGINT NOT NULL DEFAULT 0,
    is_active    BOOLEAN NOT NULL DEFAULT TRUE,
    created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at   TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Registration order; rows from one executemany share NOW()
ALTER TABLE topics ADD COLUMN IF NOT EXISTS seq BIGSERIAL;

CREATE INDEX IF NOT EXISTS idx_topics_category ON topics(category);
CREATE INDEX IF NOT EXISTS idx_topics_frequency ON topics(frequency DESC);
"""

_INSERT_SQL = """
INSERT INTO topics (name, aliases, type, category, description, frequency, is_active)
VALUES ($1, $2, $3, $4, $5, $6, $7)
ON CONFLICT (name) DO NOTHING
RETURNING name
"""

_INCREMENT_SQL = """
UPDATE topics
SET frequency = frequency + $2, updated_at = NOW()
WHERE name = ANY($1::text[])
"""


def _record_to_topic(record) -> Topic:
    """Convert an asyncpg Record to a Topic dataclass."""
    return Topic(
        name=record["name"],
        aliases=list(record["aliases"] or []),
        type=record["type"],
        category=record["category"],
        description=record["description"],
        frequency=record["frequency"],
        is_active=record["is_active"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


def _topic_args(topic: Topic) -> tuple:
    return (
        topic.name,
        list(topic.aliases),
        topic.type,
        topic.category,
        topic.description,
        topic.frequency,
        topic.is_active,
    )


def _affected_rows(status: str) -> int:
    """Parse the row count from a status string like 'UPDATE 3'."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


class TopicRepository:
    """CRUD operations for the topics table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the topics table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Topics table ensured")

    async def insert(self, topic: Topic) -> bool:
        """Insert a topic. Returns False if the name already exists."""
        row = await self._db.fetchrow(_INSERT_SQL, *_topic_args(topic))
        return row is not None

    async def bulk_insert(self, topics: list[Topic]) -> int:
        """Insert many topics, skipping names that already exist."""
        if not topics:
            return 0
        await self._db.executemany(_INSERT_SQL, [_topic_args(t) for t in topics])
        logger.info("Bulk inserted %d topics", len(topics))
        return len(topics)

    async def replace_all(self, topics: list[Topic]) -> int:
        """Delete every topic and insert the given ones in one transaction."""
        async with self._db.transaction() as conn:
            await conn.execute("DELETE FROM topics")
            if topics:
                await conn.executemany(
                    _INSERT_SQL, [_topic_args(t) for t in topics]
                )
        logger.info("Replaced topic registry with %d topics", len(topics))
        return len(topics)

    async def get_by_name(self, name: str) -> Topic | None:
        row = await self._db.fetchrow(
            "SELECT * FROM topics WHERE name = $1", name.strip().lower()
        )
        return _record_to_topic(row) if row else None

    async def list_active(self) -> list[Topic]:
        """All active topics in registration order."""
        rows = await self._db.fetch(
            "SELECT * FROM topics WHERE is_active = TRUE ORDER BY seq"
        )
        return [_record_to_topic(r) for r in rows]

    async def count(self) -> int:
        return await self._db.fetchval("SELECT COUNT(*) FROM topics") or 0

    async def increment_frequency(
        self,
        names: list[str],
        by: int = 1,
        conn: asyncpg.Connection | None = None,
    ) -> int:
        """Atomically add `by` to each named topic's frequency.

        Names with no registry row are ignored. Pass `conn` to run inside
        a caller's transaction. Returns the number of rows updated.
        """
        if not names:
            return 0
        executor = conn or self._db
        status = await executor.execute(_INCREMENT_SQL, list(names), by)
        return _affected_rows(status)

    async def get_top_topics(self, limit: int = 20) -> list[Topic]:
        """Active topics ordered by frequency, highest first."""
        rows = await self._db.fetch(
            """
            SELECT * FROM topics
            WHERE is_active = TRUE
            ORDER BY frequency DESC, name
            LIMIT $1
            """,
            limit,
        )
        return [_record_to_topic(r) for r in rows]

    async def get_by_category(self, category: str) -> list[Topic]:
        """Active topics in a category, ordered by frequency."""
        rows = await self._db.fetch(
            """
            SELECT * FROM topics
            WHERE is_active = TRUE AND category = $1
            ORDER BY frequency DESC, name
            """,
            category,
        )
        return [_record_to_topic(r) for r in rows]
