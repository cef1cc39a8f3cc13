"""Database repository for indexed posts.

Owns the `posts` table: deduplicated inserts, windowed topic queries,
co-occurrence aggregation and retention purges. All window filters compare
`created_at` (the platform timestamp) against a caller-supplied cutoff.
"""

import logging
from datetime import datetime, timezone

import asyncpg

from events_indexer.posts.schemas import ExtractedEntity, Post
from events_indexer.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS posts (
    id                  TEXT PRIMARY KEY,
    platform            TEXT NOT NULL,
    platform_id         TEXT NOT NULL,
    content             TEXT NOT NULL,
    author_id           TEXT NOT NULL REFERENCES authors(id),
    author_name         TEXT NOT NULL DEFAULT '',
    created_at          TIMESTAMPTZ NOT NULL,
    url                 TEXT,
    topics              TEXT[] NOT NULL DEFAULT '{}',
    extracted_entities  JSONB NOT NULL DEFAULT '[]',
    processed_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    expires_at          TIMESTAMPTZ NOT NULL,
    raw_data            JSONB NOT NULL DEFAULT '{}',
    UNIQUE (platform, platform_id)
);

CREATE INDEX IF NOT EXISTS idx_posts_topics ON posts USING GIN(topics);
CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_posts_platform_created
    ON posts(platform, created_at DESC);
CREATE INDEX IF NOT EXISTS idx_posts_author ON posts(author_id);
CREATE INDEX IF NOT EXISTS idx_posts_expires_at ON posts(expires_at);
"""

_INSERT_SQL = """
INSERT INTO posts (
    id, platform, platform_id, content, author_id, author_name, created_at,
    url, topics, extracted_entities, processed_at, expires_at, raw_data
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13)
ON CONFLICT (platform, platform_id) DO NOTHING
RETURNING id
"""

# Joined author display name wins over the denormalized copy unless blank
_POST_COLUMNS = """
p.id, p.platform, p.platform_id, p.content, p.author_id,
COALESCE(NULLIF(a.display_name, ''), p.author_name) AS author_name,
p.created_at, p.url, p.topics, p.extracted_entities,
p.processed_at, p.expires_at, p.raw_data
"""

_CO_OCCURRING_SQL = """
SELECT t AS topic, COUNT(*) AS count,
       array_agg(DISTINCT p.platform ORDER BY p.platform) AS platforms
FROM posts p
CROSS JOIN LATERAL unnest(p.topics) AS t
WHERE $1 = ANY(p.topics)
  AND p.created_at >= $2
  AND ($4::text IS NULL OR p.platform = $4)
  AND t <> $1
GROUP BY t
ORDER BY count DESC, t
LIMIT $3
"""

_TOPIC_COUNTS_SINCE_SQL = """
SELECT t AS topic, COUNT(*) AS count
FROM posts p
CROSS JOIN LATERAL unnest(p.topics) AS t
WHERE ($1::timestamptz IS NULL OR p.created_at >= $1)
GROUP BY t
ORDER BY count DESC, t
LIMIT $2
"""

_AUTHOR_TOPIC_COUNTS_SQL = """
SELECT t AS topic, COUNT(*) AS count
FROM posts p
CROSS JOIN LATERAL unnest(p.topics) AS t
WHERE p.author_id = $1
GROUP BY t
ORDER BY count DESC, t
LIMIT $2
"""


def _record_to_post(record) -> Post:
    """Convert an asyncpg Record to a Post."""
    return Post(
        id=record["id"],
        platform=record["platform"],
        platform_id=record["platform_id"],
        content=record["content"],
        author_id=record["author_id"],
        author_name=record["author_name"] or "",
        created_at=record["created_at"],
        url=record["url"],
        topics=list(record["topics"] or []),
        extracted_entities=[
            ExtractedEntity(**e) for e in (record["extracted_entities"] or [])
        ],
        processed_at=record["processed_at"],
        expires_at=record["expires_at"],
        raw_data=record["raw_data"] or {},
    )


def _affected_rows(status: str) -> int:
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


class PostRepository:
    """Persistence and windowed queries for posts."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create the posts table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Posts table ensured")

    async def exists(self, platform: str, platform_id: str) -> bool:
        return bool(
            await self._db.fetchval(
                "SELECT EXISTS(SELECT 1 FROM posts WHERE platform = $1 AND platform_id = $2)",
                platform, platform_id,
            )
        )

    async def insert(
        self,
        post: Post,
        conn: asyncpg.Connection | None = None,
    ) -> bool:
        """Insert a post. Returns False when (platform, platform_id) already exists."""
        executor = conn or self._db
        row = await executor.fetchrow(
            _INSERT_SQL,
            post.id,
            post.platform.value,
            post.platform_id,
            post.content,
            post.author_id,
            post.author_name,
            post.created_at,
            post.url,
            post.topics,
            [e.model_dump() for e in post.extracted_entities],
            post.processed_at,
            post.expires_at,
            post.raw_data,
        )
        return row is not None

    async def get(self, post_id: str) -> Post | None:
        row = await self._db.fetchrow(
            f"""
            SELECT {_POST_COLUMNS}
            FROM posts p LEFT JOIN authors a ON a.id = p.author_id
            WHERE p.id = $1
            """,
            post_id,
        )
        return _record_to_post(row) if row else None

    async def get_topic_posts(
        self,
        topic: str,
        since: datetime,
        limit: int = 20,
        platform: str | None = None,
    ) -> list[Post]:
        """Posts tagged with topic created at or after since, newest first."""
        rows = await self._db.fetch(
            f"""
            SELECT {_POST_COLUMNS}
            FROM posts p LEFT JOIN authors a ON a.id = p.author_id
            WHERE $1 = ANY(p.topics)
              AND p.created_at >= $2
              AND ($4::text IS NULL OR p.platform = $4)
            ORDER BY p.created_at DESC
            LIMIT $3
            """,
            topic, since, limit, platform,
        )
        return [_record_to_post(r) for r in rows]

    async def get_recent(
        self,
        since: datetime | None = None,
        limit: int = 100,
        platform: str | None = None,
    ) -> list[Post]:
        """Newest posts, optionally windowed and restricted to one platform."""
        rows = await self._db.fetch(
            f"""
            SELECT {_POST_COLUMNS}
            FROM posts p LEFT JOIN authors a ON a.id = p.author_id
            WHERE ($1::timestamptz IS NULL OR p.created_at >= $1)
              AND ($3::text IS NULL OR p.platform = $3)
            ORDER BY p.created_at DESC
            LIMIT $2
            """,
            since, limit, platform,
        )
        return [_record_to_post(r) for r in rows]

    async def get_co_occurring(
        self,
        topic: str,
        since: datetime,
        limit: int = 20,
        platform: str | None = None,
    ) -> list[dict]:
        """Topics sharing posts with `topic`, with counts and platforms."""
        rows = await self._db.fetch(_CO_OCCURRING_SQL, topic, since, limit, platform)
        return [
            {
                "topic": r["topic"],
                "count": r["count"],
                "platforms": list(r["platforms"] or []),
            }
            for r in rows
        ]

    async def count_by_platform(self, since: datetime | None = None) -> dict[str, int]:
        rows = await self._db.fetch(
            """
            SELECT platform, COUNT(*) AS count FROM posts
            WHERE ($1::timestamptz IS NULL OR created_at >= $1)
            GROUP BY platform
            ORDER BY platform
            """,
            since,
        )
        return {r["platform"]: r["count"] for r in rows}

    async def get_topic_counts(
        self,
        since: datetime | None = None,
        limit: int = 20,
    ) -> list[dict]:
        """Most frequent post topics in the window."""
        rows = await self._db.fetch(_TOPIC_COUNTS_SINCE_SQL, since, limit)
        return [{"topic": r["topic"], "count": r["count"]} for r in rows]

    async def count_by_author(self, author_id: str) -> int:
        return await self._db.fetchval(
            "SELECT COUNT(*) FROM posts WHERE author_id = $1", author_id
        ) or 0

    async def get_author_topic_counts(self, author_id: str, limit: int = 10) -> list[dict]:
        rows = await self._db.fetch(_AUTHOR_TOPIC_COUNTS_SQL, author_id, limit)
        return [{"topic": r["topic"], "count": r["count"]} for r in rows]

    async def update_content(
        self,
        post_id: str,
        content: str,
        topics: list[str],
        entities: list[ExtractedEntity],
    ) -> bool:
        """Rewrite a post's content and derived fields (correction/backfill)."""
        status = await self._db.execute(
            """
            UPDATE posts
            SET content = $2, topics = $3, extracted_entities = $4,
                processed_at = NOW()
            WHERE id = $1
            """,
            post_id, content, topics, [e.model_dump() for e in entities],
        )
        return _affected_rows(status) > 0

    async def delete_expired(self, now: datetime | None = None) -> int:
        """Delete posts whose retention deadline has passed."""
        cutoff = now or datetime.now(timezone.utc)
        status = await self._db.execute(
            "DELETE FROM posts WHERE expires_at <= $1", cutoff
        )
        deleted = _affected_rows(status)
        if deleted:
            logger.info("Purged %d expired posts", deleted)
        return deleted
