"""Database repository for authors and their platform identities."""

import logging
from datetime import datetime

import asyncpg

from events_indexer.authors.schemas import Author, IdentityMatch, PlatformProfile
from events_indexer.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS authors (
    id            TEXT PRIMARY KEY,
    display_name  TEXT NOT NULL DEFAULT '',
    post_count    BIGINT NOT NULL DEFAULT 0,
    first_seen    TIMESTAMPTZ NOT NULL,
    last_active   TIMESTAMPTZ NOT NULL
);

CREATE TABLE IF NOT EXISTS author_identities (
    platform           TEXT NOT NULL,
    native_id          TEXT NOT NULL,
    author_id          TEXT NOT NULL REFERENCES authors(id) ON DELETE CASCADE,
    username           TEXT NOT NULL DEFAULT '',
    display_name       TEXT NOT NULL DEFAULT '',
    profile_image_url  TEXT,
    verified           BOOLEAN NOT NULL DEFAULT FALSE,
    followers_count    INTEGER NOT NULL DEFAULT 0,
    following_count    INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (platform, native_id)
);

CREATE INDEX IF NOT EXISTS idx_author_identities_author
    ON author_identities(author_id);
CREATE INDEX IF NOT EXISTS idx_authors_last_active
    ON authors(last_active DESC);
"""

_FIND_IDENTITY_SQL = """
SELECT i.author_id, a.display_name AS author_display_name,
       i.username, i.display_name
FROM author_identities i
JOIN authors a ON a.id = i.author_id
WHERE i.platform = $1 AND i.native_id = $2
"""

_INSERT_AUTHOR_SQL = """
INSERT INTO authors (id, display_name, post_count, first_seen, last_active)
VALUES ($1, $2, 0, $3, $3)
"""

_INSERT_IDENTITY_SQL = """
INSERT INTO author_identities (
    platform, native_id, author_id, username, display_name,
    profile_image_url, verified, followers_count, following_count
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
"""

_RECORD_POST_SQL = """
UPDATE authors
SET post_count = post_count + 1, last_active = $2
WHERE id = $1
"""

_SELECT_IDENTITIES_SQL = """
SELECT * FROM author_identities WHERE author_id = ANY($1::text[])
"""


def _record_to_profile(record) -> PlatformProfile:
    return PlatformProfile(
        native_id=record["native_id"],
        username=record["username"],
        display_name=record["display_name"],
        profile_image_url=record["profile_image_url"],
        verified=record["verified"],
        followers_count=record["followers_count"],
        following_count=record["following_count"],
    )


def _record_to_author(record, identities: list) -> Author:
    """Convert an authors row plus its identity rows to an Author."""
    return Author(
        id=record["id"],
        display_name=record["display_name"],
        platforms={i["platform"]: _record_to_profile(i) for i in identities},
        post_count=record["post_count"],
        first_seen=record["first_seen"],
        last_active=record["last_active"],
    )


class AuthorRepository:
    """Persistence for authors and author_identities."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create author tables and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Author tables ensured")

    async def find_by_identity(
        self, platform: str, native_id: str
    ) -> IdentityMatch | None:
        row = await self._db.fetchrow(_FIND_IDENTITY_SQL, platform, native_id)
        if row is None:
            return None
        return IdentityMatch(
            author_id=row["author_id"],
            author_display_name=row["author_display_name"],
            username=row["username"],
            display_name=row["display_name"],
        )

    async def create_with_identity(
        self,
        author_id: str,
        platform: str,
        profile: PlatformProfile,
        seen_at: datetime,
    ) -> None:
        """Create an author and its single identity in one transaction.

        Raises:
            asyncpg.UniqueViolationError: If (platform, native_id) is taken.
        """
        async with self._db.transaction() as conn:
            await conn.execute(
                _INSERT_AUTHOR_SQL, author_id, profile.display_name, seen_at
            )
            await conn.execute(
                _INSERT_IDENTITY_SQL,
                platform,
                profile.native_id,
                author_id,
                profile.username,
                profile.display_name,
                profile.profile_image_url,
                profile.verified,
                profile.followers_count,
                profile.following_count,
            )

    async def update_display_name(
        self,
        author_id: str,
        platform: str,
        native_id: str,
        username: str,
        display_name: str,
    ) -> None:
        """Refresh the author's display name and the identity's names."""
        async with self._db.transaction() as conn:
            await conn.execute(
                "UPDATE authors SET display_name = $2 WHERE id = $1",
                author_id, display_name,
            )
            await conn.execute(
                """
                UPDATE author_identities
                SET username = $3, display_name = $4
                WHERE platform = $1 AND native_id = $2
                """,
                platform, native_id, username, display_name,
            )

    async def record_post(
        self,
        author_id: str,
        created_at: datetime,
        conn: asyncpg.Connection | None = None,
    ) -> None:
        """post_count += 1 and last_active = created_at."""
        executor = conn or self._db
        await executor.execute(_RECORD_POST_SQL, author_id, created_at)

    async def get(self, author_id: str) -> Author | None:
        row = await self._db.fetchrow("SELECT * FROM authors WHERE id = $1", author_id)
        if row is None:
            return None
        identities = await self._db.fetch(_SELECT_IDENTITIES_SQL, [author_id])
        return _record_to_author(row, identities)

    async def list_authors(
        self,
        limit: int = 50,
        platform: str | None = None,
    ) -> list[Author]:
        """Most recently active authors, optionally restricted to one platform."""
        if platform:
            rows = await self._db.fetch(
                """
                SELECT a.* FROM authors a
                WHERE EXISTS (
                    SELECT 1 FROM author_identities i
                    WHERE i.author_id = a.id AND i.platform = $2
                )
                ORDER BY a.last_active DESC
                LIMIT $1
                """,
                limit, platform,
            )
        else:
            rows = await self._db.fetch(
                """
                SELECT * FROM authors
                ORDER BY last_active DESC
                LIMIT $1
                """,
                limit,
            )
        if not rows:
            return []

        identities = await self._db.fetch(
            _SELECT_IDENTITIES_SQL, [r["id"] for r in rows]
        )
        by_author: dict[str, list] = {}
        for identity in identities:
            by_author.setdefault(identity["author_id"], []).append(identity)

        return [_record_to_author(r, by_author.get(r["id"], [])) for r in rows]
