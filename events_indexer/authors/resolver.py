"""Maps (platform, native id) pairs to internal author ids.

The first post from an unseen account creates an Author holding that one
platform identity. Later posts reuse it and refresh the display name when
it changed.
"""

import uuid
from datetime import datetime

import asyncpg
import structlog

from events_indexer.authors.repository import AuthorRepository
from events_indexer.authors.schemas import Author, PlatformProfile
from events_indexer.storage.database import Database

logger = structlog.get_logger(__name__)


def new_author_id() -> str:
    return f"author_{uuid.uuid4().hex[:16]}"


class IdentityResolver:
    """Find-or-create authors by platform identity."""

    def __init__(self, database: Database) -> None:
        self._repo = AuthorRepository(database)

    @property
    def repository(self) -> AuthorRepository:
        return self._repo

    async def resolve(
        self,
        platform: str,
        native_id: str,
        username: str,
        display_name: str,
        seen_at: datetime,
        profile: PlatformProfile | None = None,
    ) -> str:
        """Return the author id for a platform account, creating it if unseen.

        Args:
            platform: Platform the account belongs to.
            native_id: Account id on that platform.
            username: Handle on that platform.
            display_name: Name shown on the post.
            seen_at: Post timestamp; becomes first_seen for new authors.
            profile: Optional richer profile (followers, verified, avatar).
        """
        existing = await self._repo.find_by_identity(platform, native_id)
        if existing is not None:
            if display_name and existing.author_display_name != display_name:
                await self._refresh_names(
                    existing.author_id, platform, native_id, username, display_name
                )
            return existing.author_id

        if profile is None:
            profile = PlatformProfile(
                native_id=native_id,
                username=username,
                display_name=display_name,
            )

        author_id = new_author_id()
        try:
            await self._repo.create_with_identity(author_id, platform, profile, seen_at)
        except asyncpg.UniqueViolationError:
            # Another writer created this identity first; its transaction won.
            winner = await self._repo.find_by_identity(platform, native_id)
            if winner is None:
                raise
            logger.debug(
                "Identity created concurrently, reusing",
                platform=platform,
                native_id=native_id,
                author_id=winner.author_id,
            )
            return winner.author_id

        logger.debug(
            "Author created",
            platform=platform,
            native_id=native_id,
            author_id=author_id,
        )
        return author_id

    async def _refresh_names(
        self,
        author_id: str,
        platform: str,
        native_id: str,
        username: str,
        display_name: str,
    ) -> None:
        """Best-effort display name update; failures are only logged."""
        try:
            await self._repo.update_display_name(
                author_id, platform, native_id, username, display_name
            )
        except Exception as e:
            logger.warning(
                "Failed to update author display name",
                author_id=author_id,
                error=str(e),
            )

    async def get_author(self, author_id: str) -> Author | None:
        return await self._repo.get(author_id)

    async def list_authors(
        self,
        limit: int = 50,
        platform: str | None = None,
    ) -> list[Author]:
        return await self._repo.list_authors(limit=limit, platform=platform)

    async def record_post(
        self,
        author_id: str,
        created_at: datetime,
        conn: asyncpg.Connection | None = None,
    ) -> None:
        await self._repo.record_post(author_id, created_at, conn=conn)
