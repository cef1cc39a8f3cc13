"""
Read-side analytics over indexed posts.

Every query is windowed on the platform timestamp: posts with
created_at >= now - hours. Window sizes are clamped to [1, max_window_hours].
Queries never raise; storage failures are logged and produce neutral results.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from events_indexer.authors.repository import AuthorRepository
from events_indexer.config.settings import get_settings
from events_indexer.posts.repository import PostRepository
from events_indexer.posts.schemas import Post
from events_indexer.storage.database import Database

logger = structlog.get_logger(__name__)


class AnalyticsService:
    """Topic, author and indexing statistics.

    Usage:
        analytics = AnalyticsService(db)
        related = await analytics.co_occurring_topics("stellar", hours=48)
    """

    def __init__(
        self,
        database: Database,
        posts: PostRepository | None = None,
        authors: AuthorRepository | None = None,
    ):
        settings = get_settings()
        self._posts = posts or PostRepository(database)
        self._authors = authors or AuthorRepository(database)
        self._default_hours = settings.default_window_hours
        self._max_hours = settings.max_window_hours

    def clamp_hours(self, hours: int | None) -> int:
        """Default missing windows and clamp to [1, max_window_hours]."""
        if hours is None:
            return self._default_hours
        return max(1, min(int(hours), self._max_hours))

    def cutoff(self, hours: int | None) -> datetime:
        return datetime.now(timezone.utc) - timedelta(hours=self.clamp_hours(hours))

    async def topic_posts(
        self,
        topic: str,
        limit: int = 20,
        hours: int | None = None,
        platform: str | None = None,
    ) -> list[Post]:
        """Newest posts carrying topic inside the window."""
        try:
            return await self._posts.get_topic_posts(
                topic.strip().lower(), self.cutoff(hours), limit, platform
            )
        except Exception as e:
            logger.error("Error getting topic posts", topic=topic, error=str(e))
            return []

    async def co_occurring_topics(
        self,
        topic: str,
        limit: int = 20,
        hours: int | None = None,
        platform: str | None = None,
    ) -> list[dict[str, Any]]:
        """Topics appearing alongside topic, most frequent first.

        Each entry is {topic, count, platforms}; the target topic itself is
        never included.
        """
        try:
            return await self._posts.get_co_occurring(
                topic.strip().lower(), self.cutoff(hours), limit, platform
            )
        except Exception as e:
            logger.error("Error getting co-occurring topics", topic=topic, error=str(e))
            return []

    async def author_stats(self, author_id: str) -> dict[str, Any] | None:
        """Post totals, platforms and top 10 topics for one author, or None."""
        try:
            author = await self._authors.get(author_id)
            if author is None:
                return None

            total = await self._posts.count_by_author(author_id)
            top_topics = await self._posts.get_author_topic_counts(author_id, limit=10)
            return {
                "author_id": author.id,
                "display_name": author.display_name,
                "total_posts": total,
                "platforms": list(author.platforms),
                "top_topics": top_topics,
                "recent_activity": author.last_active or author.first_seen,
            }
        except Exception as e:
            logger.error("Error getting author stats", author_id=author_id, error=str(e))
            return None

    async def indexing_stats(self, hours: int | None = None) -> dict[str, Any]:
        """Window totals, per-platform counts, top 20 topics and 10 previews."""
        since = self.cutoff(hours)
        try:
            by_platform = await self._posts.count_by_platform(since)
            top_topics = await self._posts.get_topic_counts(since, limit=20)
            recent = await self._posts.get_recent(since, limit=10)
        except Exception as e:
            logger.error("Error getting indexing stats", error=str(e))
            return {
                "total_posts": 0,
                "by_platform": {},
                "top_topics": [],
                "recent_activity": [],
            }

        return {
            "total_posts": sum(by_platform.values()),
            "by_platform": by_platform,
            "top_topics": top_topics,
            "recent_activity": [post.preview() for post in recent],
        }

    async def recent_posts(
        self,
        hours: int | None = None,
        platform: str | None = None,
        limit: int = 100,
    ) -> list[Post]:
        """Newest posts. Without hours, the whole retained history is searched."""
        since = self.cutoff(hours) if hours is not None else None
        try:
            return await self._posts.get_recent(since, limit, platform)
        except Exception as e:
            logger.error("Error getting recent posts", error=str(e))
            return []
