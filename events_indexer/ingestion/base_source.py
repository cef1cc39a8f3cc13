"""
Source interface for platform fetchers.

A source pulls raw items from one platform and normalizes them into
IncomingPost. Platform HTTP clients live behind this interface; the
indexer only ever calls fetch() and health_check().
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from events_indexer.posts.schemas import IncomingPost, Platform

logger = logging.getLogger(__name__)


@dataclass
class SourceStats:
    """Statistics for one fetch run."""

    fetched: int = 0
    filtered: int = 0
    errors: int = 0
    start_time: float = field(default_factory=time.monotonic)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.start_time


class BaseSource(ABC):
    """
    Abstract base class for platform sources.

    Subclasses implement:
        - platform: Platform enum value
        - _fetch_raw(limit): async iterator over raw platform items
        - _transform(raw): raw item -> IncomingPost, or None to drop it
    """

    def __init__(self) -> None:
        self._stats = SourceStats()

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Platform this source reads from."""
        ...

    @property
    def name(self) -> str:
        return f"{self.platform.value}_source"

    @property
    def stats(self) -> SourceStats:
        return self._stats

    @abstractmethod
    def _fetch_raw(self, limit: int) -> AsyncIterator[dict[str, Any]]:
        """Yield up to limit raw items from the platform."""
        ...

    @abstractmethod
    def _transform(self, raw: dict[str, Any]) -> IncomingPost | None:
        """Normalize a raw item. Return None for items that should be dropped."""
        ...

    async def fetch(self, limit: int = 100) -> list[IncomingPost]:
        """
        Fetch and normalize up to limit posts.

        Items that fail to transform are counted and skipped. Errors from
        the platform itself propagate to the caller.
        """
        self._stats = SourceStats()
        posts: list[IncomingPost] = []

        async for raw in self._fetch_raw(limit):
            try:
                post = self._transform(raw)
            except Exception as e:
                self._stats.errors += 1
                logger.error(f"{self.name} failed to transform item: {e}")
                continue

            if post is None:
                self._stats.filtered += 1
                continue

            posts.append(post)
            self._stats.fetched += 1
            if len(posts) >= limit:
                break

        logger.info(
            f"{self.name} fetched {self._stats.fetched} posts "
            f"({self._stats.filtered} filtered, {self._stats.errors} errors) "
            f"in {self._stats.elapsed_seconds:.2f}s"
        )
        return posts

    async def health_check(self) -> bool:
        """Whether the source can currently fetch. Override for real platforms."""
        return True
