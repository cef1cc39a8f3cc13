"""Data models for cross-platform authors."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class PlatformProfile:
    """One platform identity of an author.

    (platform, native_id) is unique across the store: a native account maps
    to at most one Author.
    """

    native_id: str
    username: str
    display_name: str = ""
    profile_image_url: str | None = None
    verified: bool = False
    followers_count: int = 0
    following_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "native_id": self.native_id,
            "username": self.username,
            "display_name": self.display_name,
            "profile_image_url": self.profile_image_url,
            "verified": self.verified,
            "followers_count": self.followers_count,
            "following_count": self.following_count,
        }


@dataclass
class Author:
    """
    A posting identity, possibly spanning several platforms.

    Attributes:
        id: Internal author id.
        display_name: Most recently observed display name.
        platforms: Platform name -> profile on that platform.
        post_count: Number of persisted posts attributed to the author.
        first_seen: Timestamp of the first post that created the author.
        last_active: Timestamp of the most recently recorded post.
    """

    id: str
    display_name: str
    platforms: dict[str, PlatformProfile] = field(default_factory=dict)
    post_count: int = 0
    first_seen: datetime | None = None
    last_active: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "platforms": {p: prof.to_dict() for p, prof in self.platforms.items()},
            "post_count": self.post_count,
            "first_seen": self.first_seen.isoformat() if self.first_seen else None,
            "last_active": self.last_active.isoformat() if self.last_active else None,
        }


@dataclass
class IdentityMatch:
    """Result of looking up a (platform, native_id) pair."""

    author_id: str
    author_display_name: str
    username: str
    display_name: str
