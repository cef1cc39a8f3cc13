"""
Post schemas for the indexing pipeline.

IncomingPost is the normalized shape every source hands to the pipeline.
Post is the persisted record, one row in the `posts` table, keyed by
(platform, platform_id).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    """Supported data source platforms."""

    TWITTER = "twitter"
    REDDIT = "reddit"
    DISCORD = "discord"


ENTITY_TYPES = ("PERSON", "ORG", "EVENT", "PRODUCT", "LOCATION")


class ExtractedEntity(BaseModel):
    """A named entity reported by the extraction service."""

    text: str
    type: str
    method: str = "ner"
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class IncomingPost(BaseModel):
    """Normalized post as produced by a platform source."""

    platform: Platform
    platform_id: str = Field(..., min_length=1, description="Post id on the platform")
    content: str = Field(..., description="Full text content")

    # Author on the source platform
    author_id: str = Field(..., min_length=1, description="Platform-specific author id")
    author_username: str = Field(default="", description="Handle on the platform")
    author_name: str = Field(default="", description="Display name of the author")
    author_followers: int = Field(default=0, ge=0)
    author_following: int = Field(default=0, ge=0)
    author_verified: bool = False
    author_profile_image_url: str | None = None

    created_at: datetime = Field(..., description="Platform timestamp of the post")
    url: str | None = None
    raw_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def post_id(self) -> str:
        """Internal id in format {platform}_{platform_id}."""
        return f"{self.platform.value}_{self.platform_id}"


class Post(BaseModel):
    """A persisted, topic-tagged post."""

    id: str
    platform: Platform
    platform_id: str
    content: str
    author_id: str
    author_name: str = ""
    created_at: datetime
    url: str | None = None
    topics: list[str] = Field(default_factory=list)
    extracted_entities: list[ExtractedEntity] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=_utc_now)
    expires_at: datetime
    raw_data: dict[str, Any] = Field(default_factory=dict)

    def preview(self, topic_limit: int = 3, content_chars: int = 100) -> dict[str, Any]:
        """Short summary used by the indexing stats activity feed."""
        return {
            "id": self.id,
            "platform": self.platform.value,
            "created_at": self.created_at,
            "topics": self.topics[:topic_limit],
            "content_preview": self.content[:content_chars] + "...",
        }
