"""Posts: inbound schema and the post store."""

from events_indexer.posts.repository import PostRepository
from events_indexer.posts.schemas import ExtractedEntity, IncomingPost, Platform, Post

__all__ = ["ExtractedEntity", "IncomingPost", "Platform", "Post", "PostRepository"]
