"""Authors: cross-platform identity resolution."""

from events_indexer.authors.repository import AuthorRepository
from events_indexer.authors.resolver import IdentityResolver
from events_indexer.authors.schemas import Author, IdentityMatch, PlatformProfile

__all__ = [
    "Author",
    "AuthorRepository",
    "IdentityMatch",
    "IdentityResolver",
    "PlatformProfile",
]
