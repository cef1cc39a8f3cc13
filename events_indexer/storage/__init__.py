"""Storage layer: shared asyncpg pool."""

from events_indexer.storage.database import Database, close_database, get_database

__all__ = ["Database", "close_database", "get_database"]
