"""Events indexer: topic-tagged indexing of Stellar ecosystem social posts."""

__version__ = "0.1.0"
