"""Topics: registry, default vocabulary and dictionary matching."""

from events_indexer.topics.config import TopicsConfig
from events_indexer.topics.matcher import AliasCollision, TopicAutomaton
from events_indexer.topics.repository import TopicRepository
from events_indexer.topics.schemas import Topic
from events_indexer.topics.service import TopicConflictError, TopicMatchingService

__all__ = [
    "AliasCollision",
    "Topic",
    "TopicAutomaton",
    "TopicConflictError",
    "TopicMatchingService",
    "TopicRepository",
    "TopicsConfig",
]
