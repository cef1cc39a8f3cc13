"""Schema definitions for registered topics.

Maps 1:1 to the `topics` table. A topic is identified by its normalized
canonical name; its aliases are extra surface forms the dictionary matcher
resolves to that name.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

VALID_TOPIC_TYPES = frozenset({"dictionary_match", "ner", "llm_classified"})


def normalize_term(value: str) -> str:
    """Lowercase and trim a topic name or alias."""
    return value.strip().lower()


@dataclass
class Topic:
    """
    A registered topic.

    Attributes:
        name: Canonical name, lowercase and trimmed. Primary key.
        aliases: Ordered alternate surface forms (stored as given).
        type: How the topic entered the vocabulary.
        category: Free-form grouping (e.g. "technology", "wallet").
        description: Optional human-readable summary.
        frequency: Number of persisted posts tagged with the topic.
        is_active: Inactive topics are excluded from the matcher.
    """

    name: str
    aliases: list[str] = field(default_factory=list)
    type: str = "dictionary_match"
    category: str | None = None
    description: str | None = None
    frequency: int = 0
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.name = normalize_term(self.name)
        if not self.name:
            raise ValueError("Topic name must not be blank")
        if self.type not in VALID_TOPIC_TYPES:
            raise ValueError(
                f"Invalid topic type {self.type!r}. "
                f"Must be one of: {sorted(VALID_TOPIC_TYPES)}"
            )

    def surface_forms(self) -> list[tuple[str, str]]:
        """(surface, canonical) pairs for the matcher: the name, then aliases."""
        pairs = [(self.name, self.name)]
        pairs.extend((alias, self.name) for alias in self.aliases if alias.strip())
        return pairs

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "name": self.name,
            "aliases": list(self.aliases),
            "type": self.type,
            "category": self.category,
            "description": self.description,
            "frequency": self.frequency,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Topic":
        """Create from a seed entry or API payload."""
        return cls(
            name=data["name"],
            aliases=list(data.get("aliases", [])),
            type=data.get("type", "dictionary_match"),
            category=data.get("category"),
            description=data.get("description"),
            frequency=data.get("frequency", 0),
            is_active=data.get("is_active", True),
        )
