"""Response schemas for the entity-extraction client."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

EntityType = Literal["PERSON", "ORG", "EVENT", "PRODUCT", "LOCATION"]


class EntityMention(BaseModel):
    """A named entity as returned by the model."""

    text: str = Field(..., min_length=1)
    type: EntityType
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class ExtractionResult(BaseModel):
    """Entities and free-form topics for one text. Empty means nothing usable."""

    entities: list[EntityMention] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @field_validator("topics")
    @classmethod
    def normalize_topics(cls, v: list[str]) -> list[str]:
        return [t.strip().lower() for t in v if t and t.strip()]

    @property
    def is_empty(self) -> bool:
        return not self.entities and not self.topics


# JSON schema sent as the response_format constraint
EXTRACTION_JSON_SCHEMA = {
    "type": "object",
    "properties": {
        "entities": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "text": {"type": "string"},
                    "type": {
                        "type": "string",
                        "enum": ["PERSON", "ORG", "EVENT", "PRODUCT", "LOCATION"],
                    },
                    "confidence": {"type": "number", "minimum": 0, "maximum": 1},
                },
                "required": ["text", "type"],
            },
        },
        "topics": {"type": "array", "items": {"type": "string"}},
        "confidence": {"type": "number", "minimum": 0, "maximum": 1},
    },
    "required": ["entities", "topics"],
}
