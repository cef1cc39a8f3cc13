"""Configuration for the topic registry."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TopicsConfig(BaseSettings):
    """Settings for topic vocabulary bootstrap and matching."""

    model_config = SettingsConfigDict(
        env_prefix="TOPICS_",
        case_sensitive=False,
        extra="ignore",
    )

    seed_on_init: bool = Field(
        default=True,
        description="Bootstrap the default vocabulary when the registry is empty",
    )
    seed_file: str | None = Field(
        default=None,
        description="Override path for the default vocabulary JSON",
    )
    match_min_length: int = Field(
        default=80,
        ge=0,
        description="Texts shorter than this are not scanned by the pipeline",
    )
    top_topics_limit: int = Field(
        default=20,
        ge=1,
        le=1000,
        description="Default size of top-topics listings",
    )
