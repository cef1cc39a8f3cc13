"""Configuration for the entity-extraction client.

Settings can be overridden via EXTRACTION_* environment variables. The API
key is also read from TOGETHER_API_KEY.
"""

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtractionConfig(BaseSettings):
    """Settings for the Together AI chat-completion extractor."""

    model_config = SettingsConfigDict(
        env_prefix="EXTRACTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    enabled: bool = Field(default=True, description="Call the extractor at all")
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("EXTRACTION_API_KEY", "TOGETHER_API_KEY"),
        description="Together AI API key; extraction is skipped when unset",
    )
    base_url: str = Field(
        default="https://api.together.xyz/v1",
        description="OpenAI-compatible endpoint",
    )

    # Models
    primary_model: str = "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo"
    fallback_model: str = Field(
        default="meta-llama/Llama-3.3-70B-Instruct-Turbo",
        description="Used once when the primary model is rate limited",
    )

    # Generation
    temperature: float = Field(default=0.1, ge=0.0, le=2.0)
    max_tokens: int = Field(default=512, ge=1)
    timeout: float = Field(default=30.0, gt=0, description="Request timeout in seconds")

    # Batch extraction
    batch_size: int = Field(default=5, ge=1)
    batch_delay_seconds: float = Field(default=1.0, ge=0.0)

    # Circuit breaker
    circuit_failure_threshold: int = Field(default=5, ge=1)
    circuit_recovery_timeout: float = Field(default=60.0, gt=0)

    @property
    def configured(self) -> bool:
        return self.enabled and self.api_key is not None
